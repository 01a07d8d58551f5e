import re
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Iterable
from sqlalchemy import select, func, or_, delete, insert
from sqlalchemy.ext.asyncio import AsyncSession
from eventflow.core.pagination import paginate
from .models import Event, TicketOption, SavedEvent, Category, EventCategory


def keyword_pattern(keywords: str) -> str:
    # Any listed word, matched whole; \m and \M are Postgres word anchors.
    words = sorted({word.lower() for word in keywords.split()})
    return r"\m(" + "|".join(re.escape(word) for word in words) + r")\M"


async def get_event_by_id(db: AsyncSession, event_id: uuid.UUID) -> Event | None:
    result = await db.execute(select(Event).where(Event.id == event_id))
    return result.scalars().first()


async def list_events(
        db: AsyncSession,
        *,
        page: int = 1,
        page_size: int = 20,
        organizer_id: uuid.UUID | None = None,
        min_date: datetime | None = None,
        max_date: datetime | None = None,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
        locations: Iterable[str] | None = None,
        category_ids: Iterable[uuid.UUID] | None = None,
        keywords: str | None = None
) -> tuple[list[Event], int]:
    where = []

    if organizer_id is not None:
        where.append(Event.organizer_id == organizer_id)
    if min_date is not None:
        where.append(Event.start_date >= min_date)
    if max_date is not None:
        where.append(Event.end_date <= max_date)
    if min_price is not None:
        where.append(Event.price >= min_price)
    if max_price is not None:
        where.append(Event.price <= max_price)
    if locations:
        where.append(func.lower(Event.location).in_({loc.lower() for loc in locations}))
    if category_ids:
        linked = select(EventCategory.event_id).where(EventCategory.category_id.in_(set(category_ids)))
        where.append(Event.id.in_(linked))
    if keywords and keywords.split():
        pattern = keyword_pattern(keywords)
        where.append(or_(
            Event.name.regexp_match(pattern, flags="i"),
            Event.description.regexp_match(pattern, flags="i")
        ))

    return await paginate(
        db,
        select(Event),
        page=page,
        page_size=page_size,
        where=where,
        order_by=[Event.start_date, Event.id]
    )


async def list_events_for_organizer(db: AsyncSession, organizer_id: uuid.UUID) -> list[Event]:
    result = await db.scalars(
        select(Event).where(Event.organizer_id == organizer_id).order_by(Event.start_date.desc(), Event.id)
    )
    return list(result.all())


async def create_event(db: AsyncSession, data: dict) -> Event:
    event = Event(**data)
    db.add(event)
    return event


async def update_event(event: Event, data: dict) -> Event:
    for key, value in data.items():
        setattr(event, key, value)
    return event


async def get_ticket_options_by_ids(db: AsyncSession, ticket_option_ids: Iterable[uuid.UUID]) -> list[TicketOption]:
    result = await db.scalars(select(TicketOption).where(TicketOption.id.in_(set(ticket_option_ids))))
    return list(result.all())


async def create_ticket_option(db: AsyncSession, data: dict) -> TicketOption:
    ticket_option = TicketOption(**data)
    db.add(ticket_option)
    return ticket_option


async def get_saved_event_by_id(db: AsyncSession, saved_event_id: uuid.UUID) -> SavedEvent | None:
    result = await db.execute(select(SavedEvent).where(SavedEvent.id == saved_event_id))
    return result.scalars().first()


async def get_saved_event_id(db: AsyncSession, attendee_id: uuid.UUID, event_id: uuid.UUID) -> uuid.UUID | None:
    return await db.scalar(
        select(SavedEvent.id).where(SavedEvent.attendee_id == attendee_id, SavedEvent.event_id == event_id)
    )


async def list_categories(db: AsyncSession) -> list[Category]:
    result = await db.scalars(select(Category).order_by(Category.name, Category.id))
    return list(result.all())


async def count_categories(db: AsyncSession, category_ids: Iterable[uuid.UUID]) -> int:
    return await db.scalar(
        select(func.count()).select_from(Category).where(Category.id.in_(set(category_ids)))
    ) or 0


async def replace_event_categories(db: AsyncSession, event_id: uuid.UUID, category_ids: Iterable[uuid.UUID]) -> None:
    await db.execute(delete(EventCategory).where(EventCategory.event_id == event_id))
    rows = [{"id": uuid.uuid4(), "event_id": event_id, "category_id": category_id} for category_id in set(category_ids)]
    if rows:
        await db.execute(insert(EventCategory), rows)
