import uuid
from typing import Iterable
from sqlalchemy.ext.asyncio import AsyncSession
from eventflow.core.auditing import AuditSpan
from eventflow.core.pagination import PageDTO
from eventflow.domain.accounts import crud as accounts_crud
from eventflow.domain.events import crud
from eventflow.domain.events.models import Event, Category
from eventflow.domain.events.schemas import (
    EventCreateDTO, EventUpdateDTO, EventReadDTO, EventDetailsDTO, EventsQueryDTO, TicketOptionUpsertDTO
)
from eventflow.domain.exceptions import NotFound, InvalidInput, Forbidden
from eventflow.domain.tickets import crud as tickets_crud
from eventflow.services import availability_service


async def _require_event(db: AsyncSession, event_id: uuid.UUID) -> Event:
    event = await crud.get_event_by_id(db, event_id)
    if not event:
        raise NotFound("Event not found", ctx={"event_id": event_id})
    return event


def _require_owner(event: Event, organizer_id: uuid.UUID) -> None:
    if event.organizer_id != organizer_id:
        raise Forbidden("Not allowed", ctx={"event_id": event.id, "reason": "organizer_mismatch"})


def _validate_times_on_update(data: dict, event: Event) -> None:
    start = data.get("start_date", event.start_date)
    end = data.get("end_date", event.end_date)
    if end <= start:
        raise InvalidInput(
            "end_date must be after start_date",
            ctx={"start_date": start.isoformat(), "end_date": end.isoformat()}
        )


async def _require_categories(db: AsyncSession, category_ids: list[uuid.UUID]) -> None:
    ids = set(category_ids)
    if ids and await crud.count_categories(db, ids) != len(ids):
        raise InvalidInput("Unknown category", ctx={"category_ids": sorted(str(i) for i in ids)})


async def _upsert_ticket_options(db: AsyncSession, event: Event, options: list[TicketOptionUpsertDTO]) -> None:
    ids = {o.id for o in options if o.id is not None}
    # Row locks serialize this against purchases counting the same options.
    locked = await availability_service.load_ticket_options(db, ids, for_update=True) if ids else {}
    sold = await tickets_crud.count_tickets_by_option(db, ids) if ids else {}

    for schema in options:
        data = schema.model_dump(exclude={"id"})
        if schema.id is None:
            await crud.create_ticket_option(db, {**data, "event_id": event.id})
            continue

        option = locked.get(schema.id)
        if option is None or option.event_id != event.id:
            raise NotFound("Ticket option not found", ctx={"event_id": event.id, "ticket_option_id": schema.id})
        if schema.amount_available < sold.get(schema.id, 0):
            raise InvalidInput(
                "amount_available cannot drop below tickets already sold",
                ctx={"ticket_option_id": schema.id, "sold": sold.get(schema.id, 0)}
            )
        for key, value in data.items():
            setattr(option, key, value)


async def create_event(db: AsyncSession, organizer_id: uuid.UUID, schema: EventCreateDTO) -> Event:
    async with AuditSpan(
        scope="EVENTS",
        action="CREATE",
        object_type="event",
        organizer_id=organizer_id,
        meta={"ticket_options": len(schema.ticket_options)}
    ) as span:
        if not await accounts_crud.organizer_exists(db, organizer_id):
            raise Forbidden("Organizer role required", ctx={"account_id": organizer_id})
        await _require_categories(db, schema.category_ids)

        data = schema.model_dump(exclude={"ticket_options", "category_ids"})
        data["organizer_id"] = organizer_id
        event = await crud.create_event(db, data)
        await db.flush()

        for option in schema.ticket_options:
            await crud.create_ticket_option(db, {**option.model_dump(), "event_id": event.id})
        if schema.category_ids:
            await crud.replace_event_categories(db, event.id, schema.category_ids)
        await db.flush()
        await db.refresh(event, attribute_names=["ticket_options", "categories"])

        span.object_id = event.id
        span.event_id = event.id
        return event


async def update_event(
        db: AsyncSession,
        event_id: uuid.UUID,
        organizer_id: uuid.UUID,
        schema: EventUpdateDTO
) -> Event:
    """
    Partial update of an event, upsert of its ticket options and, when given, replacement of its category links.
    Options are never removed here, and the sold/interested counters are left alone.
    """
    data = schema.model_dump(exclude_unset=True, exclude={"ticket_options", "category_ids"})
    async with AuditSpan(
        scope="EVENTS",
        action="UPDATE",
        object_type="event",
        object_id=event_id,
        event_id=event_id,
        organizer_id=organizer_id,
        meta={"fields": sorted(data)}
    ):
        event = await _require_event(db, event_id)
        _require_owner(event, organizer_id)
        for key in ("name", "description", "location", "price", "start_date", "end_date"):
            if key in data and data[key] is None:
                raise InvalidInput(f"{key} cannot be null", ctx={"field": key})
        _validate_times_on_update(data, event)

        await crud.update_event(event, data)
        if schema.ticket_options:
            await _upsert_ticket_options(db, event, schema.ticket_options)
        if schema.category_ids is not None:
            await _require_categories(db, schema.category_ids)
            await crud.replace_event_categories(db, event.id, schema.category_ids)
        await db.flush()
        await db.refresh(event, attribute_names=["ticket_options", "categories"])
        return event


async def get_event(db: AsyncSession, event_id: uuid.UUID, attendee_id: uuid.UUID | None = None) -> EventDetailsDTO:
    event = await _require_event(db, event_id)
    details = EventDetailsDTO.model_validate(event)
    if attendee_id is not None:
        details.saved_event_id = await crud.get_saved_event_id(db, attendee_id, event_id)
    return details


async def get_events(db: AsyncSession, organizer_id: uuid.UUID) -> list[Event]:
    return await crud.list_events_for_organizer(db, organizer_id)


async def find_events(db: AsyncSession, query: EventsQueryDTO) -> PageDTO[EventReadDTO]:
    events, total = await crud.list_events(
        db,
        page=query.page,
        page_size=query.page_size,
        min_date=query.min_date,
        max_date=query.max_date,
        min_price=query.min_price,
        max_price=query.max_price,
        locations=query.location,
        category_ids=query.category,
        keywords=query.keywords
    )
    items = [EventReadDTO.model_validate(event) for event in events]
    return PageDTO(items=items, total=total, page=query.page, page_size=query.page_size)


async def get_categories(db: AsyncSession) -> list[Category]:
    return await crud.list_categories(db)


async def get_event_from_ticket_options(db: AsyncSession, ticket_option_ids: Iterable[uuid.UUID]) -> Event | None:
    """The single event all given options belong to, or None for unknown ids or mixed events."""
    ids = set(ticket_option_ids)
    options = await crud.get_ticket_options_by_ids(db, ids)
    if not ids or len(options) != len(ids):
        return None
    event_ids = {option.event_id for option in options}
    if len(event_ids) != 1:
        return None
    return await crud.get_event_by_id(db, event_ids.pop())
