import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Iterable
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession
from eventflow.domain.events.models import Event, TicketOption
from eventflow.domain.tickets.models import Ticket
from eventflow.domain.tickets.schemas import StatisticsDTO


def month_bounds(month: date | datetime) -> tuple[datetime, datetime]:
    if isinstance(month, datetime) and month.tzinfo is not None:
        month = month.astimezone(timezone.utc)
    start = datetime(month.year, month.month, 1, tzinfo=timezone.utc)
    if month.month == 12:
        end = datetime(month.year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(month.year, month.month + 1, 1, tzinfo=timezone.utc)
    return start, end


def build_daily_sales(rows: Iterable[tuple[int, Decimal]]) -> list[Decimal]:
    """Turn (day_of_month, total) rows into a 1-based day array, zero-filling gaps up to the last sale day."""
    totals: dict[int, Decimal] = {}
    for day, total in rows:
        totals[int(day)] = totals.get(int(day), Decimal("0")) + Decimal(total or 0)
    if not totals:
        return []
    return [totals.get(day, Decimal("0")) for day in range(1, max(totals) + 1)]


async def get_statistics(db: AsyncSession, organizer_id: uuid.UUID, month: date | datetime) -> StatisticsDTO:
    start, end = month_bounds(month)

    total_events = await db.scalar(
        select(func.count(Event.id))
        .where(Event.organizer_id == organizer_id, Event.start_date < end, Event.end_date >= start)
    )

    sold_in_month = and_(
        Event.organizer_id == organizer_id,
        Ticket.created_at >= start,
        Ticket.created_at < end
    )
    base = (
        select()
        .select_from(Ticket)
        .join(TicketOption, TicketOption.id == Ticket.ticket_option_id)
        .join(Event, Event.id == TicketOption.event_id)
        .where(sold_in_month)
    )

    totals = (await db.execute(
        base.add_columns(
            func.count(Ticket.id),
            func.coalesce(func.sum(Ticket.price), 0),
            func.count(Ticket.id).filter(Ticket.is_reviewed.is_(True))
        )
    )).one()

    day = func.extract("day", func.timezone("UTC", Ticket.created_at))
    daily_rows = (await db.execute(
        base.add_columns(day, func.sum(Ticket.price)).group_by(day).order_by(day)
    )).all()

    return StatisticsDTO(
        total_events=int(total_events or 0),
        total_tickets=int(totals[0] or 0),
        total_sales=Decimal(totals[1] or 0),
        total_reviewed=int(totals[2] or 0),
        daily_sales=build_daily_sales(daily_rows)
    )
