import uuid
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from eventflow.domain.events.models import Event, TicketOption
from .models import Ticket


async def get_ticket_by_id(db: AsyncSession, ticket_id: uuid.UUID, *, for_update: bool = False) -> Ticket | None:
    stmt = select(Ticket).where(Ticket.id == ticket_id)
    if for_update:
        stmt = stmt.with_for_update(of=Ticket)
    result = await db.execute(stmt)
    return result.scalars().first()


async def get_event_id_for_ticket(db: AsyncSession, ticket_id: uuid.UUID) -> uuid.UUID | None:
    return await db.scalar(
        select(TicketOption.event_id)
        .join(Ticket, Ticket.ticket_option_id == TicketOption.id)
        .where(Ticket.id == ticket_id)
    )


async def get_organizer_id_for_ticket(db: AsyncSession, ticket_id: uuid.UUID) -> uuid.UUID | None:
    return await db.scalar(
        select(Event.organizer_id)
        .join(TicketOption, TicketOption.event_id == Event.id)
        .join(Ticket, Ticket.ticket_option_id == TicketOption.id)
        .where(Ticket.id == ticket_id)
    )


async def list_ticket_ids_for_event(db: AsyncSession, event_id: uuid.UUID) -> list[uuid.UUID]:
    result = await db.scalars(
        select(Ticket.id)
        .join(TicketOption, TicketOption.id == Ticket.ticket_option_id)
        .where(TicketOption.event_id == event_id)
        .order_by(Ticket.created_at, Ticket.id)
    )
    return list(result.all())


async def count_tickets_by_option(db: AsyncSession, ticket_option_ids: set[uuid.UUID]) -> dict[uuid.UUID, int]:
    result = await db.execute(
        select(Ticket.ticket_option_id, func.count(Ticket.id))
        .where(Ticket.ticket_option_id.in_(ticket_option_ids))
        .group_by(Ticket.ticket_option_id)
    )
    return {option_id: int(cnt) for option_id, cnt in result.all()}
