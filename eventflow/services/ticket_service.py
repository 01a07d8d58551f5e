import uuid
from collections import Counter
from typing import AsyncIterator, Awaitable, Callable
from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload
from eventflow.core.auditing import AuditSpan
from eventflow.domain.accounts import crud as accounts_crud
from eventflow.domain.events import crud as events_crud
from eventflow.domain.events.models import Event, TicketOption
from eventflow.domain.exceptions import NotFound, InvalidInput
from eventflow.domain.tickets import crud as tickets_crud
from eventflow.domain.tickets.models import Ticket
from eventflow.domain.tickets.schemas import TicketDraftDTO, TicketSnapshotDTO, TicketReadDTO
from eventflow.services import availability_service

ZERO_ID = uuid.UUID(int=0)
HOLDER_FIELDS = ("holder_name", "holder_email", "holder_phone")

OnCreated = Callable[[list[TicketReadDTO]], Awaitable[bool]]
OnDeleted = Callable[[TicketReadDTO], Awaitable[bool]]


async def _require_ticket(db: AsyncSession, ticket_id: uuid.UUID, *, for_update: bool = False) -> Ticket:
    ticket = await tickets_crud.get_ticket_by_id(db, ticket_id, for_update=for_update)
    if not ticket:
        raise NotFound("Ticket not found", ctx={"ticket_id": ticket_id})
    return ticket


def _holder_differs(ticket: Ticket, snapshot: TicketSnapshotDTO) -> bool:
    return any(getattr(ticket, f) != getattr(snapshot, f) for f in HOLDER_FIELDS)


async def _bump_sold(db: AsyncSession, event_id: uuid.UUID, delta: int) -> None:
    if delta >= 0:
        value = Event.sold + delta
    else:
        value = func.greatest(Event.sold + delta, 0)
    await db.execute(update(Event).where(Event.id == event_id).values(sold=value))


async def create_tickets(
        db: AsyncSession,
        drafts: list[TicketDraftDTO],
        on_created: OnCreated | None = None
) -> bool:
    """
    Insert a batch of tickets for a single event
    - Re-checks capacity with the ticket option rows locked, so concurrent batches serialize
    - Bumps Event.sold in the same savepoint as the inserts
    - ``on_created`` returning False undoes the whole batch
    """
    async with AuditSpan(
        scope="TICKETS",
        action="CREATE",
        object_type="ticket",
        meta={"count": len(drafts)}
    ) as span:
        if not drafts:
            span.meta["rejected"] = "empty"
            return False

        for attendee_id in {d.attendee_id for d in drafts}:
            if not await accounts_crud.attendee_exists(db, attendee_id):
                span.meta["rejected"] = "attendee_not_found"
                return False

        requested = Counter(d.ticket_option_id for d in drafts)
        savepoint = await db.begin_nested()
        try:
            available, options = await availability_service.check_capacity(db, requested, for_update=True)
            if not available:
                await savepoint.rollback()
                span.meta["rejected"] = "unavailable"
                return False

            event_id = options[drafts[0].ticket_option_id].event_id
            span.event_id = event_id
            await _bump_sold(db, event_id, len(drafts))

            tickets = [
                Ticket(ticket_option=options[d.ticket_option_id], **d.model_dump())
                for d in drafts
            ]
            db.add_all(tickets)
            await db.flush()

            if on_created is not None:
                created = [TicketReadDTO.model_validate(t) for t in tickets]
                if not await on_created(created):
                    await savepoint.rollback()
                    span.meta["rejected"] = "callback"
                    return False
        except Exception:
            await savepoint.rollback()
            raise

        await savepoint.commit()
        span.meta["ticket_ids"] = [t.id for t in tickets]
        return True


async def delete_ticket(
        db: AsyncSession,
        ticket_id: uuid.UUID,
        on_deleted: OnDeleted | None = None
) -> bool:
    async with AuditSpan(
        scope="TICKETS",
        action="DELETE",
        object_type="ticket",
        object_id=ticket_id,
        ticket_id=ticket_id
    ) as span:
        savepoint = await db.begin_nested()
        try:
            ticket = await _require_ticket(db, ticket_id, for_update=True)
            snapshot = TicketReadDTO.model_validate(ticket)
            span.event_id = snapshot.event_id

            await _bump_sold(db, ticket.ticket_option.event_id, -1)
            await db.delete(ticket)
            await db.flush()

            if on_deleted is not None and not await on_deleted(snapshot):
                await savepoint.rollback()
                span.meta["rejected"] = "callback"
                return False
        except Exception:
            await savepoint.rollback()
            raise

        await savepoint.commit()
        return True


async def delete_tickets(
        db: AsyncSession,
        event_id: uuid.UUID,
        on_deleted: OnDeleted | None = None
) -> bool:
    """
    Delete every ticket of an event, oldest first, one savepoint per ticket.
    Stops at the first rejected ticket and returns False; tickets deleted before it stay deleted.
    """
    async with AuditSpan(
        scope="TICKETS",
        action="DELETE_ALL",
        object_type="event",
        object_id=event_id,
        event_id=event_id
    ) as span:
        if not await events_crud.get_event_by_id(db, event_id):
            raise NotFound("Event not found", ctx={"event_id": event_id})

        ticket_ids = await tickets_crud.list_ticket_ids_for_event(db, event_id)
        deleted = 0
        for ticket_id in ticket_ids:
            if not await delete_ticket(db, ticket_id, on_deleted):
                span.meta.update({"rejected": "callback", "deleted": deleted, "stopped_at": ticket_id})
                return False
            deleted += 1

        span.meta["deleted"] = deleted
        return True


async def review_ticket(db: AsyncSession, ticket: uuid.UUID | TicketSnapshotDTO) -> None:
    snapshot = ticket if isinstance(ticket, TicketSnapshotDTO) else None
    ticket_id = snapshot.id if snapshot else ticket

    async with AuditSpan(
        scope="TICKETS",
        action="REVIEW",
        object_type="ticket",
        object_id=ticket_id,
        ticket_id=ticket_id
    ) as span:
        row = await _require_ticket(db, ticket_id, for_update=True)
        if snapshot is not None and _holder_differs(row, snapshot):
            span.meta["skipped"] = "stale_snapshot"
            return
        if row.is_reviewed:
            span.meta["skipped"] = "already_reviewed"
            return

        row.is_reviewed = True
        await db.flush()


async def update_ticket(db: AsyncSession, snapshot: TicketSnapshotDTO) -> None:
    async with AuditSpan(
        scope="TICKETS",
        action="UPDATE",
        object_type="ticket",
        object_id=snapshot.id,
        ticket_id=snapshot.id
    ) as span:
        if snapshot.id == ZERO_ID:
            raise InvalidInput("Ticket id is required", ctx={"ticket_id": snapshot.id})

        row = await _require_ticket(db, snapshot.id, for_update=True)
        changed = [f for f in HOLDER_FIELDS if getattr(row, f) != getattr(snapshot, f)]
        span.meta["changed"] = changed
        if not changed:
            return

        for field in changed:
            setattr(row, field, getattr(snapshot, field))
        row.is_reviewed = False
        await db.flush()


async def is_ticket_owner(db: AsyncSession, ticket_id: uuid.UUID, account_id: uuid.UUID) -> bool:
    return bool(await db.scalar(
        select(select(Ticket.id).where(Ticket.id == ticket_id, Ticket.attendee_id == account_id).exists())
    ))


async def is_ticket_organizer(db: AsyncSession, ticket_id: uuid.UUID, account_id: uuid.UUID) -> bool:
    organizer_id = await tickets_crud.get_organizer_id_for_ticket(db, ticket_id)
    return organizer_id is not None and organizer_id == account_id


async def get_ticket(db: AsyncSession, ticket_id: uuid.UUID) -> TicketReadDTO | None:
    ticket = await tickets_crud.get_ticket_by_id(db, ticket_id)
    return TicketReadDTO.model_validate(ticket) if ticket else None


async def get_tickets(db: AsyncSession, account_id: uuid.UUID) -> list[TicketReadDTO]:
    result = await db.scalars(
        select(Ticket)
        .where(Ticket.attendee_id == account_id)
        .order_by(Ticket.created_at.desc(), Ticket.id.desc())
    )
    return [TicketReadDTO.model_validate(t) for t in result.all()]


async def get_attendance(
        db: AsyncSession,
        organizer_id: uuid.UUID,
        event_id: uuid.UUID | None = None
) -> AsyncIterator[TicketReadDTO]:
    stmt = (
        select(Ticket)
        .join(TicketOption, TicketOption.id == Ticket.ticket_option_id)
        .join(Event, Event.id == TicketOption.event_id)
        .where(Event.organizer_id == organizer_id)
        .options(joinedload(Ticket.ticket_option))
        .order_by(Ticket.created_at.desc(), Ticket.id.desc())
    )
    if event_id is not None:
        stmt = stmt.where(Event.id == event_id)

    result = await db.stream_scalars(stmt)
    async for ticket in result:
        yield TicketReadDTO.model_validate(ticket)
