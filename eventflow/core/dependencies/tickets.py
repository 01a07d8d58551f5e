import uuid
from typing import Annotated
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from eventflow.core.database import get_db
from eventflow.core.dependencies.auth import require_organizer, require_attendee
from eventflow.domain.accounts.models import Account
from eventflow.domain.exceptions import NotFound, Forbidden
from eventflow.domain.tickets import crud
from eventflow.domain.tickets.models import Ticket


async def require_ticket_organizer(
        ticket_id: uuid.UUID,
        db: Annotated[AsyncSession, Depends(get_db)],
        account: Annotated[Account, Depends(require_organizer)]
) -> uuid.UUID:
    organizer_id = await crud.get_organizer_id_for_ticket(db, ticket_id)
    if organizer_id is None:
        raise NotFound("Ticket not found", ctx={"ticket_id": ticket_id})
    if organizer_id != account.id:
        raise Forbidden("Not allowed", ctx={"ticket_id": ticket_id, "reason": "organizer_mismatch"})
    return ticket_id


async def require_ticket_owner(
        ticket_id: uuid.UUID,
        db: Annotated[AsyncSession, Depends(get_db)],
        account: Annotated[Account, Depends(require_attendee)]
) -> Ticket:
    ticket = await crud.get_ticket_by_id(db, ticket_id)
    if ticket is None:
        raise NotFound("Ticket not found", ctx={"ticket_id": ticket_id})
    if ticket.attendee_id != account.id:
        raise Forbidden("Not allowed", ctx={"ticket_id": ticket_id, "reason": "not_owner"})
    return ticket
