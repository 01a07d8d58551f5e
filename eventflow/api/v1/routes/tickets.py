import uuid
from typing import Annotated
from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from eventflow.core.database import get_db
from eventflow.core.dependencies.auth import require_attendee, require_organizer, get_current_account
from eventflow.core.dependencies.tickets import require_ticket_organizer, require_ticket_owner
from eventflow.domain.accounts.models import Account
from eventflow.domain.exceptions import NotFound, Forbidden
from eventflow.domain.tickets.models import Ticket
from eventflow.domain.tickets.schemas import (
    TicketReadDTO, TicketHolderDTO, TicketSnapshotDTO, PurchaseRequestDTO, PurchaseResultDTO, AttendanceQueryDTO,
    CancellationResultDTO
)
from eventflow.services import ticket_service, purchase_service
from eventflow.services.email_service import EmailSender, get_email_sender, send_purchase_confirmation, \
    send_cancellation_notice

router = APIRouter(tags=["tickets"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]


@router.get("/tickets/me", status_code=status.HTTP_200_OK, response_model=list[TicketReadDTO])
async def list_my_tickets(db: db_dependency, account: Annotated[Account, Depends(require_attendee)]):
    return await ticket_service.get_tickets(db, account.id)


@router.get("/tickets/{ticket_id}", status_code=status.HTTP_200_OK, response_model=TicketReadDTO)
async def get_ticket(
        ticket_id: uuid.UUID,
        db: db_dependency,
        account: Annotated[Account, Depends(get_current_account)]
):
    ticket = await ticket_service.get_ticket(db, ticket_id)
    if ticket is None:
        raise NotFound("Ticket not found", ctx={"ticket_id": ticket_id})
    if not (await ticket_service.is_ticket_owner(db, ticket_id, account.id)
            or await ticket_service.is_ticket_organizer(db, ticket_id, account.id)):
        raise Forbidden("Not allowed", ctx={"ticket_id": ticket_id})
    return ticket


@router.post("/tickets/purchase", status_code=status.HTTP_200_OK, response_model=PurchaseResultDTO)
async def purchase_tickets(
        schema: PurchaseRequestDTO,
        db: db_dependency,
        account: Annotated[Account, Depends(require_attendee)],
        background_tasks: BackgroundTasks,
        email_sender: Annotated[EmailSender, Depends(get_email_sender)]
):
    result = await purchase_service.purchase_tickets(db, account.id, schema)
    if result.success:
        background_tasks.add_task(
            send_purchase_confirmation,
            email_sender,
            schema.holder_email or account.email,
            result.event_name,
            len(result.tickets),
            str(result.total_price)
        )
    return result


@router.delete("/tickets/{ticket_id}", status_code=status.HTTP_200_OK, response_model=CancellationResultDTO)
async def cancel_ticket(
        ticket_id: uuid.UUID,
        db: db_dependency,
        account: Annotated[Account, Depends(get_current_account)],
        background_tasks: BackgroundTasks,
        email_sender: Annotated[EmailSender, Depends(get_email_sender)]
):
    ticket = await ticket_service.get_ticket(db, ticket_id)
    result = await purchase_service.cancel_ticket(db, account.id, ticket_id)
    if result.success and ticket is not None and ticket.holder_email:
        background_tasks.add_task(
            send_cancellation_notice,
            email_sender,
            ticket.holder_email,
            result.event_name or "your event",
            str(ticket.price)
        )
    return result


@router.patch("/tickets/{ticket_id}", status_code=status.HTTP_200_OK, response_model=TicketReadDTO)
async def update_ticket_holder(
        ticket: Annotated[Ticket, Depends(require_ticket_owner)],
        schema: TicketHolderDTO,
        db: db_dependency
):
    await ticket_service.update_ticket(db, TicketSnapshotDTO(id=ticket.id, **schema.model_dump()))
    return await ticket_service.get_ticket(db, ticket.id)


@router.post("/tickets/{ticket_id}/review", status_code=status.HTTP_200_OK, response_model=TicketReadDTO)
async def review_ticket(
        ticket_id: Annotated[uuid.UUID, Depends(require_ticket_organizer)],
        db: db_dependency,
        schema: Annotated[TicketHolderDTO | None, Body()] = None
):
    target = TicketSnapshotDTO(id=ticket_id, **schema.model_dump()) if schema is not None else ticket_id
    await ticket_service.review_ticket(db, target)
    return await ticket_service.get_ticket(db, ticket_id)


@router.get("/organizers/me/attendance", status_code=status.HTTP_200_OK, response_model=list[TicketReadDTO])
async def list_attendance(
        db: db_dependency,
        account: Annotated[Account, Depends(require_organizer)],
        query: Annotated[AttendanceQueryDTO, Query()]
):
    return [ticket async for ticket in ticket_service.get_attendance(db, account.id, query.event_id)]
