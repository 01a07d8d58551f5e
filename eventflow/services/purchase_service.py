"""Purchase and cancellation flows.

Money moves inside the ticket lifecycle callbacks, so a failed transfer rolls the
tickets back with it and a failed refund keeps the ticket.
"""
import logging
import uuid
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from eventflow.core.auditing import AuditSpan
from eventflow.domain.accounts import crud as accounts_crud
from eventflow.domain.events import crud as events_crud
from eventflow.domain.exceptions import AppError, NotFound, Forbidden
from eventflow.domain.tickets import crud as tickets_crud
from eventflow.domain.tickets.schemas import (
    PurchaseRequestDTO, PurchaseResultDTO, PurchaseFailure, TicketDraftDTO, TicketReadDTO, CancellationResultDTO
)
from eventflow.services import availability_service, event_service, payment_service, ticket_service
from eventflow.services.notification_service import notification_sender

logger = logging.getLogger("eventflow.purchase")


def _rejected(span: AuditSpan, reason: PurchaseFailure, **kwargs) -> PurchaseResultDTO:
    span.meta["rejected"] = reason.value
    return PurchaseResultDTO(success=False, reason=reason, **kwargs)


def _refund_callback(db: AsyncSession, organizer_id: uuid.UUID, event_name: str):
    async def on_deleted(ticket: TicketReadDTO) -> bool:
        if ticket.price > 0:
            organizer_pm = await payment_service.get_default_payment_method(db, organizer_id)
            refund_to = ticket.payment_method_id
            if refund_to is None:
                attendee_pm = await payment_service.get_default_payment_method(db, ticket.attendee_id)
                refund_to = attendee_pm.id if attendee_pm is not None else None
            if organizer_pm is None or refund_to is None:
                logger.warning("Refund skipped, missing payment method ticket_id=%s", ticket.id)
                return False
            try:
                await payment_service.perform_transaction(db, organizer_pm.id, refund_to, ticket.price)
            except AppError:
                logger.exception("Refund failed ticket_id=%s", ticket.id)
                return False

        await notification_sender.send(
            db,
            ticket.attendee_id,
            "Ticket cancelled",
            f"Your ticket for {event_name} was cancelled. Refunded: {ticket.price}."
        )
        return True
    return on_deleted


async def purchase_tickets(db: AsyncSession, account_id: uuid.UUID, schema: PurchaseRequestDTO) -> PurchaseResultDTO:
    """
    Buy tickets for one event
    - Precondition failures come back as an unsuccessful result with a reason
    - The buyer -> organizer transfer runs inside create_tickets, so a ledger error undoes the tickets
    """
    async with AuditSpan(
        scope="PURCHASE",
        action="BUY",
        object_type="ticket",
        payment_method_id=schema.payment_method_id,
        meta={"ticket_option_ids": schema.ticket_option_ids}
    ) as span:
        if not await accounts_crud.attendee_exists(db, account_id):
            raise Forbidden("Attendee role required", ctx={"account_id": account_id})

        ids = schema.ticket_option_ids
        if not await availability_service.is_ticket_option_available(db, ids):
            return _rejected(span, PurchaseFailure.UNAVAILABLE)

        event = await event_service.get_event_from_ticket_options(db, ids)
        if event is None:
            return _rejected(span, PurchaseFailure.UNAVAILABLE)
        span.event_id = event.id
        span.organizer_id = event.organizer_id

        prices = await availability_service.get_price(db, ids)
        total = sum((prices[i] for i in ids), Decimal("0"))
        info = {"event_id": event.id, "event_name": event.name, "total_price": total}
        if schema.expected_total is not None and schema.expected_total != total:
            return _rejected(span, PurchaseFailure.PRICE_CHANGED, **info)

        organizer_pm = None
        if total > 0:
            if schema.payment_method_id is None or not await payment_service.is_valid_payment_method(
                    db, schema.payment_method_id, account_id
            ):
                return _rejected(span, PurchaseFailure.INVALID_PAYMENT_METHOD, **info)
            organizer_pm = await payment_service.get_default_payment_method(db, event.organizer_id)
            if organizer_pm is None:
                return _rejected(span, PurchaseFailure.PAYMENT_FAILED, **info)

        drafts = [
            TicketDraftDTO(
                ticket_option_id=option_id,
                attendee_id=account_id,
                price=prices[option_id],
                holder_name=schema.holder_name,
                holder_email=schema.holder_email,
                holder_phone=schema.holder_phone,
                payment_method_id=schema.payment_method_id if organizer_pm is not None else None
            )
            for option_id in ids
        ]
        created: list[TicketReadDTO] = []
        payment_failed = False

        async def on_created(tickets: list[TicketReadDTO]) -> bool:
            nonlocal payment_failed
            if organizer_pm is not None:
                try:
                    await payment_service.perform_transaction(db, schema.payment_method_id, organizer_pm.id, total)
                except AppError:
                    logger.exception("Payment failed account_id=%s event_id=%s", account_id, event.id)
                    payment_failed = True
                    return False

            await notification_sender.send(
                db, account_id, "Tickets purchased",
                f"You bought {len(tickets)} ticket(s) for {event.name}. Total: {total}."
            )
            await notification_sender.send(
                db, event.organizer_id, "Tickets sold",
                f"{len(tickets)} ticket(s) sold for {event.name}. Total: {total}."
            )
            created.extend(tickets)
            return True

        if not await ticket_service.create_tickets(db, drafts, on_created):
            reason = PurchaseFailure.PAYMENT_FAILED if payment_failed else PurchaseFailure.UNAVAILABLE
            return _rejected(span, reason, **info)

        span.meta["ticket_ids"] = [t.id for t in created]
        return PurchaseResultDTO(success=True, tickets=created, **info)


async def cancel_ticket(db: AsyncSession, account_id: uuid.UUID, ticket_id: uuid.UUID) -> CancellationResultDTO:
    async with AuditSpan(
        scope="PURCHASE",
        action="CANCEL_TICKET",
        object_type="ticket",
        object_id=ticket_id,
        ticket_id=ticket_id
    ) as span:
        event_id = await tickets_crud.get_event_id_for_ticket(db, ticket_id)
        if event_id is None:
            raise NotFound("Ticket not found", ctx={"ticket_id": ticket_id})
        event = await events_crud.get_event_by_id(db, event_id)
        span.event_id = event_id
        span.organizer_id = event.organizer_id

        is_owner = await ticket_service.is_ticket_owner(db, ticket_id, account_id)
        if not is_owner and event.organizer_id != account_id:
            raise Forbidden("Not allowed", ctx={"ticket_id": ticket_id, "reason": "not_owner_or_organizer"})

        deleted = await ticket_service.delete_ticket(
            db, ticket_id, _refund_callback(db, event.organizer_id, event.name)
        )
        if not deleted:
            span.meta["rejected"] = "refund_failed"
        return CancellationResultDTO(success=deleted, event_id=event.id, event_name=event.name)


async def cancel_event(db: AsyncSession, account_id: uuid.UUID, event_id: uuid.UUID) -> bool:
    """Refund and delete every ticket, then the event. Stops, keeping the event, at the first failed refund."""
    async with AuditSpan(
        scope="PURCHASE",
        action="CANCEL_EVENT",
        object_type="event",
        object_id=event_id,
        event_id=event_id,
        organizer_id=account_id
    ) as span:
        event = await events_crud.get_event_by_id(db, event_id)
        if not event:
            raise NotFound("Event not found", ctx={"event_id": event_id})
        if event.organizer_id != account_id:
            raise Forbidden("Not allowed", ctx={"event_id": event_id, "reason": "organizer_mismatch"})

        if not await ticket_service.delete_tickets(db, event_id, _refund_callback(db, account_id, event.name)):
            span.meta["rejected"] = "refund_failed"
            return False

        await db.delete(event)
        await db.flush()
        return True
