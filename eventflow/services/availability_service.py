"""Capacity checks for ticket options.

Remaining capacity is never stored: it is ``amount_available`` minus the number
of ticket rows referencing the option, so a check always reads both.
"""
import uuid
from collections import Counter
from decimal import Decimal
from typing import Iterable, Mapping, Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from eventflow.domain.events.models import Event, TicketOption
from eventflow.domain.tickets import crud as tickets_crud


def evaluate_availability(
        requested: Mapping[uuid.UUID, int],
        options: Mapping[uuid.UUID, TicketOption],
        sold: Mapping[uuid.UUID, int]
) -> bool:
    if not requested:
        return False
    if any(option_id not in options for option_id in requested):
        return False
    if len({options[option_id].event_id for option_id in requested}) != 1:
        return False

    for option_id, amount in requested.items():
        if sold.get(option_id, 0) + amount > options[option_id].amount_available:
            return False
    return True


async def load_ticket_options(
        db: AsyncSession,
        ticket_option_ids: Iterable[uuid.UUID],
        *,
        for_update: bool = False
) -> dict[uuid.UUID, TicketOption]:
    stmt = (
        select(TicketOption)
        .where(TicketOption.id.in_(set(ticket_option_ids)))
        .order_by(TicketOption.id)
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.scalars(stmt)
    return {option.id: option for option in result.all()}


async def check_capacity(
        db: AsyncSession,
        requested: Mapping[uuid.UUID, int],
        *,
        for_update: bool = False
) -> tuple[bool, dict[uuid.UUID, TicketOption]]:
    """Evaluate ``requested`` against the store; returns the verdict and the loaded options.

    With ``for_update`` the option rows stay locked until the caller's transaction
    ends, so a concurrent check on the same options waits for it.
    """
    if not requested:
        return False, {}
    options = await load_ticket_options(db, requested.keys(), for_update=for_update)
    if len(options) != len(requested):
        return False, options
    sold = await tickets_crud.count_tickets_by_option(db, set(requested))
    return evaluate_availability(requested, options, sold), options


async def is_ticket_option_available(
        db: AsyncSession,
        ticket_option_ids: Sequence[uuid.UUID],
        *,
        for_update: bool = False
) -> bool:
    available, _ = await check_capacity(db, Counter(ticket_option_ids), for_update=for_update)
    return available


async def get_price(db: AsyncSession, ticket_option_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, Decimal]:
    result = await db.execute(
        select(TicketOption.id, TicketOption.additional_price + Event.price)
        .join(Event, Event.id == TicketOption.event_id)
        .where(TicketOption.id.in_(set(ticket_option_ids)))
    )
    return {option_id: Decimal(price) for option_id, price in result.all()}
