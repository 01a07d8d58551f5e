"""Recompute Event.sold and Event.interested from the rows they count.

Normal code paths only ever adjust the counters alongside the row change; this
script is the explicit repair step for data loaded or edited outside of them.
"""
import asyncio
import logging
import uuid
from sqlalchemy import select, update, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from eventflow.core.database import session_scope
from eventflow.domain.events.models import Event, TicketOption, SavedEvent
from eventflow.domain.tickets.models import Ticket

logger = logging.getLogger("eventflow.scripts.repair_counters")


async def repair_counters(db: AsyncSession) -> list[uuid.UUID]:
    sold = (
        select(func.count(Ticket.id))
        .join(TicketOption, TicketOption.id == Ticket.ticket_option_id)
        .where(TicketOption.event_id == Event.id)
        .scalar_subquery()
    )
    interested = (
        select(func.count(SavedEvent.id))
        .where(SavedEvent.event_id == Event.id)
        .scalar_subquery()
    )
    result = await db.scalars(
        update(Event)
        .where(or_(Event.sold != sold, Event.interested != interested))
        .values(sold=sold, interested=interested)
        .returning(Event.id)
    )
    return list(result.all())


async def main() -> None:
    async with session_scope() as db:
        fixed = await repair_counters(db)
    if fixed:
        logger.info("Counters repaired for %d event(s): %s", len(fixed), ", ".join(map(str, fixed)))
    else:
        logger.info("All counters consistent")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    asyncio.run(main())
