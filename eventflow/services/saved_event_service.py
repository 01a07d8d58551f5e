import uuid
from typing import AsyncIterator, Iterable
from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from eventflow.core.auditing import AuditSpan
from eventflow.domain.accounts import crud as accounts_crud
from eventflow.domain.events import crud as events_crud
from eventflow.domain.events.models import Event, SavedEvent
from eventflow.domain.exceptions import NotFound, Conflict


async def _require_attendee(db: AsyncSession, attendee_id: uuid.UUID) -> None:
    if not await accounts_crud.attendee_exists(db, attendee_id):
        raise NotFound("Attendee not found", ctx={"attendee_id": attendee_id})


async def _require_event(db: AsyncSession, event_id: uuid.UUID) -> Event:
    event = await events_crud.get_event_by_id(db, event_id)
    if not event:
        raise NotFound("Event not found", ctx={"event_id": event_id})
    return event


async def save_event(db: AsyncSession, attendee_id: uuid.UUID, event_id: uuid.UUID) -> SavedEvent:
    async with AuditSpan(
        scope="SAVED_EVENTS",
        action="SAVE",
        object_type="saved_event",
        event_id=event_id,
        meta={"attendee_id": attendee_id}
    ) as span:
        await _require_attendee(db, attendee_id)
        await _require_event(db, event_id)

        savepoint = await db.begin_nested()
        try:
            saved = SavedEvent(attendee_id=attendee_id, event_id=event_id)
            db.add(saved)
            await db.flush()
            await db.execute(
                update(Event).where(Event.id == event_id).values(interested=Event.interested + 1)
            )
        except IntegrityError as e:
            await savepoint.rollback()
            raise Conflict("Event already saved", ctx={"attendee_id": attendee_id, "event_id": event_id}) from e
        except Exception:
            await savepoint.rollback()
            raise

        await savepoint.commit()
        span.object_id = saved.id
        return saved


async def unsave_event(db: AsyncSession, attendee_id: uuid.UUID, saved_event_id: uuid.UUID) -> None:
    async with AuditSpan(
        scope="SAVED_EVENTS",
        action="UNSAVE",
        object_type="saved_event",
        object_id=saved_event_id,
        meta={"attendee_id": attendee_id}
    ) as span:
        saved = await events_crud.get_saved_event_by_id(db, saved_event_id)
        if not saved:
            raise NotFound("Saved event not found", ctx={"saved_event_id": saved_event_id})
        if saved.attendee_id != attendee_id:
            span.meta["skipped"] = "not_owner"
            return
        span.event_id = saved.event_id

        savepoint = await db.begin_nested()
        try:
            await db.execute(
                update(Event)
                .where(Event.id == saved.event_id)
                .values(interested=func.greatest(Event.interested - 1, 0))
            )
            await db.delete(saved)
            await db.flush()
        except Exception:
            await savepoint.rollback()
            raise
        await savepoint.commit()


async def check_saved_events(
        db: AsyncSession,
        attendee_id: uuid.UUID,
        event_ids: Iterable[uuid.UUID]
) -> AsyncIterator[tuple[uuid.UUID, uuid.UUID]]:
    ids = set(event_ids)
    if not ids:
        return
    result = await db.execute(
        select(SavedEvent.event_id, SavedEvent.id)
        .where(SavedEvent.attendee_id == attendee_id, SavedEvent.event_id.in_(ids))
    )
    for event_id, saved_event_id in result.all():
        yield event_id, saved_event_id


async def get_saved_events(db: AsyncSession, attendee_id: uuid.UUID) -> list[Event]:
    result = await db.scalars(
        select(Event)
        .join(SavedEvent, SavedEvent.event_id == Event.id)
        .where(SavedEvent.attendee_id == attendee_id)
        .order_by(SavedEvent.created_at.desc(), SavedEvent.id)
    )
    return list(result.all())
