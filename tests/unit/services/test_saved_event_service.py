import uuid
import pytest
from sqlalchemy.exc import IntegrityError
from eventflow.domain.events.models import SavedEvent
from eventflow.domain.exceptions import NotFound, Conflict
from eventflow.services import saved_event_service
from tests.helper import db_with_savepoint, compile_pg


def _patch_lookups(mocker, attendee=True, event=True):
    mocker.patch(
        "eventflow.services.saved_event_service.accounts_crud.attendee_exists",
        new=mocker.AsyncMock(return_value=attendee)
    )
    mocker.patch(
        "eventflow.services.saved_event_service.events_crud.get_event_by_id",
        new=mocker.AsyncMock(return_value=mocker.Mock() if event else None)
    )


@pytest.mark.asyncio
async def test_save_event_inserts_and_increments_interest(mocker):
    db, savepoint = db_with_savepoint(mocker)
    db.add = mocker.Mock()
    _patch_lookups(mocker)
    attendee_id, event_id = uuid.uuid4(), uuid.uuid4()

    saved = await saved_event_service.save_event(db, attendee_id, event_id)

    assert isinstance(saved, SavedEvent)
    assert (saved.attendee_id, saved.event_id) == (attendee_id, event_id)
    db.add.assert_called_once_with(saved)
    db.execute.assert_awaited_once()
    sql, params = compile_pg(db.execute.await_args.args[0])
    assert sql.startswith("UPDATE events SET interested=(events.interested + ")
    assert 1 in params.values()
    assert event_id in params.values()
    savepoint.commit.assert_awaited_once()


@pytest.mark.asyncio
@pytest.mark.parametrize("attendee, event", [(False, True), (True, False)])
async def test_save_event_requires_attendee_and_event(mocker, attendee, event):
    db, _ = db_with_savepoint(mocker)
    _patch_lookups(mocker, attendee=attendee, event=event)

    with pytest.raises(NotFound):
        await saved_event_service.save_event(db, uuid.uuid4(), uuid.uuid4())

    db.begin_nested.assert_not_awaited()


@pytest.mark.asyncio
async def test_save_event_twice_is_conflict_and_keeps_counter(mocker):
    db, savepoint = db_with_savepoint(mocker)
    db.add = mocker.Mock()
    db.flush = mocker.AsyncMock(side_effect=IntegrityError("insert", {}, Exception("duplicate key")))
    _patch_lookups(mocker)

    with pytest.raises(Conflict):
        await saved_event_service.save_event(db, uuid.uuid4(), uuid.uuid4())

    db.execute.assert_not_awaited()
    savepoint.rollback.assert_awaited_once()
    savepoint.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_unsave_event_unknown_id_raises(mocker):
    db, _ = db_with_savepoint(mocker)
    mocker.patch(
        "eventflow.services.saved_event_service.events_crud.get_saved_event_by_id",
        new=mocker.AsyncMock(return_value=None)
    )

    with pytest.raises(NotFound):
        await saved_event_service.unsave_event(db, uuid.uuid4(), uuid.uuid4())


@pytest.mark.asyncio
async def test_unsave_event_of_other_attendee_is_noop(mocker, auditspan_stub):
    db, _ = db_with_savepoint(mocker)
    saved = SavedEvent(id=uuid.uuid4(), attendee_id=uuid.uuid4(), event_id=uuid.uuid4())
    mocker.patch(
        "eventflow.services.saved_event_service.events_crud.get_saved_event_by_id",
        new=mocker.AsyncMock(return_value=saved)
    )

    await saved_event_service.unsave_event(db, uuid.uuid4(), saved.id)

    db.begin_nested.assert_not_awaited()
    db.delete.assert_not_awaited()
    assert auditspan_stub[0].meta["skipped"] == "not_owner"


@pytest.mark.asyncio
async def test_unsave_event_deletes_and_decrements(mocker):
    db, savepoint = db_with_savepoint(mocker)
    attendee_id = uuid.uuid4()
    saved = SavedEvent(id=uuid.uuid4(), attendee_id=attendee_id, event_id=uuid.uuid4())
    mocker.patch(
        "eventflow.services.saved_event_service.events_crud.get_saved_event_by_id",
        new=mocker.AsyncMock(return_value=saved)
    )

    await saved_event_service.unsave_event(db, attendee_id, saved.id)

    db.execute.assert_awaited_once()
    sql, params = compile_pg(db.execute.await_args.args[0])
    assert "SET interested=greatest(events.interested - " in sql
    assert 1 in params.values()
    assert 0 in params.values()
    assert saved.event_id in params.values()
    db.delete.assert_awaited_once_with(saved)
    savepoint.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_check_saved_events_yields_pairs(mocker):
    event_id, saved_id = uuid.uuid4(), uuid.uuid4()
    res = mocker.Mock()
    res.all.return_value = [(event_id, saved_id)]
    db = mocker.Mock()
    db.execute = mocker.AsyncMock(return_value=res)

    pairs = [p async for p in saved_event_service.check_saved_events(db, uuid.uuid4(), [event_id, uuid.uuid4()])]

    assert pairs == [(event_id, saved_id)]


@pytest.mark.asyncio
async def test_check_saved_events_without_ids_skips_query(mocker):
    db = mocker.Mock()
    db.execute = mocker.AsyncMock()

    pairs = [p async for p in saved_event_service.check_saved_events(db, uuid.uuid4(), [])]

    assert pairs == []
    db.execute.assert_not_awaited()
