import uuid
import pytest
from datetime import datetime, timezone
from sqlalchemy.exc import OperationalError
from eventflow.domain.exceptions import NotFound
from eventflow.domain.notifications.models import Notification
from eventflow.services import notification_service
from eventflow.services.notification_service import NotificationSender


def _db(mocker, flush_error=None):
    db = mocker.Mock()
    db.begin_nested = mocker.MagicMock()
    db.add = mocker.Mock()
    db.flush = mocker.AsyncMock(side_effect=flush_error)
    return db


@pytest.mark.asyncio
async def test_send_inserts_notification_in_savepoint(mocker):
    db = _db(mocker)
    account_id = uuid.uuid4()
    ts = datetime(2025, 5, 1, 9, 0, tzinfo=timezone.utc)

    notification = await NotificationSender().send(db, account_id, "Tickets purchased", "You bought 2 ticket(s)", ts)

    assert isinstance(notification, Notification)
    assert notification.account_id == account_id
    assert notification.created_at == ts
    db.begin_nested.assert_called_once()
    db.add.assert_called_once_with(notification)


@pytest.mark.asyncio
async def test_send_defaults_timestamp_to_now(mocker):
    db = _db(mocker)

    notification = await NotificationSender().send(db, uuid.uuid4(), "t", "m")

    assert notification.created_at.tzinfo is not None


@pytest.mark.asyncio
async def test_send_swallows_database_errors(mocker, caplog):
    db = _db(mocker, flush_error=OperationalError("insert", {}, Exception("connection lost")))

    with caplog.at_level("ERROR", logger="eventflow.notifications"):
        result = await NotificationSender().send(db, uuid.uuid4(), "t", "m")

    assert result is None
    assert "Notification insert failed" in caplog.text


@pytest.mark.asyncio
async def test_send_propagates_unrelated_errors(mocker):
    db = _db(mocker, flush_error=RuntimeError("bug"))

    with pytest.raises(RuntimeError):
        await NotificationSender().send(db, uuid.uuid4(), "t", "m")


@pytest.mark.asyncio
async def test_mark_read_rejects_foreign_notification(mocker):
    notification = Notification(id=uuid.uuid4(), account_id=uuid.uuid4(), topic="t", message="m", is_read=False)
    mocker.patch(
        "eventflow.services.notification_service.crud.get_notification",
        new=mocker.AsyncMock(return_value=notification)
    )
    db = _db(mocker)

    with pytest.raises(NotFound):
        await notification_service.mark_read(db, uuid.uuid4(), notification.id)

    assert notification.is_read is False


@pytest.mark.asyncio
async def test_mark_read_sets_flag(mocker):
    account_id = uuid.uuid4()
    notification = Notification(id=uuid.uuid4(), account_id=account_id, topic="t", message="m", is_read=False)
    mocker.patch(
        "eventflow.services.notification_service.crud.get_notification",
        new=mocker.AsyncMock(return_value=notification)
    )
    db = _db(mocker)

    result = await notification_service.mark_read(db, account_id, notification.id)

    assert result.is_read is True
    db.flush.assert_awaited_once()


@pytest.mark.asyncio
async def test_mark_all_read_reports_count(mocker, auditspan_stub):
    mocker.patch(
        "eventflow.services.notification_service.crud.mark_all_read",
        new=mocker.AsyncMock(return_value=3)
    )

    assert await notification_service.mark_all_read(_db(mocker), uuid.uuid4()) == 3
    assert auditspan_stub[0].meta["updated"] == 3
