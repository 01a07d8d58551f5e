import json
import pytest
from sqlalchemy.exc import OperationalError
from eventflow.workers import audit_worker
from eventflow.workers.audit_worker import InvalidPayload, params_from_raw, process_entries


def _raw(**kwargs):
    payload = {"scope": "TICKETS", "action": "CREATE", "status": "SUCCESS", "meta": {"count": 2}}
    payload.update(kwargs)
    return json.dumps(payload)


def test_params_from_raw_maps_fields():
    params = params_from_raw(_raw(event_id="e1", status="fail"))

    assert params["scope"] == "TICKETS"
    assert params["event_id"] == "e1"
    assert params["status"] == "FAIL"
    assert params["meta"] == {"count": 2}
    assert params["ticket_id"] is None


@pytest.mark.parametrize("raw", [None, "", "not-json", "[1, 2]", json.dumps({"scope": "X"})])
def test_params_from_raw_rejects_bad_payloads(raw):
    with pytest.raises(InvalidPayload):
        params_from_raw(raw)


def _session_factory(mocker, execute_side_effect=None):
    db = mocker.MagicMock()
    db.execute = mocker.AsyncMock(side_effect=execute_side_effect)
    factory = mocker.MagicMock()
    factory.return_value.__aenter__.return_value = db
    return factory, db


@pytest.mark.asyncio
async def test_process_entries_writes_and_acks(mocker):
    r = mocker.Mock()
    r.xack = mocker.AsyncMock()
    factory, db = _session_factory(mocker)

    written = await process_entries(r, factory, [("1-0", {"json": _raw()}), ("2-0", {"json": _raw()})])

    assert written == 2
    assert db.execute.await_count == 2
    assert [c.args[2] for c in r.xack.await_args_list] == ["1-0", "2-0"]


@pytest.mark.asyncio
async def test_process_entries_drops_malformed_and_keeps_failed_inserts(mocker):
    r = mocker.Mock()
    r.xack = mocker.AsyncMock()
    factory, db = _session_factory(mocker, execute_side_effect=[
        OperationalError("insert", {}, Exception("db down")),
        None,
    ])
    entries = [
        ("1-0", {"json": "garbage"}),
        ("2-0", {"json": _raw()}),
        ("3-0", {"json": _raw()}),
    ]

    written = await process_entries(r, factory, entries)

    assert written == 1
    acked = [c.args[2] for c in r.xack.await_args_list]
    assert acked == ["1-0", "3-0"]


@pytest.mark.asyncio
async def test_run_without_redis_returns(mocker):
    mocker.patch.object(audit_worker, "create_redis", new=mocker.AsyncMock(return_value=None))
    ensure = mocker.patch.object(audit_worker, "_ensure_group", new=mocker.AsyncMock())

    await audit_worker.run()

    ensure.assert_not_awaited()
