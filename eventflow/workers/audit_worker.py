import os
import json
import asyncio
import signal
import socket
import logging
import redis.asyncio as redis
from sqlalchemy import text, bindparam
from sqlalchemy.dialects.postgresql import JSONB, INET
from sqlalchemy.exc import SQLAlchemyError, DBAPIError
from eventflow.core.config import AUDIT_STREAM, AUDIT_GROUP, AUDIT_BATCH, AUDIT_BLOCK_MS
from eventflow.core.database import engine, AsyncSessionLocal
from eventflow.core.redis import create_redis

logger = logging.getLogger("eventflow.audit.worker")

RETRY_EVERY_S = 30
RETRY_MIN_IDLE_MS = 60000

INSERT_AUDIT = text("""
    INSERT INTO audit.audit_logs
    (request_id, scope, action, actor_account_id, actor_ip, route,
     object_type, object_id, organizer_id, event_id, ticket_id, payment_method_id,
     status, reason, meta)
    VALUES
    (:request_id, :scope, :action, :actor_account_id, :actor_ip, :route,
     :object_type, :object_id, :organizer_id, :event_id, :ticket_id, :payment_method_id,
     :status, :reason, :meta)
""").bindparams(
    bindparam("actor_ip", type_=INET),
    bindparam("meta", type_=JSONB),
)


class InvalidPayload(ValueError):
    pass


def params_from_raw(raw_json: str | None) -> dict:
    try:
        payload = json.loads(raw_json) if raw_json else {}
    except json.JSONDecodeError as e:
        raise InvalidPayload(f"not JSON: {e}") from e
    if not isinstance(payload, dict):
        raise InvalidPayload("payload is not a JSON object")
    if not payload.get("scope") or not payload.get("action"):
        raise InvalidPayload("missing required fields: scope/action")

    status = (payload.get("status") or "SUCCESS").upper()
    return {
        "request_id": payload.get("request_id"),
        "scope": payload["scope"],
        "action": payload["action"],
        "actor_account_id": payload.get("actor_account_id"),
        "actor_ip": payload.get("actor_ip"),
        "route": payload.get("route"),
        "object_type": payload.get("object_type"),
        "object_id": payload.get("object_id"),
        "organizer_id": payload.get("organizer_id"),
        "event_id": payload.get("event_id"),
        "ticket_id": payload.get("ticket_id"),
        "payment_method_id": payload.get("payment_method_id"),
        "status": "SUCCESS" if status == "SUCCESS" else "FAIL",
        "reason": payload.get("reason"),
        "meta": dict(payload.get("meta") or {}),
    }


async def _ensure_group(r: redis.Redis) -> None:
    try:
        await r.xgroup_create(name=AUDIT_STREAM, groupname=AUDIT_GROUP, id="$", mkstream=True)
        logger.info("XGROUP created stream=%s group=%s", AUDIT_STREAM, AUDIT_GROUP)
    except redis.ResponseError as e:
        if "BUSYGROUP" in str(e):
            logger.info("XGROUP already exists stream=%s group=%s", AUDIT_STREAM, AUDIT_GROUP)
        else:
            raise


async def _ack(r: redis.Redis, msg_id: str) -> None:
    try:
        await r.xack(AUDIT_STREAM, AUDIT_GROUP, msg_id)
    except redis.RedisError:
        logger.exception("XACK failed id=%s", msg_id)


async def process_entries(r: redis.Redis, session_factory, entries) -> int:
    """Insert a batch of stream entries; returns how many rows were written.

    Each entry gets its own savepoint. A DB failure leaves the entry pending for
    a later XAUTOCLAIM; a malformed entry is acked and dropped.
    """
    written = 0
    async with session_factory() as db:
        async with db.begin():
            for msg_id, fields in entries:
                try:
                    params = params_from_raw(fields.get("json"))
                except InvalidPayload as e:
                    logger.warning("Invalid payload; dropping id=%s err=%s", msg_id, e)
                    await _ack(r, msg_id)
                    continue
                try:
                    async with db.begin_nested():
                        await db.execute(INSERT_AUDIT, params)
                except (DBAPIError, SQLAlchemyError):
                    logger.exception("DB insert failed; keeping id=%s in PEL", msg_id)
                    continue
                await _ack(r, msg_id)
                written += 1
    return written


async def run() -> None:
    r = await create_redis()
    if r is None:
        logger.error("REDIS_URL not set, nothing to consume")
        return
    await _ensure_group(r)

    stop = asyncio.Event()

    def _graceful(*_):
        stop.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _graceful)
        except NotImplementedError:
            pass

    consumer = f"{socket.gethostname()}-{os.getpid()}"
    logger.info(
        "Audit worker started | stream=%s group=%s consumer=%s batch=%d block_ms=%d",
        AUDIT_STREAM, AUDIT_GROUP, consumer, AUDIT_BATCH, AUDIT_BLOCK_MS,
    )

    last_retry = loop.time()
    try:
        while not stop.is_set():
            resp = await r.xreadgroup(
                groupname=AUDIT_GROUP,
                consumername=consumer,
                streams={AUDIT_STREAM: ">"},
                count=AUDIT_BATCH,
                block=AUDIT_BLOCK_MS,
            )
            if resp:
                await process_entries(r, AsyncSessionLocal, resp[0][1])

            now = loop.time()
            if now - last_retry > RETRY_EVERY_S:
                last_retry = now
                try:
                    _, msgs, _ = await r.xautoclaim(
                        name=AUDIT_STREAM,
                        groupname=AUDIT_GROUP,
                        consumername=consumer,
                        min_idle_time=RETRY_MIN_IDLE_MS,
                        start_id="0",
                        count=100,
                    )
                    if msgs:
                        logger.info("XAUTOCLAIM: retrying %d pending messages", len(msgs))
                        await process_entries(r, AsyncSessionLocal, msgs)
                except (redis.RedisError, SQLAlchemyError):
                    logger.exception("XAUTOCLAIM failed")
    finally:
        logger.info("Shutting down audit worker...")
        await r.aclose()
        await engine.dispose()
        logger.info("Audit worker stopped.")


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    asyncio.run(run())
