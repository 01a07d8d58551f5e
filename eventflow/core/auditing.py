import json
import time
import uuid
from datetime import timezone, datetime
from typing import Any, Mapping
from sqlalchemy.exc import IntegrityError
from eventflow.core.config import AUDIT_STREAM
from eventflow.core.ctx import get_redis, get_request_id, get_route, get_actor_id, get_client_ip
from eventflow.domain.exceptions import AppError


class AuditStatus:
    SUCCESS = "SUCCESS"
    FAIL = "FAIL"


def _id(value: uuid.UUID | None) -> str | None:
    return str(value) if value is not None else None


async def audit_emit(
    *,
    scope: str,
    action: str,
    status: str,
    object_type: str | None = None,
    object_id: uuid.UUID | None = None,
    organizer_id: uuid.UUID | None = None,
    event_id: uuid.UUID | None = None,
    ticket_id: uuid.UUID | None = None,
    payment_method_id: uuid.UUID | None = None,
    reason: str | None = None,
    meta: Mapping[str, Any] | None = None
) -> str | None:
    r = get_redis()
    if not r:
        return None

    payload = {
        "request_id": get_request_id(),
        "scope": scope,
        "action": action,
        "status": status,
        "actor_account_id": _id(get_actor_id()),
        "actor_ip": get_client_ip(),
        "route": get_route(),
        "object_type": object_type,
        "object_id": _id(object_id),
        "organizer_id": _id(organizer_id),
        "event_id": _id(event_id),
        "ticket_id": _id(ticket_id),
        "payment_method_id": _id(payment_method_id),
        "reason": reason,
        "meta": dict(meta or {}),
    }
    try:
        return await r.xadd(AUDIT_STREAM, {"json": json.dumps(payload, default=str)})
    except Exception:
        return None


def _reason_from_exception(exception: BaseException | None) -> str | None:
    if exception is None:
        return None
    if isinstance(exception, IntegrityError):
        return "Integrity error"
    if isinstance(exception, AppError):
        return str(exception)
    return exception.__class__.__name__


class AuditSpan:
    """Wraps a service operation and emits one audit record when it finishes.

    Callers fill in ids discovered along the way (``span.object_id = ...``);
    ``meta`` gets ``occurred_at`` and ``duration_ms``. A span never swallows
    exceptions, it only records them as FAIL.
    """

    def __init__(self, *, scope: str, action: str,
                 object_type: str | None = None, object_id: uuid.UUID | None = None,
                 organizer_id: uuid.UUID | None = None, event_id: uuid.UUID | None = None,
                 ticket_id: uuid.UUID | None = None, payment_method_id: uuid.UUID | None = None,
                 meta: Mapping[str, Any] | None = None):
        self.scope = scope
        self.action = action
        self.object_type = object_type
        self.object_id = object_id
        self.organizer_id = organizer_id
        self.event_id = event_id
        self.ticket_id = ticket_id
        self.payment_method_id = payment_method_id
        self.meta = dict(meta or {})
        self._t0 = 0.0

    async def __aenter__(self):
        self._t0 = time.perf_counter()
        started = datetime.now(timezone.utc)
        self.meta.setdefault("occurred_at", started.isoformat(timespec="milliseconds").replace("+00:00", "Z"))
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.meta["duration_ms"] = int((time.perf_counter() - self._t0) * 1000)
        status = AuditStatus.FAIL if exc or self.meta.get("rejected") else AuditStatus.SUCCESS
        await audit_emit(
            scope=self.scope, action=self.action, status=status,
            object_type=self.object_type, object_id=self.object_id,
            organizer_id=self.organizer_id, event_id=self.event_id,
            ticket_id=self.ticket_id, payment_method_id=self.payment_method_id,
            reason=_reason_from_exception(exc), meta=self.meta
        )
        return False
