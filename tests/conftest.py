import os

os.environ.setdefault("POSTGRES_USER", "eventflow")
os.environ.setdefault("POSTGRES_DB", "eventflow")
os.environ.setdefault("db_password", "eventflow")
os.environ.setdefault("secret_key", "test-secret-key")

import importlib  # noqa: E402
import pytest  # noqa: E402


SERVICE_MODULES = [
    "eventflow.services.account_service",
    "eventflow.services.event_service",
    "eventflow.services.notification_service",
    "eventflow.services.payment_service",
    "eventflow.services.purchase_service",
    "eventflow.services.saved_event_service",
    "eventflow.services.ticket_service",
]


class _StubSpan:
    def __init__(
        self,
        *,
        scope: str,
        action: str,
        object_type: str | None = None,
        object_id=None,
        organizer_id=None,
        event_id=None,
        ticket_id=None,
        payment_method_id=None,
        meta: dict | None = None,
        **_ignored
    ):
        self.scope = scope
        self.action = action
        self.object_type = object_type
        self.object_id = object_id
        self.organizer_id = organizer_id
        self.event_id = event_id
        self.ticket_id = ticket_id
        self.payment_method_id = payment_method_id
        self.meta = dict(meta or {})
        self.entered = False
        self.exited = False
        self.exit_args = None

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.exited = True
        self.exit_args = (exc_type, exc, tb)
        return False


@pytest.fixture(autouse=True)
def auditspan_stub(mocker, request):
    instances = []

    def factory(*a, **k):
        s = _StubSpan(*a, **k)
        instances.append(s)
        return s

    for mod in SERVICE_MODULES:
        importlib.import_module(mod)
        mocker.patch(f"{mod}.AuditSpan", side_effect=factory)

    return instances
