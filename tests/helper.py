import uuid
from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy.dialects import postgresql
from eventflow.domain.events.models import TicketOption
from eventflow.domain.tickets.models import Ticket


def db_with_scalars_first(mocker, value):
    res = mocker.Mock()
    res.scalars.return_value.first.return_value = value
    db = mocker.Mock()
    db.execute = mocker.AsyncMock(return_value=res)
    return db, res


def db_with_scalar(mocker, value):
    db = mocker.Mock()
    db.scalar = mocker.AsyncMock(return_value=value)
    return db


def db_with_savepoint(mocker):
    """Session mock whose ``await db.begin_nested()`` hands out one shared savepoint mock."""
    savepoint = mocker.Mock()
    savepoint.commit = mocker.AsyncMock()
    savepoint.rollback = mocker.AsyncMock()
    db = mocker.Mock()
    db.begin_nested = mocker.AsyncMock(return_value=savepoint)
    db.execute = mocker.AsyncMock()
    db.flush = mocker.AsyncMock()
    db.delete = mocker.AsyncMock()
    return db, savepoint


def compile_pg(stmt) -> tuple[str, dict]:
    compiled = stmt.compile(dialect=postgresql.dialect())
    return str(compiled), compiled.params


def make_option(event_id: uuid.UUID | None = None, amount_available: int = 10, **kwargs) -> TicketOption:
    return TicketOption(
        id=kwargs.pop("id", uuid.uuid4()),
        event_id=event_id or uuid.uuid4(),
        name=kwargs.pop("name", "General admission"),
        description=None,
        additional_price=kwargs.pop("additional_price", Decimal("0")),
        amount_available=amount_available,
        **kwargs
    )


def make_ticket(option: TicketOption | None = None, **kwargs) -> Ticket:
    option = option or make_option()
    values = {
        "id": uuid.uuid4(),
        "attendee_id": uuid.uuid4(),
        "created_at": datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc),
        "price": Decimal("25.00"),
        "holder_name": "Ann Smith",
        "holder_email": "ann@example.com",
        "holder_phone": None,
        "is_reviewed": False,
    }
    values.update(kwargs)
    return Ticket(ticket_option=option, ticket_option_id=option.id, **values)
