"""create audit_logs table with partitioning

Revision ID: 8b4e2f6a9c13
Revises: 3c1d0a7e5b21
Create Date: 2026-10-19 09:31:07.552031
"""
from datetime import date
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa  # noqa


# revision identifiers, used by Alembic.
revision: str = "8b4e2f6a9c13"
down_revision: Union[str, Sequence[str], None] = "3c1d0a7e5b21"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

FIRST_PARTITION = date(2026, 10, 1)
MONTHLY_PARTITIONS = 6


def _month_starts(start: date, count: int) -> list[date]:
    months = []
    year, month = start.year, start.month
    for _ in range(count + 1):
        months.append(date(year, month, 1))
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return months


def upgrade() -> None:
    op.execute("CREATE SCHEMA IF NOT EXISTS audit")

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS audit.audit_logs(
            id BIGINT GENERATED ALWAYS AS IDENTITY,
            ts_utc timestamptz NOT NULL DEFAULT now(),
            request_id text,
            scope text NOT NULL,
            action text NOT NULL,
            actor_account_id uuid,
            actor_ip inet,
            route text,
            object_type text,
            object_id uuid,
            organizer_id uuid,
            event_id uuid,
            ticket_id uuid,
            payment_method_id uuid,
            status text NOT NULL,
            reason text,
            meta jsonb NOT NULL DEFAULT '{}'::jsonb,
            CONSTRAINT chk_audit_status CHECK (status IN ('SUCCESS','FAIL')),
            PRIMARY KEY (ts_utc, id)
        ) PARTITION BY RANGE (ts_utc)
        """
    )

    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_ts ON audit.audit_logs (ts_utc DESC)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_actor_ts ON audit.audit_logs (actor_account_id, ts_utc DESC)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_action_ts ON audit.audit_logs (action, ts_utc DESC)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_obj ON audit.audit_logs (object_type, object_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_event ON audit.audit_logs (event_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_ticket ON audit.audit_logs (ticket_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_payment_method ON audit.audit_logs (payment_method_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_organizer ON audit.audit_logs (organizer_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_meta_gin ON audit.audit_logs USING gin (meta jsonb_path_ops)")

    bounds = _month_starts(FIRST_PARTITION, MONTHLY_PARTITIONS)
    for lower, upper in zip(bounds, bounds[1:]):
        op.execute(
            f"""
            CREATE TABLE IF NOT EXISTS audit.audit_logs_{lower:%Y_%m}
              PARTITION OF audit.audit_logs
              FOR VALUES FROM (TIMESTAMPTZ '{lower:%Y-%m-%d} 00:00:00+00') TO (TIMESTAMPTZ '{upper:%Y-%m-%d} 00:00:00+00')
            """
        )
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS audit.audit_logs_default
          PARTITION OF audit.audit_logs DEFAULT
        """
    )


def downgrade() -> None:
    op.execute("DROP SCHEMA IF EXISTS audit CASCADE")
