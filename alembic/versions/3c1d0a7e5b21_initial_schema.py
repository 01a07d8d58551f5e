"""initial schema

Revision ID: 3c1d0a7e5b21
Revises:
Create Date: 2026-10-19 09:12:44.108215
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3c1d0a7e5b21"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False)


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.Text(), nullable=False, unique=True),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("company", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_table(
        "attendees",
        sa.Column("account_id", sa.Uuid(), sa.ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True),
        _created_at(),
    )
    op.create_table(
        "organizers",
        sa.Column("account_id", sa.Uuid(), sa.ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True),
        _created_at(),
    )

    op.create_table(
        "events",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("organizer_id", sa.Uuid(), sa.ForeignKey("organizers.account_id", ondelete="RESTRICT"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("start_date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("end_date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("location", sa.Text(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), server_default="0", nullable=False),
        sa.Column("interested", sa.Integer(), server_default="0", nullable=False),
        sa.Column("sold", sa.Integer(), server_default="0", nullable=False),
        sa.Column("banner_uri", sa.Text(), nullable=True),
        sa.Column("banner_file", sa.Uuid(), nullable=True),
        _created_at(),
        sa.CheckConstraint("end_date > start_date", name="chk_event_time_range"),
        sa.CheckConstraint("price >= 0", name="chk_event_price_nonneg"),
        sa.CheckConstraint("sold >= 0", name="chk_event_sold_nonneg"),
        sa.CheckConstraint("interested >= 0", name="chk_event_interested_nonneg"),
    )
    op.create_index("ix_events_organizer_id", "events", ["organizer_id"])

    op.create_table(
        "ticket_options",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("event_id", sa.Uuid(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("additional_price", sa.Numeric(10, 2), server_default="0", nullable=False),
        sa.Column("amount_available", sa.Integer(), nullable=False),
        sa.CheckConstraint("additional_price >= 0", name="chk_ticket_option_price_nonneg"),
        sa.CheckConstraint("amount_available >= 0", name="chk_ticket_option_amount_nonneg"),
    )
    op.create_index("ix_ticket_options_event_id", "ticket_options", ["event_id"])

    op.create_table(
        "tickets",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("ticket_option_id", sa.Uuid(), sa.ForeignKey("ticket_options.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("attendee_id", sa.Uuid(), sa.ForeignKey("attendees.account_id", ondelete="RESTRICT"), nullable=False),
        _created_at(),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("holder_name", sa.Text(), nullable=True),
        sa.Column("holder_email", sa.Text(), nullable=True),
        sa.Column("holder_phone", sa.Text(), nullable=True),
        sa.Column("is_reviewed", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.CheckConstraint("price >= 0", name="chk_ticket_price_nonneg"),
    )
    op.create_index("ix_tickets_ticket_option_id", "tickets", ["ticket_option_id"])
    op.create_index("ix_tickets_attendee_id", "tickets", ["attendee_id"])
    op.create_index("ix_tickets_created_at", "tickets", ["created_at"])

    op.create_table(
        "saved_events",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("attendee_id", sa.Uuid(), sa.ForeignKey("attendees.account_id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_id", sa.Uuid(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        _created_at(),
        sa.UniqueConstraint("attendee_id", "event_id", name="uq_saved_event_attendee_event"),
    )
    op.create_index("ix_saved_events_attendee_id", "saved_events", ["attendee_id"])
    op.create_index("ix_saved_events_event_id", "saved_events", ["event_id"])

    payment_method_kind = sa.Enum("GENERIC", "CARD", name="payment_method_kind")
    op.create_table(
        "payment_methods",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("account_id", sa.Uuid(), sa.ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kind", payment_method_kind, nullable=False),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("balance", sa.Numeric(12, 2), server_default="0", nullable=False),
        sa.Column("card_number", sa.Text(), nullable=True),
        sa.Column("card_expiry", sa.Text(), nullable=True),
        sa.Column("card_cvv", sa.Text(), nullable=True),
        sa.Column("card_name", sa.Text(), nullable=True),
        _created_at(),
        sa.CheckConstraint(
            "(kind = 'CARD') = (card_number IS NOT NULL AND card_expiry IS NOT NULL "
            "AND card_cvv IS NOT NULL AND card_name IS NOT NULL)",
            name="chk_payment_method_card_fields"
        ),
    )
    op.create_index("ix_payment_methods_account_id", "payment_methods", ["account_id"])

    op.create_table(
        "payment_transfers",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "from_payment_method_id", sa.Uuid(),
            sa.ForeignKey("payment_methods.id", ondelete="RESTRICT"), nullable=False
        ),
        sa.Column(
            "to_payment_method_id", sa.Uuid(),
            sa.ForeignKey("payment_methods.id", ondelete="RESTRICT"), nullable=False
        ),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        _created_at(),
        sa.CheckConstraint("amount > 0", name="chk_transfer_amount_pos"),
        sa.CheckConstraint("from_payment_method_id <> to_payment_method_id", name="chk_transfer_distinct"),
    )
    op.create_index("ix_payment_transfers_from_payment_method_id", "payment_transfers", ["from_payment_method_id"])
    op.create_index("ix_payment_transfers_to_payment_method_id", "payment_transfers", ["to_payment_method_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("account_id", sa.Uuid(), sa.ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("topic", sa.Text(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), server_default=sa.text("false"), nullable=False),
    )
    op.create_index("ix_notifications_account_created", "notifications", ["account_id", "created_at"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("payment_transfers")
    op.drop_table("payment_methods")
    sa.Enum(name="payment_method_kind").drop(op.get_bind(), checkfirst=True)
    op.drop_table("saved_events")
    op.drop_table("tickets")
    op.drop_table("ticket_options")
    op.drop_table("events")
    op.drop_table("organizers")
    op.drop_table("attendees")
    op.drop_table("accounts")
