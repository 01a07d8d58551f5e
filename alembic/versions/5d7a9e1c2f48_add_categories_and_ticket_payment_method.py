"""add categories and ticket payment method

Revision ID: 5d7a9e1c2f48
Revises: 8b4e2f6a9c13
Create Date: 2026-10-19 14:02:51.118406
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5d7a9e1c2f48"
down_revision: Union[str, Sequence[str], None] = "8b4e2f6a9c13"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "categories",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("image_uri", sa.Text(), nullable=True),
        sa.UniqueConstraint("name", name="uq_categories_name"),
    )

    op.create_table(
        "event_categories",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("event_id", sa.Uuid(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("category_id", sa.Uuid(), sa.ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False),
        sa.UniqueConstraint("event_id", "category_id", name="uq_event_category_pair"),
    )
    op.create_index("ix_event_categories_event_id", "event_categories", ["event_id"])
    op.create_index("ix_event_categories_category_id", "event_categories", ["category_id"])

    op.add_column(
        "tickets",
        sa.Column(
            "payment_method_id", sa.Uuid(),
            sa.ForeignKey("payment_methods.id", ondelete="SET NULL", name="fk_tickets_payment_method_id"),
            nullable=True
        )
    )


def downgrade() -> None:
    op.drop_constraint("fk_tickets_payment_method_id", "tickets", type_="foreignkey")
    op.drop_column("tickets", "payment_method_id")
    op.drop_table("event_categories")
    op.drop_table("categories")
