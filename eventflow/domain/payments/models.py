import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from sqlalchemy import Text, ForeignKey, Numeric, TIMESTAMP, func, Enum as SQLEnum, CheckConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from eventflow.core.database import Base


class PaymentMethodKind(str, Enum):
    GENERIC = "GENERIC"
    CARD = "CARD"


class PaymentMethod(Base):
    """One row per payment method; ``kind`` tags the variant.

    CARD rows carry the card_* columns, GENERIC rows leave them NULL.
    ``balance`` is the running ledger balance moved by transfers.
    """
    __tablename__ = "payment_methods"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    kind: Mapped[PaymentMethodKind] = mapped_column(
        SQLEnum(PaymentMethodKind, name="payment_method_kind"),
        nullable=False
    )
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    balance: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"), server_default="0")
    card_number: Mapped[str | None] = mapped_column(Text, nullable=True)
    card_expiry: Mapped[str | None] = mapped_column(Text, nullable=True)
    card_cvv: Mapped[str | None] = mapped_column(Text, nullable=True)
    card_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "(kind = 'CARD') = (card_number IS NOT NULL AND card_expiry IS NOT NULL "
            "AND card_cvv IS NOT NULL AND card_name IS NOT NULL)",
            name="chk_payment_method_card_fields"
        ),
    )


class PaymentTransfer(Base):
    __tablename__ = "payment_transfers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    from_payment_method_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("payment_methods.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    to_payment_method_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("payment_methods.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("amount > 0", name="chk_transfer_amount_pos"),
        CheckConstraint("from_payment_method_id <> to_payment_method_id", name="chk_transfer_distinct"),
    )
