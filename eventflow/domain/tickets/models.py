import uuid
from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy import Text, ForeignKey, CheckConstraint, TIMESTAMP, func, Numeric, Uuid, Boolean, text, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from eventflow.core.database import Base


class Ticket(Base):
    __tablename__ = "tickets"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    ticket_option_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("ticket_options.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    attendee_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("attendees.account_id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        nullable=False
    )
    # Frozen at purchase time, independent of later option price changes.
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    holder_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    holder_email: Mapped[str | None] = mapped_column(Text, nullable=True)
    holder_phone: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_reviewed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    # Method that paid for the ticket; refunds go back to it while it exists.
    payment_method_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("payment_methods.id", ondelete="SET NULL"),
        nullable=True
    )

    ticket_option: Mapped["TicketOption"] = relationship(lazy="selectin")

    __table_args__ = (
        CheckConstraint("price >= 0", name="chk_ticket_price_nonneg"),
        Index("ix_tickets_created_at", "created_at"),
    )
