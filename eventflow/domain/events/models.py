import uuid
from datetime import datetime
from decimal import Decimal
from sqlalchemy import Text, Integer, ForeignKey, CheckConstraint, TIMESTAMP, func, Numeric, Uuid, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from eventflow.core.database import Base


class Event(Base):
    __tablename__ = "events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organizer_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("organizers.account_id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    start_date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    location: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, server_default="0")
    # Cached aggregates, written only together with the rows they count.
    interested: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    sold: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    banner_uri: Mapped[str | None] = mapped_column(Text, nullable=True)
    banner_file: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    organizer: Mapped["Organizer"] = relationship(back_populates="events", lazy="selectin")
    ticket_options: Mapped[list["TicketOption"]] = relationship(
        back_populates="event",
        lazy="selectin",
        order_by="TicketOption.name",
        passive_deletes=True
    )
    # Links are written through EventCategory rows, never through this collection.
    categories: Mapped[list["Category"]] = relationship(
        secondary="event_categories",
        lazy="selectin",
        order_by="Category.name",
        viewonly=True
    )

    __table_args__ = (
        CheckConstraint("end_date > start_date", name="chk_event_time_range"),
        CheckConstraint("price >= 0", name="chk_event_price_nonneg"),
        CheckConstraint("sold >= 0", name="chk_event_sold_nonneg"),
        CheckConstraint("interested >= 0", name="chk_event_interested_nonneg"),
    )


class TicketOption(Base):
    __tablename__ = "ticket_options"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    event_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    additional_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, server_default="0")
    amount_available: Mapped[int] = mapped_column(Integer, nullable=False)

    event: Mapped["Event"] = relationship(back_populates="ticket_options", lazy="raise")

    __table_args__ = (
        CheckConstraint("additional_price >= 0", name="chk_ticket_option_price_nonneg"),
        CheckConstraint("amount_available >= 0", name="chk_ticket_option_amount_nonneg"),
    )


class SavedEvent(Base):
    __tablename__ = "saved_events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    attendee_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("attendees.account_id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    event_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    event: Mapped["Event"] = relationship(lazy="raise")

    __table_args__ = (
        UniqueConstraint("attendee_id", "event_id", name="uq_saved_event_attendee_event"),
    )


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    image_uri: Mapped[str | None] = mapped_column(Text, nullable=True)


class EventCategory(Base):
    __tablename__ = "event_categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    event_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    category_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    __table_args__ = (
        UniqueConstraint("event_id", "category_id", name="uq_event_category_pair"),
    )
