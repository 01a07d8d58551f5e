import uuid
from datetime import datetime
from sqlalchemy import Text, ForeignKey, TIMESTAMP, func, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from eventflow.core.database import Base


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    company: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    attendee: Mapped["Attendee"] = relationship(back_populates="account", lazy="selectin", uselist=False)
    organizer: Mapped["Organizer"] = relationship(back_populates="account", lazy="selectin", uselist=False)


class Attendee(Base):
    __tablename__ = "attendees"

    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    account: Mapped["Account"] = relationship(back_populates="attendee", lazy="selectin")


class Organizer(Base):
    __tablename__ = "organizers"

    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"),
        primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    account: Mapped["Account"] = relationship(back_populates="organizer", lazy="selectin")
    events: Mapped[list["Event"]] = relationship(back_populates="organizer", lazy="raise")

    @property
    def name(self) -> str:
        return self.account.company or self.account.display_name or self.account.email
