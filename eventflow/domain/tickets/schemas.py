import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, EmailStr, field_validator, AliasPath
from eventflow.core.text_utils import strip_text
from eventflow.core.utils.validators import normalize_phone_or_none


class TicketHolderDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    holder_name: str | None = Field(default=None, max_length=200)
    holder_email: EmailStr | None = None
    holder_phone: str | None = None

    _strip_name = field_validator("holder_name", mode="before")(strip_text)
    _strip_email = field_validator("holder_email", mode="before")(strip_text)

    @field_validator("holder_phone", mode="before")
    @classmethod
    def _normalize_phone(cls, v):
        return normalize_phone_or_none(v)


class TicketDraftDTO(TicketHolderDTO):
    ticket_option_id: uuid.UUID
    attendee_id: uuid.UUID
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    payment_method_id: uuid.UUID | None = None


class TicketSnapshotDTO(TicketHolderDTO):
    id: uuid.UUID


class TicketReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    id: uuid.UUID
    ticket_option_id: uuid.UUID
    ticket_option_name: str | None = Field(default=None, validation_alias=AliasPath("ticket_option", "name"))
    event_id: uuid.UUID | None = Field(default=None, validation_alias=AliasPath("ticket_option", "event_id"))
    attendee_id: uuid.UUID
    created_at: datetime
    price: Decimal
    holder_name: str | None
    holder_email: str | None
    holder_phone: str | None
    is_reviewed: bool
    payment_method_id: uuid.UUID | None = None


class TicketDetailsDTO(TicketReadDTO):
    organizer_id: uuid.UUID | None = None


class AttendanceQueryDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    event_id: uuid.UUID | None = None


class StatisticsDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    total_events: int
    total_tickets: int
    total_sales: Decimal
    total_reviewed: int
    daily_sales: list[Decimal] = Field(default_factory=list)


class PurchaseRequestDTO(TicketHolderDTO):
    ticket_option_ids: list[uuid.UUID] = Field(min_length=1, max_length=50)
    payment_method_id: uuid.UUID | None = None
    expected_total: Decimal | None = Field(default=None, ge=0)


class PurchaseFailure(str, Enum):
    UNAVAILABLE = "UNAVAILABLE"
    PRICE_CHANGED = "PRICE_CHANGED"
    INVALID_PAYMENT_METHOD = "INVALID_PAYMENT_METHOD"
    PAYMENT_FAILED = "PAYMENT_FAILED"


class PurchaseResultDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    success: bool
    reason: PurchaseFailure | None = None
    event_id: uuid.UUID | None = None
    event_name: str | None = None
    total_price: Decimal = Decimal("0")
    tickets: list[TicketReadDTO] = Field(default_factory=list)


class CancellationResultDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    success: bool
    event_id: uuid.UUID | None = None
    event_name: str | None = None
