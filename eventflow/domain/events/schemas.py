import uuid
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from eventflow.core.text_utils import strip_text


class TicketOptionCreateDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    additional_price: Decimal = Field(default=Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    amount_available: int = Field(ge=0)

    _strip_name = field_validator("name", mode="before")(strip_text)
    _strip_desc = field_validator("description", mode="before")(strip_text)


class TicketOptionUpsertDTO(TicketOptionCreateDTO):
    id: uuid.UUID | None = None


class TicketOptionReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    id: uuid.UUID
    name: str
    description: str | None
    additional_price: Decimal
    amount_available: int


class CategoryReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    id: uuid.UUID
    name: str
    image_uri: str | None = None


class EventCreateDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    name: str = Field(min_length=3, max_length=200)
    description: str = Field(min_length=1, max_length=5000)
    start_date: datetime
    end_date: datetime
    location: str = Field(min_length=1, max_length=200)
    price: Decimal = Field(default=Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    banner_uri: str | None = None
    banner_file: uuid.UUID | None = None
    ticket_options: list[TicketOptionCreateDTO] = Field(default_factory=list)
    category_ids: list[uuid.UUID] = Field(default_factory=list, max_length=20)

    _strip_name = field_validator("name", mode="before")(strip_text)
    _strip_desc = field_validator("description", mode="before")(strip_text)
    _strip_location = field_validator("location", mode="before")(strip_text)

    @model_validator(mode="after")
    def _check_dates(self):
        if self.start_date >= self.end_date:
            raise ValueError("Start date must be before end date")
        return self


class EventUpdateDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    name: str | None = Field(default=None, min_length=3, max_length=200)
    description: str | None = Field(default=None, min_length=1, max_length=5000)
    start_date: datetime | None = None
    end_date: datetime | None = None
    location: str | None = Field(default=None, min_length=1, max_length=200)
    price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    banner_uri: str | None = None
    banner_file: uuid.UUID | None = None
    ticket_options: list[TicketOptionUpsertDTO] | None = None
    category_ids: list[uuid.UUID] | None = Field(default=None, max_length=20)

    _strip_name = field_validator("name", mode="before")(strip_text)
    _strip_desc = field_validator("description", mode="before")(strip_text)
    _strip_location = field_validator("location", mode="before")(strip_text)


class EventReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    id: uuid.UUID
    organizer_id: uuid.UUID
    name: str
    description: str
    start_date: datetime
    end_date: datetime
    location: str
    price: Decimal
    interested: int
    sold: int
    banner_uri: str | None
    banner_file: uuid.UUID | None = None
    created_at: datetime


class EventDetailsDTO(EventReadDTO):
    ticket_options: list[TicketOptionReadDTO] = Field(default_factory=list)
    categories: list[CategoryReadDTO] = Field(default_factory=list)
    saved_event_id: uuid.UUID | None = None


class EventsQueryDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    min_date: datetime | None = None
    max_date: datetime | None = None
    min_price: Decimal | None = Field(default=None, ge=0)
    max_price: Decimal | None = Field(default=None, ge=0)
    location: list[str] | None = None
    category: list[uuid.UUID] | None = None
    keywords: str | None = Field(default=None, max_length=200)
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=200)

    _strip_keywords = field_validator("keywords", mode="before")(strip_text)


class SavedEventReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    id: uuid.UUID
    attendee_id: uuid.UUID
    event_id: uuid.UUID
    created_at: datetime


class SavedEventCheckDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    event_id: uuid.UUID
    saved_event_id: uuid.UUID
