import uuid
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator
from eventflow.core.text_utils import strip_text
from eventflow.domain.payments.models import PaymentMethodKind
from eventflow.core.utils.validators import normalize_card_number, check_card_expiry, check_cvv, mask_card_number


class PaymentMethodCreateDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    display_name: str | None = Field(default=None, max_length=100)

    _strip_name = field_validator("display_name", mode="before")(strip_text)


class CardCreateDTO(PaymentMethodCreateDTO):
    number: str
    expiry: str
    cvv: str
    name: str = Field(min_length=2, max_length=200)

    _strip_holder = field_validator("name", mode="before")(strip_text)

    @field_validator("number")
    @classmethod
    def _check_number(cls, v: str) -> str:
        return normalize_card_number(v)

    @field_validator("expiry")
    @classmethod
    def _check_expiry(cls, v: str) -> str:
        return check_card_expiry(v)

    @field_validator("cvv")
    @classmethod
    def _check_cvv(cls, v: str) -> str:
        return check_cvv(v)


class GenericPaymentMethodReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='ignore')

    kind: Literal[PaymentMethodKind.GENERIC]
    id: uuid.UUID
    display_name: str | None
    balance: Decimal
    created_at: datetime


class CardPaymentMethodReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='ignore')

    kind: Literal[PaymentMethodKind.CARD]
    id: uuid.UUID
    display_name: str | None
    balance: Decimal
    number: str | None = Field(validation_alias="card_number")
    created_at: datetime

    _mask_number = field_validator("number")(mask_card_number)


PaymentMethodReadDTO = Annotated[
    Union[GenericPaymentMethodReadDTO, CardPaymentMethodReadDTO],
    Field(discriminator="kind")
]
