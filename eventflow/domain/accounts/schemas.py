import uuid
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, ConfigDict


class AccountReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    id: uuid.UUID
    email: str
    display_name: str | None
    company: str | None
    created_at: datetime


class AccountRolesDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    account_id: uuid.UUID
    is_attendee: bool
    is_organizer: bool


class TokenPayload(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sub: uuid.UUID
    iat: int
    nbf: int
    exp: int
    jti: str | None = None
    typ: Literal["access"] | None = None
    iss: str | None = None
    aud: str | list[str] | None = None
