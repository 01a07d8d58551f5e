import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict


class NotificationReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    id: uuid.UUID
    created_at: datetime
    topic: str
    message: str
    is_read: bool
