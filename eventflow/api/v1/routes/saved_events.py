import uuid
from typing import Annotated
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from eventflow.core.database import get_db
from eventflow.core.dependencies.auth import require_attendee
from eventflow.domain.accounts.models import Account
from eventflow.domain.events.schemas import SavedEventReadDTO, SavedEventCheckDTO, EventReadDTO
from eventflow.services import saved_event_service

router = APIRouter(tags=["saved-events"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]
attendee_dependency = Annotated[Account, Depends(require_attendee)]


@router.get("/saved-events", status_code=status.HTTP_200_OK, response_model=list[EventReadDTO])
async def list_saved_events(db: db_dependency, account: attendee_dependency):
    return await saved_event_service.get_saved_events(db, account.id)


@router.get("/saved-events/check", status_code=status.HTTP_200_OK, response_model=list[SavedEventCheckDTO])
async def check_saved_events(
        db: db_dependency,
        account: attendee_dependency,
        event_ids: Annotated[list[uuid.UUID], Query(max_length=200)]
):
    return [
        SavedEventCheckDTO(event_id=event_id, saved_event_id=saved_event_id)
        async for event_id, saved_event_id in saved_event_service.check_saved_events(db, account.id, event_ids)
    ]


@router.post("/events/{event_id}/save", status_code=status.HTTP_201_CREATED, response_model=SavedEventReadDTO)
async def save_event(event_id: uuid.UUID, db: db_dependency, account: attendee_dependency):
    return await saved_event_service.save_event(db, account.id, event_id)


@router.delete("/saved-events/{saved_event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unsave_event(saved_event_id: uuid.UUID, db: db_dependency, account: attendee_dependency):
    await saved_event_service.unsave_event(db, account.id, saved_event_id)
