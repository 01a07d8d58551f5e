import uuid
from typing import Annotated
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from eventflow.core.database import get_db
from eventflow.core.dependencies.auth import require_organizer
from eventflow.core.pagination import PageDTO
from eventflow.domain.accounts.models import Account
from eventflow.domain.events.schemas import EventCreateDTO, EventUpdateDTO, EventReadDTO, EventDetailsDTO, \
    EventsQueryDTO, CategoryReadDTO
from eventflow.domain.tickets.schemas import CancellationResultDTO
from eventflow.services import event_service, purchase_service

router = APIRouter(tags=["events"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]


@router.get("/events", status_code=status.HTTP_200_OK, response_model=PageDTO[EventReadDTO])
async def find_events(db: db_dependency, query: Annotated[EventsQueryDTO, Query()]):
    return await event_service.find_events(db, query)


@router.get("/categories", status_code=status.HTTP_200_OK, response_model=list[CategoryReadDTO])
async def list_categories(db: db_dependency):
    return await event_service.get_categories(db)


@router.get("/events/{event_id}", status_code=status.HTTP_200_OK, response_model=EventDetailsDTO)
async def get_event(event_id: uuid.UUID, db: db_dependency):
    return await event_service.get_event(db, event_id)


@router.get("/organizers/me/events", status_code=status.HTTP_200_OK, response_model=list[EventReadDTO])
async def list_my_events(db: db_dependency, account: Annotated[Account, Depends(require_organizer)]):
    return await event_service.get_events(db, account.id)


@router.post("/events", status_code=status.HTTP_201_CREATED, response_model=EventDetailsDTO)
async def create_event(
        schema: EventCreateDTO,
        db: db_dependency,
        account: Annotated[Account, Depends(require_organizer)]
):
    return await event_service.create_event(db, account.id, schema)


@router.patch("/events/{event_id}", status_code=status.HTTP_200_OK, response_model=EventDetailsDTO)
async def update_event(
        event_id: uuid.UUID,
        schema: EventUpdateDTO,
        db: db_dependency,
        account: Annotated[Account, Depends(require_organizer)]
):
    return await event_service.update_event(db, event_id, account.id, schema)


@router.delete("/events/{event_id}", status_code=status.HTTP_200_OK, response_model=CancellationResultDTO)
async def cancel_event(
        event_id: uuid.UUID,
        db: db_dependency,
        account: Annotated[Account, Depends(require_organizer)]
):
    # Refunds issued before a rejected ticket stay committed.
    return CancellationResultDTO(success=await purchase_service.cancel_event(db, account.id, event_id))
