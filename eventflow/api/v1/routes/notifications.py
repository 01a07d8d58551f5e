import uuid
from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from eventflow.core.database import get_db
from eventflow.core.dependencies.auth import get_current_account
from eventflow.domain.accounts.models import Account
from eventflow.domain.notifications.schemas import NotificationReadDTO
from eventflow.services import notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]
account_dependency = Annotated[Account, Depends(get_current_account)]


@router.get("", status_code=status.HTTP_200_OK, response_model=list[NotificationReadDTO])
async def list_notifications(db: db_dependency, account: account_dependency, unread_only: bool = False):
    return await notification_service.get_notifications(db, account.id, unread_only=unread_only)


@router.post("/{notification_id}/read", status_code=status.HTTP_200_OK, response_model=NotificationReadDTO)
async def mark_read(notification_id: uuid.UUID, db: db_dependency, account: account_dependency):
    return await notification_service.mark_read(db, account.id, notification_id)


@router.post("/read-all", status_code=status.HTTP_204_NO_CONTENT)
async def mark_all_read(db: db_dependency, account: account_dependency):
    await notification_service.mark_all_read(db, account.id)
