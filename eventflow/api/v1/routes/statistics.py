from datetime import date
from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from eventflow.core.database import get_db
from eventflow.core.dependencies.auth import require_organizer
from eventflow.domain.accounts.models import Account
from eventflow.domain.tickets.schemas import StatisticsDTO
from eventflow.services import statistics_service

router = APIRouter(tags=["statistics"])


@router.get("/organizers/me/statistics", status_code=status.HTTP_200_OK, response_model=StatisticsDTO)
async def get_statistics(
        db: Annotated[AsyncSession, Depends(get_db)],
        account: Annotated[Account, Depends(require_organizer)],
        month: date | None = None
):
    return await statistics_service.get_statistics(db, account.id, month or date.today())
