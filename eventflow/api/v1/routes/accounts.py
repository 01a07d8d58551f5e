from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from eventflow.core.database import get_db
from eventflow.core.dependencies.auth import get_current_account
from eventflow.domain.accounts.models import Account
from eventflow.domain.accounts.schemas import AccountReadDTO, AccountRolesDTO
from eventflow.services import account_service

router = APIRouter(prefix="/accounts/me", tags=["accounts"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]
account_dependency = Annotated[Account, Depends(get_current_account)]


@router.get("", status_code=status.HTTP_200_OK, response_model=AccountReadDTO)
async def get_me(account: account_dependency):
    return account


@router.get("/roles", status_code=status.HTTP_200_OK, response_model=AccountRolesDTO)
async def get_my_roles(db: db_dependency, account: account_dependency):
    return await account_service.get_roles(db, account.id)


@router.post("/attendee", status_code=status.HTTP_200_OK, response_model=AccountRolesDTO)
async def become_attendee(db: db_dependency, account: account_dependency):
    await account_service.create_attendee(db, account.id)
    return await account_service.get_roles(db, account.id)


@router.post("/organizer", status_code=status.HTTP_200_OK, response_model=AccountRolesDTO)
async def become_organizer(db: db_dependency, account: account_dependency):
    await account_service.create_organizer(db, account.id)
    return await account_service.get_roles(db, account.id)
