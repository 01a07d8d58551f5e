from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from eventflow.core.database import get_db
from eventflow.core.dependencies.auth import get_current_account
from eventflow.domain.accounts.models import Account
from eventflow.domain.exceptions import NotFound
from eventflow.domain.payments.schemas import PaymentMethodCreateDTO, CardCreateDTO, PaymentMethodReadDTO
from eventflow.services import payment_service

router = APIRouter(prefix="/payment-methods", tags=["payment-methods"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]
account_dependency = Annotated[Account, Depends(get_current_account)]


@router.get("", status_code=status.HTTP_200_OK, response_model=list[PaymentMethodReadDTO])
async def list_payment_methods(db: db_dependency, account: account_dependency):
    return [payment_service.to_read_dto(pm) for pm in await payment_service.get_payment_methods(db, account.id)]


@router.get("/default", status_code=status.HTTP_200_OK, response_model=PaymentMethodReadDTO)
async def get_default_payment_method(db: db_dependency, account: account_dependency):
    payment_method = await payment_service.get_default_payment_method(db, account.id)
    if payment_method is None:
        raise NotFound("No payment method", ctx={"account_id": account.id})
    return payment_service.to_read_dto(payment_method)


@router.post("/cards", status_code=status.HTTP_201_CREATED, response_model=PaymentMethodReadDTO)
async def add_card(schema: CardCreateDTO, db: db_dependency, account: account_dependency):
    return payment_service.to_read_dto(await payment_service.add_card(db, account.id, schema))


@router.post("", status_code=status.HTTP_201_CREATED, response_model=PaymentMethodReadDTO)
async def add_payment_method(schema: PaymentMethodCreateDTO, db: db_dependency, account: account_dependency):
    return payment_service.to_read_dto(await payment_service.add_payment_method(db, account.id, schema))
