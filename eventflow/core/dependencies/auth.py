from typing import Annotated
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from eventflow.core.config import SECRET_KEY, ALGORITHM, JWT_ISSUER, JWT_AUDIENCE
from eventflow.core.ctx import AUTH_ACCOUNT_ID_CTX
from eventflow.core.database import get_db
from eventflow.domain.accounts import crud
from eventflow.domain.accounts.models import Account
from eventflow.domain.accounts.schemas import TokenPayload
from eventflow.domain.exceptions import Unauthorized, Forbidden

oauth2_bearer = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=True)


async def get_token_payload(token: Annotated[str, Depends(oauth2_bearer)]) -> TokenPayload:
    try:
        raw_payload = jwt.decode(
            token,
            SECRET_KEY,
            algorithms=[ALGORITHM],
            issuer=JWT_ISSUER,
            audience=JWT_AUDIENCE,
            options={"verify_aud": True, "leeway": 5}
        )
        if raw_payload.get("typ") != "access":
            raise Unauthorized("Invalid token type", ctx={"reason": "invalid_type"})
        return TokenPayload.model_validate(raw_payload)
    except (JWTError, ValidationError):
        raise Unauthorized("Invalid authentication credentials", ctx={"reason": "invalid_token"})


async def get_current_account(
        payload: Annotated[TokenPayload, Depends(get_token_payload)],
        db: Annotated[AsyncSession, Depends(get_db)]
) -> Account:
    account = await crud.get_account_by_id(db, payload.sub)
    if not account:
        raise Unauthorized("Account not found", ctx={"account_id": payload.sub})
    AUTH_ACCOUNT_ID_CTX.set(account.id)
    return account


async def require_attendee(
        account: Annotated[Account, Depends(get_current_account)],
        db: Annotated[AsyncSession, Depends(get_db)]
) -> Account:
    if not await crud.attendee_exists(db, account.id):
        raise Forbidden("Attendee role required", ctx={"account_id": account.id})
    return account


async def require_organizer(
        account: Annotated[Account, Depends(get_current_account)],
        db: Annotated[AsyncSession, Depends(get_db)]
) -> Account:
    if not await crud.organizer_exists(db, account.id):
        raise Forbidden("Organizer role required", ctx={"account_id": account.id})
    return account
