import uuid
from sqlalchemy.ext.asyncio import AsyncSession
from eventflow.core.auditing import AuditSpan
from eventflow.domain.accounts import crud
from eventflow.domain.accounts.models import Account, Attendee, Organizer
from eventflow.domain.accounts.schemas import AccountRolesDTO
from eventflow.domain.exceptions import NotFound


async def get_account(db: AsyncSession, account_id: uuid.UUID) -> Account:
    account = await crud.get_account_by_id(db, account_id)
    if not account:
        raise NotFound("Account not found", ctx={"account_id": account_id})
    return account


async def is_valid_attendee(db: AsyncSession, account_id: uuid.UUID) -> bool:
    return await crud.attendee_exists(db, account_id)


async def is_valid_organizer(db: AsyncSession, account_id: uuid.UUID) -> bool:
    return await crud.organizer_exists(db, account_id)


async def get_roles(db: AsyncSession, account_id: uuid.UUID) -> AccountRolesDTO:
    await get_account(db, account_id)
    return AccountRolesDTO(
        account_id=account_id,
        is_attendee=await crud.attendee_exists(db, account_id),
        is_organizer=await crud.organizer_exists(db, account_id)
    )


async def create_attendee(db: AsyncSession, account_id: uuid.UUID) -> Attendee:
    async with AuditSpan(scope="ACCOUNTS", action="CREATE_ATTENDEE", object_type="attendee", object_id=account_id):
        await get_account(db, account_id)
        attendee = await db.get(Attendee, account_id)
        if attendee is None:
            attendee = await crud.create_attendee(db, account_id)
            await db.flush()
        return attendee


async def create_organizer(db: AsyncSession, account_id: uuid.UUID) -> Organizer:
    async with AuditSpan(
        scope="ACCOUNTS",
        action="CREATE_ORGANIZER",
        object_type="organizer",
        object_id=account_id,
        organizer_id=account_id
    ):
        await get_account(db, account_id)
        organizer = await db.get(Organizer, account_id)
        if organizer is None:
            organizer = await crud.create_organizer(db, account_id)
            await db.flush()
        return organizer
