import uuid
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from .models import Account, Attendee, Organizer


async def get_account_by_id(db: AsyncSession, account_id: uuid.UUID) -> Account | None:
    result = await db.execute(select(Account).where(Account.id == account_id))
    return result.scalars().first()


async def attendee_exists(db: AsyncSession, account_id: uuid.UUID) -> bool:
    return bool(await db.scalar(select(select(Attendee.account_id).where(Attendee.account_id == account_id).exists())))


async def organizer_exists(db: AsyncSession, account_id: uuid.UUID) -> bool:
    return bool(await db.scalar(select(select(Organizer.account_id).where(Organizer.account_id == account_id).exists())))


async def create_attendee(db: AsyncSession, account_id: uuid.UUID) -> Attendee:
    attendee = Attendee(account_id=account_id)
    db.add(attendee)
    return attendee


async def create_organizer(db: AsyncSession, account_id: uuid.UUID) -> Organizer:
    organizer = Organizer(account_id=account_id)
    db.add(organizer)
    return organizer
