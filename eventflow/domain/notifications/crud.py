import uuid
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from .models import Notification


async def list_notifications(db: AsyncSession, account_id: uuid.UUID, *, unread_only: bool = False) -> list[Notification]:
    stmt = select(Notification).where(Notification.account_id == account_id)
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    result = await db.scalars(stmt.order_by(Notification.created_at.desc(), Notification.id))
    return list(result.all())


async def get_notification(db: AsyncSession, notification_id: uuid.UUID) -> Notification | None:
    result = await db.execute(select(Notification).where(Notification.id == notification_id))
    return result.scalars().first()


async def mark_all_read(db: AsyncSession, account_id: uuid.UUID) -> int:
    result = await db.execute(
        update(Notification)
        .where(Notification.account_id == account_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    return int(result.rowcount or 0)
