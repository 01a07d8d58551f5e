import logging
import uuid
from datetime import datetime, timezone
from sqlalchemy.exc import SQLAlchemyError, DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession
from eventflow.core.auditing import AuditSpan
from eventflow.domain.exceptions import NotFound
from eventflow.domain.notifications import crud
from eventflow.domain.notifications.models import Notification

logger = logging.getLogger("eventflow.notifications")


class NotificationSender:
    """Writes in-app notifications without ever failing the surrounding transaction."""

    async def send(
            self,
            db: AsyncSession,
            account_id: uuid.UUID,
            topic: str,
            message: str,
            timestamp: datetime | None = None
    ) -> Notification | None:
        notification = Notification(
            account_id=account_id,
            topic=topic,
            message=message,
            created_at=timestamp or datetime.now(timezone.utc)
        )
        try:
            async with db.begin_nested():
                db.add(notification)
                await db.flush()
        except (DBAPIError, SQLAlchemyError):
            logger.exception(
                "Notification insert failed",
                extra={"account_id": str(account_id), "topic": topic}
            )
            return None
        return notification


notification_sender = NotificationSender()


async def get_notifications(
        db: AsyncSession,
        account_id: uuid.UUID,
        *,
        unread_only: bool = False
) -> list[Notification]:
    return await crud.list_notifications(db, account_id, unread_only=unread_only)


async def mark_read(db: AsyncSession, account_id: uuid.UUID, notification_id: uuid.UUID) -> Notification:
    async with AuditSpan(
        scope="NOTIFICATIONS",
        action="MARK_READ",
        object_type="notification",
        object_id=notification_id
    ):
        notification = await crud.get_notification(db, notification_id)
        if not notification or notification.account_id != account_id:
            raise NotFound("Notification not found", ctx={"notification_id": notification_id})
        if not notification.is_read:
            notification.is_read = True
            await db.flush()
        return notification


async def mark_all_read(db: AsyncSession, account_id: uuid.UUID) -> int:
    async with AuditSpan(
        scope="NOTIFICATIONS",
        action="MARK_ALL_READ",
        object_type="notification",
        meta={"account_id": account_id}
    ) as span:
        updated = await crud.mark_all_read(db, account_id)
        span.meta["updated"] = updated
        return updated
