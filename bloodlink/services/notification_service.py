from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from bloodlink.config import settings
from bloodlink.models.notification import Notification
from bloodlink.models.user import Donor
from bloodlink.schemas.base_schema import NotificationType, UserRole
from bloodlink.services.notification_sse import ConnectionManager, city_room, manager
from bloodlink.utils.exceptions import NotFoundError
from bloodlink.utils.logging_config import get_logger

logger = get_logger(__name__)


def _event_data(title, message, type, related_id, payload) -> dict:
    data = {
        "title": title,
        "message": message,
        "type": NotificationType(type).value,
        "related_id": str(related_id) if related_id else None,
    }
    if payload:
        data.update(payload)
    return data


class NotificationService:
    """
    Persisted notifications with a best-effort live push.

    The stored record is the durable copy; the push only reaches
    recipients that currently hold an open stream.
    """

    def __init__(self, db: AsyncSession, connections: Optional[ConnectionManager] = None):
        self.db = db
        self.connections = connections or manager

    async def notify(
        self,
        recipient_ids: Iterable[UUID],
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
        related_id: Optional[UUID] = None,
        event: str = "notification",
        payload: Optional[dict] = None,
        push: bool = True,
    ) -> List[Notification]:
        """Store one notification per recipient, then push each recipient's room"""
        recipients = list(dict.fromkeys(recipient_ids))
        if not recipients:
            return []

        notifications = [
            Notification(
                recipient_id=recipient_id,
                title=title,
                message=message,
                type=NotificationType(type),
                related_id=related_id,
            )
            for recipient_id in recipients
        ]
        self.db.add_all(notifications)
        await self.db.commit()

        if push:
            for notification in notifications:
                data = _event_data(title, message, type, related_id, payload)
                data["notification_id"] = str(notification.id)
                self.push(str(notification.recipient_id), event, data)

        logger.info(
            "Notifications stored",
            extra={
                "event_type": "notifications_created",
                "recipients": len(notifications),
                "notification_event": event,
            },
        )
        return notifications

    async def donors_in_city(self, city: str) -> List[UUID]:
        """Active donors whose city matches exactly, ignoring case"""
        result = await self.db.execute(
            select(Donor.id).where(
                Donor.role == UserRole.DONOR.value,
                func.lower(Donor.city) == city.strip().lower(),
                Donor.is_active.is_(True),
            )
        )
        return list(result.scalars().all())

    async def notify_by_city(
        self,
        city: str,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
        related_id: Optional[UUID] = None,
        event: str = "notification",
        payload: Optional[dict] = None,
    ) -> List[Notification]:
        """Store a notification for every donor in the city, then push the city room once"""
        donor_ids = await self.donors_in_city(city)
        notifications = await self.notify(donor_ids, title, message, type, related_id, push=False)
        if notifications:
            self.push_city(city, event, _event_data(title, message, type, related_id, payload))
        return notifications

    def push(self, room: str, event: str, data: dict) -> int:
        """Live push only; never raises"""
        try:
            return self.connections.publish(room, event, data)
        except Exception as e:
            logger.error(
                f"Live push failed: {e}",
                extra={"event_type": "push_failed", "room": room, "push_event": event},
            )
            return 0

    def push_city(self, city: str, event: str, data: dict) -> int:
        return self.push(city_room(city), event, data)

    async def list_for(self, recipient_id: UUID, limit: Optional[int] = None) -> List[Notification]:
        result = await self.db.execute(
            select(Notification)
            .where(Notification.recipient_id == recipient_id)
            .order_by(Notification.created_at.desc())
            .limit(limit or settings.NOTIFICATION_LIST_LIMIT)
        )
        return list(result.scalars().all())

    async def mark_read(self, notification_id: UUID, recipient_id: UUID) -> Notification:
        result = await self.db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.recipient_id == recipient_id,
            )
        )
        notification = result.scalar_one_or_none()
        if notification is None:
            raise NotFoundError("Notification not found")

        notification.is_read = True
        await self.db.commit()
        return notification

    async def mark_all_read(self, recipient_id: UUID) -> int:
        result = await self.db.execute(
            update(Notification)
            .where(Notification.recipient_id == recipient_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        await self.db.commit()
        return result.rowcount or 0
