from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select

from school_portal.core.errors import NotFoundError, ValidationError
from school_portal.core.logging import logger
from school_portal.models import Notification, User
from school_portal.schemas.messaging.requests import NotificationCreate
from school_portal.services.base_service import BaseService
from school_portal.utils.dates import utcnow


class NotificationService(BaseService):
    """Per-user notification inbox"""

    async def list_notifications(
        self,
        user_id: int,
        is_read: Optional[bool] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[Notification], int, int]:
        """Returns ``(page, total matching, unread overall)``"""
        query = select(Notification).where(Notification.user_id == user_id)
        if is_read is not None:
            query = query.where(Notification.is_read.is_(is_read))

        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))
        unread_count = await self.db.scalar(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        )

        result = await self.db.execute(
            query.order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total, unread_count

    async def create_notification(self, sender_id: int, data: NotificationCreate) -> Tuple[Notification, int]:
        """
        Fan a notification out to every active user matching the targets.

        Returns the copy delivered to the first recipient and the recipient count.
        """
        filters = []
        if data.target_roles:
            filters.append(User.role.in_(data.target_roles))
        if data.target_user_ids:
            filters.append(User.id.in_(data.target_user_ids))

        recipient_ids = (await self.db.execute(
            select(User.id)
            .where(User.is_active.is_(True))
            .where(or_(*filters))
            .order_by(User.id)
        )).scalars().all()
        if not recipient_ids:
            raise ValidationError("No users match the notification targets")

        async with self.transaction():
            notifications = [
                Notification(
                    user_id=recipient_id,
                    sender_id=sender_id,
                    type=data.type,
                    title=data.title,
                    message=data.message,
                    priority=data.priority,
                    is_read=False,
                )
                for recipient_id in recipient_ids
            ]
            self.db.add_all(notifications)

        logger.info(f"User {sender_id} sent notification to {len(recipient_ids)} user(s)")
        return notifications[0], len(recipient_ids)

    async def mark_read(self, user_id: int, notification_id: int) -> Notification:
        notification = await self.db.scalar(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        if not notification:
            raise NotFoundError("Notification not found")

        if not notification.is_read:
            async with self.transaction():
                notification.is_read = True
                notification.read_at = utcnow()
            await self.db.refresh(notification)
        return notification
