"""
In-app notifications.

Other features create them with notify(); users list their own and mark
them read.
"""

from __future__ import annotations

import logging

from crewbase.core.errors import Forbidden, NotFound
from crewbase.core.models import Notification, NotificationType
from crewbase.storage.base import StorageProvider

logger = logging.getLogger(__name__)


class NotificationService:
    """Per-user notification inbox."""

    def __init__(self, storage: StorageProvider):
        self.storage = storage

    async def notify(
        self,
        recipient_id: str,
        type: NotificationType,
        message: str,
        sender_id: str | None = None,
        leave_id: str | None = None,
    ) -> Notification:
        notification = Notification(
            recipient_id=recipient_id,
            sender_id=sender_id,
            type=type,
            message=message,
            leave_id=leave_id,
        )
        return await self.storage.notifications.create(notification)

    async def list_for(self, user_id: str) -> list[Notification]:
        """Notifications for a user, newest first."""
        return await self.storage.notifications.list_for_recipient(user_id)

    async def mark_read(self, notification_id: str, user_id: str) -> None:
        """Mark as read; only the recipient may do this."""
        notification = await self.storage.notifications.get(notification_id)
        if notification is None:
            raise NotFound("Notification not found.")
        if notification.recipient_id != user_id:
            logger.warning(f"User {user_id} tried to mark notification {notification_id}")
            raise Forbidden("Unauthorized.")
        await self.storage.notifications.mark_read(notification_id)
