"""In-app notifications."""

from crewbase.notifications.service import NotificationService

__all__ = ["NotificationService"]
