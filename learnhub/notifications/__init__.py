"""Outbound notifications to the external notification service."""

from learnhub.notifications.client import (
    NotificationClient,
    NotificationDispatcher,
    NotificationError,
    NotificationType,
)


__all__ = [
    "NotificationClient",
    "NotificationDispatcher",
    "NotificationError",
    "NotificationType",
]
