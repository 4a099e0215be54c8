"""Client for the external notification service.

Notifications are side effects of enrollment and course completion. They are
sent after the triggering transaction commits, in a background task bounded
by ``notifier_timeout_seconds``; a slow or failing notifier is logged and
never affects the request that caused it.
"""

import asyncio
from enum import Enum

import httpx
import structlog

from learnhub.config.settings import Settings


logger = structlog.get_logger(__name__)


class NotificationType(str, Enum):
    """Notification kinds understood by the notification service."""

    ENROLLMENT = "enrollment"
    COMPLETED = "completed"


class NotificationError(Exception):
    """Notification service call failed."""

    def __init__(self, message: str, code: str = "notification_error"):
        self.message = message
        self.code = code
        super().__init__(message)


def enrollment_message(course_title: str) -> tuple[str, str]:
    """Title and body sent to a teacher when a student enrolls."""
    return (
        "New Student Enrolled",
        f"A student has enrolled in your course: {course_title}",
    )


def completion_message(course_title: str) -> tuple[str, str]:
    """Title and body sent to a student who finished every lesson."""
    return (
        "Course Completed",
        f"Congratulations! You have completed the course: {course_title}",
    )


class NotificationClient:
    """HTTP client for ``POST {base_url}/v1/notifications``."""

    def __init__(self, base_url: str, timeout_seconds: float = 3.0):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    async def send_notification(
        self,
        recipient_id: int,
        notification_type: NotificationType,
        title: str,
        message: str,
    ) -> None:
        """Deliver one notification.

        Raises:
            NotificationError: On timeout, transport error or non-2xx answer
        """
        payload = {
            "user_id": recipient_id,
            "type": notification_type.value,
            "title": title,
            "message": message,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(
                    f"{self.base_url}/v1/notifications", json=payload
                )
        except httpx.TimeoutException as e:
            raise NotificationError("Notification service timeout") from e
        except httpx.RequestError as e:
            raise NotificationError(f"Notification service request error: {e}") from e

        if not response.is_success:
            raise NotificationError(
                f"Notification service error: {response.status_code}"
            )


class NotificationDispatcher:
    """Fire-and-forget delivery of notifications.

    ``dispatch`` schedules delivery on the running loop and returns at once.
    Pending deliveries are tracked so shutdown (and tests) can ``drain`` them.
    """

    def __init__(self, client: NotificationClient | None, timeout_seconds: float = 3.0):
        self.client = client
        self.timeout_seconds = timeout_seconds
        self._pending: set[asyncio.Task[None]] = set()

    @classmethod
    def from_settings(cls, settings: Settings) -> "NotificationDispatcher":
        client = None
        if settings.notifier_configured:
            client = NotificationClient(
                settings.notifier_url or "", settings.notifier_timeout_seconds
            )
        return cls(client, settings.notifier_timeout_seconds)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def dispatch(
        self,
        recipient_id: int,
        notification_type: NotificationType,
        title: str,
        message: str,
    ) -> None:
        """Schedule a notification without waiting for it."""
        if self.client is None:
            logger.debug(
                "notification_skipped",
                recipient_id=recipient_id,
                type=notification_type.value,
                reason="notifier_not_configured",
            )
            return

        task = asyncio.create_task(
            self._deliver(self.client, recipient_id, notification_type, title, message)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(
        self,
        client: NotificationClient,
        recipient_id: int,
        notification_type: NotificationType,
        title: str,
        message: str,
    ) -> None:
        try:
            async with asyncio.timeout(self.timeout_seconds):
                await client.send_notification(
                    recipient_id, notification_type, title, message
                )
        except TimeoutError:
            logger.warning(
                "notification_failed",
                recipient_id=recipient_id,
                type=notification_type.value,
                error="timeout",
            )
        except Exception as e:
            logger.warning(
                "notification_failed",
                recipient_id=recipient_id,
                type=notification_type.value,
                error=str(e),
            )
        else:
            logger.info(
                "notification_sent",
                recipient_id=recipient_id,
                type=notification_type.value,
            )

    async def drain(self) -> None:
        """Wait for every pending delivery to finish."""
        while self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
