"""Tests for the notification client and background dispatcher."""

import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from learnhub.config import Settings
from learnhub.notifications.client import (
    NotificationClient,
    NotificationDispatcher,
    NotificationError,
    NotificationType,
    completion_message,
    enrollment_message,
)


class TestMessages:
    """Tests for notification texts."""

    def test_enrollment_message(self) -> None:
        assert enrollment_message("Biochemistry") == (
            "New Student Enrolled",
            "A student has enrolled in your course: Biochemistry",
        )

    def test_completion_message(self) -> None:
        assert completion_message("Biochemistry") == (
            "Course Completed",
            "Congratulations! You have completed the course: Biochemistry",
        )


class TestNotificationClient:
    """Tests for NotificationClient.send_notification."""

    @pytest.mark.asyncio
    async def test_posts_payload(self) -> None:
        post = AsyncMock(
            return_value=httpx.Response(
                201, request=httpx.Request("POST", "http://notifier/v1/notifications")
            )
        )
        client = NotificationClient("http://notifier/")

        with patch.object(httpx.AsyncClient, "post", post):
            await client.send_notification(
                7, NotificationType.ENROLLMENT, "Title", "Body"
            )

        post.assert_awaited_once_with(
            "http://notifier/v1/notifications",
            json={
                "user_id": 7,
                "type": "enrollment",
                "title": "Title",
                "message": "Body",
            },
        )

    @pytest.mark.asyncio
    async def test_error_status(self) -> None:
        post = AsyncMock(
            return_value=httpx.Response(
                500, request=httpx.Request("POST", "http://notifier/v1/notifications")
            )
        )
        client = NotificationClient("http://notifier")

        with (
            patch.object(httpx.AsyncClient, "post", post),
            pytest.raises(NotificationError, match="500"),
        ):
            await client.send_notification(7, NotificationType.COMPLETED, "T", "B")

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        post = AsyncMock(side_effect=httpx.ConnectError("connection refused"))
        client = NotificationClient("http://notifier")

        with (
            patch.object(httpx.AsyncClient, "post", post),
            pytest.raises(NotificationError),
        ):
            await client.send_notification(7, NotificationType.COMPLETED, "T", "B")


class TestNotificationDispatcher:
    """Tests for NotificationDispatcher."""

    def test_from_settings_without_url(self, settings: Settings) -> None:
        assert NotificationDispatcher.from_settings(settings).client is None

    def test_from_settings_with_url(self, settings: Settings) -> None:
        configured = settings.model_copy(update={"notifier_url": "http://notifier"})
        dispatcher = NotificationDispatcher.from_settings(configured)
        assert dispatcher.client is not None
        assert dispatcher.client.base_url == "http://notifier"

    @pytest.mark.asyncio
    async def test_dispatch_without_client_is_noop(self) -> None:
        dispatcher = NotificationDispatcher(None)
        dispatcher.dispatch(1, NotificationType.ENROLLMENT, "T", "B")
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_dispatch_runs_in_background(self) -> None:
        client = AsyncMock(spec=NotificationClient)
        dispatcher = NotificationDispatcher(client)

        dispatcher.dispatch(1, NotificationType.ENROLLMENT, "T", "B")
        assert dispatcher.pending == 1

        await dispatcher.drain()
        assert dispatcher.pending == 0
        client.send_notification.assert_awaited_once_with(
            1, NotificationType.ENROLLMENT, "T", "B"
        )

    @pytest.mark.asyncio
    async def test_slow_notifier_is_abandoned(self) -> None:
        async def hang(*_args: object) -> None:
            await asyncio.sleep(10)

        client = AsyncMock(spec=NotificationClient)
        client.send_notification.side_effect = hang
        dispatcher = NotificationDispatcher(client, timeout_seconds=0.05)

        dispatcher.dispatch(1, NotificationType.COMPLETED, "T", "B")
        await asyncio.wait_for(dispatcher.drain(), timeout=2)

        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_failure_is_swallowed(self) -> None:
        client = AsyncMock(spec=NotificationClient)
        client.send_notification.side_effect = NotificationError("boom")
        dispatcher = NotificationDispatcher(client)

        dispatcher.dispatch(1, NotificationType.COMPLETED, "T", "B")
        await dispatcher.drain()

        assert dispatcher.pending == 0
