"""
Notification channel integrations.
The channel only transports a built payload; delivery (push/SMS) happens
in the external notification service.
"""

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod

import aiohttp

from app.core.exceptions import DispatchError
from app.core.integrations.http.http_client import HttpClient
from app.schemas.notification import NotificationPayload, DispatchResult

logger = logging.getLogger(__name__)


class NotificationChannel(ABC):
    """Transport for notification payloads."""

    name = "abstract"

    @abstractmethod
    async def send(self, payload: NotificationPayload) -> DispatchResult:
        """Hand one payload to the delivery service. Raises DispatchError."""

    async def close(self) -> None:
        return None


class HttpNotificationChannel(NotificationChannel):
    """Posts payloads as JSON to the notification service."""

    name = "http"

    def __init__(self, base_url: str, api_key: str = "", timeout: int = 10):
        headers = {"X-Api-Key": api_key} if api_key else {}
        self.client = HttpClient(base_url=base_url, timeout=timeout, headers=headers)

    async def send(self, payload: NotificationPayload) -> DispatchResult:
        body = payload.model_dump(mode="json", by_alias=True)
        try:
            response = await self.client.post("/notifications", json=body)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise DispatchError(
                "Notification service request failed",
                details={"error": str(e) or type(e).__name__, "recipients": payload.recipients},
            ) from e

        notification_id = response.get("notificationId") or response.get("id")
        return DispatchResult(
            success=True,
            channel=self.name,
            notification_id=str(notification_id) if notification_id is not None else None,
            recipients=payload.recipients,
        )

    async def close(self) -> None:
        await self.client.close()


class LoggingNotificationChannel(NotificationChannel):
    """Records payloads in the log when no notification service is configured."""

    name = "log"

    async def send(self, payload: NotificationPayload) -> DispatchResult:
        notification_id = uuid.uuid4().hex
        logger.info(
            f"Notification: {payload.title}",
            extra={
                "notification_id": notification_id,
                "recipients": payload.recipients,
                "priority": payload.priority.value,
                "reference_number": payload.action_data.get("referenceNumber"),
            },
        )
        return DispatchResult(
            success=True,
            channel=self.name,
            notification_id=notification_id,
            recipients=payload.recipients,
        )


def build_notification_channel(base_url: str, api_key: str = "", timeout: int = 10) -> NotificationChannel:
    """Pick the HTTP channel when a service URL is configured, the logging channel otherwise."""
    if base_url:
        return HttpNotificationChannel(base_url, api_key=api_key, timeout=timeout)
    return LoggingNotificationChannel()
