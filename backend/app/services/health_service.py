"""
Health service.
Provides health check functionality.
"""

import time
from typing import Optional

from app.services.base_service import BaseService
from app.schemas.health import HealthResponse
from app.core.integrations.notification_channel import NotificationChannel


class HealthService(BaseService):
    """Service for health check operations."""

    def __init__(self, notification_channel: Optional[NotificationChannel] = None):
        self.start_time = time.time()
        self.notification_channel = notification_channel

    async def get_health(self) -> HealthResponse:
        """
        Get system health status.

        Returns:
            HealthResponse with status, uptime, and checks
        """
        uptime_seconds = int(time.time() - self.start_time)
        uptime_str = f"PT{uptime_seconds}S"  # ISO 8601 duration format

        checks = {}

        try:
            from app.db import session as db_session
            from app.db.repositories.health_repository import HealthRepository

            if db_session.async_session_maker is None:
                db_session.create_sessionmaker()
            async with db_session.async_session_maker() as session:
                repo = HealthRepository(session=session)
                db_status = await repo.check_database()
                checks["database"] = "ok" if db_status else "error"
        except Exception as e:
            checks["database"] = f"error: {str(e)}"

        if self.notification_channel is not None:
            checks["notifications"] = self.notification_channel.name

        status = "ok" if checks.get("database") == "ok" else "degraded"

        return HealthResponse(
            status=status,
            uptime=uptime_str,
            checks=checks,
        )
