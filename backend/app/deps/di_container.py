"""
Dependency injection container using dependency-injector.
Wires configuration, the notification channel, and controllers.
"""

from dependency_injector import containers, providers

from app.core.config import settings
from app.core.integrations.notification_channel import build_notification_channel
from app.services.health_service import HealthService
from app.services.notification_service import NotificationDispatcher
from app.controllers.health_controller import HealthController


class Container(containers.DeclarativeContainer):
    """Dependency injection container."""

    # Configuration
    config = providers.Configuration()

    # Integrations
    notification_channel = providers.Singleton(
        build_notification_channel,
        base_url=config.notification_service_url,
        api_key=config.notification_api_key,
        timeout=config.notification_timeout_seconds,
    )

    # Services
    notification_dispatcher = providers.Factory(
        NotificationDispatcher,
        channel=notification_channel,
    )

    health_service = providers.Singleton(
        HealthService,
        notification_channel=notification_channel,
    )

    # Controllers
    health_controller = providers.Factory(
        HealthController,
        health_service=health_service,
    )


def build_container() -> Container:
    """Create a container configured from application settings."""
    container = Container()
    container.config.from_dict({
        "notification_service_url": settings.NOTIFICATION_SERVICE_URL,
        "notification_api_key": settings.NOTIFICATION_API_KEY,
        "notification_timeout_seconds": settings.NOTIFICATION_TIMEOUT_SECONDS,
    })
    return container


# Global container instance
_container: Container = None


def get_container() -> Container:
    """Get the global dependency injection container."""
    global _container
    if _container is None:
        _container = build_container()
    return _container


def get_notification_dispatcher() -> NotificationDispatcher:
    """FastAPI dependency returning a dispatcher bound to the configured channel."""
    return get_container().notification_dispatcher()
