"""Dependency injection container for the application."""

from dependency_injector import containers, providers

from core.config import Settings
from core.cache import FileCacheService
from core.cleanup import CleanupService
from services.maps import MapsService


class Container(containers.DeclarativeContainer):
    """Application dependency injection container."""

    # Settings
    settings = providers.Singleton(
        Settings,
    )

    # One file cache per process, shared by every vendor wrapper
    cache = providers.Singleton(
        FileCacheService,
        settings=settings
    )

    cleanup_service = providers.Singleton(
        CleanupService,
        cache=cache,
        settings=settings
    )

    # Services
    maps_service = providers.Factory(
        MapsService,
        cache=cache,
        settings=settings
    )


# Global container instance
container = Container()
