"""Dependency injection container for the application."""

from dependency_injector import containers, providers

from dashcache.core.config import Settings
from dashcache.services.cache import BatchFetcher, CacheEngine, DurableStore
from dashcache.services.widget_registry import create_widget_registry


class Container(containers.DeclarativeContainer):
    """Application dependency injection container."""

    # Settings
    settings = providers.Singleton(
        Settings,
    )

    # Durable tier (SQLite by default); opened by the engine at startup
    durable_store = providers.Singleton(
        DurableStore,
        settings=settings
    )

    # Widget cache, one per process
    cache = providers.Singleton(
        CacheEngine,
        settings=settings,
        store=durable_store
    )

    widget_registry = providers.Singleton(
        create_widget_registry
    )

    batch_fetcher = providers.Factory(
        BatchFetcher,
        cache=cache
    )


# Global container instance
container = Container()
