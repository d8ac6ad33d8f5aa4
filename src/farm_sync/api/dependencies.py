"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services constructed in lifespan startup, closed on shutdown
    - Dependency functions retrieve from request.app.state
    - Tests override ``app.state.backend`` before startup to inject fakes
"""

from contextlib import asynccontextmanager
from typing import Annotated

import structlog
from fastapi import Depends, FastAPI, Request

from farm_sync.config import settings
from farm_sync.handlers import SyncHandler
from farm_sync.logging_config import configure_logging
from farm_sync.repositories import BackendClient
from farm_sync.services import AnimalCollectionService, KeyedCacheService

logger = structlog.get_logger(__name__)


def get_handler(request: Request) -> SyncHandler:
    """Dependency injection for SyncHandler from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The SyncHandler instance from app.state

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "sync_handler", None)
    if handler is None:
        raise RuntimeError("SyncHandler not initialized. Check lifespan setup.")
    return handler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app.

    Construction and teardown point for the cache layer:
    1. Backend client (producers) - reused from app.state.backend if preset
    2. Keyed cache and animal collection - app.state.cache / app.state.animals
    3. Handler (HTTP endpoints) - app.state.sync_handler

    Cleanup:
        Closes the services and the backend client, removes them from app.state
    """
    configure_logging()

    backend = getattr(app.state, "backend", None) or BackendClient.create()
    cache = KeyedCacheService.create()
    animals = AnimalCollectionService.create(fetcher=backend.fetch_animals)

    app.state.backend = backend
    app.state.cache = cache
    app.state.animals = animals
    app.state.sync_handler = SyncHandler(cache=cache, animals=animals, backend=backend)

    logger.info(
        "sync_services_started",
        backend_url=backend.base_url,
        default_ttl_ms=cache.default_ttl_ms,
        key_prefix=settings.cache_key_prefix,
    )

    yield

    await animals.aclose()
    await cache.aclose()
    await backend.close()

    del app.state.sync_handler
    del app.state.animals
    del app.state.cache
    del app.state.backend
    logger.info("sync_services_stopped")


# Type aliases for cleaner dependency injection
HandlerDep = Annotated[SyncHandler, Depends(get_handler)]
