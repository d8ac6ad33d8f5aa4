"""Farm Sync - data synchronization and cache layer for a livestock-farm dashboard.

This package sits between dashboard screens and the farm's REST backend:

Layers:
    - protocols: Interface contracts (Producer, AnimalFetcher, Clock)
    - repositories: Backend access (BackendClient)
    - services: Cache logic (KeyedCacheService, AnimalCollectionService)
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (Animal, API contracts)
    - entities: Internal bookkeeping (cache entries, freshness, metrics)

Usage:
    ```python
    from farm_sync.repositories import BackendClient
    from farm_sync.services import AnimalCollectionService, KeyedCacheService

    backend = BackendClient.create(token="...")
    cache = KeyedCacheService.create()
    animals = AnimalCollectionService.create(fetcher=backend.fetch_animals)

    inventory = await cache.get_or_fetch("api/inventory", backend.resource_fetcher("inventory"))
    herd = await animals.fetch_all()
    ```

For HTTP API:
    ```python
    from farm_sync.api.app import app
    ```
"""

from farm_sync.config import get_settings, settings
from farm_sync.dto import Animal, InvalidateCacheRequest
from farm_sync.entities import CacheEntryEntity, CollectionState, FreshnessState
from farm_sync.exceptions import BackendError, CacheClosedError, FarmSyncError
from farm_sync.handlers import SyncHandler
from farm_sync.protocols import AnimalFetcher, Clock, Producer
from farm_sync.repositories import BackendClient
from farm_sync.services import AnimalCollectionService, KeyedCacheService

__all__ = [
    # Configuration
    "settings",
    "get_settings",
    # Protocols (interfaces)
    "Producer",
    "AnimalFetcher",
    "Clock",
    # Services (cache logic)
    "KeyedCacheService",
    "AnimalCollectionService",
    # Handlers (HTTP)
    "SyncHandler",
    # Repositories (backend access)
    "BackendClient",
    # Entities (internal)
    "CacheEntryEntity",
    "CollectionState",
    "FreshnessState",
    # DTOs (contracts)
    "Animal",
    "InvalidateCacheRequest",
    # Errors
    "FarmSyncError",
    "BackendError",
    "CacheClosedError",
]
