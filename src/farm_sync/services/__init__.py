"""Service layer for the sync and cache logic.

Services depend on protocols (injected fetch functions and clocks), not
on the HTTP backend, so each test can build an isolated instance.

Architecture:
    Handler -> Service -> Producer (BackendClient)
    (HTTP)  -> (Cache)  -> (Backend REST API)

Usage:
    ```python
    from farm_sync.services import AnimalCollectionService, KeyedCacheService

    cache = KeyedCacheService.create()
    animals = AnimalCollectionService.create(fetcher=backend.fetch_animals)
    ```
"""

from .animal_collection import AnimalCollectionService
from .inflight import InflightRequests
from .keyed_cache import KeyedCacheService, key_matcher

__all__ = [
    "AnimalCollectionService",
    "InflightRequests",
    "KeyedCacheService",
    "key_matcher",
]
