"""HTTP handlers for the sync and cache layer.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes, validation, and error handling.
"""

import re

from fastapi import HTTPException, status

from farm_sync.config import settings
from farm_sync.dto import (
    AnimalListResponse,
    CacheStatsResponse,
    InvalidateCacheRequest,
    InvalidateCacheResponse,
    ResourceResponse,
)
from farm_sync.exceptions import BackendError
from farm_sync.repositories import BackendClient
from farm_sync.services import AnimalCollectionService, KeyedCacheService


class SyncHandler:
    """HTTP handlers for the keyed cache and the animal collection.

    This handler delegates to the cache services and handles
    HTTP-specific concerns like:
    - Converting animals to wire-format DTOs
    - Mapping backend failures to 502 and unknown animals to 404
    - Validating invalidation patterns

    Example:
        ```python
        handler = SyncHandler(cache=cache, animals=animals, backend=backend)

        @app.get("/animals", response_model=AnimalListResponse)
        async def list_animals():
            return await handler.list_animals()
        ```
    """

    def __init__(
        self,
        cache: KeyedCacheService,
        animals: AnimalCollectionService,
        backend: BackendClient,
    ) -> None:
        """Initialize the sync handler.

        Args:
            cache: Keyed TTL cache for resource reads (required).
            animals: Canonical animal collection (required).
            backend: Backend client supplying producers (required).
        """
        self._cache = cache
        self._animals = animals
        self._backend = backend

    def _animal_list(self) -> AnimalListResponse:
        freshness = self._animals.freshness
        animals = self._animals.animals
        return AnimalListResponse(
            animals=[animal.to_wire() for animal in animals],
            count=len(animals),
            last_fetched_at=freshness.last_fetched_at,
            loading=freshness.loading,
        )

    async def list_animals(self) -> AnimalListResponse:
        """Handle GET /animals requests.

        Raises:
            HTTPException: 502 if the backend fetch fails
        """
        try:
            await self._animals.fetch_all()
        except BackendError as e:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Failed to fetch animals: {e}",
            ) from e
        return self._animal_list()

    async def refresh_animals(self) -> AnimalListResponse:
        """Handle POST /animals/refresh requests."""
        try:
            await self._animals.refresh()
        except BackendError as e:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Failed to refresh animals: {e}",
            ) from e
        return self._animal_list()

    async def get_animal(self, animal_id: str) -> dict:
        """Handle GET /animals/{animal_id} requests.

        Raises:
            HTTPException: 404 if the animal is not in the collection
        """
        try:
            await self._animals.fetch_all()
        except BackendError as e:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Failed to fetch animals: {e}",
            ) from e

        animal = self._animals.get(animal_id)
        if animal is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Animal {animal_id} not found",
            )
        return animal.to_wire()

    async def get_resource(self, resource: str, ttl_ms: int | None = None) -> ResourceResponse:
        """Handle GET /resources/{resource} requests.

        Serves ``api/<resource>`` from the keyed cache, fetching on a miss.
        """
        key = settings.resource_key(resource)
        try:
            data = await self._cache.get_or_fetch(key, self._backend.resource_fetcher(resource), ttl_ms)
        except BackendError as e:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Failed to fetch {key}: {e}",
            ) from e
        return ResourceResponse(key=key, data=data)

    async def invalidate(self, request: InvalidateCacheRequest) -> InvalidateCacheResponse:
        """Handle POST /cache/invalidate requests.

        Raises:
            HTTPException: 400 for an invalid regular expression, 502 if the
                animal refresh fails
        """
        if request.mode == "regex":
            try:
                pattern: str | re.Pattern[str] = re.compile(request.pattern)
            except re.error as e:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Invalid regular expression: {e}",
                ) from e
        else:
            pattern = request.pattern

        deleted = self._cache.invalidate(pattern)

        refreshed = False
        if request.refresh_animals:
            try:
                await self._animals.refresh()
            except BackendError as e:
                raise HTTPException(
                    status_code=status.HTTP_502_BAD_GATEWAY,
                    detail=f"Cache invalidated but animal refresh failed: {e}",
                ) from e
            refreshed = True

        return InvalidateCacheResponse(
            success=True,
            deleted_count=deleted,
            animals_refreshed=refreshed,
            message=f"Invalidated {deleted} cache entries",
        )

    async def clear_cache(self) -> InvalidateCacheResponse:
        """Handle DELETE /cache requests."""
        deleted = self._cache.clear()
        return InvalidateCacheResponse(
            success=True,
            deleted_count=deleted,
            message="Cache cleared successfully",
        )

    async def get_stats(self) -> CacheStatsResponse:
        """Handle GET /cache/stats requests."""
        stats = self._cache.stats()
        freshness = self._animals.freshness
        return CacheStatsResponse(
            cache_size=stats["cache_size"],
            in_progress=stats["in_progress"],
            default_ttl_ms=stats["default_ttl_ms"],
            metrics=stats["metrics"],
            animals={
                "count": len(self._animals),
                "state": self._animals.state.value,
                "last_fetched_at": freshness.last_fetched_at,
                "loading": freshness.loading,
                "error": self._animals.error,
            },
        )

    async def health_check(self) -> dict:
        """Handle GET /health requests."""
        reachable = await self._backend.is_available()
        return {
            "status": "healthy" if reachable else "unhealthy",
            "backend_reachable": reachable,
        }
