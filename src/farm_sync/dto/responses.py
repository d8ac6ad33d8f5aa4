"""Response DTOs for API endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class AnimalListResponse(BaseModel):
    """Response DTO for the canonical animal collection."""

    animals: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Animals in canonical order (newest local additions first)",
    )
    count: int = Field(..., description="Number of animals", ge=0)
    last_fetched_at: float | None = Field(
        None,
        description="Clock reading (ms) of the last successful backend fetch",
    )
    loading: bool = Field(..., description="Whether a backend fetch is in flight")


class ResourceResponse(BaseModel):
    """Response DTO for a keyed-cache read."""

    key: str = Field(..., description="The cache key the value is stored under")
    data: Any = Field(None, description="The cached or freshly fetched value")


class InvalidateCacheResponse(BaseModel):
    """Response DTO for bulk invalidation."""

    success: bool = Field(..., description="Whether the operation succeeded")
    deleted_count: int = Field(..., description="Number of keyed entries removed", ge=0)
    animals_refreshed: bool = Field(False, description="Whether the animal collection was refetched")
    message: str = Field(..., description="Human-readable status message")


class CacheStatsResponse(BaseModel):
    """Response DTO for cache statistics."""

    cache_size: int = Field(..., description="Number of stored keyed entries", ge=0)
    in_progress: int = Field(..., description="Number of producer calls in flight", ge=0)
    default_ttl_ms: int = Field(..., description="Default time-to-live in milliseconds", ge=1)
    metrics: dict[str, float | int] = Field(default_factory=dict, description="Lookup counters")
    animals: dict[str, Any] = Field(
        default_factory=dict,
        description="Animal collection size and freshness",
    )


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    backend_reachable: bool = Field(..., description="Whether the backend answered")
