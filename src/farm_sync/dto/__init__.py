"""Data Transfer Objects for API contracts.

These Pydantic models define the external contracts: the backend's
animal documents and the HTTP API's requests and responses.

Internal bookkeeping should use entities from the entities package.
"""

from .animal import Animal, AnimalImage
from .requests import InvalidateCacheRequest
from .responses import (
    AnimalListResponse,
    CacheStatsResponse,
    HealthCheckResponse,
    InvalidateCacheResponse,
    ResourceResponse,
)

__all__ = [
    "Animal",
    "AnimalImage",
    "InvalidateCacheRequest",
    "AnimalListResponse",
    "ResourceResponse",
    "InvalidateCacheResponse",
    "CacheStatsResponse",
    "HealthCheckResponse",
]
