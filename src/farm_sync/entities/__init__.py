"""Domain entities for internal representation.

These are plain dataclasses used internally by services. They are NOT
used for API contracts - use DTOs from the dto package for that.

Entities should have:
- No JSON serialization logic
- No Pydantic validation
- No external dependencies
"""

from .cache_entry import CacheEntryEntity
from .freshness import CollectionState, FreshnessState
from .metrics import CacheMetrics

__all__ = [
    "CacheEntryEntity",
    "CacheMetrics",
    "CollectionState",
    "FreshnessState",
]
