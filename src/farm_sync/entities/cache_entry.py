"""Cache entry domain entity."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CacheEntryEntity:
    """Domain entity for a value held by the keyed cache.

    Entries are replaced, never mutated: a refetch stores a new entity
    under the same key.

    Attributes:
        key: Cache key, e.g. ``api/inventory``
        value: The producer's result
        stored_at: Clock reading (milliseconds) when the value was stored
        ttl_ms: How long the value stays fresh
    """

    key: str
    value: Any
    stored_at: float
    ttl_ms: int

    def age_ms(self, now: float) -> float:
        """Milliseconds elapsed since the value was stored."""
        return now - self.stored_at

    def is_fresh(self, now: float) -> bool:
        """Whether the value may be served without calling the producer."""
        return self.age_ms(now) < self.ttl_ms
