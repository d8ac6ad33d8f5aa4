"""Keyed TTL cache for server-backed dashboard reads.

Maps an opaque key (``api/<resource>`` by convention) to the value its
producer returned, serves it without calling the producer while fresh,
and supports bulk invalidation by key pattern.
"""

import asyncio
import re
from collections.abc import Callable
from functools import partial
from typing import Any, TypeVar

import structlog

from farm_sync.config import settings
from farm_sync.entities import CacheEntryEntity, CacheMetrics
from farm_sync.exceptions import CacheClosedError
from farm_sync.protocols import Clock, Producer

from .inflight import InflightRequests, monotonic_ms

T = TypeVar("T")

KeyPattern = str | re.Pattern[str] | Callable[[str], bool]

logger = structlog.get_logger(__name__)


def key_matcher(pattern: KeyPattern) -> Callable[[str], bool]:
    """Turn an invalidation pattern into a key predicate.

    Args:
        pattern: A string (prefix match), a compiled regex (``search`` match)
            or a predicate over keys

    Returns:
        Predicate returning True for keys to invalidate

    Raises:
        ValueError: If ``pattern`` is an empty string
        TypeError: If ``pattern`` is none of the accepted kinds
    """
    if isinstance(pattern, re.Pattern):
        return lambda key: pattern.search(key) is not None
    if isinstance(pattern, str):
        if not pattern:
            raise ValueError("Invalidation prefix must not be empty")
        return lambda key: key.startswith(pattern)
    if callable(pattern):
        return pattern
    raise TypeError(f"Unsupported invalidation pattern: {pattern!r}")


class KeyedCacheService:
    """Process-wide keyed cache with TTL expiry and fetch deduplication.

    Lookups follow three steps: serve a fresh entry, else join the call
    already in flight for the key, else start the producer. A failed
    producer call leaves any stale entry in place so callers can keep
    showing last-known-good data via ``peek``.

    Example:
        ```python
        from farm_sync.services import KeyedCacheService

        cache = KeyedCacheService.create()
        inventory = await cache.get_or_fetch("api/inventory", backend.resource_fetcher("inventory"))

        # After a database reseed
        cache.invalidate("api/")
        await cache.aclose()
        ```
    """

    def __init__(
        self,
        default_ttl_ms: int | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the keyed cache.

        Args:
            default_ttl_ms: TTL used when a lookup passes none. Defaults to settings.
            clock: Millisecond clock. Defaults to the monotonic clock.
        """
        ttl = settings.cache_default_ttl_ms if default_ttl_ms is None else default_ttl_ms
        if ttl <= 0:
            raise ValueError("default_ttl_ms must be positive")
        self._default_ttl_ms = ttl
        self._clock = clock or monotonic_ms
        self._entries: dict[str, CacheEntryEntity] = {}
        self._inflight: InflightRequests[Any] = InflightRequests()
        self._metrics = CacheMetrics()
        self._closed = False

    @classmethod
    def create(
        cls,
        default_ttl_ms: int | None = None,
        clock: Clock | None = None,
    ) -> "KeyedCacheService":
        """Factory method to create KeyedCacheService with defaults.

        Args:
            default_ttl_ms: Default TTL in milliseconds. If None, uses settings.
            clock: Millisecond clock. If None, uses the monotonic clock.

        Returns:
            Configured KeyedCacheService
        """
        return cls(default_ttl_ms=default_ttl_ms, clock=clock)

    async def __aenter__(self) -> "KeyedCacheService":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def get_or_fetch(
        self,
        key: str,
        producer: Producer[T],
        ttl_ms: int | None = None,
    ) -> T:
        """Return the cached value for ``key``, fetching it on a miss.

        Args:
            key: Non-empty cache key
            producer: Zero-argument async fetch function
            ttl_ms: Freshness window for a newly stored value. Defaults to the service default.

        Returns:
            The fresh cached value, or the producer's result

        Raises:
            ValueError: If ``key`` is empty or ``ttl_ms`` is not positive
            CacheClosedError: If the service was closed
            Exception: Whatever the producer raised
        """
        self._ensure_open()
        if not isinstance(key, str) or not key:
            raise ValueError("Cache key must be a non-empty string")
        ttl = self._default_ttl_ms if ttl_ms is None else ttl_ms
        if ttl <= 0:
            raise ValueError("ttl_ms must be positive")

        entry = self._entries.get(key)
        if entry is not None and entry.is_fresh(self._clock()):
            self._metrics.record_hit()
            return entry.value

        if key in self._inflight:
            self._metrics.record_dedupe()
            logger.debug("cache_join_inflight", key=key)
            return await self._inflight.run(key, producer)

        self._metrics.record_miss()
        logger.debug("cache_miss", key=key, stale=entry is not None)
        try:
            return await self._inflight.run(key, producer, on_success=partial(self._store, key, ttl))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._metrics.record_failure()
            logger.warning("cache_producer_failed", key=key, error=str(e), kept_stale=entry is not None)
            raise

    def _store(self, key: str, ttl_ms: int, value: T) -> T:
        self._entries[key] = CacheEntryEntity(
            key=key,
            value=value,
            stored_at=self._clock(),
            ttl_ms=ttl_ms,
        )
        return value

    def peek(self, key: str) -> CacheEntryEntity | None:
        """Get the stored entry for ``key`` without fetching, fresh or stale.

        Args:
            key: The cache key

        Returns:
            The entry, or None if nothing is stored
        """
        return self._entries.get(key)

    def is_fresh(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.is_fresh(self._clock())

    def invalidate(self, pattern: KeyPattern) -> int:
        """Delete every entry and in-flight marker whose key matches.

        Invalidating keys that are not present is a no-op.

        Args:
            pattern: Prefix string, compiled regex or key predicate

        Returns:
            Number of stored entries deleted
        """
        matches = key_matcher(pattern)
        keys = [key for key in self._entries if matches(key)]
        for key in keys:
            del self._entries[key]
        dropped = self._inflight.discard(matches)
        self._metrics.record_invalidation(len(keys))

        logger.info("cache_invalidated", pattern=str(pattern), entries=len(keys), inflight=dropped)
        return len(keys)

    def invalidate_key(self, key: str) -> bool:
        """Delete the entry and in-flight marker for exactly ``key``.

        Returns:
            True if a stored entry was deleted
        """
        return self.invalidate(lambda candidate: candidate == key) > 0

    def clear(self) -> int:
        """Delete every entry and in-flight marker.

        Returns:
            Number of stored entries deleted
        """
        return self.invalidate(lambda _key: True)

    def keys(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dictionary with sizes, default TTL and lookup counters
        """
        return {
            "cache_size": len(self._entries),
            "in_progress": len(self._inflight),
            "default_ttl_ms": self._default_ttl_ms,
            "metrics": self._metrics.to_dict(),
        }

    async def aclose(self) -> None:
        """Cancel in-flight producers and drop every entry."""
        if self._closed:
            return
        self._closed = True
        await self._inflight.aclose()
        self._entries.clear()
        logger.debug("keyed_cache_closed")

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def default_ttl_ms(self) -> int:
        """Get the default time-to-live in milliseconds."""
        return self._default_ttl_ms

    @property
    def metrics(self) -> CacheMetrics:
        """Get the lookup counters (for testing and stats)."""
        return self._metrics

    def _ensure_open(self) -> None:
        if self._closed:
            raise CacheClosedError("KeyedCacheService is closed")
