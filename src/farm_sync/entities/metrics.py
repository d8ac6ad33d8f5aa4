"""Counters for keyed cache activity."""

from dataclasses import dataclass


@dataclass
class CacheMetrics:
    """Track how lookups were served."""

    hits: int = 0
    misses: int = 0
    deduplicated: int = 0
    failures: int = 0
    invalidated: int = 0

    @property
    def total_lookups(self) -> int:
        return self.hits + self.misses + self.deduplicated

    @property
    def hit_rate(self) -> float:
        """Share of lookups answered without starting a producer call."""
        if self.total_lookups == 0:
            return 0.0
        return (self.hits + self.deduplicated) / self.total_lookups

    def record_hit(self) -> None:
        """Record a lookup served from a fresh entry."""
        self.hits += 1

    def record_miss(self) -> None:
        """Record a lookup that started a producer call."""
        self.misses += 1

    def record_dedupe(self) -> None:
        """Record a lookup that joined an in-flight producer call."""
        self.deduplicated += 1

    def record_failure(self) -> None:
        """Record a producer call that raised."""
        self.failures += 1

    def record_invalidation(self, count: int) -> None:
        self.invalidated += count

    def reset(self) -> None:
        self.hits = self.misses = self.deduplicated = self.failures = self.invalidated = 0

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "deduplicated": self.deduplicated,
            "failures": self.failures,
            "invalidated": self.invalidated,
            "hit_rate": self.hit_rate,
        }
