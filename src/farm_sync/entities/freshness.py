"""Freshness state of the canonical collection."""

from dataclasses import dataclass
from enum import Enum


class CollectionState(str, Enum):
    """Lifecycle of a canonical collection: Empty -> Loading -> Populated."""

    EMPTY = "empty"
    LOADING = "loading"
    POPULATED = "populated"


@dataclass(frozen=True)
class FreshnessState:
    """Distinguishes "never fetched", "fetch in flight" and "fetched at T".

    Attributes:
        last_fetched_at: Clock reading (milliseconds) of the last successful fetch
        loading: Whether a backend fetch is currently in flight
    """

    last_fetched_at: float | None
    loading: bool

    @property
    def has_fetched(self) -> bool:
        return self.last_fetched_at is not None
