"""Canonical animal collection shared by every dashboard screen.

Screens read animals through ``fetch_all`` and keep each other consistent
through the local mutators instead of reloading from the backend.

Collection invariants:
- No two animals share an identifier.
- Order is server order, with locally added animals prepended.
- A failed fetch never touches the collection.
- Mutations applied while a fetch is in flight are journaled and replayed
  onto the fetched collection before it replaces the current one. Updates
  and removals are journaled even when the id is not held locally yet.
"""

import asyncio
import itertools
from collections import deque
from collections.abc import Callable, Iterable, Mapping
from functools import partial
from typing import Any

import structlog

from farm_sync.dto.animal import Animal
from farm_sync.entities import CollectionState, FreshnessState
from farm_sync.exceptions import CacheClosedError
from farm_sync.protocols import AnimalFetcher, Clock

from .inflight import InflightRequests, monotonic_ms

Snapshot = tuple[Animal, ...]
Listener = Callable[[Snapshot], None]
Mutation = Callable[[list[Animal]], list[Animal] | None]

_FETCH_KEY = "api/animals"

logger = structlog.get_logger(__name__)


def _with_added(animal: Animal, animals: list[Animal]) -> list[Animal] | None:
    if any(existing.id == animal.id for existing in animals):
        return None
    return [animal, *animals]


def _with_updated(animal_id: str, fields: Mapping[str, Any], animals: list[Animal]) -> list[Animal] | None:
    for index, existing in enumerate(animals):
        if existing.id == animal_id:
            updated = list(animals)
            updated[index] = existing.merged(fields)
            return updated
    return None


def _with_removed(animal_id: str, animals: list[Animal]) -> list[Animal] | None:
    remaining = [existing for existing in animals if existing.id != animal_id]
    if len(remaining) == len(animals):
        return None
    return remaining


def _coerce(animal: Animal | Mapping[str, Any]) -> Animal:
    if isinstance(animal, Animal):
        return animal
    return Animal.model_validate(animal)


def _unique(animals: Iterable[Animal]) -> list[Animal]:
    seen: set[str] = set()
    result = []
    for animal in animals:
        if animal.id in seen:
            logger.warning("animal_duplicate_in_fetch", animal_id=animal.id)
            continue
        seen.add(animal.id)
        result.append(animal)
    return result


class AnimalCollectionService:
    """Optimistic in-memory cache of the farm's animals.

    Freshness here is "has been fetched at least once and is non-empty",
    not time-bounded: once populated, ``fetch_all`` answers from memory and
    only ``refresh`` goes back to the backend.

    Example:
        ```python
        from farm_sync.services import AnimalCollectionService

        animals = AnimalCollectionService.create(fetcher=backend.fetch_animals)
        unsubscribe = animals.subscribe(lambda snapshot: render(snapshot))

        await animals.fetch_all()
        animals.add({"_id": "a1", "tagId": "GT-001", "species": "Goat"})
        animals.update("a1", {"status": "Sold"})
        animals.remove("a1")
        ```
    """

    def __init__(self, fetcher: AnimalFetcher, clock: Clock | None = None) -> None:
        """Initialize the collection.

        Args:
            fetcher: Zero-argument async function returning every animal (required).
            clock: Millisecond clock for ``last_fetched_at``. Defaults to the monotonic clock.
        """
        self._fetcher = fetcher
        self._clock = clock or monotonic_ms
        self._animals: list[Animal] = []
        self._last_fetched_at: float | None = None
        self._error: str | None = None
        self._inflight: InflightRequests[Snapshot] = InflightRequests()
        self._journal: list[Mutation] = []
        self._listeners: dict[int, Listener] = {}
        self._pending: deque[Snapshot] = deque()
        self._notifying = False
        self._tokens = itertools.count()
        self._closed = False

    @classmethod
    def create(cls, fetcher: AnimalFetcher, clock: Clock | None = None) -> "AnimalCollectionService":
        """Factory method to create AnimalCollectionService.

        Args:
            fetcher: Backend fetch function (required).
            clock: Millisecond clock. If None, uses the monotonic clock.

        Returns:
            Configured AnimalCollectionService
        """
        return cls(fetcher=fetcher, clock=clock)

    async def __aenter__(self) -> "AnimalCollectionService":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # Reads

    async def fetch_all(self) -> Snapshot:
        """Return the collection, fetching it only if it was never populated.

        Joins a fetch already in flight; serves memory if a previous fetch
        populated a non-empty collection; otherwise fetches and replaces.

        Returns:
            The animals in canonical order

        Raises:
            CacheClosedError: If the service was closed
            Exception: Whatever the fetcher raised (collection left as-is)
        """
        self._ensure_open()
        if _FETCH_KEY not in self._inflight and self._animals and self._last_fetched_at is not None:
            return self.animals
        return await self._load()

    async def refresh(self) -> Snapshot:
        """Fetch from the backend even if the collection is populated.

        Still joins a fetch already in flight.
        """
        self._ensure_open()
        return await self._load()

    async def _load(self) -> Snapshot:
        if _FETCH_KEY not in self._inflight:
            self._journal = []
            logger.debug("animal_fetch_started", cached=len(self._animals))
        return await self._inflight.run(_FETCH_KEY, self._fetch, on_success=self._commit)

    async def _fetch(self) -> Snapshot:
        try:
            fetched = await self._fetcher()
            return tuple(_unique(_coerce(animal) for animal in fetched))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._error = str(e)
            logger.warning("animal_fetch_failed", error=str(e), kept=len(self._animals))
            raise

    def _commit(self, fetched: Snapshot) -> Snapshot:
        animals = list(fetched)
        for mutation in self._journal:
            try:
                replayed_onto = mutation(animals)
            except ValueError as e:
                logger.warning("animal_replay_skipped", error=str(e))
                continue
            if replayed_onto is not None:
                animals = replayed_onto
        replayed = len(self._journal)
        self._journal = []

        self._animals = animals
        self._last_fetched_at = self._clock()
        self._error = None
        logger.info("animal_collection_replaced", count=len(animals), replayed=replayed)
        self._notify()
        return self.animals

    def get(self, animal_id: str) -> Animal | None:
        """Get a single animal by identifier, or None."""
        for animal in self._animals:
            if animal.id == animal_id:
                return animal
        return None

    def __contains__(self, animal_id: object) -> bool:
        return any(animal.id == animal_id for animal in self._animals)

    def __len__(self) -> int:
        return len(self._animals)

    # Mutators

    def add(self, animal: Animal | Mapping[str, Any]) -> bool:
        """Prepend an animal unless one with the same identifier exists.

        Args:
            animal: An Animal, or a mapping validated into one

        Returns:
            True if the collection changed, False for a duplicate
        """
        self._ensure_open()
        animal = _coerce(animal)
        changed = self._apply(partial(_with_added, animal))
        if not changed:
            logger.info("animal_add_duplicate", animal_id=animal.id)
        return changed

    def update(self, animal_id: str, fields: Mapping[str, Any]) -> bool:
        """Shallow-merge ``fields`` into the animal with ``animal_id``.

        An unknown identifier is a logged no-op: the animal may have been
        removed elsewhere or dropped by a wholesale replace.
        While a fetch is in flight the update is still replayed onto its
        result, in case the fetch brings the animal in.

        Returns:
            True if an animal was updated
        """
        self._ensure_open()
        changed = self._apply(partial(_with_updated, animal_id, dict(fields)), journal_noop=True)
        if not changed:
            logger.info("animal_update_not_found", animal_id=animal_id, fields=sorted(fields))
        return changed

    def remove(self, animal_id: str) -> bool:
        """Drop the animal with ``animal_id``; no-op if absent.

        Returns:
            True if an animal was removed
        """
        self._ensure_open()
        changed = self._apply(partial(_with_removed, animal_id), journal_noop=True)
        if not changed:
            logger.debug("animal_remove_not_found", animal_id=animal_id)
        return changed

    def _apply(self, mutation: Mutation, journal_noop: bool = False) -> bool:
        updated = mutation(self._animals)
        if _FETCH_KEY in self._inflight and (updated is not None or journal_noop):
            self._journal.append(mutation)
        if updated is None:
            return False
        self._animals = updated
        self._notify()
        return True

    # Subscribers

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with the new snapshot after every change.

        Args:
            listener: Callable taking the collection snapshot

        Returns:
            Function that deregisters the listener; calling it again is a no-op
        """
        self._ensure_open()
        token = next(self._tokens)
        self._listeners[token] = listener

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    def _notify(self) -> None:
        self._pending.append(self.animals)
        # A listener that mutates queues its snapshot behind the current round.
        if self._notifying:
            return
        self._notifying = True
        try:
            while self._pending:
                self._deliver(self._pending.popleft())
        finally:
            self._notifying = False

    def _deliver(self, snapshot: Snapshot) -> None:
        for token, listener in list(self._listeners.items()):
            # Skip listeners removed by an earlier listener in this round.
            if token not in self._listeners:
                continue
            try:
                listener(snapshot)
            except Exception:
                logger.exception("animal_listener_failed", listener=repr(listener))

    # State

    @property
    def animals(self) -> Snapshot:
        """Immutable snapshot of the collection in canonical order."""
        return tuple(self._animals)

    @property
    def is_loading(self) -> bool:
        return _FETCH_KEY in self._inflight

    @property
    def freshness(self) -> FreshnessState:
        return FreshnessState(last_fetched_at=self._last_fetched_at, loading=self.is_loading)

    @property
    def state(self) -> CollectionState:
        if self.is_loading:
            return CollectionState.LOADING
        if self._last_fetched_at is None and not self._animals:
            return CollectionState.EMPTY
        return CollectionState.POPULATED

    @property
    def error(self) -> str | None:
        """Message of the last failed fetch, cleared by the next success."""
        return self._error

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def aclose(self) -> None:
        """Cancel the in-flight fetch and drop listeners and contents."""
        if self._closed:
            return
        self._closed = True
        self._listeners.clear()
        await self._inflight.aclose()
        self._animals = []
        self._journal = []
        self._pending.clear()
        logger.debug("animal_collection_closed")

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise CacheClosedError("AnimalCollectionService is closed")
