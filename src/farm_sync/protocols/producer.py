"""Producer protocols.

A producer is the injected fetch function the caches call on a miss. It
takes no arguments and returns an awaitable; it either resolves with the
fetched value or raises. The caches know nothing about HTTP, headers or
response shapes beyond that.

Implementations can include:
- ``BackendClient.resource_fetcher("inventory")`` (default)
- ``BackendClient.fetch_animals``
- Any ``async def`` with no parameters (tests use plain coroutines)
"""

from collections.abc import Awaitable, Sequence
from typing import Protocol, TypeVar, runtime_checkable

from farm_sync.dto.animal import Animal

T_co = TypeVar("T_co", covariant=True)


@runtime_checkable
class Producer(Protocol[T_co]):
    """Zero-argument async callable producing a cacheable value.

    Example:
        ```python
        async def load_inventory() -> list[dict]:
            ...

        value = await cache.get_or_fetch("api/inventory", load_inventory)
        ```
    """

    def __call__(self) -> Awaitable[T_co]:
        """Fetch the value.

        Returns:
            Awaitable resolving with the value, or raising on failure
        """
        ...


@runtime_checkable
class AnimalFetcher(Protocol):
    """Producer for the full animal collection."""

    def __call__(self) -> Awaitable[Sequence[Animal]]:
        """Fetch every animal from the backend.

        Returns:
            Awaitable resolving with the animals in server order
        """
        ...


@runtime_checkable
class Clock(Protocol):
    """Millisecond clock used for TTL bookkeeping."""

    def __call__(self) -> float:
        """Return the current time in milliseconds."""
        ...
