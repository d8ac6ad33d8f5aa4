"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Injecting any fetch function (HTTP client, fixture, stub) as a producer
- Unit testing with fake clocks instead of sleeping
- Keeping the caches independent of the backend transport

Usage:
    ```python
    from farm_sync.protocols import AnimalFetcher, Producer

    fetcher: AnimalFetcher = backend.fetch_animals  # works
    fetcher: AnimalFetcher = fake_fetch_animals     # also works
    ```
"""

from .producer import AnimalFetcher, Clock, Producer

__all__ = [
    "AnimalFetcher",
    "Clock",
    "Producer",
]
