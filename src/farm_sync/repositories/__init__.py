"""Repository layer for backend access.

This layer hides the farm backend's REST API behind plain async fetch
functions, which is all the caches need. This enables:
- Injecting fakes in tests instead of a live backend
- Keeping HTTP verbs, headers and auth out of the cache layer
"""

from farm_sync.protocols import AnimalFetcher, Producer

from .backend_client import BackendClient

__all__ = [
    "AnimalFetcher",
    "Producer",
    "BackendClient",
]
