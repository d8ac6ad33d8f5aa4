"""Handler layer for HTTP endpoints.

This layer contains the HTTP request/response handlers.
Handlers depend on services (cache logic), not directly on the backend.

Architecture:
    Handler -> Service -> Producer
    (HTTP)  -> (Cache)  -> (Backend)
"""

from .sync_handler import SyncHandler

__all__ = [
    "SyncHandler",
]
