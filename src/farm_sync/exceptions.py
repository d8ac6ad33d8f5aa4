"""Exceptions raised by the sync layer.

Producer errors are never wrapped: whatever the injected fetch function
raises reaches the caller unchanged. ``BackendError`` is what the bundled
HTTP fetcher raises, so it is the common case in practice.
"""


class FarmSyncError(Exception):
    """Base class for farm-sync errors."""


class BackendError(FarmSyncError):
    """The backend REST API answered with a non-success status or was unreachable."""

    def __init__(self, message: str, path: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.path = path
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is None:
            return f"{self.args[0]} ({self.path})"
        return f"{self.args[0]} ({self.path}, HTTP {self.status_code})"


class CacheClosedError(FarmSyncError):
    """A cache service was used after ``aclose()``."""
