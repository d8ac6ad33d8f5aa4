"""HTTP client for the farm backend's REST API.

Supplies the producers the caches are built around: one zero-argument
async function per ``api/<resource>`` collection, plus ``fetch_animals``
for the canonical animal collection.

Requirements:
    - Backend reachable at ``BACKEND_URL`` (default http://localhost:3000)
    - Bearer token in ``BACKEND_TOKEN`` when the backend requires auth
"""

from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import structlog
from pydantic import TypeAdapter, ValidationError

from farm_sync.config import settings
from farm_sync.dto.animal import Animal
from farm_sync.exceptions import BackendError

logger = structlog.get_logger(__name__)

_animal_list = TypeAdapter(list[Animal])


class BackendClient:
    """Async client for ``GET /api/<resource>`` reads.

    Any non-success status and any transport error is raised as
    ``BackendError``; the caches propagate it to their callers unchanged.

    Example:
        ```python
        backend = BackendClient.create(token="...")

        inventory = await backend.fetch_json("api/inventory")
        animals = await backend.fetch_animals()

        # As producers for the caches
        await cache.get_or_fetch("api/finance", backend.resource_fetcher("finance"))
        collection = AnimalCollectionService.create(fetcher=backend.fetch_animals)
        ```
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the backend client.

        Args:
            base_url: Backend base URL. Defaults to settings.backend_url.
            token: Bearer token. Defaults to settings.backend_token.
            timeout: Request timeout in seconds. Defaults to settings.backend_timeout.
            transport: Custom httpx transport (tests pass httpx.MockTransport).
        """
        self._base_url = (base_url or settings.backend_url).rstrip("/")
        self._token = token if token is not None else settings.backend_token
        self._timeout = timeout or settings.backend_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def create(
        cls,
        base_url: str | None = None,
        token: str | None = None,
    ) -> "BackendClient":
        """Factory method to create BackendClient with defaults.

        Args:
            base_url: Backend URL. If None, uses settings.
            token: Bearer token. If None, uses settings.

        Returns:
            Configured BackendClient
        """
        return cls(base_url=base_url, token=token)

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client."""
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self._token:
                headers["Authorization"] = f"Bearer {self._token}"
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=headers,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    @property
    def base_url(self) -> str:
        return self._base_url

    async def fetch_json(self, path: str) -> Any:
        """GET ``path`` and return the decoded JSON body.

        Args:
            path: Path relative to the base URL, e.g. ``api/inventory``

        Returns:
            The parsed JSON value

        Raises:
            BackendError: On transport errors, non-2xx statuses or invalid JSON
        """
        url = "/" + path.lstrip("/")
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            logger.warning("backend_unreachable", path=url, error=str(e))
            raise BackendError(f"Backend request failed: {e}", path=url) from e

        if response.is_error:
            logger.warning("backend_error_status", path=url, status_code=response.status_code)
            raise BackendError(
                f"Failed to fetch {path.strip('/')}",
                path=url,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise BackendError("Backend returned invalid JSON", path=url, status_code=response.status_code) from e

    def resource_fetcher(self, resource: str) -> Callable[[], Awaitable[Any]]:
        """Build the producer for ``api/<resource>``.

        Args:
            resource: Resource name, e.g. ``inventory`` or ``health-records``

        Returns:
            Zero-argument async function fetching the resource
        """
        path = settings.resource_key(resource)

        async def fetch() -> Any:
            return await self.fetch_json(path)

        return fetch

    async def fetch_animals(self) -> list[Animal]:
        """Fetch and validate the full animal collection.

        Raises:
            BackendError: If the request fails or the body is not a list of animals
        """
        path = settings.resource_key("animals")
        data = await self.fetch_json(path)
        if not isinstance(data, list):
            raise BackendError("Expected a list of animals", path="/" + path)
        try:
            return _animal_list.validate_python(data)
        except ValidationError as e:
            raise BackendError(f"Invalid animal payload: {e.error_count()} errors", path="/" + path) from e

    async def is_available(self) -> bool:
        """Check if the backend answers at all.

        Returns:
            True if the base URL responds without a server error, False otherwise
        """
        try:
            response = await self.client.get("/")
            return response.status_code < 500
        except httpx.HTTPError:
            return False

    async def close(self) -> None:
        """Close the async HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None
