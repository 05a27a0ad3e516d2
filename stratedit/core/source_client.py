"""HTTP client for the strategy source store."""

import json
import time
from http import HTTPMethod

import httpx
import structlog
from pydantic import TypeAdapter, ValidationError

from stratedit.constants import (
    DEFAULT_API_BASE_URL,
    DEFAULT_API_TIMEOUT_S,
    HEALTH_ROUTE,
    SOURCE_DELETE_ROUTE,
    SOURCE_GET_ROUTE,
    SOURCE_MOVE_ROUTE,
    SOURCE_SAVE_ROUTE,
    STRATEGY_ADD_ROUTE,
)
from stratedit.core.models import SOURCE_ENTRY_ADAPTER, ErrorBody, SourceDirectory, SourceFile

logger = structlog.get_logger(__name__)

CONNECT_ERROR_LOG_INTERVAL_S = 10.0

_ERROR_BODY_ADAPTER = TypeAdapter(ErrorBody)

__all__ = ["SourceAPIClient", "APIError"]


class APIError(Exception):
    """API request failed with structured error info."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        detail: str | None = None,
        error: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail or message  # Fallback to full message if no detail
        self.error = error


class SourceAPIClient:
    """Async HTTP client for the strategy source endpoints.

    Implements the SourceStore protocol. Requests are never retried: a
    transport failure is reported to the caller as an APIError.
    """

    def __init__(self, base_url: str = DEFAULT_API_BASE_URL, timeout: float = DEFAULT_API_TIMEOUT_S):
        """Initialize client.

        Args:
            base_url: Store API root, e.g. http://localhost:3001
            timeout: Default per-request timeout in seconds
        """
        self.base_url = base_url
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None
        self._last_connect_error_log: float | None = None

    async def connect(self) -> None:
        """Open the underlying HTTP connection pool."""
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)

    @property
    def is_connected(self) -> bool:
        """Check if client is connected.

        Returns:
            True if client is connected
        """
        return self._client is not None

    async def close(self) -> None:
        """Close connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "SourceAPIClient":
        await self.connect()
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.close()

    async def _request(
        self,
        method: HTTPMethod | str,
        url: str,
        *,
        timeout: float | None = None,
        params: dict[str, str] | None = None,
        json_body: object = None,
    ) -> httpx.Response:
        """Make HTTP request with error handling.

        Args:
            method: HTTP method (GET, POST)
            url: URL path
            timeout: Optional request timeout override
            params: Query parameters
            json_body: JSON payload for POST requests

        Returns:
            Response object

        Raises:
            APIError: If request fails
        """
        if not self._client:
            raise APIError("Client not connected. Call connect() first.")

        request_timeout = timeout if timeout is not None else self.timeout

        try:
            try:
                method_enum = HTTPMethod(method)
            except ValueError as e:
                raise APIError(f"Unsupported HTTP method: {method}") from e

            if method_enum is HTTPMethod.GET:
                resp = await self._client.get(url, params=params, timeout=request_timeout)
            elif method_enum is HTTPMethod.POST:
                resp = await self._client.post(url, params=params, json=json_body, timeout=request_timeout)
            else:
                raise APIError(f"Unsupported HTTP method: {method}")

            resp.raise_for_status()
            return resp
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            body = decode_error_body(e.response.text)
            detail = body.message if body else e.response.text
            raise APIError(
                f"API request failed: {status_code} {detail or e.response.text}",
                status_code=status_code,
                detail=detail,
                error=body.error if body else None,
            ) from e
        except httpx.ConnectError as e:
            now = self._now_monotonic()
            if self._last_connect_error_log is None or (now - self._last_connect_error_log) >= CONNECT_ERROR_LOG_INTERVAL_S:
                self._last_connect_error_log = now
                logger.debug("API connect failed", method=str(method), url=url, base_url=self.base_url, error=str(e))
            raise APIError(f"Cannot connect to source store at {self.base_url}") from e
        except httpx.TimeoutException as e:
            raise APIError("API request timed out. Store may be blocked or overloaded.") from e
        except APIError:
            raise
        except Exception as e:
            raise APIError(f"Unexpected error: {e}") from e

    def _now_monotonic(self) -> float:
        """Return a monotonic timestamp for debounce logic."""
        return time.monotonic()

    async def get(self, path: str) -> SourceFile | SourceDirectory:
        """Fetch a file or a directory listing.

        Args:
            path: Store path ("" for the root)

        Returns:
            SourceFile with content, or SourceDirectory with children

        Raises:
            APIError: If request fails or the payload is malformed
        """
        resp = await self._request("GET", SOURCE_GET_ROUTE, params={"path": path})
        try:
            return SOURCE_ENTRY_ADAPTER.validate_json(resp.text)
        except ValidationError as e:
            raise APIError(f"Invalid source payload for {path!r}: {e}") from e

    async def save(self, path: str, content: str) -> None:
        """Overwrite a file's content (the body is the JSON-encoded string).

        Raises:
            APIError: If request fails
        """
        await self._request("POST", SOURCE_SAVE_ROUTE, params={"path": path}, json_body=content)
        logger.debug("Saved source", path=path, size=len(content))

    async def delete(self, path: str) -> None:
        """Delete a file or directory.

        Raises:
            APIError: If request fails
        """
        await self._request("GET", SOURCE_DELETE_ROUTE, params={"path": path})

    async def move(self, old_path: str, new_path: str) -> None:
        """Move a file or directory.

        Raises:
            APIError: If request fails
        """
        await self._request("GET", SOURCE_MOVE_ROUTE, params={"old_path": old_path, "new_path": new_path})

    async def add_strategy(self, name: str) -> None:
        """Scaffold a new strategy crate named `name`.

        Raises:
            APIError: If request fails
        """
        # Scaffolding runs cargo on the server side
        await self._request("POST", STRATEGY_ADD_ROUTE, timeout=30.0, json_body={"name": name})

    async def health(self) -> bool:
        """Probe the store.

        Returns:
            True if the store answered successfully
        """
        try:
            resp = await self._request("GET", HEALTH_ROUTE)
        except APIError as e:
            logger.debug("Health check failed", error=str(e))
            return False
        return resp.status_code == 200


def decode_error_body(text: str) -> ErrorBody | None:
    """Parse a store error payload, or None when it is not one."""
    try:
        return _ERROR_BODY_ADAPTER.validate_json(text)
    except (ValidationError, json.JSONDecodeError, TypeError):
        return None
