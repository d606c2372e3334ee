"""HTTP backend for an OpenGameSync save store."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any
from urllib.parse import quote

import httpx

from .backend import RemoteBackend, RemoteEntry
from .config import config
from .exceptions import (
    ConfigError,
    RemoteAuthenticationError,
    RemoteError,
    RemoteInvalidResponseError,
    RemoteNetworkError,
    RemoteNotFoundError,
    RemotePermissionError,
    RemoteRateLimitError,
)
from .files import BytesLike
from .utils import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    normalize_relative_path,
)

logger = logging.getLogger(__name__)


class HttpBackend(RemoteBackend):
    """Backend talking to the save store HTTP API.

    All files of one game live under ``/games/{game}/files``:

    - ``GET    /games/{game}/files`` lists files as JSON
    - ``GET    /games/{game}/files/{path}`` returns raw bytes
    - ``PUT    /games/{game}/files/{path}`` stores raw bytes
    - ``DELETE /games/{game}/files`` deletes every file
    """

    def __init__(
        self,
        game: str,
        api_key: str | None = None,
        api_url: str | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize HTTP backend.

        Args:
            game: Game identifier whose saves are synced
            api_key: Optional API key (uses config if not provided)
            api_url: Optional API URL (uses config if not provided)
            max_retries: Maximum number of retry attempts (default: 3)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Request timeout in seconds (default: 30.0)
            transport: Optional httpx transport (used by tests)
        """
        if not game:
            raise ConfigError("A game identifier is required")

        self.game = game
        self.api_key = api_key or config.api_key
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._transport = transport

        if not self.api_key:
            raise ConfigError(
                "API key not configured. "
                "Please set OPENGAMESYNC_API_KEY environment variable."
            )

        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return f"{self.api_url} ({self.game})"

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _files_endpoint(self, path: str | None = None) -> str:
        endpoint = f"games/{quote(self.game, safe='')}/files"
        if path is not None:
            try:
                relative_path = normalize_relative_path(path)
            except ValueError as e:
                raise RemoteError(str(e)) from e
            endpoint = f"{endpoint}/{quote(relative_path, safe='/')}"
        return endpoint

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        # Add jitter: +/- 25% of base delay
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    def _handle_http_error(
        self, e: httpx.HTTPStatusError, attempt: int
    ) -> tuple[RemoteError, bool]:
        """Map an HTTP error to a backend error.

        Args:
            e: The HTTP error exception
            attempt: Current attempt number

        Returns:
            Tuple of (exception to raise, should_retry)
        """
        status_code = e.response.status_code

        if status_code == 401:
            return (
                RemoteAuthenticationError("Invalid API key or unauthorized access"),
                False,
            )
        elif status_code == 403:
            return (
                RemotePermissionError("Access forbidden - check your permissions"),
                False,
            )
        elif status_code == 404:
            return (RemoteNotFoundError(f"Not found: {e.request.url.path}"), False)
        elif status_code == 429:
            error: RemoteError = RemoteRateLimitError(
                "Rate limit exceeded - please try again later"
            )
            return (error, attempt < self.max_retries)

        error_msg = f"API request failed with status {status_code}"
        try:
            if e.response.content:
                error_data = e.response.json()
                if isinstance(error_data, dict):
                    msg = (
                        error_data.get("message")
                        or error_data.get("error")
                        or error_data.get("detail")
                    )
                    if msg:
                        error_msg = f"{error_msg}: {msg}"
        except ValueError:
            # Not a JSON body, keep the status-based message
            pass

        error = RemoteError(error_msg)
        should_retry = 500 <= status_code < 600 and attempt < self.max_retries
        return (error, should_retry)

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> httpx.Response:
        """Make an API request with retry logic.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            **kwargs: Additional arguments passed to httpx

        Returns:
            The successful response

        Raises:
            RemoteError: If the request fails after all retries
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        client = self._get_client()

        for attempt in range(self.max_retries + 1):
            try:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
                return response
            except httpx.HTTPStatusError as e:
                error, should_retry = self._handle_http_error(e, attempt)
                if not should_retry:
                    raise error from e

                delay = self._calculate_retry_delay(attempt)
                retry_after = e.response.headers.get("Retry-After")
                if (
                    isinstance(error, RemoteRateLimitError)
                    and retry_after
                    and retry_after.isdigit()
                ):
                    delay = float(retry_after)
                logger.warning(
                    "%s %s failed (%s), retrying in %.1fs", method, url, error, delay
                )
                await asyncio.sleep(delay)
            except httpx.RequestError as e:
                if attempt >= self.max_retries:
                    raise RemoteNetworkError(f"Network error: {e}") from e
                delay = self._calculate_retry_delay(attempt)
                logger.warning(
                    "%s %s network error (%s), retrying in %.1fs",
                    method,
                    url,
                    e,
                    delay,
                )
                await asyncio.sleep(delay)

        raise RemoteError("Request failed after all retry attempts")

    async def list_remote(self) -> list[RemoteEntry]:
        response = await self._request("GET", self._files_endpoint())

        content_type = response.headers.get("Content-Type", "")
        if "application/json" not in content_type:
            raise RemoteInvalidResponseError(f"Unexpected response type: {content_type}")
        try:
            data = response.json()
        except ValueError as e:
            raise RemoteInvalidResponseError("Invalid JSON response from server") from e

        files = data.get("files") if isinstance(data, dict) else None
        if not isinstance(files, list):
            raise RemoteInvalidResponseError("Listing has no 'files' array")

        entries = []
        for item in files:
            if not isinstance(item, dict) or not item.get("path"):
                raise RemoteInvalidResponseError(f"Invalid file entry: {item!r}")
            entries.append(
                RemoteEntry(
                    path=item["path"],
                    size=item.get("size"),
                    updated_at=item.get("updated_at"),
                )
            )
        logger.debug("Listed %d remote file(s) for %s", len(entries), self.game)
        return entries

    async def fetch_remote_bytes(self, path: str) -> bytes:
        response = await self._request("GET", self._files_endpoint(path))
        return response.content

    async def store_remote_bytes(self, path: str, data: BytesLike) -> None:
        # httpx only sends bytes bodies as-is
        await self._request(
            "PUT",
            self._files_endpoint(path),
            content=bytes(data),
            headers={"Content-Type": "application/octet-stream"},
        )

    async def clear_remote(self) -> None:
        await self._request("DELETE", self._files_endpoint())
