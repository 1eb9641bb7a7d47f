"""HTTP fetch primitive for the ride share API.

Every dataset goes through ``ApiClient.fetch_json``. It adds the bearer token,
encodes JSON bodies and decodes JSON responses. Every failure surfaces as a
single ``RequestError`` so callers only have one thing to catch.

Architecture:
- Shared httpx client with connection pooling (created lazily)
- One retry on connect/timeout errors, none on HTTP status errors
- No caching here; freshness is the cache's job
"""

import asyncio
import json
import logging
from typing import Any, Callable, Optional

import httpx

logger = logging.getLogger(__name__)

TokenGetter = Callable[[], Optional[str]]


class RequestError(Exception):
    """Transport, status or decoding failure from the ride share API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ApiClient:
    """Authenticated JSON client for the ride share backend.

    Attributes:
        _base_url: API root; request paths are joined onto it.
        _token_getter: Returns the current bearer token, or None when signed out.
    """

    HEADERS = {
        "User-Agent": "RideShareDataLayer/1.0",
        "Accept": "application/json",
    }

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        token_getter: TokenGetter | None = None,
        timeout: float = 10.0,
        max_retries: int = 1,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token_getter = token_getter
        self._timeout = timeout
        self._max_retries = max_retries
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def set_token_getter(self, token_getter: TokenGetter | None) -> None:
        self._token_getter = token_getter

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=self.HEADERS,
                transport=self._transport,
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _build_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        token = self._token_getter() if self._token_getter else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def fetch_json(
        self,
        path: str,
        method: str = "GET",
        params: dict[str, str] | None = None,
        body: Any = None,
    ) -> Any:
        """Issue one API call and return the decoded JSON payload.

        Args:
            path: Path relative to the API root, with or without a leading slash.
            method: HTTP method.
            params: Optional query string parameters.
            body: Optional JSON-serializable request body.

        Returns:
            The decoded payload, or None when the response body is empty.

        Raises:
            RequestError: On transport failure, non-success status or a body
                that is not valid JSON.
        """
        url = path if path.startswith("/") else f"/{path}"
        response = await self._send(method, url, params, body)

        if not response.is_success:
            message = self._error_message(response)
            logger.warning(f"[FETCH] {method} {url} -> {response.status_code}: {message}")
            raise RequestError(message, status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise RequestError(
                f"Invalid JSON from {url}", status_code=response.status_code
            ) from e

    async def _send(
        self, method: str, url: str, params: dict[str, str] | None, body: Any
    ) -> httpx.Response:
        """Send the request, retrying once on transient transport failures."""
        client = self._get_client()
        for attempt in range(self._max_retries + 1):
            try:
                return await client.request(
                    method,
                    url,
                    params=params,
                    json=body,
                    headers=self._build_headers(),
                )
            except (httpx.TimeoutException, httpx.ConnectError) as e:
                if attempt < self._max_retries:
                    logger.info(
                        f"[FETCH] Retry {attempt + 1}/{self._max_retries} for {method} {url}: {type(e).__name__}"
                    )
                    await asyncio.sleep(0.5)
                    continue
                raise RequestError(f"Network error: {type(e).__name__}") from e
            except httpx.HTTPError as e:
                raise RequestError(f"Network error: {type(e).__name__}") from e
        raise RequestError(f"Request to {url} failed")

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Prefer the API's ``{"error": ...}`` message over the reason phrase."""
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and data.get("error"):
            return str(data["error"])
        return response.reason_phrase or f"HTTP {response.status_code}"
