"""Async HTTP client shared by the catalog clients.

Wraps a lazily created ``httpx.AsyncClient`` with:
- HTTP/2 and connection pooling for repeated catalog queries
- A pluggable transport so tests can substitute ``httpx.MockTransport``
- Request counting, used to verify cache hits stay off the network
"""

from __future__ import annotations

from typing import Any

import httpx

from catalog_resolver.config import PROVIDERS
from catalog_resolver.logging_config import get_logger

logger = get_logger(__name__)


class AsyncHttpClient:
    """Async HTTP client with HTTP/2 support.

    The pooled ``httpx.AsyncClient`` belongs to the event loop that first used
    it. Call ``close()`` before reusing this object under another loop; the
    next request then opens a fresh pool.

    Usage:
        async with AsyncHttpClient() as client:
            response = await client.get("https://huggingface.co/api/models")
    """

    def __init__(
        self,
        timeout: float = PROVIDERS.REQUEST_TIMEOUT_SEC,
        http2: bool = True,
        max_connections: int = 20,
        max_keepalive_connections: int = 10,
        user_agent: str = PROVIDERS.USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the async HTTP client.

        Args:
            timeout: Default request timeout in seconds
            http2: Whether to enable HTTP/2 (requires the h2 package)
            max_connections: Maximum total connections
            max_keepalive_connections: Maximum keep-alive connections
            user_agent: User-Agent header sent with every request
            transport: Optional transport override (tests use httpx.MockTransport)
        """
        self._timeout = timeout
        self._http2 = http2
        self._max_connections = max_connections
        self._max_keepalive = max_keepalive_connections
        self._user_agent = user_agent
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self.request_count = 0

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            limits = httpx.Limits(
                max_connections=self._max_connections,
                max_keepalive_connections=self._max_keepalive,
            )
            self._client = httpx.AsyncClient(
                http2=self._http2,
                timeout=self._timeout,
                limits=limits,
                follow_redirects=True,
                headers={"User-Agent": self._user_agent},
                transport=self._transport,
            )
            logger.debug(
                "Created httpx client (http2=%s, timeout=%.1fs)",
                self._http2,
                self._timeout,
            )
        return self._client

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Make an HTTP request.

        Raises:
            httpx.HTTPError: On transport failures (timeouts, connection errors)
        """
        client = self._get_client()
        self.request_count += 1
        return await client.request(method, url, **kwargs)

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.debug("Closed httpx client")

    async def __aenter__(self) -> "AsyncHttpClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
