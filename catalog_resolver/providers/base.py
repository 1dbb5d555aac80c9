"""Common machinery for catalog clients.

A catalog client exposes a uniform async surface (``search_by_name``,
``search_by_hash``, ``get_by_id``, ``find_related``, ``clear_cache``) and
advertises what it can actually do through ``capabilities``, so callers pick
behaviour by capability rather than by provider name.

Every request goes through the same path: response cache lookup, request
gate, GET with an optional bearer token, a single unauthenticated retry when
the token is rejected with 401, and conversion of any non-2xx status or
transport fault into ``ProviderRequestFailed``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, Optional
from urllib.parse import urlencode

import httpx

from catalog_resolver.exceptions import ProviderRequestFailed
from catalog_resolver.logging_config import get_logger
from catalog_resolver.models import (
    Capability,
    CatalogEntry,
    CatalogId,
    ModelCategory,
    Provider,
)
from catalog_resolver.network.http_client import AsyncHttpClient
from catalog_resolver.providers.cache import ResponseCache, make_cache_key
from catalog_resolver.providers.throttle import RequestGate

logger = get_logger(__name__)


def clean_token(token: Optional[str]) -> Optional[str]:
    """Return a stripped token, or None for missing/blank values."""
    if not token or not isinstance(token, str):
        return None
    trimmed = token.strip()
    return trimmed or None


class CatalogClient(ABC):
    """Rate-limited, caching HTTP client for one external catalog."""

    provider: ClassVar[Provider] = Provider.UNKNOWN
    capabilities: ClassVar[frozenset[Capability]] = frozenset()

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        min_interval: float = 0.5,
        http_client: Optional[AsyncHttpClient] = None,
        cache: Optional[ResponseCache] = None,
        gate: Optional[RequestGate] = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Catalog API root, without trailing slash
            api_key: Optional bearer token
            min_interval: Minimum seconds between two requests
            http_client: Shared HTTP client; one is created and owned when omitted
            cache: Response cache; a one-hour cache is created when omitted
            gate: Request gate; created from ``min_interval`` when omitted
        """
        self.base_url = base_url.rstrip("/")
        self._api_key = clean_token(api_key)
        self._owns_http = http_client is None
        self._http = http_client or AsyncHttpClient()
        self._cache = cache or ResponseCache()
        self._gate = gate or RequestGate(min_interval)

    # ==================== Capabilities ====================

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    @abstractmethod
    async def search_by_name(self, query: str) -> list[CatalogEntry]:
        """Search the catalog by free text."""

    async def search_by_hash(self, file_hash: str) -> list[CatalogEntry]:
        """Search the catalog by content hash. Catalogs without a hash index return []."""
        return []

    @abstractmethod
    async def get_by_id(self, model_id: CatalogId) -> Optional[CatalogEntry]:
        """Fetch one entry; None when the catalog does not know the id."""

    @abstractmethod
    async def find_related(self, family: str, category: ModelCategory) -> list[CatalogEntry]:
        """Find entries of ``category`` built on the base-model ``family``."""

    # ==================== Credentials ====================

    def set_api_key(self, api_key: Optional[str]) -> None:
        self._api_key = clean_token(api_key)

    @property
    def has_api_key(self) -> bool:
        return self._api_key is not None

    def _auth_headers(self) -> Dict[str, str]:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    # ==================== Requests ====================

    async def _get_json(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET ``endpoint`` and return the decoded JSON body, using the cache.

        Raises:
            ProviderRequestFailed: On non-2xx status, transport fault or invalid JSON
        """
        query = {key: value for key, value in (params or {}).items() if value is not None}
        cache_key = make_cache_key(endpoint, urlencode(sorted(query.items()), doseq=True))
        cached = self._cache.get(cache_key)
        if cached is not None:
            logger.debug("%s cache hit: %s", self.provider.value, cache_key)
            return cached

        url = f"{self.base_url}{endpoint}"
        headers = self._auth_headers()
        response = await self._send(url, query, headers)

        if response.status_code == 401 and headers:
            logger.warning(
                "%s rejected the API token for %s, retrying without authentication",
                self.provider.value,
                endpoint,
            )
            response = await self._send(url, query, {})

        if not response.is_success:
            raise ProviderRequestFailed(
                f"{self.provider.value} API error",
                provider=self.provider.value,
                url=str(response.request.url),
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderRequestFailed(
                f"{self.provider.value} returned invalid JSON",
                provider=self.provider.value,
                url=url,
                status_code=response.status_code,
            ) from exc

        self._cache.set(cache_key, data)
        return data

    async def _send(self, url: str, params: Dict[str, Any], headers: Dict[str, str]) -> httpx.Response:
        await self._gate.acquire()
        try:
            return await self._http.get(url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise ProviderRequestFailed(
                f"{self.provider.value} request failed: {exc}",
                provider=self.provider.value,
                url=url,
            ) from exc

    async def _get_json_or_none(self, endpoint: str) -> Any:
        """Like ``_get_json`` but maps 404 to None."""
        try:
            return await self._get_json(endpoint)
        except ProviderRequestFailed as exc:
            if exc.status_code == 404:
                logger.debug("%s has no %s", self.provider.value, endpoint)
                return None
            raise

    # ==================== Lifecycle ====================

    def clear_cache(self) -> int:
        """Drop every memoized response; returns the number of entries removed."""
        return self._cache.clear()

    def debug_info(self) -> Dict[str, Any]:
        return {
            "provider": self.provider.value,
            "hasApiKey": self.has_api_key,
            "cache": self._cache.stats(),
            "requests": self._http.request_count,
        }

    async def close(self) -> None:
        if self._owns_http:
            await self._http.close()

    async def __aenter__(self) -> "CatalogClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
