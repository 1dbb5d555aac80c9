"""TTL-based caching for catalog API responses.

Responses are memoized by request signature for a fixed duration. Expired
entries are evicted lazily, when the cache is next accessed.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, Optional

from cachetools import TTLCache

from catalog_resolver.config import PROVIDERS
from catalog_resolver.logging_config import get_logger

logger = get_logger(__name__)


class ResponseCache:
    """TTL cache for decoded catalog responses.

    Attributes:
        ttl_seconds: Time-to-live in seconds for cache entries
        max_entries: Maximum number of entries (least recently used evicted first)
    """

    def __init__(
        self,
        ttl_seconds: float = PROVIDERS.RESPONSE_CACHE_TTL_SEC,
        max_entries: int = PROVIDERS.RESPONSE_CACHE_MAX_ENTRIES,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._cache: TTLCache = TTLCache(maxsize=max_entries, ttl=ttl_seconds, timer=timer)
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if missing or expired."""
        value = self._cache.get(key)
        if value is None:
            self.misses += 1
            return None
        self.hits += 1
        return value

    def set(self, key: str, value: Any) -> None:
        self._cache[key] = value

    def clear(self) -> int:
        """Clear all cache entries.

        Returns:
            Number of entries cleared
        """
        count = len(self._cache)
        self._cache.clear()
        return count

    def __len__(self) -> int:
        return len(self._cache)

    def stats(self) -> Dict[str, Any]:
        return {
            "entries": len(self._cache),
            "max_entries": self.max_entries,
            "ttl_seconds": self.ttl_seconds,
            "hits": self.hits,
            "misses": self.misses,
        }


def make_cache_key(namespace: str, *args: Any) -> str:
    """Create a cache key from namespace and arguments.

    Args:
        namespace: Cache namespace (e.g., endpoint path)
        *args: Arguments to include in key; None values are skipped

    Returns:
        Cache key string
    """
    parts = [namespace] + [str(arg) for arg in args if arg is not None]
    return ":".join(parts)
