"""Network operations for the catalog resolver."""  # pragma: no cover

from __future__ import annotations  # pragma: no cover

from catalog_resolver.network.http_client import AsyncHttpClient  # pragma: no cover

__all__ = [  # pragma: no cover
    "AsyncHttpClient",
]
