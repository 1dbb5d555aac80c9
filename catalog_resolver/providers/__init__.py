"""Catalog clients for the resolver."""  # pragma: no cover

from __future__ import annotations  # pragma: no cover

from catalog_resolver.providers.base import CatalogClient, clean_token  # pragma: no cover
from catalog_resolver.providers.cache import ResponseCache, make_cache_key  # pragma: no cover
from catalog_resolver.providers.civitai import (  # pragma: no cover
    CivitaiClient,
    parse_civitai_model,
    parse_civitai_version,
)
from catalog_resolver.providers.huggingface import (  # pragma: no cover
    HuggingFaceClient,
    parse_huggingface_model,
)
from catalog_resolver.providers.throttle import RequestGate  # pragma: no cover

__all__ = [  # pragma: no cover
    "CatalogClient",
    "CivitaiClient",
    "HuggingFaceClient",
    "RequestGate",
    "ResponseCache",
    "clean_token",
    "make_cache_key",
    "parse_civitai_model",
    "parse_civitai_version",
    "parse_huggingface_model",
]
