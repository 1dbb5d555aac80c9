"""
Centralized configuration for the catalog resolver.

Provides configuration constants for hashing, catalog requests and the
resolution workflow.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class HashingConfig:
    """Content fingerprint settings."""

    # Files at or above this size are fingerprinted from head/tail samples
    LARGE_FILE_THRESHOLD_BYTES: int = 100 * 1024 * 1024
    SAMPLE_CHUNK_BYTES: int = 8192
    READ_CHUNK_BYTES: int = 8192 * 1024


@dataclass(frozen=True)
class ProviderConfig:
    """Catalog endpoints, pacing and caching."""

    CIVITAI_BASE_URL: str = "https://civitai.com/api/v1"
    HUGGINGFACE_BASE_URL: str = "https://huggingface.co"

    CIVITAI_REQUEST_DELAY_SEC: float = 1.0
    HUGGINGFACE_REQUEST_DELAY_SEC: float = 0.5

    RESPONSE_CACHE_TTL_SEC: int = 3600
    RESPONSE_CACHE_MAX_ENTRIES: int = 1000

    REQUEST_TIMEOUT_SEC: float = 15.0
    USER_AGENT: str = "catalog-resolver/0.3"

    HASH_SEARCH_LIMIT: int = 10
    NAME_SEARCH_LIMIT: int = 20
    HUGGINGFACE_SEARCH_LIMIT: int = 10
    RELATED_SEARCH_LIMIT: int = 50


@dataclass(frozen=True)
class ResolutionConfig:
    """Resolution workflow and persistence."""

    STALENESS_DAYS: int = 7
    BATCH_PERSIST_INTERVAL: int = 10
    MAX_RELATED_LOOKUPS: int = 10
    DEFAULT_PROVIDER_ORDER: Tuple[str, ...] = ("huggingface", "civitai")
    METADATA_FILENAME: str = "model-metadata.json"


# Global configuration instances (frozen/immutable)
HASHING = HashingConfig()
PROVIDERS = ProviderConfig()
RESOLUTION = ResolutionConfig()
