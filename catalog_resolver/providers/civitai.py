"""Client and payload adapter for the CivitAI catalog (hash + name index)."""

from __future__ import annotations

import os
from typing import Any, Optional

from catalog_resolver.config import PROVIDERS
from catalog_resolver.exceptions import ProviderRequestFailed
from catalog_resolver.logging_config import get_logger
from catalog_resolver.models import (
    Capability,
    CatalogEntry,
    CatalogFile,
    CatalogId,
    CatalogVersion,
    ModelCategory,
    Provider,
)
from catalog_resolver.naming import generate_search_variations
from catalog_resolver.providers.base import CatalogClient
from catalog_resolver.providers.metadata import (
    as_dict,
    coerce_float,
    coerce_int,
    coerce_str_list,
)

logger = get_logger(__name__)

_BASE_TYPES = frozenset({"checkpoint"})
_ADAPTER_TYPES = frozenset({"lora", "locon", "dora", "lycoris"})

# Catalog "types" filter value used when searching for each category
_CATEGORY_TYPES: dict[ModelCategory, str] = {
    ModelCategory.BASE: "Checkpoint",
    ModelCategory.ADAPTER: "LORA",
}


def civitai_category(model_type: str) -> ModelCategory:
    lowered = model_type.lower()
    if lowered in _BASE_TYPES:
        return ModelCategory.BASE
    if lowered in _ADAPTER_TYPES:
        return ModelCategory.ADAPTER
    return ModelCategory.OTHER


def parse_civitai_file(payload: dict[str, Any]) -> CatalogFile:
    hashes = {
        str(algo): str(digest)
        for algo, digest in as_dict(payload.get("hashes")).items()
        if isinstance(digest, str) and digest
    }
    return CatalogFile(
        name=str(payload.get("name") or ""),
        hashes=hashes,
        size_kb=coerce_float(payload.get("sizeKB")),
        primary=bool(payload.get("primary", False)),
        download_url=str(payload.get("downloadUrl") or ""),
    )


def parse_civitai_version(payload: dict[str, Any]) -> CatalogVersion:
    files = [
        parse_civitai_file(item) for item in payload.get("files") or [] if isinstance(item, dict)
    ]
    return CatalogVersion(
        id=payload.get("id", ""),
        name=str(payload.get("name") or ""),
        base_model=str(payload.get("baseModel") or ""),
        files=files,
        download_url=str(payload.get("downloadUrl") or ""),
        raw=payload,
    )


def _parse_tags(value: Any) -> list[str]:
    # Older API responses return tag objects instead of strings
    if isinstance(value, list):
        names = [item.get("name") if isinstance(item, dict) else item for item in value]
        return coerce_str_list([name for name in names if name])
    return coerce_str_list(value)


def parse_civitai_model(payload: dict[str, Any]) -> CatalogEntry:
    """Adapt a CivitAI ``/models`` item to a ``CatalogEntry``."""
    stats = as_dict(payload.get("stats"))
    creator = as_dict(payload.get("creator"))
    versions = [
        parse_civitai_version(item)
        for item in payload.get("modelVersions") or []
        if isinstance(item, dict)
    ]
    model_type = str(payload.get("type") or "")

    return CatalogEntry(
        provider=Provider.CIVITAI,
        id=payload.get("id", ""),
        name=str(payload.get("name") or ""),
        kind=model_type,
        category=civitai_category(model_type),
        creator=str(creator.get("username") or ""),
        download_count=coerce_int(stats.get("downloadCount")),
        favorite_count=coerce_int(stats.get("favoriteCount")),
        rating=coerce_float(stats.get("rating")),
        tags=_parse_tags(payload.get("tags")),
        description=str(payload.get("description") or ""),
        versions=versions,
        family=versions[0].base_model if versions else "",
        raw=payload,
    )


def _parse_items(data: Any) -> list[CatalogEntry]:
    items = data.get("items") if isinstance(data, dict) else None
    if not isinstance(items, list):
        return []
    return [parse_civitai_model(item) for item in items if isinstance(item, dict)]


class CivitaiClient(CatalogClient):
    """CivitAI REST client.

    Supports exact lookups by file hash in addition to name search, which
    makes it the only catalog that can confirm a local file by content.
    """

    provider = Provider.CIVITAI
    capabilities = frozenset(
        {
            Capability.SEARCH_BY_NAME,
            Capability.SEARCH_BY_HASH,
            Capability.GET_BY_ID,
            Capability.FIND_RELATED,
        }
    )

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = PROVIDERS.CIVITAI_BASE_URL,
        min_interval: float = PROVIDERS.CIVITAI_REQUEST_DELAY_SEC,
        **kwargs: Any,
    ) -> None:
        """Initialize the CivitAI client.

        Args:
            api_key: Optional API key. If not provided, CIVITAI_API_KEY is used.
            base_url: API root
            min_interval: Minimum seconds between requests
            **kwargs: Passed to CatalogClient (http_client, cache, gate)
        """
        if api_key is None:
            api_key = os.getenv("CIVITAI_API_KEY")
        super().__init__(base_url, api_key=api_key, min_interval=min_interval, **kwargs)

    async def search_by_hash(self, file_hash: str) -> list[CatalogEntry]:
        if not file_hash:
            return []
        data = await self._get_json(
            "/models", {"hash": file_hash, "limit": PROVIDERS.HASH_SEARCH_LIMIT}
        )
        return _parse_items(data)

    async def search_by_name(self, query: str) -> list[CatalogEntry]:
        """Search every query variation and merge the results by entry id.

        A failed variation is skipped; the error is raised only when every
        variation failed.
        """
        merged: dict[CatalogId, CatalogEntry] = {}
        last_error: ProviderRequestFailed | None = None
        succeeded = False

        for variation in generate_search_variations(query):
            try:
                data = await self._get_json(
                    "/models", {"query": variation, "limit": PROVIDERS.NAME_SEARCH_LIMIT}
                )
            except ProviderRequestFailed as exc:
                logger.warning("CivitAI search failed for variation %r: %s", variation, exc)
                last_error = exc
                continue
            succeeded = True
            for entry in _parse_items(data):
                merged.setdefault(entry.id, entry)

        if not succeeded and last_error is not None:
            raise last_error
        return list(merged.values())

    async def get_by_id(self, model_id: CatalogId) -> Optional[CatalogEntry]:
        data = await self._get_json_or_none(f"/models/{model_id}")
        return parse_civitai_model(data) if isinstance(data, dict) else None

    async def get_version(self, version_id: CatalogId) -> Optional[CatalogVersion]:
        data = await self._get_json_or_none(f"/model-versions/{version_id}")
        return parse_civitai_version(data) if isinstance(data, dict) else None

    async def find_related(self, family: str, category: ModelCategory) -> list[CatalogEntry]:
        model_type = _CATEGORY_TYPES.get(category)
        if not model_type or not family:
            return []
        data = await self._get_json(
            "/models",
            {
                "types": model_type,
                "baseModels": family,
                "sort": "Highest Rated",
                "limit": PROVIDERS.RELATED_SEARCH_LIMIT,
            },
        )
        return _parse_items(data)
