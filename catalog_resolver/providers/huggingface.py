"""Client and payload adapter for the Hugging Face Hub catalog (name search only)."""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

from huggingface_hub import get_token

from catalog_resolver.config import PROVIDERS
from catalog_resolver.logging_config import get_logger
from catalog_resolver.models import (
    Capability,
    CatalogEntry,
    CatalogFile,
    CatalogId,
    ModelCategory,
    Provider,
)
from catalog_resolver.providers.base import CatalogClient
from catalog_resolver.providers.metadata import (
    ADAPTER_TAGS,
    as_dict,
    coerce_float,
    coerce_int,
    coerce_str_list,
    infer_kind_from_tags,
)
from catalog_resolver.related import extract_base_model_from_tags, extract_repo_id

logger = get_logger(__name__)


def _parse_sibling(payload: dict[str, Any]) -> CatalogFile:
    lfs = as_dict(payload.get("lfs"))
    hashes = {"SHA256": str(lfs["sha256"])} if lfs.get("sha256") else {}
    size = coerce_float(payload.get("size") or lfs.get("size"))
    return CatalogFile(
        name=str(payload.get("rfilename") or payload.get("path") or ""),
        hashes=hashes,
        size_kb=size / 1024 if size is not None else None,
    )


def huggingface_category(tags: list[str], pipeline_tag: str) -> ModelCategory:
    lowered = [tag.lower() for tag in tags]
    if any(tag in ADAPTER_TAGS for tag in lowered):
        return ModelCategory.ADAPTER
    if any(tag.startswith("base_model:adapter:") for tag in lowered):
        return ModelCategory.ADAPTER
    if pipeline_tag:
        return ModelCategory.BASE
    return ModelCategory.OTHER


def parse_huggingface_model(payload: dict[str, Any]) -> CatalogEntry:
    """Adapt a Hub ``/api/models`` item to a ``CatalogEntry``."""
    repo_id = str(payload.get("id") or payload.get("modelId") or "")
    tags = coerce_str_list(payload.get("tags"))
    card = as_dict(payload.get("cardData") or payload.get("card_data"))

    pipeline_tag = str(payload.get("pipeline_tag") or card.get("pipeline_tag") or "")
    if not pipeline_tag:
        inferred = infer_kind_from_tags(tags)
        pipeline_tag = "" if inferred == "unknown" else inferred

    category = huggingface_category(tags, pipeline_tag)
    family = extract_repo_id(card.get("base_model")) or extract_base_model_from_tags(tags) or ""
    if not family and category is ModelCategory.BASE:
        # A base model with no declared parent is its own family
        family = repo_id

    siblings = [
        _parse_sibling(item) for item in payload.get("siblings") or [] if isinstance(item, dict)
    ]

    return CatalogEntry(
        provider=Provider.HUGGINGFACE,
        id=repo_id,
        name=repo_id.split("/")[-1] if repo_id else "",
        kind=pipeline_tag,
        category=category,
        creator=str(payload.get("author") or (repo_id.split("/")[0] if "/" in repo_id else "")),
        download_count=coerce_int(payload.get("downloads")),
        favorite_count=coerce_int(payload.get("likes")),
        tags=tags,
        description=str(card.get("description") or ""),
        files=siblings,
        pipeline_tag=pipeline_tag,
        family=family,
        raw=payload,
    )


def _parse_list(data: Any) -> list[CatalogEntry]:
    if not isinstance(data, list):
        return []
    return [parse_huggingface_model(item) for item in data if isinstance(item, dict)]


class HuggingFaceClient(CatalogClient):
    """Hugging Face Hub REST client.

    The Hub has no content-hash index, so ``search_by_hash`` always returns [].
    """

    provider = Provider.HUGGINGFACE
    capabilities = frozenset(
        {
            Capability.SEARCH_BY_NAME,
            Capability.GET_BY_ID,
            Capability.FIND_RELATED,
        }
    )

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = PROVIDERS.HUGGINGFACE_BASE_URL,
        min_interval: float = PROVIDERS.HUGGINGFACE_REQUEST_DELAY_SEC,
        **kwargs: Any,
    ) -> None:
        """Initialize the Hub client.

        Args:
            api_key: Optional access token. If not provided, the token known to
                huggingface_hub (HF_TOKEN or the stored login) is used.
            base_url: Hub root
            min_interval: Minimum seconds between requests
            **kwargs: Passed to CatalogClient (http_client, cache, gate)
        """
        if api_key is None:
            api_key = get_token()
        super().__init__(base_url, api_key=api_key, min_interval=min_interval, **kwargs)

    async def search_by_name(self, query: str) -> list[CatalogEntry]:
        return await self.search_models(query, limit=PROVIDERS.HUGGINGFACE_SEARCH_LIMIT)

    async def search_models(
        self,
        query: str,
        limit: int = PROVIDERS.HUGGINGFACE_SEARCH_LIMIT,
        sort: Optional[str] = None,
        direction: Optional[str] = None,
        task: Optional[str] = None,
        library: Optional[str] = None,
    ) -> list[CatalogEntry]:
        """Search the Hub with optional sorting and filtering.

        Args:
            query: Free-text search
            limit: Maximum number of results
            sort: Sort field (downloads, likes, lastModified)
            direction: 'desc' for descending, anything else ascending
            task: Pipeline filter (e.g. text-to-image)
            library: Library filter (e.g. diffusers)
        """
        params: dict[str, Any] = {"search": query or None, "limit": limit, "full": "true"}
        if sort:
            params["sort"] = sort
            params["direction"] = "-1" if direction == "desc" else "1"
        filters = [value for value in (task, library) if value]
        if filters:
            params["filter"] = ",".join(filters)

        data = await self._get_json("/api/models", params)
        return _parse_list(data)

    async def get_by_id(self, model_id: CatalogId) -> Optional[CatalogEntry]:
        data = await self._get_json_or_none(f"/api/models/{quote(str(model_id), safe='/')}")
        return parse_huggingface_model(data) if isinstance(data, dict) else None

    async def find_related(self, family: str, category: ModelCategory) -> list[CatalogEntry]:
        if not family:
            return []
        if category is ModelCategory.ADAPTER:
            data = await self._get_json(
                "/api/models",
                {
                    "filter": f"base_model:adapter:{family}",
                    "sort": "downloads",
                    "direction": "-1",
                    "limit": PROVIDERS.RELATED_SEARCH_LIMIT,
                    "full": "true",
                },
            )
            return _parse_list(data)
        if category is ModelCategory.BASE:
            entry = await self.get_by_id(family)
            return [entry] if entry is not None else []
        return []
