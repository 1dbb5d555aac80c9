"""Relationship discovery between catalog entries.

A base model (checkpoint) is linked to adapters trained on the same family;
an adapter (LoRA) is linked to a parent base model. Lookups are enrichment
only: failures are logged and leave the relationship set partially filled.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable
from urllib.parse import urlparse

from catalog_resolver.exceptions import ProviderRequestFailed
from catalog_resolver.logging_config import get_logger
from catalog_resolver.models import Capability, CatalogEntry, ModelCategory, Relationships
from catalog_resolver.naming import normalize_name

if TYPE_CHECKING:
    from catalog_resolver.providers.base import CatalogClient

logger = get_logger(__name__)

_BASE_MODEL_TAG = "base_model:"
# Tag qualifiers the Hub puts between "base_model:" and the repo id
_BASE_MODEL_RELATIONS = ("adapter", "finetune", "merge", "quantized")


def _iter_candidates(value: Any) -> Iterable[Any]:
    """Yield possible repo id candidates from nested metadata values."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _parse_repo_id_from_string(value: str) -> str | None:
    cleaned = value.strip()
    if not cleaned:
        return None

    if "huggingface.co" in cleaned:
        parsed = urlparse(cleaned)
        path = parsed.path.strip("/")
        if path:
            parts = path.split("/")
            if len(parts) >= 2:
                return f"{parts[0]}/{parts[1]}"

    if "/" in cleaned:
        parts = cleaned.strip("/").split("/")
        if len(parts) >= 2:
            return f"{parts[0]}/{parts[1]}"
    return None


def extract_repo_id(value: Any) -> str | None:
    """Extract a repo id from a base model value or URL-like payload."""
    for candidate in _iter_candidates(value):
        if isinstance(candidate, str):
            repo_id = _parse_repo_id_from_string(candidate)
            if repo_id:
                return repo_id
        elif isinstance(candidate, dict):
            for key in ("repo_id", "repoId", "model_id", "modelId", "id", "name", "model"):
                nested = candidate.get(key)
                repo_id = extract_repo_id(nested)
                if repo_id:
                    return repo_id
    return None


def extract_base_model_from_tags(tags: Iterable[str]) -> str | None:
    """Read the base repo id from Hub tags like ``base_model:adapter:org/model``."""
    for tag in tags:
        if not tag.startswith(_BASE_MODEL_TAG):
            continue
        remainder = tag[len(_BASE_MODEL_TAG) :]
        relation, _, repo = remainder.partition(":")
        if relation in _BASE_MODEL_RELATIONS and repo:
            remainder = repo
        repo_id = extract_repo_id(remainder)
        if repo_id:
            return repo_id
    return None


def normalize_family_token(family: str) -> str:
    """Normalize family to a comparable token; '' for unknown families."""
    token = normalize_name(family, fallback="").lower()
    if token in ("", "unknown", "other"):
        return ""
    return token


class RelationshipBuilder:
    """Builds ``Relationships`` for a resolved entry using its catalog client."""

    def __init__(self, max_compatible: int | None = None) -> None:
        """
        Args:
            max_compatible: Optional cap on the number of compatible ids kept
        """
        self.max_compatible = max_compatible

    async def build(self, entry: CatalogEntry, client: "CatalogClient") -> Relationships:
        """Discover parent / compatible entries for ``entry``.

        Base models record the ids of adapters sharing their family; adapters
        record the first base model of their family as parent.
        """
        relationships = Relationships(base_model=entry.family or "Unknown")

        if not normalize_family_token(entry.family):
            logger.debug("No base-model family for %s, skipping relationships", entry.name)
            return relationships
        if not client.supports(Capability.FIND_RELATED):
            return relationships

        try:
            if entry.category is ModelCategory.BASE:
                adapters = await client.find_related(entry.family, ModelCategory.ADAPTER)
                compatible = [related.id for related in adapters if related.id != entry.id]
                if self.max_compatible is not None:
                    compatible = compatible[: self.max_compatible]
                relationships.compatible_models = compatible
            elif entry.category is ModelCategory.ADAPTER:
                bases = await client.find_related(entry.family, ModelCategory.BASE)
                if bases:
                    relationships.parent_model_id = bases[0].id
        except ProviderRequestFailed as exc:
            logger.warning("Failed to build relationships for %s: %s", entry.name, exc)

        return relationships
