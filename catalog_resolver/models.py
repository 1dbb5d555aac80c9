"""
Data models for the catalog resolver.

Catalog entries from both providers share one dataclass shape tagged with a
``Provider`` value; the provider-specific payload adapters live in
``catalog_resolver.providers``. ``EnhancedMetadata`` is the persisted per-file
record and serializes to the camelCase JSON document kept by the store.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Union

from catalog_resolver.exceptions import NotAModelFile
from catalog_resolver.naming import is_model_file

CatalogId = Union[int, str]

# Current on-disk record layout; see store.MIGRATIONS
SCHEMA_VERSION = 1


class Provider(str, Enum):
    """External catalogs a local file can resolve to."""

    CIVITAI = "civitai"
    HUGGINGFACE = "huggingface"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Union[str, "Provider", None]) -> "Provider":
        """Parse a provider name, mapping anything unrecognized to UNKNOWN."""
        if isinstance(value, Provider):
            return value
        if not value:
            return cls.UNKNOWN
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN


class Capability(str, Enum):
    """Operations a catalog client can serve."""

    SEARCH_BY_NAME = "search_by_name"
    SEARCH_BY_HASH = "search_by_hash"
    GET_BY_ID = "get_by_id"
    FIND_RELATED = "find_related"


class ModelCategory(str, Enum):
    """Role of a catalog entry in the base-model / adapter graph."""

    BASE = "base"
    ADAPTER = "adapter"
    OTHER = "other"


@dataclass
class CatalogFile:
    """A downloadable file listed under a catalog entry or version.

    Attributes:
        name: File name as published by the catalog
        hashes: Hash-algorithm name -> hex digest (e.g. SHA256, BLAKE3, AutoV2)
        size_kb: Size in kilobytes when known
        primary: Whether the catalog flags this as the primary file
        download_url: Direct download URL when known
    """

    name: str
    hashes: Dict[str, str] = field(default_factory=dict)
    size_kb: Optional[float] = None
    primary: bool = False
    download_url: str = ""


@dataclass
class CatalogVersion:
    """A release of a catalog entry with its own files and base model."""

    id: CatalogId
    name: str
    base_model: str = ""
    files: List[CatalogFile] = field(default_factory=list)
    download_url: str = ""
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.raw)


@dataclass
class CatalogEntry:
    """A catalog record shared by both providers.

    Provider A entries carry ``versions`` (each with files); provider B entries
    list their files directly in ``files``. ``raw`` keeps the original payload
    so the persisted document round-trips without loss.
    """

    provider: Provider
    id: CatalogId
    name: str
    kind: str = ""
    category: ModelCategory = ModelCategory.OTHER
    creator: str = ""
    download_count: int = 0
    favorite_count: int = 0
    rating: Optional[float] = None
    tags: List[str] = field(default_factory=list)
    description: str = ""
    versions: List[CatalogVersion] = field(default_factory=list)
    files: List[CatalogFile] = field(default_factory=list)
    pipeline_tag: str = ""
    family: str = ""
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    def iter_files(self) -> Iterator[CatalogFile]:
        """Yield every file of every version, then the directly attached files."""
        for version in self.versions:
            yield from version.files
        yield from self.files

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.raw)


@dataclass
class Relationships:
    """Links from a resolved entry to related catalog entries."""

    child_models: List[CatalogId] = field(default_factory=list)
    compatible_models: List[CatalogId] = field(default_factory=list)
    parent_model_id: Optional[CatalogId] = None
    base_model: str = "Unknown"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "childModels": list(self.child_models),
            "compatibleModels": list(self.compatible_models),
            "parentModelId": self.parent_model_id,
            "baseModel": self.base_model,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Relationships":
        if not isinstance(data, dict):
            return cls()
        return cls(
            child_models=list(data.get("childModels") or []),
            compatible_models=list(data.get("compatibleModels") or []),
            parent_model_id=data.get("parentModelId"),
            base_model=data.get("baseModel") or "Unknown",
        )


@dataclass
class ModelFile:
    """A local model artifact. Identity is the path; the hash is derived."""

    path: str
    filename: str
    hash: Optional[str] = None

    @classmethod
    def from_path(cls, path: Union[str, os.PathLike]) -> "ModelFile":
        """Build a ModelFile, rejecting paths without a model extension.

        Raises:
            NotAModelFile: If the extension is not recognized
        """
        path_str = os.fspath(path)
        if not is_model_file(path_str):
            raise NotAModelFile(path_str)
        return cls(path=path_str, filename=os.path.basename(path_str))


# Which record attribute holds the matched entry for each provider
_ENTRY_FIELDS: Dict[Provider, str] = {
    Provider.CIVITAI: "civitai_model",
    Provider.HUGGINGFACE: "huggingface_model",
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Reconstitute an ISO-8601 timestamp (``Z`` suffix accepted) as aware UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class EnhancedMetadata:
    """Persisted resolution result for one local file.

    Invariants:
        provider == UNKNOWN implies no catalog entry is attached.
        is_verified implies a catalog entry is attached.
    """

    local_path: str
    filename: str
    provider: Provider = Provider.UNKNOWN
    hash: str = ""
    civitai_model: Optional[CatalogEntry] = None
    civitai_version: Optional[CatalogVersion] = None
    huggingface_model: Optional[CatalogEntry] = None
    relationships: Relationships = field(default_factory=Relationships)
    is_verified: bool = False
    last_synced: Optional[datetime] = None
    schema_version: int = SCHEMA_VERSION

    @classmethod
    def unknown(
        cls, model_file: ModelFile, last_synced: Optional[datetime] = None
    ) -> "EnhancedMetadata":
        """Create an unresolved record for ``model_file``."""
        return cls(
            local_path=model_file.path,
            filename=model_file.filename,
            hash=model_file.hash or "",
            last_synced=last_synced or utc_now(),
        )

    @property
    def entry(self) -> Optional[CatalogEntry]:
        """The matched catalog entry for the resolved provider, if any."""
        attr = _ENTRY_FIELDS.get(self.provider)
        return getattr(self, attr) if attr else None

    @property
    def version(self) -> Optional[CatalogVersion]:
        return self.civitai_version if self.provider is Provider.CIVITAI else None

    def attach(
        self,
        entry: CatalogEntry,
        version: Optional[CatalogVersion] = None,
        verified: bool = False,
    ) -> None:
        """Record ``entry`` as the match, replacing any previous match."""
        self.detach()
        attr = _ENTRY_FIELDS.get(entry.provider)
        if attr is None:
            raise ValueError(f"Entry has no provider: {entry.name}")
        self.provider = entry.provider
        setattr(self, attr, entry)
        if entry.provider is Provider.CIVITAI:
            self.civitai_version = version
        self.is_verified = verified

    def detach(self) -> None:
        """Drop any match and fall back to the unknown provider."""
        self.provider = Provider.UNKNOWN
        self.civitai_model = None
        self.civitai_version = None
        self.huggingface_model = None
        self.is_verified = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "schemaVersion": self.schema_version,
            "localPath": self.local_path,
            "filename": self.filename,
            "hash": self.hash,
            "provider": self.provider.value,
        }
        if self.civitai_model is not None:
            data["civitaiModel"] = self.civitai_model.to_dict()
        if self.civitai_version is not None:
            data["civitaiVersion"] = self.civitai_version.to_dict()
        if self.huggingface_model is not None:
            data["huggingfaceModel"] = self.huggingface_model.to_dict()
        data["relationships"] = self.relationships.to_dict()
        data["isVerified"] = self.is_verified
        data["lastSynced"] = self.last_synced.isoformat() if self.last_synced else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EnhancedMetadata":
        """Rebuild a record from its serialized (already migrated) form."""
        from catalog_resolver.providers.civitai import (
            parse_civitai_model,
            parse_civitai_version,
        )
        from catalog_resolver.providers.huggingface import parse_huggingface_model

        civitai_raw = data.get("civitaiModel")
        version_raw = data.get("civitaiVersion")
        hf_raw = data.get("huggingfaceModel")
        local_path = str(data.get("localPath") or "")

        record = cls(
            local_path=local_path,
            filename=str(data.get("filename") or os.path.basename(local_path)),
            provider=Provider.parse(data.get("provider")),
            hash=str(data.get("hash") or ""),
            civitai_model=parse_civitai_model(civitai_raw) if isinstance(civitai_raw, dict) else None,
            civitai_version=(
                parse_civitai_version(version_raw) if isinstance(version_raw, dict) else None
            ),
            huggingface_model=parse_huggingface_model(hf_raw) if isinstance(hf_raw, dict) else None,
            relationships=Relationships.from_dict(data.get("relationships")),
            is_verified=bool(data.get("isVerified", False)),
            last_synced=parse_timestamp(data.get("lastSynced")),
            schema_version=int(data.get("schemaVersion", SCHEMA_VERSION)),
        )
        record._drop_mismatched_entries()
        return record

    def _drop_mismatched_entries(self) -> None:
        """Keep only the entry belonging to ``provider``; no entry means unknown."""
        entry = self.entry
        if entry is None:
            self.detach()
            return
        if self.provider is Provider.CIVITAI:
            self.huggingface_model = None
        else:
            self.civitai_model = None
            self.civitai_version = None
