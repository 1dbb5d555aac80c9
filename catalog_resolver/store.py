#!/usr/bin/env python3
"""
Metadata Store for resolved model files.

Holds one EnhancedMetadata record per local path in memory, backed by a single
JSON document keyed by path. The document is read once at start-up and
rewritten atomically after each mutating batch. Records written by older
releases are upgraded by versioned migrations when the document is loaded.
"""

import json
import shutil
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from catalog_resolver.config import RESOLUTION
from catalog_resolver.exceptions import StoreIOFailure
from catalog_resolver.logging_config import get_logger
from catalog_resolver.models import (
    SCHEMA_VERSION,
    CatalogId,
    EnhancedMetadata,
    Provider,
    utc_now,
)

logger = get_logger(__name__)

Migration = Callable[[Dict[str, Any]], Dict[str, Any]]


def _migrate_v0_to_v1(record: Dict[str, Any]) -> Dict[str, Any]:
    """Records written before provider tagging carry no ``provider`` field."""
    if not record.get("provider"):
        if record.get("civitaiModel"):
            record["provider"] = Provider.CIVITAI.value
        elif record.get("huggingfaceModel"):
            record["provider"] = Provider.HUGGINGFACE.value
        else:
            record["provider"] = Provider.UNKNOWN.value
    record.setdefault("isVerified", False)
    record.setdefault("relationships", {})
    return record


# Schema version N -> step producing version N + 1
MIGRATIONS: Dict[int, Migration] = {
    0: _migrate_v0_to_v1,
}


def migrate_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """Apply every pending migration step to a serialized record."""
    version = int(record.get("schemaVersion", 0))
    while version < SCHEMA_VERSION:
        step = MIGRATIONS.get(version)
        if step is None:
            raise StoreIOFailure(f"No migration from schema version {version}")
        record = step(record)
        version += 1
        record["schemaVersion"] = version
    return record


class MetadataStore:
    """Persisted keyed cache of resolution results.

    Owned by a MetadataManager; nothing else writes to it.
    """

    def __init__(
        self,
        metadata_file: Path,
        staleness_window: timedelta = timedelta(days=RESOLUTION.STALENESS_DAYS),
        autoload: bool = True,
    ):
        """
        Initialize the metadata store

        Args:
            metadata_file: Path to the JSON document
            staleness_window: Age after which a record is no longer fresh
            autoload: Read the document immediately
        """
        self.metadata_file = Path(metadata_file)
        self.staleness_window = staleness_window
        self._records: Dict[str, EnhancedMetadata] = {}
        if autoload:
            self.load()

    # ==================== Generic JSON Operations ====================

    def _read_json(self, file_path: Path) -> Dict[str, Any]:
        """
        Read the JSON document

        Raises:
            StoreIOFailure: If the file is unreadable or not a JSON object
        """
        if not file_path.exists():
            return {}

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise StoreIOFailure(f"Error reading metadata: {e}", str(file_path)) from e

        if not isinstance(data, dict):
            raise StoreIOFailure("Metadata document is not a JSON object", str(file_path))
        return data

    def _write_json(self, file_path: Path, data: Any) -> None:
        """
        Write JSON file atomically (write to temp file, then rename)

        Raises:
            StoreIOFailure: If the document cannot be written
        """
        temp_file = file_path.with_suffix(".tmp")
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)

            # Atomic rename (overwrites existing file)
            shutil.move(str(temp_file), str(file_path))
        except (OSError, TypeError, ValueError) as e:
            if temp_file.exists():
                temp_file.unlink(missing_ok=True)
            raise StoreIOFailure(f"Error writing metadata: {e}", str(file_path)) from e

    # ==================== Persistence ====================

    def load(self) -> int:
        """
        Load the document, migrating old records; degrades to an empty store

        Returns:
            Number of records loaded
        """
        try:
            data = self._read_json(self.metadata_file)
        except StoreIOFailure as e:
            logger.warning("Starting with an empty metadata store: %s", e)
            self._records = {}
            return 0

        records: Dict[str, EnhancedMetadata] = {}
        for path, raw in data.items():
            if not isinstance(raw, dict):
                logger.warning("Skipping malformed metadata entry for %s", path)
                continue
            try:
                record = EnhancedMetadata.from_dict(migrate_record(dict(raw)))
            except (StoreIOFailure, TypeError, ValueError) as e:
                logger.warning("Skipping unreadable metadata entry for %s: %s", path, e)
                continue
            if not record.local_path:
                record.local_path = path
            records[path] = record

        self._records = records
        logger.info("Loaded %d metadata records from %s", len(records), self.metadata_file)
        return len(records)

    def persist(self) -> bool:
        """
        Rewrite the document from memory; failures are logged, memory is kept

        Returns:
            True if successful
        """
        data = {path: record.to_dict() for path, record in self._records.items()}
        try:
            self._write_json(self.metadata_file, data)
        except StoreIOFailure as e:
            logger.error("Failed to persist metadata store: %s", e)
            return False
        logger.debug("Persisted %d metadata records", len(data))
        return True

    # ==================== Keyed Access ====================

    def get(self, path: str) -> Optional[EnhancedMetadata]:
        return self._records.get(path)

    def set(self, path: str, record: EnhancedMetadata) -> None:
        self._records[path] = record

    def delete(self, path: str) -> bool:
        return self._records.pop(path, None) is not None

    def clear(self) -> int:
        count = len(self._records)
        self._records.clear()
        return count

    def paths(self) -> List[str]:
        return list(self._records)

    def items(self) -> Iterator[Tuple[str, EnhancedMetadata]]:
        return iter(list(self._records.items()))

    def __contains__(self, path: object) -> bool:
        return path in self._records

    def __len__(self) -> int:
        return len(self._records)

    # ==================== Queries ====================

    def is_fresh(self, record: EnhancedMetadata, now: Optional[datetime] = None) -> bool:
        """True when the record was synced less than the staleness window ago."""
        if record.last_synced is None:
            return False
        now = now or utc_now()
        return now - record.last_synced < self.staleness_window

    def find_by_catalog_id(
        self, provider: Provider, catalog_id: CatalogId
    ) -> Optional[EnhancedMetadata]:
        """Find the local record resolved to ``catalog_id`` on ``provider``."""
        for record in self._records.values():
            entry = record.entry
            if record.provider is provider and entry is not None and entry.id == catalog_id:
                return record
        return None

    def remove_where(self, predicate: Callable[[str], bool]) -> List[str]:
        """Remove every record whose path satisfies ``predicate``."""
        doomed = [path for path in self._records if predicate(path)]
        for path in doomed:
            del self._records[path]
        return doomed
