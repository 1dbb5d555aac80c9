#!/usr/bin/env python3
"""
Metadata Manager for the catalog resolver.

Sequences hashing, per-provider catalog searches, match scoring, relationship
building and store writes for a single model file or a batch of files. All
work runs as a single cooperative flow: one file at a time, one request at a
time, so each client's request gate is never contended.
"""

import os
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from catalog_resolver.config import RESOLUTION
from catalog_resolver.exceptions import (
    ModelResolverError,
    ProviderRequestFailed,
    UnsupportedProvider,
)
from catalog_resolver.io.hashing import FileHasher
from catalog_resolver.logging_config import get_logger
from catalog_resolver.matching import best_match, entry_has_hash_match, find_matching_version
from catalog_resolver.models import (
    Capability,
    CatalogEntry,
    EnhancedMetadata,
    ModelFile,
    Provider,
    utc_now,
)
from catalog_resolver.naming import extract_model_name, is_model_file
from catalog_resolver.providers.base import CatalogClient
from catalog_resolver.providers.civitai import CivitaiClient
from catalog_resolver.providers.huggingface import HuggingFaceClient
from catalog_resolver.related import RelationshipBuilder
from catalog_resolver.store import MetadataStore

logger = get_logger(__name__)

PathLike = Union[str, os.PathLike]


class MetadataManager:
    """Resolves local model files to catalog entries and keeps the results.

    The manager is the only writer of its ``MetadataStore``. Its clients hold
    connection pools tied to one event loop, so close the manager (or use
    ``async with``) before reusing it from another ``asyncio.run`` call.
    """

    def __init__(
        self,
        store: MetadataStore,
        civitai_client: Optional[CatalogClient] = None,
        huggingface_client: Optional[CatalogClient] = None,
        hasher: Optional[FileHasher] = None,
        relationship_builder: Optional[RelationshipBuilder] = None,
        provider_order: Optional[Sequence[Union[str, Provider]]] = None,
    ):
        """
        Initialize the metadata manager

        Args:
            store: Store that receives every resolution result
            civitai_client: Client for the hash + name catalog
            huggingface_client: Client for the name-only catalog
            hasher: File fingerprinting service
            relationship_builder: Builder for parent / compatible links
            provider_order: Fallback order of providers for ``resolve``
        """
        self.store = store
        self._owned_clients: List[CatalogClient] = []
        if civitai_client is None:
            civitai_client = CivitaiClient()
            self._owned_clients.append(civitai_client)
        if huggingface_client is None:
            huggingface_client = HuggingFaceClient()
            self._owned_clients.append(huggingface_client)

        self.clients: Dict[Provider, CatalogClient] = {
            Provider.CIVITAI: civitai_client,
            Provider.HUGGINGFACE: huggingface_client,
        }
        self.hasher = hasher or FileHasher()
        self.relationship_builder = relationship_builder or RelationshipBuilder()
        self.provider_order = tuple(
            self._client_provider(value)
            for value in (provider_order or RESOLUTION.DEFAULT_PROVIDER_ORDER)
        )

    def _client_provider(self, value: Union[str, Provider]) -> Provider:
        provider = Provider.parse(value)
        if provider not in self.clients:
            raise UnsupportedProvider(str(value))
        return provider

    # ==================== Resolution ====================

    async def resolve(self, path: PathLike, force_refresh: bool = False) -> EnhancedMetadata:
        """
        Resolve one model file, falling back through providers in order

        Args:
            path: Local model file
            force_refresh: Ignore a fresh cached record

        Returns:
            The stored record; provider is UNKNOWN when nothing matched

        Raises:
            NotAModelFile: If the path does not carry a model extension
        """
        model_file = ModelFile.from_path(path)
        return await self._resolve(model_file, force_refresh, persist=True)

    async def resolve_with_provider(
        self,
        path: PathLike,
        provider: Union[str, Provider],
        force_refresh: bool = False,
    ) -> EnhancedMetadata:
        """
        Resolve one model file against exactly one provider

        The store is only written when the provider produced a match; otherwise
        an unknown record is returned and any stored record is left as it was.

        Raises:
            NotAModelFile: If the path does not carry a model extension
            UnsupportedProvider: If ``provider`` names no configured client
        """
        model_file = ModelFile.from_path(path)
        return await self._resolve_with_provider(
            model_file, self._client_provider(provider), force_refresh, persist=True
        )

    async def batch_resolve(self, paths: Iterable[PathLike]) -> Dict[str, EnhancedMetadata]:
        """
        Resolve many files sequentially, skipping anything that is not a model file

        The store is persisted every ``BATCH_PERSIST_INTERVAL`` files and once
        at completion. A file that fails is logged and left out of the result.

        Returns:
            Mapping of path to record for every resolved file
        """
        model_paths = [os.fspath(path) for path in paths if is_model_file(path)]
        logger.info("Batch resolving %d model files", len(model_paths))

        results: Dict[str, EnhancedMetadata] = {}
        for index, path in enumerate(model_paths, start=1):
            try:
                results[path] = await self._resolve(ModelFile.from_path(path), False, persist=False)
            except ModelResolverError as e:
                logger.error("Failed to resolve %s: %s", path, e)

            if index % RESOLUTION.BATCH_PERSIST_INTERVAL == 0:
                self.store.persist()

        self.store.persist()
        return results

    async def _resolve(
        self, model_file: ModelFile, force_refresh: bool, persist: bool
    ) -> EnhancedMetadata:
        cached = self.store.get(model_file.path)
        if cached is not None and not force_refresh and self.store.is_fresh(cached):
            logger.debug("Using cached metadata for %s", model_file.filename)
            return cached

        hashes = await self.hasher.hash_all(model_file.path)
        model_file.hash = hashes.get("SHA256", "")
        record = EnhancedMetadata.unknown(model_file, last_synced=utc_now())

        for provider in self.provider_order:
            client = self.clients[provider]
            candidates = await self._search(client, model_file, hashes)
            if candidates:
                await self._apply_match(record, client, candidates, hashes)
                break
        else:
            logger.info("No catalog match for %s", model_file.filename)

        self.store.set(model_file.path, record)
        if persist:
            self.store.persist()
        return record

    async def _resolve_with_provider(
        self,
        model_file: ModelFile,
        provider: Provider,
        force_refresh: bool,
        persist: bool,
    ) -> EnhancedMetadata:
        cached = self.store.get(model_file.path)
        if (
            cached is not None
            and cached.provider is provider
            and not force_refresh
            and self.store.is_fresh(cached)
        ):
            return cached

        client = self.clients[provider]
        hashes = await self.hasher.hash_all(model_file.path)
        model_file.hash = hashes.get("SHA256", "")
        record = EnhancedMetadata.unknown(model_file, last_synced=utc_now())

        candidates = await self._search(client, model_file, hashes)
        if not candidates:
            logger.info("No %s match for %s", provider.value, model_file.filename)
            return record

        await self._apply_match(record, client, candidates, hashes)
        self.store.set(model_file.path, record)
        if persist:
            self.store.persist()
        return record

    async def _search(
        self, client: CatalogClient, model_file: ModelFile, hashes: Mapping[str, str]
    ) -> List[CatalogEntry]:
        """Hash search when the client supports it, then name search if that found nothing."""
        sha256 = hashes.get("SHA256", "")
        if sha256 and client.supports(Capability.SEARCH_BY_HASH):
            try:
                candidates = await client.search_by_hash(sha256)
            except ProviderRequestFailed as e:
                logger.warning("%s hash search failed: %s", client.provider.value, e)
                candidates = []
            if candidates:
                return candidates

        if not client.supports(Capability.SEARCH_BY_NAME):
            return []
        query = extract_model_name(model_file.filename)
        if not query:
            return []
        try:
            return await client.search_by_name(query)
        except ProviderRequestFailed as e:
            logger.warning("%s name search failed for %r: %s", client.provider.value, query, e)
            return []

    async def _apply_match(
        self,
        record: EnhancedMetadata,
        client: CatalogClient,
        candidates: List[CatalogEntry],
        hashes: Mapping[str, str],
    ) -> None:
        """Score candidates, pick the version and attach relationships to ``record``."""
        hash_matches = [entry for entry in candidates if entry_has_hash_match(entry, hashes)]
        pool = hash_matches or candidates
        entry = best_match(pool, record.filename)

        version = find_matching_version(entry, record.filename, hashes)
        hash_verified = entry_has_hash_match(entry, hashes)
        record.attach(entry, version, verified=hash_verified or len(candidates) == 1)
        record.relationships = await self.relationship_builder.build(entry, client)
        logger.info(
            "Resolved %s -> %s %s (verified=%s)",
            record.filename,
            entry.provider.value,
            entry.id,
            record.is_verified,
        )

    # ==================== Catalog Queries ====================

    async def search_all(self, query: str) -> Dict[Provider, List[CatalogEntry]]:
        """
        Name search against every configured catalog

        A provider that fails contributes an empty list.

        Returns:
            Mapping of provider to its search results
        """
        results: Dict[Provider, List[CatalogEntry]] = {}
        for provider, client in self.clients.items():
            if not query.strip() or not client.supports(Capability.SEARCH_BY_NAME):
                results[provider] = []
                continue
            try:
                results[provider] = await client.search_by_name(query)
            except ProviderRequestFailed as e:
                logger.warning("%s search failed for %r: %s", provider.value, query, e)
                results[provider] = []
        return results

    async def get_entry(
        self, model_id: Union[int, str], provider: Union[str, Provider]
    ) -> Optional[CatalogEntry]:
        """
        Fetch one catalog entry by id from ``provider``

        Returns:
            The entry, or None when it does not exist or the request failed

        Raises:
            UnsupportedProvider: If ``provider`` names no configured client
        """
        client = self.clients[self._client_provider(provider)]
        try:
            return await client.get_by_id(model_id)
        except ProviderRequestFailed as e:
            logger.warning("%s lookup of %s failed: %s", client.provider.value, model_id, e)
            return None

    # ==================== Cached Access ====================

    def get_cached(self, path: PathLike) -> Optional[EnhancedMetadata]:
        """Return the stored record for ``path`` regardless of staleness."""
        return self.store.get(os.fspath(path))

    async def get_relationships(self, path: PathLike) -> List[EnhancedMetadata]:
        """
        Resolve ``path`` and return the locally known related records

        Returns:
            The parent record (when stored locally) followed by stored records
            for up to ``MAX_RELATED_LOOKUPS`` compatible ids
        """
        record = await self.resolve(path)
        if record.provider is Provider.UNKNOWN:
            return []

        related: List[EnhancedMetadata] = []
        relationships = record.relationships
        if relationships.parent_model_id is not None:
            parent = self.store.find_by_catalog_id(record.provider, relationships.parent_model_id)
            if parent is not None:
                related.append(parent)

        for compatible_id in relationships.compatible_models[: RESOLUTION.MAX_RELATED_LOOKUPS]:
            local = self.store.find_by_catalog_id(record.provider, compatible_id)
            if local is not None:
                related.append(local)
        return related

    # ==================== Maintenance ====================

    def set_api_key(
        self, api_key: Optional[str], provider: Union[str, Provider] = Provider.CIVITAI
    ) -> None:
        """Replace the bearer token used by one provider's client."""
        self.clients[self._client_provider(provider)].set_api_key(api_key)

    def clear_client_caches(self) -> int:
        return sum(client.clear_cache() for client in self.clients.values())

    async def refresh(self, path: Optional[PathLike] = None) -> Optional[EnhancedMetadata]:
        """
        Re-resolve one path, or drop every record and cached response

        Returns:
            The new record when ``path`` is given, otherwise None
        """
        if path is not None:
            return await self.resolve(path, force_refresh=True)

        removed = self.store.clear()
        cleared = self.clear_client_caches()
        logger.info("Cleared %d metadata records and %d cached responses", removed, cleared)
        self.store.persist()
        return None

    async def refresh_all(
        self, provider: Union[str, Provider, None] = None
    ) -> Dict[str, EnhancedMetadata]:
        """
        Re-resolve every stored model path, optionally against one provider only

        Returns:
            Mapping of path to the refreshed record
        """
        target = self._client_provider(provider) if provider is not None else None
        self.clear_client_caches()

        paths = [path for path in self.store.paths() if is_model_file(path)]
        logger.info(
            "Refreshing %d stored models%s",
            len(paths),
            f" from {target.value}" if target else "",
        )

        results: Dict[str, EnhancedMetadata] = {}
        for index, path in enumerate(paths, start=1):
            model_file = ModelFile.from_path(path)
            try:
                if target is None:
                    results[path] = await self._resolve(model_file, True, persist=False)
                else:
                    results[path] = await self._resolve_with_provider(
                        model_file, target, True, persist=False
                    )
            except ModelResolverError as e:
                logger.error("Failed to refresh %s: %s", path, e)

            if index % RESOLUTION.BATCH_PERSIST_INTERVAL == 0:
                self.store.persist()

        self.store.persist()
        return results

    def cleanup_non_model_entries(self) -> int:
        """
        Remove stored records whose path is not a model file

        Returns:
            Number of records removed
        """
        removed = self.store.remove_where(lambda path: not is_model_file(path))
        if removed:
            logger.info("Removed %d non-model entries from the metadata store", len(removed))
            self.store.persist()
        else:
            logger.debug("No non-model entries found in the metadata store")
        return len(removed)

    # ==================== Lifecycle ====================

    async def close(self) -> None:
        """Close the clients this manager created."""
        for client in self._owned_clients:
            await client.close()

    async def __aenter__(self) -> "MetadataManager":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()


def default_metadata_path(base_dir: Optional[Path] = None) -> Path:
    """Location of the metadata document under ``base_dir`` (cwd by default)."""
    return Path(base_dir or Path.cwd()) / "resolver-data" / RESOLUTION.METADATA_FILENAME
