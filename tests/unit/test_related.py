"""Tests for relationship discovery."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from catalog_resolver.exceptions import ProviderRequestFailed
from catalog_resolver.models import CatalogEntry, ModelCategory, Provider
from catalog_resolver.related import (
    RelationshipBuilder,
    extract_base_model_from_tags,
    extract_repo_id,
    normalize_family_token,
)


def entry(entry_id, category, family="SD 1.5", provider=Provider.CIVITAI):
    return CatalogEntry(
        provider=provider, id=entry_id, name=f"model-{entry_id}", category=category, family=family
    )


def fake_client(related=None, error=None, supports=True):
    client = MagicMock()
    client.supports.return_value = supports
    client.find_related = AsyncMock(return_value=related or [], side_effect=error)
    return client


@pytest.mark.unit
class TestExtractRepoId:
    """Coverage for repo id extraction helpers."""

    def test_extracts_from_hf_url(self) -> None:
        assert extract_repo_id("https://huggingface.co/org/model") == "org/model"

    def test_extracts_from_nested_dict(self) -> None:
        assert extract_repo_id({"repoId": "org/model"}) == "org/model"

    def test_extracts_from_list_payload(self) -> None:
        assert extract_repo_id([{"model": "org/model"}]) == "org/model"

    def test_returns_none_for_invalid(self) -> None:
        assert extract_repo_id("not-a-repo") is None
        assert extract_repo_id(None) is None


@pytest.mark.unit
class TestBaseModelTags:
    """Coverage for Hub base_model tags."""

    def test_adapter_tag(self) -> None:
        tags = ["lora", "base_model:adapter:black-forest-labs/FLUX.1-dev"]
        assert extract_base_model_from_tags(tags) == "black-forest-labs/FLUX.1-dev"

    def test_plain_base_model_tag(self) -> None:
        assert extract_base_model_from_tags(["base_model:org/model"]) == "org/model"

    def test_no_tag(self) -> None:
        assert extract_base_model_from_tags(["diffusers", "text-to-image"]) is None

    def test_normalize_family_token(self) -> None:
        assert normalize_family_token("SD 1.5") == "sd15"
        assert normalize_family_token("Unknown") == ""
        assert normalize_family_token("") == ""


@pytest.mark.unit
class TestRelationshipBuilder:
    """Coverage for parent / compatible discovery."""

    def test_base_model_records_compatible_adapters(self) -> None:
        checkpoint = entry(1, ModelCategory.BASE)
        client = fake_client([entry(11, ModelCategory.ADAPTER), entry(12, ModelCategory.ADAPTER)])

        relationships = asyncio.run(RelationshipBuilder().build(checkpoint, client))

        assert relationships.compatible_models == [11, 12]
        assert relationships.parent_model_id is None
        assert relationships.base_model == "SD 1.5"
        client.find_related.assert_awaited_once_with("SD 1.5", ModelCategory.ADAPTER)

    def test_base_model_excludes_itself(self) -> None:
        checkpoint = entry(1, ModelCategory.BASE)
        client = fake_client([entry(1, ModelCategory.BASE), entry(11, ModelCategory.ADAPTER)])

        relationships = asyncio.run(RelationshipBuilder().build(checkpoint, client))

        assert relationships.compatible_models == [11]

    def test_compatible_models_can_be_capped(self) -> None:
        checkpoint = entry(1, ModelCategory.BASE)
        client = fake_client([entry(i, ModelCategory.ADAPTER) for i in range(10, 20)])

        relationships = asyncio.run(RelationshipBuilder(max_compatible=3).build(checkpoint, client))

        assert relationships.compatible_models == [10, 11, 12]

    def test_adapter_records_first_parent(self) -> None:
        lora = entry(5, ModelCategory.ADAPTER)
        client = fake_client([entry(100, ModelCategory.BASE), entry(101, ModelCategory.BASE)])

        relationships = asyncio.run(RelationshipBuilder().build(lora, client))

        assert relationships.parent_model_id == 100
        assert relationships.compatible_models == []
        client.find_related.assert_awaited_once_with("SD 1.5", ModelCategory.BASE)

    def test_adapter_without_parent(self) -> None:
        relationships = asyncio.run(
            RelationshipBuilder().build(entry(5, ModelCategory.ADAPTER), fake_client([]))
        )
        assert relationships.parent_model_id is None

    def test_unknown_family_skips_lookup(self) -> None:
        client = fake_client()

        relationships = asyncio.run(
            RelationshipBuilder().build(entry(1, ModelCategory.BASE, family=""), client)
        )

        assert relationships.base_model == "Unknown"
        client.find_related.assert_not_called()

    def test_other_category_skips_lookup(self) -> None:
        client = fake_client()
        asyncio.run(RelationshipBuilder().build(entry(1, ModelCategory.OTHER), client))
        client.find_related.assert_not_called()

    def test_client_without_capability(self) -> None:
        client = fake_client(supports=False)
        asyncio.run(RelationshipBuilder().build(entry(1, ModelCategory.BASE), client))
        client.find_related.assert_not_called()

    def test_lookup_failure_degrades_to_empty(self) -> None:
        client = fake_client(error=ProviderRequestFailed("down", provider="civitai"))

        relationships = asyncio.run(RelationshipBuilder().build(entry(1, ModelCategory.BASE), client))

        assert relationships.compatible_models == []
        assert relationships.base_model == "SD 1.5"
