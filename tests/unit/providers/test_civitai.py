"""Tests for the CivitAI client and payload adapter."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from catalog_resolver.models import ModelCategory, Provider
from catalog_resolver.providers.civitai import (
    CivitaiClient,
    civitai_category,
    parse_civitai_model,
)


@pytest.mark.unit
class TestParseCivitaiModel:
    """Tests for the /models payload adapter."""

    def test_parses_entry_fields(self, civitai_checkpoint_payload):
        entry = parse_civitai_model(civitai_checkpoint_payload())

        assert entry.provider is Provider.CIVITAI
        assert entry.id == 4201
        assert entry.name == "CyberRealistic"
        assert entry.kind == "Checkpoint"
        assert entry.category is ModelCategory.BASE
        assert entry.creator == "Cyberdelia"
        assert entry.download_count == 150000
        assert entry.favorite_count == 9000
        assert entry.rating == 4.9
        assert entry.family == "SD 1.5"

    def test_parses_versions_and_files(self, civitai_checkpoint_payload):
        entry = parse_civitai_model(civitai_checkpoint_payload(matching_sha256="B" * 64))

        assert [version.id for version in entry.versions] == [9001, 9000]
        first_file = entry.versions[0].files[0]
        assert first_file.name == "cyberrealistic_v40.safetensors"
        assert first_file.primary is True
        assert first_file.hashes["AutoV2"] == "AAAAAAAAAA"
        assert entry.versions[1].files[0].hashes == {"SHA256": "B" * 64}

    def test_raw_payload_round_trips(self, civitai_checkpoint_payload):
        payload = civitai_checkpoint_payload()
        assert parse_civitai_model(payload).to_dict() == payload

    def test_tag_objects_are_flattened(self):
        entry = parse_civitai_model({"id": 1, "name": "x", "tags": [{"name": "anime"}, "style"]})
        assert entry.tags == ["anime", "style"]

    def test_missing_fields_default(self):
        entry = parse_civitai_model({"id": 5})
        assert entry.name == ""
        assert entry.download_count == 0
        assert entry.rating is None
        assert entry.versions == []
        assert entry.family == ""

    @pytest.mark.parametrize(
        "model_type,category",
        [
            ("Checkpoint", ModelCategory.BASE),
            ("LORA", ModelCategory.ADAPTER),
            ("LoCon", ModelCategory.ADAPTER),
            ("TextualInversion", ModelCategory.OTHER),
        ],
    )
    def test_category(self, model_type, category):
        assert civitai_category(model_type) is category


@pytest.mark.unit
class TestCivitaiClient:
    """Tests for CivitAI requests."""

    def test_default_base_url(self, civitai_client):
        client, _ = civitai_client
        assert client.base_url == "https://civitai.com/api/v1"

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("CIVITAI_API_KEY", "env-key")
        assert CivitaiClient().has_api_key is True

    def test_search_by_hash_request(self, make_client, civitai_checkpoint_payload):
        client, handler = make_client(
            CivitaiClient, lambda r: {"items": [civitai_checkpoint_payload()]}
        )

        results = asyncio.run(client.search_by_hash("ABCDEF"))

        assert [entry.id for entry in results] == [4201]
        assert handler.requests[0].url.path == "/api/v1/models"
        assert handler.params() == {"hash": "ABCDEF", "limit": "10"}

    def test_search_by_hash_empty_hash_skips_request(self, civitai_client):
        client, handler = civitai_client
        assert asyncio.run(client.search_by_hash("")) == []
        assert handler.count == 0

    def test_search_by_name_queries_each_variation(self, civitai_client):
        client, handler = civitai_client

        asyncio.run(client.search_by_name("cyberRealistic"))

        queries = [request.url.params["query"] for request in handler.requests]
        assert queries == ["cyberRealistic", "cyberrealistic", "cyber Realistic", "cyber realistic"]

    def test_search_by_name_merges_results_by_id(self, make_client):
        def responder(request: httpx.Request):
            query = request.url.params["query"]
            if query == "cyberRealistic":
                return {"items": [{"id": 1, "name": "A"}, {"id": 2, "name": "B"}]}
            return {"items": [{"id": 2, "name": "B duplicate"}, {"id": 3, "name": "C"}]}

        client, _ = make_client(CivitaiClient, responder)

        results = asyncio.run(client.search_by_name("cyberRealistic"))

        assert [entry.id for entry in results] == [1, 2, 3]
        assert results[1].name == "B"

    def test_search_by_name_tolerates_partial_failure(self, make_client):
        def responder(request: httpx.Request):
            if request.url.params["query"] == "cyberRealistic":
                return httpx.Response(500)
            return {"items": [{"id": 9, "name": "Cyber"}]}

        client, _ = make_client(CivitaiClient, responder)

        assert [entry.id for entry in asyncio.run(client.search_by_name("cyberRealistic"))] == [9]

    def test_search_by_name_raises_when_all_variations_fail(self, make_client):
        client, _ = make_client(CivitaiClient, lambda r: httpx.Response(502))

        from catalog_resolver.exceptions import ProviderRequestFailed

        with pytest.raises(ProviderRequestFailed):
            asyncio.run(client.search_by_name("cyberRealistic"))

    def test_get_version(self, make_client):
        client, handler = make_client(
            CivitaiClient, lambda r: {"id": 9000, "name": "v4.0", "baseModel": "SDXL 1.0"}
        )

        version = asyncio.run(client.get_version(9000))

        assert version is not None
        assert version.base_model == "SDXL 1.0"
        assert handler.requests[0].url.path == "/api/v1/model-versions/9000"

    def test_find_related_adapters(self, make_client):
        client, handler = make_client(
            CivitaiClient, lambda r: {"items": [{"id": 77, "name": "Detail LoRA", "type": "LORA"}]}
        )

        results = asyncio.run(client.find_related("SD 1.5", ModelCategory.ADAPTER))

        assert [entry.id for entry in results] == [77]
        assert handler.params() == {
            "types": "LORA",
            "baseModels": "SD 1.5",
            "sort": "Highest Rated",
            "limit": "50",
        }

    def test_find_related_other_category_skips_request(self, civitai_client):
        client, handler = civitai_client
        assert asyncio.run(client.find_related("SD 1.5", ModelCategory.OTHER)) == []
        assert handler.count == 0
