"""
Pytest configuration and shared fixtures for catalog resolver tests.

This file is automatically loaded by pytest and provides reusable fixtures
for all tests in the test suite. Catalog traffic never leaves the process:
clients are wired to ``httpx.MockTransport`` handlers that record every
request and answer with canned JSON.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from catalog_resolver.network.http_client import AsyncHttpClient
from catalog_resolver.providers.civitai import CivitaiClient
from catalog_resolver.providers.huggingface import HuggingFaceClient

Responder = Callable[[httpx.Request], Any]


class RecordingHandler:
    """MockTransport handler that records requests and delegates to a responder.

    The responder may return an ``httpx.Response`` or any JSON-serializable
    value, which is sent back with status 200.
    """

    def __init__(self, responder: Responder) -> None:
        self.responder = responder
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        result = self.responder(request)
        if isinstance(result, httpx.Response):
            return result
        return httpx.Response(200, json=result)

    @property
    def count(self) -> int:
        return len(self.requests)

    def params(self, index: int = -1) -> dict[str, str]:
        return dict(self.requests[index].url.params)


def empty_civitai(request: httpx.Request) -> Any:
    return {"items": [], "metadata": {}}


def empty_huggingface(request: httpx.Request) -> Any:
    return []


# ==================== Client Fixtures ====================


@pytest.fixture
def make_client() -> Callable[..., tuple[Any, RecordingHandler]]:
    """
    Build a catalog client wired to a recording mock transport.

    Example:
        def test_search(make_client):
            client, handler = make_client(CivitaiClient, lambda request: {"items": []})
    """

    def factory(
        client_cls: type,
        responder: Responder,
        api_key: Optional[str] = "",
    ) -> tuple[Any, RecordingHandler]:
        handler = RecordingHandler(responder)
        http_client = AsyncHttpClient(transport=httpx.MockTransport(handler))
        client = client_cls(api_key=api_key, min_interval=0, http_client=http_client)
        return client, handler

    return factory


@pytest.fixture
def civitai_client(make_client) -> tuple[CivitaiClient, RecordingHandler]:
    """CivitAI client that answers every request with zero results."""
    return make_client(CivitaiClient, empty_civitai)


@pytest.fixture
def huggingface_client(make_client) -> tuple[HuggingFaceClient, RecordingHandler]:
    """Hub client that answers every request with zero results."""
    return make_client(HuggingFaceClient, empty_huggingface)


# ==================== File Fixtures ====================


@pytest.fixture
def model_file(tmp_path: Path) -> Callable[..., Path]:
    """
    Create small model files with known content.

    Example:
        def test_hash(model_file):
            path = model_file("cyberrealistic_v40.safetensors", b"weights")
    """

    def factory(name: str, content: bytes = b"model weights") -> Path:
        path = tmp_path / "models" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    return factory


# ==================== Sample Data Fixtures ====================


@pytest.fixture
def civitai_checkpoint_payload() -> Callable[..., dict]:
    """
    Provide a CivitAI ``/models`` item factory for a checkpoint with two versions.

    The second version holds the file whose SHA256 is ``matching_sha256``;
    the first version's file shares the local filename but not its hash.

    Returns:
        Factory producing a dictionary in the CivitAI API format
    """

    def factory(
        matching_sha256: str = "F" * 64,
        model_id: int = 4201,
        name: str = "CyberRealistic",
        model_type: str = "Checkpoint",
    ) -> dict:
        return {
            "id": model_id,
            "name": name,
            "type": model_type,
            "creator": {"username": "Cyberdelia"},
            "stats": {"downloadCount": 150000, "favoriteCount": 9000, "rating": 4.9},
            "tags": ["photorealistic", "base model"],
            "description": "Realistic checkpoint",
            "modelVersions": [
                {
                    "id": 9001,
                    "name": "v5.0",
                    "baseModel": "SD 1.5",
                    "files": [
                        {
                            "name": "cyberrealistic_v40.safetensors",
                            "sizeKB": 2082642.5,
                            "primary": True,
                            "hashes": {"SHA256": "A" * 64, "AutoV2": "AAAAAAAAAA"},
                        }
                    ],
                },
                {
                    "id": 9000,
                    "name": "v4.0",
                    "baseModel": "SD 1.5",
                    "files": [
                        {
                            "name": "cyberrealistic_v4_final.safetensors",
                            "sizeKB": 2082642.5,
                            "primary": True,
                            "hashes": {"SHA256": matching_sha256},
                        }
                    ],
                },
            ],
        }

    return factory


@pytest.fixture
def huggingface_model_payload() -> Callable[..., dict]:
    """Provide a Hub ``/api/models`` item factory."""

    def factory(
        repo_id: str = "stabilityai/stable-diffusion-xl-base-1.0",
        downloads: int = 2_000_000,
        likes: int = 6000,
        pipeline_tag: Optional[str] = "text-to-image",
        tags: Optional[list[str]] = None,
        siblings: Optional[list[dict]] = None,
    ) -> dict:
        return {
            "id": repo_id,
            "author": repo_id.split("/")[0],
            "downloads": downloads,
            "likes": likes,
            "pipeline_tag": pipeline_tag,
            "tags": tags if tags is not None else ["diffusers", "text-to-image"],
            "siblings": siblings
            if siblings is not None
            else [{"rfilename": f"{repo_id.split('/')[-1]}.safetensors"}],
        }

    return factory


# ==================== Pytest Configuration ====================


def pytest_configure(config):
    """
    Register custom pytest markers.

    This allows using @pytest.mark.unit, @pytest.mark.integration, etc. without
    warnings.
    """
    config.addinivalue_line("markers", "unit: Unit tests with mocked external dependencies")
    config.addinivalue_line("markers", "integration: Integration tests with real file I/O")
    config.addinivalue_line("markers", "slow: Tests that take longer than 1 second")


@pytest.fixture(autouse=True)
def isolate_catalog_credentials(monkeypatch):
    """
    Keep real catalog tokens out of tests.

    The fixture runs automatically (autouse=True) for all tests.
    """
    monkeypatch.delenv("CIVITAI_API_KEY", raising=False)
    monkeypatch.delenv("HF_TOKEN", raising=False)
