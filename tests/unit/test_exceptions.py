"""
Unit tests for custom exception classes.

Tests verify:
- Exception hierarchy and inheritance
- Exception message formatting with optional parameters
- Exception attributes are properly set
"""

import pytest

from catalog_resolver.exceptions import (
    HashComputationFailed,
    ModelResolverError,
    NotAModelFile,
    ProviderRequestFailed,
    StoreIOFailure,
    UnsupportedProvider,
)


@pytest.mark.unit
class TestModelResolverError:
    """Tests for the base exception class."""

    def test_base_exception_is_exception_subclass(self):
        assert issubclass(ModelResolverError, Exception)

    @pytest.mark.parametrize(
        "error",
        [
            NotAModelFile("/m/a.txt"),
            ProviderRequestFailed("failed"),
            HashComputationFailed("/m/a.safetensors"),
            StoreIOFailure("failed"),
            UnsupportedProvider("modelscope"),
        ],
    )
    def test_can_catch_all_resolver_errors(self, error):
        with pytest.raises(ModelResolverError):
            raise error


@pytest.mark.unit
class TestProviderRequestFailed:
    def test_simple_message(self):
        assert str(ProviderRequestFailed("civitai API error")) == "civitai API error"

    def test_full_message(self):
        error = ProviderRequestFailed(
            "civitai API error",
            provider="civitai",
            url="https://civitai.com/api/v1/models",
            status_code=503,
        )

        assert str(error) == (
            "civitai API error | provider: civitai | "
            "URL: https://civitai.com/api/v1/models | Status: 503"
        )
        assert error.status_code == 503
        assert error.provider == "civitai"


@pytest.mark.unit
class TestOtherErrors:
    def test_not_a_model_file(self):
        error = NotAModelFile("/m/notes.txt")
        assert error.path == "/m/notes.txt"
        assert "/m/notes.txt" in str(error)

    def test_store_io_failure_with_path(self):
        error = StoreIOFailure("Error writing metadata", "/data/model-metadata.json")
        assert str(error) == "Error writing metadata (file: /data/model-metadata.json)"
        assert error.file_path == "/data/model-metadata.json"

    def test_store_io_failure_without_path(self):
        assert StoreIOFailure("broken").file_path is None

    def test_unsupported_provider(self):
        assert UnsupportedProvider("modelscope").provider == "modelscope"
