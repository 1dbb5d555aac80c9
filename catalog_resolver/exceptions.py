"""
Custom exceptions for the catalog resolver.

Defines a small hierarchy so callers can tell a bad input (not a model file,
unsupported provider) apart from best-effort enrichment failures that the
resolver normally absorbs (provider requests, hashing, store I/O).
"""

from typing import Optional


class ModelResolverError(Exception):
    """
    Base exception for all catalog resolver errors.

    Catching this class catches every resolver-specific failure while letting
    system errors (KeyboardInterrupt, SystemExit) bubble up.
    """

    pass


class NotAModelFile(ModelResolverError):
    """
    Raised when a path does not carry a recognized model-file extension.

    Fatal to the call that received it; callers are expected to filter their
    inputs with ``is_model_file`` first.

    Args:
        path: The rejected path
    """

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Not a model file: {path}")


class ProviderRequestFailed(ModelResolverError):
    """
    Raised when a catalog request fails.

    This includes:
    - Non-2xx HTTP responses (after the unauthenticated retry on 401)
    - Connection errors, timeouts and other transport faults
    - Response bodies that are not valid JSON

    Zero search results are never an error.

    Args:
        message: Human-readable error description
        provider: Catalog name (civitai, huggingface)
        url: The URL that failed (optional)
        status_code: HTTP status code if applicable (optional)
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.provider = provider
        self.url = url
        self.status_code = status_code
        error_parts = [message]
        if provider:
            error_parts.append(f"provider: {provider}")
        if url:
            error_parts.append(f"URL: {url}")
        if status_code:
            error_parts.append(f"Status: {status_code}")
        super().__init__(" | ".join(error_parts))


class HashComputationFailed(ModelResolverError):
    """
    Raised when a file cannot be read for hashing.

    The hasher converts this into an empty digest; resolution then continues
    without hash-based matching.

    Args:
        path: The file that could not be hashed
    """

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Failed to hash {path}")


class StoreIOFailure(ModelResolverError):
    """
    Raised when the persisted metadata document cannot be read or written.

    This includes:
    - Unreadable or corrupted JSON documents
    - Permission and disk errors while writing
    - Records that cannot be serialized

    Args:
        message: Human-readable error description
        file_path: The metadata file that caused the error (optional)
    """

    def __init__(self, message: str, file_path: Optional[str] = None):
        self.file_path = file_path
        if file_path:
            super().__init__(f"{message} (file: {file_path})")
        else:
            super().__init__(message)


class UnsupportedProvider(ModelResolverError):
    """
    Raised when an operation targets a provider that is not configured.

    Args:
        provider: The requested provider value
    """

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Unsupported provider: {provider}")
