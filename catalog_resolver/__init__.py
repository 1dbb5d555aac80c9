"""Resolve local model files to CivitAI and Hugging Face catalog entries."""  # pragma: no cover

from catalog_resolver.__version__ import __version__  # pragma: no cover
from catalog_resolver.exceptions import (  # pragma: no cover
    HashComputationFailed,
    ModelResolverError,
    NotAModelFile,
    ProviderRequestFailed,
    StoreIOFailure,
    UnsupportedProvider,
)
from catalog_resolver.manager import MetadataManager  # pragma: no cover
from catalog_resolver.models import (  # pragma: no cover
    CatalogEntry,
    CatalogFile,
    CatalogVersion,
    EnhancedMetadata,
    ModelFile,
    Provider,
    Relationships,
)
from catalog_resolver.store import MetadataStore  # pragma: no cover

__all__ = [  # pragma: no cover
    "__version__",
    "MetadataManager",
    "MetadataStore",
    "CatalogEntry",
    "CatalogFile",
    "CatalogVersion",
    "EnhancedMetadata",
    "ModelFile",
    "Provider",
    "Relationships",
    "ModelResolverError",
    "NotAModelFile",
    "ProviderRequestFailed",
    "HashComputationFailed",
    "StoreIOFailure",
    "UnsupportedProvider",
]
