"""I/O operations for the catalog resolver."""  # pragma: no cover

from __future__ import annotations  # pragma: no cover

from catalog_resolver.io.hashing import (  # pragma: no cover
    FileHasher,
    StreamHasher,
    hash_file_blake3,
    hash_file_sha256,
)

__all__ = [  # pragma: no cover
    "FileHasher",
    "StreamHasher",
    "hash_file_blake3",
    "hash_file_sha256",
]
