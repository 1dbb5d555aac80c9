"""Content fingerprints for local model files.

Small files are hashed in full. Files at or above the large-file threshold
are fingerprinted from a fixed-size chunk at the start and, when the file is
big enough, an equal chunk at the end, which bounds I/O on multi-gigabyte
checkpoints at the cost of exactness. Digests are uppercase hex.
"""

from __future__ import annotations

import asyncio
import hashlib
import os
from pathlib import Path
from typing import Any, Dict, Union

import blake3

from catalog_resolver.config import HASHING
from catalog_resolver.exceptions import HashComputationFailed
from catalog_resolver.logging_config import get_logger

logger = get_logger(__name__)

# Algorithm name -> catalog hash field name
HASH_FIELDS: Dict[str, str] = {"sha256": "SHA256", "blake3": "BLAKE3"}

VERIFY_ALGORITHMS = ("sha256", "blake3", "autov2")


class StreamHasher:
    """Compute multiple hashes simultaneously during streaming I/O.

    Example:
        >>> hasher = StreamHasher(algorithms=["sha256", "blake3"])
        >>> with open("model.safetensors", "rb") as f:
        ...     for chunk in iter(lambda: f.read(8192 * 1024), b""):
        ...         hasher.update(chunk)
        >>> hashes = hasher.hexdigest()
    """

    def __init__(self, algorithms: list[str] | None = None) -> None:
        """Initialize the stream hasher.

        Args:
            algorithms: Hash algorithm names. Defaults to ["sha256", "blake3"].
        """
        if algorithms is None:
            algorithms = ["sha256", "blake3"]

        self.hashers: Dict[str, Any] = {}
        for algo in algorithms:
            if algo == "blake3":
                self.hashers[algo] = blake3.blake3()
            else:
                self.hashers[algo] = hashlib.new(algo)

    def update(self, data: bytes) -> None:
        for hasher in self.hashers.values():
            hasher.update(data)

    def hexdigest(self) -> Dict[str, str]:
        """Get hex digests for all configured hash algorithms (lowercase)."""
        return {algo: hasher.hexdigest() for algo, hasher in self.hashers.items()}


def hash_file_sha256(file_path: Path, chunk_size: int = HASHING.READ_CHUNK_BYTES) -> str:
    """Compute the full SHA256 hash of a file (lowercase hex).

    Raises:
        OSError: If there's an error reading the file
    """
    hasher = hashlib.sha256()
    with file_path.open("rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def hash_file_blake3(file_path: Path, chunk_size: int = HASHING.READ_CHUNK_BYTES) -> str:
    """Compute the full BLAKE3 hash of a file (lowercase hex).

    Raises:
        OSError: If there's an error reading the file
    """
    hasher = blake3.blake3()
    with file_path.open("rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


class FileHasher:
    """Best-effort file fingerprinting with size-dependent sampling.

    Attributes:
        threshold_bytes: Files at or above this size are sampled
        sample_bytes: Size of the head and tail samples
        algorithms: Algorithms computed by ``hash_all``
    """

    def __init__(
        self,
        threshold_bytes: int = HASHING.LARGE_FILE_THRESHOLD_BYTES,
        sample_bytes: int = HASHING.SAMPLE_CHUNK_BYTES,
        read_chunk_bytes: int = HASHING.READ_CHUNK_BYTES,
        algorithms: list[str] | None = None,
    ) -> None:
        self.threshold_bytes = threshold_bytes
        self.sample_bytes = sample_bytes
        self.read_chunk_bytes = read_chunk_bytes
        self.algorithms = algorithms or ["sha256", "blake3"]

    def is_sampled(self, size: int) -> bool:
        return size >= self.threshold_bytes

    def digest_sync(self, path: Union[str, os.PathLike]) -> Dict[str, str]:
        """Hash ``path`` with every configured algorithm.

        Returns:
            Catalog hash field name (SHA256, BLAKE3) -> uppercase hex digest

        Raises:
            HashComputationFailed: If the file cannot be read
        """
        file_path = Path(path)
        hasher = StreamHasher(algorithms=self.algorithms)
        try:
            with file_path.open("rb") as f:
                size = os.fstat(f.fileno()).st_size
                if self.is_sampled(size):
                    logger.debug(
                        "Large file (%d MB), using sampled hash for %s",
                        size // (1024 * 1024),
                        file_path,
                    )
                    hasher.update(f.read(self.sample_bytes))
                    if size > self.sample_bytes * 2:
                        f.seek(size - self.sample_bytes)
                        hasher.update(f.read(self.sample_bytes))
                else:
                    for chunk in iter(lambda: f.read(self.read_chunk_bytes), b""):
                        hasher.update(chunk)
        except OSError as exc:
            raise HashComputationFailed(str(file_path)) from exc

        return {
            HASH_FIELDS.get(algo, algo.upper()): digest.upper()
            for algo, digest in hasher.hexdigest().items()
        }

    async def hash_all(self, path: Union[str, os.PathLike]) -> Dict[str, str]:
        """Hash ``path`` off the event loop; returns {} when the file is unreadable."""
        try:
            return await asyncio.to_thread(self.digest_sync, path)
        except HashComputationFailed as exc:
            logger.warning("%s: %s", exc, exc.__cause__)
            return {}

    async def hash(self, path: Union[str, os.PathLike]) -> str:
        """Return the uppercase SHA256 fingerprint of ``path``, or "" on failure."""
        hashes = await self.hash_all(path)
        return hashes.get("SHA256", "")

    def full_digest_sync(self, path: Union[str, os.PathLike], algorithm: str = "sha256") -> str:
        """Hash the whole file regardless of size, as a catalog would.

        ``autov2`` is the first 10 hex characters of the SHA256 digest.

        Returns:
            Uppercase hex digest

        Raises:
            ValueError: If the algorithm is not sha256, blake3 or autov2
            HashComputationFailed: If the file cannot be read
        """
        algo = algorithm.lower()
        if algo not in VERIFY_ALGORITHMS:
            raise ValueError(f"Unsupported hash algorithm: {algorithm}")

        file_path = Path(path)
        try:
            if algo == "blake3":
                digest = hash_file_blake3(file_path, self.read_chunk_bytes)
            else:
                digest = hash_file_sha256(file_path, self.read_chunk_bytes)
        except OSError as exc:
            raise HashComputationFailed(str(file_path)) from exc

        if algo == "autov2":
            digest = digest[:10]
        return digest.upper()

    async def verify(
        self, path: Union[str, os.PathLike], expected: str, algorithm: str = "sha256"
    ) -> bool:
        """Check ``path`` against a published hash (case-insensitive).

        Sampling never applies here, so large files are read in full.

        Returns:
            True on a match; False on a mismatch or when the file is unreadable

        Raises:
            ValueError: If the algorithm is not supported
        """
        if algorithm.lower() not in VERIFY_ALGORITHMS:
            raise ValueError(f"Unsupported hash algorithm: {algorithm}")
        try:
            actual = await asyncio.to_thread(self.full_digest_sync, path, algorithm)
        except HashComputationFailed as exc:
            logger.warning("%s: %s", exc, exc.__cause__)
            return False
        matched = actual == expected.strip().upper()
        if not matched:
            logger.info("Hash mismatch for %s (%s)", path, algorithm)
        return matched
