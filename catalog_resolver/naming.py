"""Naming utilities for local model files.

Provides model-file detection, the normalization used for fuzzy name
comparison, and the search-name extraction used to query catalogs.
"""

from __future__ import annotations

import os
import re
from typing import Union

from catalog_resolver.logging_config import get_logger

logger = get_logger(__name__)

MODEL_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".safetensors",
        ".ckpt",
        ".pth",
        ".pt",
        ".gguf",
        ".model",
        ".bin",
        ".h5",
        ".onnx",
        ".tflite",
        ".pb",
        ".trt",
    }
)

# Characters allowed in normalized names (alphanumeric, underscore, hyphen)
_ALLOWED_PATTERN = re.compile(r"[^A-Za-z0-9_-]")

_NON_ALNUM = re.compile(r"[^a-z0-9]")

_WEIGHT_EXTENSION = re.compile(r"\.(safetensors|ckpt|pt|pth|bin)$", re.IGNORECASE)
_COMMON_PREFIX = re.compile(r"^(sd_xl_|sdxl_|sd_|v\d+_)", re.IGNORECASE)
_COMMON_SUFFIX = re.compile(r"_(fp16|fp32|bf16|pruned|ema|inpainting)$", re.IGNORECASE)
_VERSION_SUFFIX = re.compile(r"_v?\d+(\.\d+)?$", re.IGNORECASE)
_CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z])")
_SEPARATORS = re.compile(r"[_-]")
_WORD_SPLIT = re.compile(r"[\s_-]")


def is_model_file(path: Union[str, os.PathLike]) -> bool:
    """Return True when ``path`` carries a recognized model-file extension."""
    extension = os.path.splitext(os.fspath(path))[1].lower()
    return extension in MODEL_EXTENSIONS


def normalize_name(value: str, max_length: int = 128, fallback: str = "model") -> str:
    """Normalize a model name to a filesystem-safe ASCII form."""
    cleaned = _ALLOWED_PATTERN.sub("", value.strip())
    if not cleaned:
        cleaned = fallback
    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length]
    return cleaned


def normalize_for_match(value: str) -> str:
    """Lower-case ``value`` and strip every non-alphanumeric character."""
    return _NON_ALNUM.sub("", value.lower())


def strip_model_affixes(name: str) -> str:
    """Remove weight extensions, common prefixes and precision/version suffixes."""
    cleaned = _WEIGHT_EXTENSION.sub("", name)
    cleaned = _COMMON_PREFIX.sub("", cleaned)
    cleaned = _COMMON_SUFFIX.sub("", cleaned)
    cleaned = _VERSION_SUFFIX.sub("", cleaned)
    return cleaned


def extract_model_name(filename: str) -> str:
    """Derive a catalog search query from a local filename.

    ``cyberRealistic_v40.safetensors`` -> ``cyberRealistic``;
    ``epic_photo-mix_fp16.ckpt`` -> ``epic photo mix``.
    CamelCase names are kept intact so catalog search sees the original token.
    """
    name = strip_model_affixes(filename)
    if _CAMEL_BOUNDARY.search(name):
        return name.strip()
    return _SEPARATORS.sub(" ", name).strip()


def generate_search_variations(original_name: str) -> list[str]:
    """Build de-duplicated query variations for a catalog name search.

    Order is stable: the raw name first, then progressively looser forms.
    Variations shorter than two characters are dropped.
    """
    variations: dict[str, None] = {}

    def add(value: str) -> None:
        variations.setdefault(value.strip(), None)

    add(original_name)
    add(original_name.lower())

    clean_name = strip_model_affixes(original_name)
    add(clean_name)
    add(clean_name.lower())

    camel_words = _CAMEL_BOUNDARY.sub(r"\1 \2", clean_name)
    add(camel_words)
    add(camel_words.lower())

    spaced = _SEPARATORS.sub(" ", clean_name)
    add(spaced)
    add(spaced.lower())

    no_spaces = re.sub(r"[\s_-]", "", clean_name)
    add(no_spaces)
    add(no_spaces.lower())

    main_word = _WORD_SPLIT.split(clean_name)[0] if clean_name else ""
    if len(main_word) >= 3:
        add(main_word)
        add(main_word.lower())

    result = [value for value in variations if len(value) >= 2]
    logger.debug("Search variations for %r: %s", original_name, result)
    return result
