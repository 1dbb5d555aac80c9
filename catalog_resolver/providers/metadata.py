"""Payload helpers shared by the catalog adapters."""

from __future__ import annotations

from typing import Any, Iterable, Optional

from catalog_resolver.logging_config import get_logger

logger = get_logger(__name__)

KIND_TAG_MAPPING: dict[str, list[str]] = {
    "text-to-image": ["text-to-image", "text2img", "text-to-img"],
    "image-to-image": ["image-to-image", "img2img", "image-to-img"],
    "text-to-video": ["text-to-video", "text2video"],
    "text-to-audio": ["text-to-audio", "text-to-speech", "tts"],
    "audio-to-text": [
        "audio-to-text",
        "speech-recognition",
        "automatic-speech-recognition",
        "asr",
    ],
}

# Pipelines that produce images; these get the type boost when scoring
IMAGE_GENERATION_PIPELINES: frozenset[str] = frozenset(
    {
        "text-to-image",
        "image-to-image",
        "unconditional-image-generation",
    }
)

ADAPTER_TAGS: frozenset[str] = frozenset({"lora", "peft", "lycoris", "textual_inversion"})


def infer_kind_from_tags(tags: Iterable[str]) -> str:
    """Infer model kind/task from tags.

    Returns:
        Inferred pipeline kind or 'unknown' if not determinable
    """
    normalized = [tag.lower() for tag in tags]

    for kind, needles in KIND_TAG_MAPPING.items():
        for tag in normalized:
            if any(needle in tag for needle in needles):
                return kind

    return "unknown"


def coerce_int(value: object) -> int:
    """Coerce a value to integer, returning 0 on failure."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError as exc:
            logger.debug("Failed to coerce string to int: %r - %s", value, exc)
            return 0
    return 0


def coerce_float(value: object) -> Optional[float]:
    """Coerce a value to float, returning None when absent or invalid."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError as exc:
            logger.debug("Failed to coerce string to float: %r - %s", value, exc)
            return None
    return None


def coerce_str_list(value: Any) -> list[str]:
    """Return the string members of a list payload (other values are ignored)."""
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if isinstance(item, (str, int, float))]


def as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}
