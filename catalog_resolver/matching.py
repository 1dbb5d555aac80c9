"""Ranking of catalog candidates against a local filename.

Exact or near-exact name matches should almost always win; popularity and
quality signals break ties among similarly named entries (many community
re-uploads share a base name). Each provider has its own weight profile.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional, Sequence, Union

from catalog_resolver.logging_config import get_logger
from catalog_resolver.models import CatalogEntry, CatalogVersion, Provider
from catalog_resolver.naming import normalize_for_match
from catalog_resolver.providers.metadata import IMAGE_GENERATION_PIPELINES

logger = get_logger(__name__)

# Substring containment scores below an exact match
CONTAINMENT_SCORE = 0.8
# Shorter strings fall back to edit distance instead of containment
MIN_CONTAINMENT_LENGTH = 3
VERSION_NAME_THRESHOLD = 0.8

# Catalog hash fields in the order they are trusted
HASH_FIELD_PRIORITY = ("SHA256", "BLAKE3", "AutoV2", "AutoV1")
_AUTOV2_LENGTH = 10


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance between ``a`` and ``b`` (insert, delete, substitute)."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(current[j - 1] + 1, previous[j] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def name_similarity(first: str, second: str) -> float:
    """Similarity in [0, 1] between two names after normalization.

    Exact match scores 1.0, containment either way 0.8, otherwise one minus
    the edit distance relative to the longer string.
    """
    norm_a = normalize_for_match(first)
    norm_b = normalize_for_match(second)

    if not norm_a or not norm_b:
        return 0.0
    if norm_a == norm_b:
        return 1.0
    shorter = min(len(norm_a), len(norm_b))
    if shorter >= MIN_CONTAINMENT_LENGTH and (norm_a in norm_b or norm_b in norm_a):
        return CONTAINMENT_SCORE

    max_length = max(len(norm_a), len(norm_b))
    return 1 - levenshtein_distance(norm_a, norm_b) / max_length


def entry_name_score(entry: CatalogEntry, target_filename: str) -> float:
    """Best similarity between the target and the entry name or any of its files."""
    score = name_similarity(target_filename, entry.name)
    for catalog_file in entry.iter_files():
        if score >= 1.0:
            break
        score = max(score, name_similarity(target_filename, catalog_file.name))
    return score


@dataclass
class CandidateScore:
    """Score breakdown for one candidate."""

    entry: CatalogEntry
    name: float
    popularity: float
    quality: float
    boost: float
    total: float


@dataclass(frozen=True)
class ScoringProfile:
    """Weights and signals for one provider.

    ``quality`` is rating-based for CivitAI and likes-based for the Hub;
    ``boost`` rewards well-downloaded entries or image-generation pipelines.
    """

    name_weight: float
    popularity_weight: float
    quality_weight: float
    boost_weight: float
    quality: Callable[[CatalogEntry], float]
    boost: Callable[[CatalogEntry], float]


def popularity_score(entry: CatalogEntry) -> float:
    return math.log(max(entry.download_count, 0) + 1) / 25


def _rating_score(entry: CatalogEntry) -> float:
    return (entry.rating or 0.0) / 10


def _likes_score(entry: CatalogEntry) -> float:
    return math.log(max(entry.favorite_count, 0) + 1) / 15


def _download_boost(entry: CatalogEntry) -> float:
    return 0.1 if entry.download_count > 1000 else 0.0


def _pipeline_boost(entry: CatalogEntry) -> float:
    return 0.1 if entry.pipeline_tag in IMAGE_GENERATION_PIPELINES else 0.0


SCORING_PROFILES: Dict[Provider, ScoringProfile] = {
    Provider.CIVITAI: ScoringProfile(0.7, 0.15, 0.1, 0.05, _rating_score, _download_boost),
    Provider.HUGGINGFACE: ScoringProfile(0.6, 0.2, 0.1, 0.1, _likes_score, _pipeline_boost),
}


def score_candidate(entry: CatalogEntry, target_filename: str) -> CandidateScore:
    profile = SCORING_PROFILES.get(entry.provider, SCORING_PROFILES[Provider.CIVITAI])
    name = entry_name_score(entry, target_filename)
    popularity = popularity_score(entry)
    quality = profile.quality(entry)
    boost = profile.boost(entry)
    total = (
        name * profile.name_weight
        + popularity * profile.popularity_weight
        + quality * profile.quality_weight
        + boost * profile.boost_weight
    )
    return CandidateScore(entry, name, popularity, quality, boost, total)


def rank_candidates(
    candidates: Sequence[CatalogEntry], target_filename: str
) -> list[CandidateScore]:
    """Score every candidate, best first; equal totals keep their input order."""
    scores = [score_candidate(entry, target_filename) for entry in candidates]
    return sorted(scores, key=lambda score: score.total, reverse=True)


def best_match(candidates: Sequence[CatalogEntry], target_filename: str) -> CatalogEntry:
    """Pick the candidate that best matches ``target_filename``.

    Raises:
        ValueError: If ``candidates`` is empty
    """
    if not candidates:
        raise ValueError("No candidates provided for matching")
    if len(candidates) == 1:
        return candidates[0]

    ranked = rank_candidates(candidates, target_filename)
    winner = ranked[0]
    logger.debug(
        "Best match for %r: %s (total=%.3f name=%.3f popularity=%.3f quality=%.3f)",
        target_filename,
        winner.entry.name,
        winner.total,
        winner.name,
        winner.popularity,
        winner.quality,
    )
    return winner.entry


HashInput = Union[str, Mapping[str, str], None]


def _normalize_hashes(hashes: HashInput) -> Dict[str, str]:
    if not hashes:
        return {}
    if isinstance(hashes, str):
        return {"SHA256": hashes.upper()}
    return {algo: digest.upper() for algo, digest in hashes.items() if digest}


def _file_hash_matches(file_hashes: Mapping[str, str], local: Mapping[str, str]) -> bool:
    catalog = {algo.upper(): digest.upper() for algo, digest in file_hashes.items()}
    for field in HASH_FIELD_PRIORITY:
        remote = catalog.get(field.upper())
        if not remote:
            continue
        if field == "AutoV2":
            sha256 = local.get("SHA256", "")
            if sha256 and sha256[:_AUTOV2_LENGTH] == remote:
                return True
        elif local.get(field) == remote:
            return True
    return False


def find_hash_match(entry: CatalogEntry, hashes: HashInput) -> Optional[CatalogVersion]:
    """Return the first version holding a file whose catalog hash matches ``hashes``."""
    local = _normalize_hashes(hashes)
    if not local:
        return None
    for version in entry.versions:
        for catalog_file in version.files:
            if _file_hash_matches(catalog_file.hashes, local):
                return version
    return None


def entry_has_hash_match(entry: CatalogEntry, hashes: HashInput) -> bool:
    local = _normalize_hashes(hashes)
    if not local:
        return False
    return any(_file_hash_matches(f.hashes, local) for f in entry.iter_files())


def find_matching_version(
    entry: CatalogEntry, filename: str, hashes: HashInput = None
) -> Optional[CatalogVersion]:
    """Select the version of ``entry`` that corresponds to the local file.

    Prefers an exact hash match, then the first version with a file whose name
    similarity exceeds 0.8, then the first (most canonical) version. Entries
    without versions yield None.
    """
    if not entry.versions:
        return None

    version = find_hash_match(entry, hashes)
    if version is not None:
        return version

    for version in entry.versions:
        for catalog_file in version.files:
            if name_similarity(filename, catalog_file.name) > VERSION_NAME_THRESHOLD:
                return version

    return entry.versions[0]
