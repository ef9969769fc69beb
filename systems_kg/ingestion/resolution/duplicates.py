"""
Fuzzy Duplicate Detection

Flags pairs of entity names that are probably the same thing ("Youth Centre
Program" vs "Youth Center Program") for human review. Nothing is merged
automatically; each candidate recommends which name to keep.

Similarity:
    (len(longer) - levenshtein(lower(a), lower(b))) / len(longer)
    Two empty strings are identical (1.0).

The all-pairs pass is O(n^2) edit distances. A length filter skips pairs
that cannot pass: edit distance is at least the length difference, so
similarity <= len(shorter) / len(longer). Pairs whose length ratio is not
above the threshold are never compared.

Example:
    >>> name_similarity("Youth Hub", "youth hub")
    1.0
    >>> candidates = find_duplicate_candidates(entities, threshold=0.7)
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

import numpy as np
from rapidfuzz.distance import Levenshtein

from systems_kg.types import DuplicateCandidate

GENERIC_MARKERS = ("general", "various", "multiple")

# First match wins
CATEGORY_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("initiative",), "initiative"),
    (("program",), "program"),
    (("service",), "service"),
    (("centre", "center"), "facility"),
    (("hub",), "facility"),
    (("support",), "support"),
    (("development",), "development"),
    (("education",), "education"),
    (("youth",), "youth"),
    (("health",), "health"),
    (("housing",), "housing"),
    (("training",), "training"),
    (("employment",), "employment"),
)


# -----------------------------------------------------------------------------
# String Similarity
# -----------------------------------------------------------------------------


def levenshtein_distance(a: str, b: str) -> int:
    """Minimum number of single-character edits turning ``a`` into ``b``."""
    return Levenshtein.distance(a, b)


def name_similarity(a: str, b: str) -> float:
    """Case-insensitive normalized edit similarity in [0, 1]. Symmetric."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - levenshtein_distance(a.lower(), b.lower())) / longest


# -----------------------------------------------------------------------------
# Duplicate Candidates
# -----------------------------------------------------------------------------


def _length_prefilter(lengths: np.ndarray, threshold: float) -> np.ndarray:
    """Index pairs (i < j) whose length ratio still allows similarity > threshold."""
    shorter = np.minimum.outer(lengths, lengths).astype(np.float64)
    longer = np.maximum.outer(lengths, lengths).astype(np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = np.where(longer > 0, shorter / longer, 1.0)
    possible = np.triu(ratio > threshold, k=1)
    return np.argwhere(possible)


def find_duplicate_candidates(
    entities: Sequence[Any],
    threshold: float = 0.7,
) -> list[DuplicateCandidate]:
    """
    Find every unordered pair of entities whose names are similar.

    Args:
        entities: Objects with ``name`` and ``confidence`` attributes
            (ConsolidatedEntity, SystemEntityRecord, ...). Order matters only
            for tie-breaking: on equal confidence the earlier entity is kept.
        threshold: Pairs with similarity strictly above this are reported

    Returns:
        Candidates ordered by (i, j) position in the input
    """
    n = len(entities)
    if n < 2:
        return []

    names = [e.name for e in entities]
    lengths = np.array([len(name) for name in names], dtype=np.int64)

    candidates: list[DuplicateCandidate] = []
    for i, j in _length_prefilter(lengths, threshold):
        i, j = int(i), int(j)
        similarity = name_similarity(names[i], names[j])
        if similarity <= threshold:
            continue
        conf_i = getattr(entities[i], "confidence", None)
        conf_j = getattr(entities[j], "confidence", None)
        if (conf_i or 0.0) >= (conf_j or 0.0):
            keep, review = names[i], names[j]
        else:
            keep, review = names[j], names[i]
        candidates.append(
            DuplicateCandidate(
                entity_a=names[i],
                entity_b=names[j],
                confidence_a=conf_i,
                confidence_b=conf_j,
                similarity=similarity,
                keep=keep,
                review=review,
                recommended_action=f"Keep {keep}, review {review}",
            )
        )
    return candidates


# -----------------------------------------------------------------------------
# Generic Names and Categories
# -----------------------------------------------------------------------------


def is_generic_name(name: str, min_length: int = 15) -> bool:
    """A name is generic if it is short or hedges ("general", "various", ...)."""
    lowered = name.lower()
    return len(lowered) < min_length or any(marker in lowered for marker in GENERIC_MARKERS)


def specificity_ratio(names: Iterable[str], min_length: int = 15) -> float:
    """Fraction of names that are not generic (0.0 for no names)."""
    names = list(names)
    generic = sum(1 for name in names if is_generic_name(name, min_length))
    return (len(names) - generic) / max(len(names), 1)


def detect_category(name: str) -> str:
    """Keyword category of an entity name, "general" if none matches."""
    lowered = name.lower()
    for keywords, category in CATEGORY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return "general"
