"""
Entity Resolution

Fuzzy name matching for review: duplicate candidates, generic-name checks and
keyword categories.

Modules:
    duplicates: Edit-distance similarity and candidate detection
"""

from systems_kg.ingestion.resolution.duplicates import (
    detect_category,
    find_duplicate_candidates,
    is_generic_name,
    levenshtein_distance,
    name_similarity,
    specificity_ratio,
)

__all__ = [
    "levenshtein_distance",
    "name_similarity",
    "find_duplicate_candidates",
    "is_generic_name",
    "specificity_ratio",
    "detect_category",
]
