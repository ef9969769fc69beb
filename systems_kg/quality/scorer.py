"""
Quality Scorer

Scores extraction quality for a single document and for the whole corpus,
and builds the review reports behind those scores.

Document score (0-100):
    min(count / 30, 1) * 25          volume
    + average confidence * 30        confidence
    + keyword coverage * 25          expected keywords matched
    + specificity ratio * 20         share of non-generic names

Corpus score (0-100):
    average confidence * 40
    + high-confidence ratio * 30
    + min(categories / 8, 1) * 20
    + 10 for 2-4 models, 5 for exactly one model

Both are rounded half-up and clamped.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any

from systems_kg.ingestion.resolution.duplicates import (
    detect_category,
    find_duplicate_candidates,
    is_generic_name,
)
from systems_kg.types import (
    CategoryStats,
    ConfidenceBreakdown,
    CorpusQualityReport,
    DocumentQualityReport,
    ModelStats,
)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _round2(value: float) -> float:
    return math.floor(value * 100 + 0.5) / 100


def _clamp(score: int) -> int:
    return max(0, min(score, 100))


def document_quality_score(
    total: int,
    average_confidence: float,
    keywords_found: int,
    keywords_total: int,
    generic_count: int,
) -> int:
    score = min(total / 30 * 25, 25)
    score += average_confidence * 30
    if keywords_total:
        score += keywords_found / keywords_total * 25
    score += (total - generic_count) / max(total, 1) * 20
    return _clamp(round_half_up(score))


def corpus_quality_score(
    average_confidence: float,
    high_confidence_ratio: float,
    category_count: int,
    model_count: int,
) -> int:
    score = average_confidence * 40
    score += high_confidence_ratio * 30
    score += min(category_count / 8, 1) * 20
    if 2 <= model_count <= 4:
        score += 10
    elif model_count == 1:
        score += 5
    return _clamp(round_half_up(score))


class QualityScorer:
    """
    Builds quality reports from persisted entity records.

    Args:
        expected_keywords: Keywords a complete extraction should mention
        generic_min_length: Names shorter than this count as generic
        duplicate_threshold: Similarity above which names are duplicate candidates
        high_confidence: Lower bound of the high-confidence band
        review_confidence: Records below this need review
        low_confidence: Upper bound of the low-confidence band
    """

    def __init__(
        self,
        expected_keywords: Sequence[str],
        *,
        generic_min_length: int = 15,
        duplicate_threshold: float = 0.7,
        high_confidence: float = 0.8,
        review_confidence: float = 0.6,
        low_confidence: float = 0.5,
    ) -> None:
        self.expected_keywords = [k.lower() for k in expected_keywords]
        self.generic_min_length = generic_min_length
        self.duplicate_threshold = duplicate_threshold
        self.high_confidence = high_confidence
        self.review_confidence = review_confidence
        self.low_confidence = low_confidence

    def document_report(
        self,
        document_id: str,
        entities: Sequence[Any],
        total_quotes: int = 0,
    ) -> DocumentQualityReport:
        """
        Quality report for one document's entities.

        ``total_quotes`` is reported as is; quotes do not affect the score.

        Entities are ranked by confidence (highest first, stable) before the
        duplicate pass, so ties in a candidate pair keep the better record.
        """
        ranked = sorted(entities, key=lambda e: -e.confidence)
        total = len(ranked)
        average = sum(e.confidence for e in ranked) / max(total, 1)

        found = [
            keyword
            for keyword in self.expected_keywords
            if any(
                keyword in e.name.lower() or keyword in (e.description or "").lower()
                for e in ranked
            )
        ]
        generic = sum(1 for e in ranked if is_generic_name(e.name, self.generic_min_length))
        duplicates = find_duplicate_candidates(ranked, self.duplicate_threshold)

        category_counts: dict[str, int] = {}
        for e in ranked:
            category = detect_category(e.name)
            category_counts[category] = category_counts.get(category, 0) + 1

        keywords_total = len(self.expected_keywords)
        return DocumentQualityReport(
            document_id=document_id,
            total_extracted=total,
            total_quotes=total_quotes,
            average_confidence=_round2(average),
            expected_keywords_found=len(found),
            expected_keywords_total=keywords_total,
            keyword_coverage=round_half_up(len(found) / keywords_total * 100) if keywords_total else 0,
            found_keywords=found,
            generic_themes=generic,
            specific_themes=total - generic,
            quality_score=document_quality_score(total, average, len(found), keywords_total, generic),
            confidence=ConfidenceBreakdown(
                high=sum(1 for e in ranked if e.confidence >= self.high_confidence),
                medium=sum(
                    1 for e in ranked if self.low_confidence <= e.confidence < self.high_confidence
                ),
                low=sum(1 for e in ranked if e.confidence < self.low_confidence),
                needs_review=len(duplicates)
                + sum(1 for e in ranked if e.confidence < self.review_confidence),
            ),
            category_counts=category_counts,
            duplicates=duplicates,
        )

    def document_score(self, entities: Sequence[Any]) -> int:
        """Quality score only (0-100)."""
        return self.document_report("", entities).quality_score

    def corpus_report(self, entities: Sequence[Any]) -> CorpusQualityReport:
        """Quality report across every record given (typically all documents)."""
        total = len(entities)
        average = sum(e.confidence for e in entities) / max(total, 1)
        high = sum(1 for e in entities if e.confidence >= self.high_confidence)
        needs_review = sum(1 for e in entities if e.confidence < self.review_confidence)

        by_model: dict[str, list[float]] = {}
        by_category: dict[str, list[float]] = {}
        occurrences: dict[str, int] = {}
        for e in entities:
            by_model.setdefault(getattr(e, "model", None) or "unknown", []).append(e.confidence)
            by_category.setdefault(detect_category(e.name), []).append(e.confidence)
            occurrences[e.name] = occurrences.get(e.name, 0) + 1

        model_stats = sorted(
            (
                ModelStats(model=m, count=len(c), average_confidence=_round2(sum(c) / len(c)))
                for m, c in by_model.items()
            ),
            key=lambda s: -s.count,
        )
        category_stats = sorted(
            (
                CategoryStats(category=k, count=len(c), average_confidence=_round2(sum(c) / len(c)))
                for k, c in by_category.items()
            ),
            key=lambda s: -s.count,
        )
        repeated = sorted(
            (name for name, count in occurrences.items() if count >= 3),
            key=lambda name: -occurrences[name],
        )

        return CorpusQualityReport(
            total_extracted=total,
            average_confidence=_round2(average),
            high_confidence=high,
            needs_review=needs_review,
            models_used=len(model_stats),
            quality_score=corpus_quality_score(
                average, high / max(total, 1), len(category_stats), len(model_stats)
            ),
            by_model=model_stats,
            categories=category_stats,
            repeated_names=repeated,
            recommendations=self._recommendations(
                total, average, needs_review, len(repeated), len(category_stats)
            ),
        )

    @staticmethod
    def _recommendations(
        total: int,
        average: float,
        needs_review: int,
        repeated_count: int,
        category_count: int,
    ) -> list[str]:
        recommendations: list[str] = []
        if total == 0:
            return ["No systems data extracted yet - process documents before reviewing quality"]
        if average < 0.7:
            recommendations.append(
                "Average confidence is low - consider reviewing extraction prompts or adding human validation"
            )
        if needs_review > total * 0.3:
            recommendations.append(
                "Over 30% of extractions need review - implement automated filtering"
            )
        if repeated_count > 10:
            recommendations.append(
                "High number of duplicate names detected - improve deduplication logic"
            )
        if category_count < 5:
            recommendations.append(
                "Limited category diversity - ensure extraction covers all service types"
            )
        if total > 200:
            recommendations.append(
                "Excellent extraction volume - focus on quality validation and verification"
            )
        return recommendations
