"""
Tests for document and corpus quality scoring.

Tests cover:
- Score formulas, half-up rounding and clamping
- Document reports (keywords, specificity, confidence bands, duplicates)
- Corpus reports (model and category breakdowns, recommendations)
"""

import itertools

import pytest

from systems_kg.quality import (
    QualityScorer,
    corpus_quality_score,
    document_quality_score,
    round_half_up,
)
from systems_kg.types import SystemEntityRecord

KEYWORDS = ["youth", "mental health", "housing", "education"]


def record(name, confidence, description=None, model="gpt-4o", document_id="d1"):
    return SystemEntityRecord(
        uuid=f"{document_id}-{name}-{confidence}",
        document_id=document_id,
        name=name,
        type="service",
        description=description,
        confidence=confidence,
        model=model,
    )


class TestScoreFormulas:
    """Tests for the pure score functions."""

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.4999) == 2
        assert round_half_up(0) == 0

    def test_document_score_components(self):
        # 25 volume + 24 confidence + 25 keywords + 20 specificity
        assert document_quality_score(30, 0.8, 4, 4, 0) == 94

    def test_document_score_without_keywords(self):
        assert document_quality_score(30, 1.0, 0, 0, 0) == 75

    def test_document_score_empty(self):
        assert document_quality_score(0, 0.0, 0, 9, 0) == 0

    def test_corpus_score_components(self):
        assert corpus_quality_score(0.8, 0.5, 8, 2) == 77
        assert corpus_quality_score(0.8, 0.5, 8, 1) == 72
        assert corpus_quality_score(0.8, 0.5, 8, 5) == 67
        assert corpus_quality_score(0.0, 0.0, 0, 0) == 0

    @pytest.mark.parametrize(
        "total,average,found,keywords,generic",
        list(itertools.product([0, 1, 30, 500], [0.0, 0.5, 1.0, 3.0], [0, 2, 20], [0, 4], [0, 1])),
    )
    def test_document_score_is_clamped(self, total, average, found, keywords, generic):
        generic = min(generic, total)
        assert 0 <= document_quality_score(total, average, found, keywords, generic) <= 100

    @pytest.mark.parametrize(
        "average,ratio,categories,models",
        list(itertools.product([0.0, 1.0, 5.0], [0.0, 1.0, 4.0], [0, 3, 40], [0, 1, 3, 9])),
    )
    def test_corpus_score_is_clamped(self, average, ratio, categories, models):
        assert 0 <= corpus_quality_score(average, ratio, categories, models) <= 100


class TestDocumentReport:
    """Tests for QualityScorer.document_report."""

    def test_report(self):
        scorer = QualityScorer(KEYWORDS)
        report = scorer.document_report(
            "d1",
            [
                record("Youth Hub", 0.5),
                record("Youth Mentoring Program", 0.9, description="Mentoring for young people"),
                record("Housing Support Service", 0.7),
            ],
        )

        assert report.document_id == "d1"
        assert report.total_extracted == 3
        assert report.average_confidence == 0.7
        assert report.found_keywords == ["youth", "housing"]
        assert report.expected_keywords_found == 2
        assert report.expected_keywords_total == 4
        assert report.keyword_coverage == 50
        assert report.generic_themes == 1
        assert report.specific_themes == 2
        assert report.quality_score == 49
        assert report.confidence.high == 1
        assert report.confidence.medium == 2
        assert report.confidence.low == 0
        assert report.confidence.needs_review == 1
        assert report.category_counts == {"program": 1, "service": 1, "facility": 1}

    def test_keywords_match_descriptions(self):
        scorer = QualityScorer(["mental health"])
        report = scorer.document_report(
            "d1", [record("Headspace Outreach", 0.8, description="Mental health support for teens")]
        )
        assert report.found_keywords == ["mental health"]

    def test_duplicates_ranked_by_confidence(self):
        scorer = QualityScorer(KEYWORDS)
        report = scorer.document_report(
            "d1",
            [record("Youth Centre Program", 0.6), record("Youth Center Program", 0.9)],
        )
        assert len(report.duplicates) == 1
        assert report.duplicates[0].keep == "Youth Center Program"
        # one duplicate pair, no record under the review threshold
        assert report.confidence.needs_review == 1

    def test_empty_document(self):
        report = QualityScorer(KEYWORDS).document_report("d1", [])
        assert report.total_extracted == 0
        assert report.quality_score == 0
        assert report.keyword_coverage == 0

    def test_document_score_matches_report(self):
        scorer = QualityScorer(KEYWORDS)
        entities = [record("Youth Mentoring Program", 0.9)]
        assert scorer.document_score(entities) == scorer.document_report("x", entities).quality_score

    def test_quotes_counted_without_changing_score(self):
        scorer = QualityScorer(KEYWORDS)
        entities = [record("Youth Mentoring Program", 0.9)]
        report = scorer.document_report("d1", entities, total_quotes=4)
        assert report.total_quotes == 4
        assert report.quality_score == scorer.document_report("d1", entities).quality_score
        assert scorer.document_report("d1", entities).total_quotes == 0


class TestCorpusReport:
    """Tests for QualityScorer.corpus_report."""

    def test_report(self):
        scorer = QualityScorer(KEYWORDS)
        entities = [
            record("Youth Hub", 0.9, document_id="d1"),
            record("Youth Hub", 0.9, document_id="d2"),
            record("Youth Hub", 0.9, document_id="d3"),
            record("Housing Support Service", 0.4, model="gpt-4o-mini"),
            record("Mental Health Outreach Team", 0.7),
        ]

        report = scorer.corpus_report(entities)

        assert report.total_extracted == 5
        assert report.average_confidence == 0.76
        assert report.high_confidence == 3
        assert report.needs_review == 1
        assert report.models_used == 2
        assert [(m.model, m.count) for m in report.by_model] == [("gpt-4o", 4), ("gpt-4o-mini", 1)]
        assert report.by_model[0].average_confidence == 0.85
        assert [(c.category, c.count) for c in report.categories] == [
            ("facility", 3),
            ("service", 1),
            ("health", 1),
        ]
        assert report.repeated_names == ["Youth Hub"]
        assert report.quality_score == 66
        assert report.recommendations == [
            "Limited category diversity - ensure extraction covers all service types"
        ]

    def test_low_confidence_recommendations(self):
        scorer = QualityScorer(KEYWORDS)
        report = scorer.corpus_report([record(f"Entity {i}", 0.3) for i in range(4)])
        assert any("Average confidence is low" in r for r in report.recommendations)
        assert any("Over 30%" in r for r in report.recommendations)

    def test_empty_corpus(self):
        report = QualityScorer(KEYWORDS).corpus_report([])
        assert report.total_extracted == 0
        assert report.quality_score == 0
        assert report.recommendations == [
            "No systems data extracted yet - process documents before reviewing quality"
        ]
