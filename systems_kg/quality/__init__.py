"""
Extraction Quality

Modules:
    scorer: Document and corpus quality scores and reports
"""

from systems_kg.quality.scorer import (
    QualityScorer,
    corpus_quality_score,
    document_quality_score,
    round_half_up,
)

__all__ = ["QualityScorer", "document_quality_score", "corpus_quality_score", "round_half_up"]
