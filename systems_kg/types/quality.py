"""
Quality Types

Duplicate candidates and quality reports for extraction review.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class DuplicateCandidate(BaseModel):
    """
    Two entity names that are probably the same thing.

    Attributes:
        entity_a: First name (earlier in the input)
        entity_b: Second name
        similarity: Normalized edit similarity in [0, 1]
        keep: Name recommended to keep (higher confidence)
        review: Name recommended for review
        recommended_action: Human-readable recommendation
    """

    entity_a: str
    entity_b: str
    confidence_a: float | None = None
    confidence_b: float | None = None
    similarity: float = Field(..., ge=0.0, le=1.0)
    keep: str
    review: str
    recommended_action: str

    @property
    def similarity_percent(self) -> int:
        return int(self.similarity * 100 + 0.5)


class ConfidenceBreakdown(BaseModel):
    high: int = 0
    medium: int = 0
    low: int = 0
    needs_review: int = 0


class DocumentQualityReport(BaseModel):
    """Extraction quality for one document."""

    document_id: str
    total_extracted: int
    total_quotes: int = 0
    average_confidence: float
    expected_keywords_found: int
    expected_keywords_total: int
    keyword_coverage: int
    found_keywords: list[str] = Field(default_factory=list)
    generic_themes: int
    specific_themes: int
    quality_score: int
    confidence: ConfidenceBreakdown = Field(default_factory=ConfidenceBreakdown)
    category_counts: dict[str, int] = Field(default_factory=dict)
    duplicates: list[DuplicateCandidate] = Field(default_factory=list)


class ModelStats(BaseModel):
    model: str
    count: int
    average_confidence: float


class CategoryStats(BaseModel):
    category: str
    count: int
    average_confidence: float


class CorpusQualityReport(BaseModel):
    """Extraction quality across many documents."""

    total_extracted: int
    average_confidence: float
    high_confidence: int
    needs_review: int
    models_used: int
    quality_score: int
    by_model: list[ModelStats] = Field(default_factory=list)
    categories: list[CategoryStats] = Field(default_factory=list)
    repeated_names: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
