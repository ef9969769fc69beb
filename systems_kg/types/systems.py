"""
Systems Types

Entities and relationships describing a service system (services, themes,
outcomes, factors and the typed connections between them) and the community
quotes found alongside them.

Extraction Models (ephemeral, one per chunk):
    - ExtractedEntity, ExtractedRelationship, ExtractedQuote: raw LLM output
    - SystemExtractionResult: everything returned for a chunk
    - ChunkExtraction: tagged outcome of one extraction call

Consolidated Models:
    - ConsolidatedEntity, ConsolidatedRelationship: canonical records
    - DocumentConsolidation, CorpusConsolidation: merge pass outputs

Storage Models:
    - SystemEntityRecord, SystemRelationshipRecord, QuoteRecord: persisted rows,
      tagged with the pass (job) that wrote them
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

# Surrounding whitespace is stripped before the length check
Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class SystemEntityType(str, Enum):
    """Kinds of system element."""

    SERVICE = "service"
    THEME = "theme"
    OUTCOME = "outcome"
    FACTOR = "factor"


class RelationshipType(str, Enum):
    """Directed connection kinds between two system elements."""

    SUPPORTS = "supports"
    BLOCKS = "blocks"
    ENABLES = "enables"
    INFLUENCES = "influences"
    REQUIRES = "requires"


class RelationshipStrength(str, Enum):
    """Relationship strength, ordered weak < medium < strong."""

    WEAK = "weak"
    MEDIUM = "medium"
    STRONG = "strong"


class CulturalSensitivity(str, Enum):
    """Handling level for quoted community knowledge."""

    PUBLIC = "public"
    RESTRICTED = "restricted"
    SACRED = "sacred"
    CONFIDENTIAL = "confidential"


STRENGTH_RANK: dict[str, int] = {
    RelationshipStrength.WEAK.value: 0,
    RelationshipStrength.MEDIUM.value: 1,
    RelationshipStrength.STRONG.value: 2,
}


def escalate_strength(current: str, observed: str) -> str:
    """Return the stronger of two strengths. Never downgrades ``current``."""
    if STRENGTH_RANK[observed] > STRENGTH_RANK[current]:
        return observed
    return current


def _lower_enum_value(value: Any) -> Any:
    # LLMs answer "SERVICE" or "Service" as often as "service"
    if isinstance(value, str):
        return value.strip().lower()
    return value


# -----------------------------------------------------------------------------
# Extraction Models
# -----------------------------------------------------------------------------


class ExtractedEntity(BaseModel):
    """A system entity found in a single chunk."""

    name: Name = Field(..., description="Entity name as it appears in the text")
    type: SystemEntityType = Field(..., description="SERVICE|THEME|OUTCOME|FACTOR")
    category: str | None = Field(default=None, description="Optional sub-category")
    description: str | None = Field(default=None, description="Brief description of the entity")
    confidence: float = Field(..., ge=0.0, le=1.0)
    evidence: str = Field(default="", description="Direct quote or paraphrase supporting this entity")
    source_chunk: str | None = None

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        return _lower_enum_value(value)


class ExtractedRelationship(BaseModel):
    """A typed, directed relationship found in a single chunk."""

    from_name: Name = Field(..., alias="fromName")
    to_name: Name = Field(..., alias="toName")
    type: RelationshipType
    strength: RelationshipStrength = Field(default="medium", validate_default=True)
    description: str = ""
    confidence: float = Field(..., ge=0.0, le=1.0)
    evidence: str = ""
    source_chunk: str | None = None

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True)

    @field_validator("type", "strength", mode="before")
    @classmethod
    def _normalize_enums(cls, value: Any) -> Any:
        return _lower_enum_value(value)

    @property
    def key(self) -> tuple[str, str, str]:
        """Identity of the relationship within a merge pass."""
        return (self.from_name, self.type, self.to_name)


class ExtractedQuote(BaseModel):
    """A direct community voice quoted in a single chunk."""

    text: Name = Field(..., alias="quote_text")
    knowledge_holder: str | None = Field(default=None, description="Speaker, if clearly identified")
    cultural_sensitivity: CulturalSensitivity = Field(default="public", validate_default=True)
    requires_attribution: bool = False
    source_chunk: str | None = None

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True)

    @field_validator("cultural_sensitivity", mode="before")
    @classmethod
    def _normalize_sensitivity(cls, value: Any) -> Any:
        if value is None:
            return "public"
        return _lower_enum_value(value)

    @field_validator("knowledge_holder", mode="before")
    @classmethod
    def _blank_holder(cls, value: Any) -> Any:
        # "null" and "" both mean nobody was named
        if isinstance(value, str) and value.strip().lower() in ("", "null", "none", "unknown"):
            return None
        return value


class SystemExtractionResult(BaseModel):
    """Entities, relationships and quotes extracted from one chunk."""

    entities: list[ExtractedEntity] = Field(default_factory=list)
    relationships: list[ExtractedRelationship] = Field(default_factory=list)
    quotes: list[ExtractedQuote] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.entities and not self.relationships and not self.quotes


ExtractionStatus = Literal["ok", "timeout", "rate_limited", "malformed", "error"]


class ChunkExtraction(BaseModel):
    """
    Tagged outcome of one chunk extraction call.

    A failed call still carries an (empty) result so callers can merge
    outcomes without branching; ``status`` and ``error`` say what went wrong.
    """

    chunk_id: str | None = None
    status: ExtractionStatus = "ok"
    result: SystemExtractionResult = Field(default_factory=SystemExtractionResult)
    error: str | None = None
    cached: bool = False

    @property
    def ok(self) -> bool:
        return self.status == "ok"


# -----------------------------------------------------------------------------
# Consolidated Models
# -----------------------------------------------------------------------------


class ConsolidatedEntity(BaseModel):
    """Canonical entity after merging observations."""

    name: str
    type: str
    category: str | None = None
    description: str | None = None
    confidence: float
    evidence: str = ""
    document_ids: set[str] = Field(default_factory=set)
    occurrences: int = 1
    model: str | None = None


class ConsolidatedRelationship(BaseModel):
    """Canonical relationship keyed by (from_name, type, to_name)."""

    from_name: str
    to_name: str
    type: str
    strength: str
    description: str = ""
    confidence: float
    evidence: str = ""
    document_ids: set[str] = Field(default_factory=set)
    occurrences: int = 1

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.from_name, self.type, self.to_name)


class DocumentConsolidation(BaseModel):
    """
    Result of consolidating every chunk of one document.

    Attributes:
        document_id: Document the chunks belong to
        entities: Canonical entities (max-confidence merge)
        relationships: Canonical relationships (max-confidence merge)
        quotes: Distinct community quotes, in first-seen order
        chunks_processed: Number of chunk outcomes merged
        failed_chunks: Chunks whose extraction failed and contributed nothing
        warnings: Non-fatal problems accumulated during the pass
    """

    document_id: str
    entities: list[ConsolidatedEntity] = Field(default_factory=list)
    relationships: list[ConsolidatedRelationship] = Field(default_factory=list)
    quotes: list[ExtractedQuote] = Field(default_factory=list)
    chunks_processed: int = 0
    failed_chunks: int = 0
    warnings: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.entities and not self.relationships

    @property
    def message(self) -> str:
        if self.is_empty:
            return "no systems data extracted"
        return (
            f"extracted {len(self.entities)} entities and "
            f"{len(self.relationships)} relationships"
        )


class CorpusConsolidation(BaseModel):
    """Canonical records aggregated across independent documents."""

    entities: list[ConsolidatedEntity] = Field(default_factory=list)
    relationships: list[ConsolidatedRelationship] = Field(default_factory=list)
    document_ids: set[str] = Field(default_factory=set)


# -----------------------------------------------------------------------------
# Storage Models
# -----------------------------------------------------------------------------


class SystemEntityRecord(BaseModel):
    """A consolidated entity persisted for one document pass."""

    uuid: str
    document_id: str
    name: str
    type: str
    category: str | None = None
    description: str | None = None
    confidence: float
    evidence: str = ""
    model: str | None = None
    pass_id: str = ""
    created_at: str | None = None


class SystemRelationshipRecord(BaseModel):
    """A consolidated relationship persisted for one document pass."""

    uuid: str
    document_id: str
    from_uuid: str
    from_name: str
    to_uuid: str
    to_name: str
    type: str
    strength: str
    description: str = ""
    confidence: float
    evidence: str = ""
    pass_id: str = ""
    created_at: str | None = None


class QuoteRecord(BaseModel):
    """A community quote persisted for one document pass."""

    uuid: str
    document_id: str
    text: str
    knowledge_holder: str | None = None
    cultural_sensitivity: str = "public"
    requires_attribution: bool = False
    pass_id: str = ""
    created_at: str | None = None
