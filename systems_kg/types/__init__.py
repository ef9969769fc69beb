"""
Type Definitions

Pydantic models for all data structures.

Job Models (scheduler):
    - Job, JobRequest, JobPriority, JobType, JobStatus
    - QueueMetrics, ProcessingStrategy

Document Models:
    - Document, ExtractedText, ChunkInput

Systems Models (extraction and consolidation):
    - ExtractedEntity, ExtractedRelationship, SystemExtractionResult
    - ChunkExtraction - tagged outcome of one extraction call
    - ConsolidatedEntity, ConsolidatedRelationship
    - DocumentConsolidation, CorpusConsolidation
    - SystemEntityRecord, SystemRelationshipRecord, QuoteRecord - persisted rows

Graph Models:
    - SystemsMap, GraphNode, GraphEdge, SystemsMapFilters

Quality Models:
    - DuplicateCandidate, DocumentQualityReport, CorpusQualityReport
"""

from systems_kg.types.documents import ChunkInput, Document, ExtractedText
from systems_kg.types.graph import GraphEdge, GraphNode, SystemsMap, SystemsMapFilters
from systems_kg.types.jobs import (
    PRIORITY_WEIGHTS,
    Job,
    JobPriority,
    JobRequest,
    JobStatus,
    JobType,
    ProcessingStrategy,
    QueueMetrics,
)
from systems_kg.types.quality import (
    CategoryStats,
    ConfidenceBreakdown,
    CorpusQualityReport,
    DocumentQualityReport,
    DuplicateCandidate,
    ModelStats,
)
from systems_kg.types.systems import (
    STRENGTH_RANK,
    ChunkExtraction,
    ConsolidatedEntity,
    ConsolidatedRelationship,
    CorpusConsolidation,
    CulturalSensitivity,
    DocumentConsolidation,
    ExtractedEntity,
    ExtractedQuote,
    ExtractedRelationship,
    QuoteRecord,
    RelationshipStrength,
    RelationshipType,
    SystemEntityRecord,
    SystemEntityType,
    SystemExtractionResult,
    SystemRelationshipRecord,
    escalate_strength,
)

__all__ = [
    # Jobs
    "Job",
    "JobRequest",
    "JobPriority",
    "JobType",
    "JobStatus",
    "PRIORITY_WEIGHTS",
    "ProcessingStrategy",
    "QueueMetrics",
    # Documents
    "Document",
    "ExtractedText",
    "ChunkInput",
    # Systems
    "SystemEntityType",
    "RelationshipType",
    "RelationshipStrength",
    "CulturalSensitivity",
    "STRENGTH_RANK",
    "escalate_strength",
    "ExtractedEntity",
    "ExtractedRelationship",
    "ExtractedQuote",
    "SystemExtractionResult",
    "ChunkExtraction",
    "ConsolidatedEntity",
    "ConsolidatedRelationship",
    "DocumentConsolidation",
    "CorpusConsolidation",
    "SystemEntityRecord",
    "SystemRelationshipRecord",
    "QuoteRecord",
    # Graph
    "SystemsMap",
    "SystemsMapFilters",
    "GraphNode",
    "GraphEdge",
    # Quality
    "DuplicateCandidate",
    "ConfidenceBreakdown",
    "DocumentQualityReport",
    "CorpusQualityReport",
    "ModelStats",
    "CategoryStats",
]
