"""
Consolidation

Merges chunk-level extractions into canonical per-document records and
aggregates those across documents.
"""

from systems_kg.ingestion.consolidation.consolidator import (
    EVIDENCE_SEPARATOR,
    QUOTE_MIN_LENGTH,
    aggregate_corpus,
    consolidate_document,
    deduplicate_quotes,
    merge_chunk_entities,
    merge_chunk_relationships,
)

__all__ = [
    "EVIDENCE_SEPARATOR",
    "QUOTE_MIN_LENGTH",
    "deduplicate_quotes",
    "merge_chunk_entities",
    "merge_chunk_relationships",
    "consolidate_document",
    "aggregate_corpus",
]
