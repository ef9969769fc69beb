"""
Systems Consolidator

Merges noisy chunk-level extractions into canonical records.

Two merge rules, deliberately different:

    Within one document (repeated observations of the same text):
        - entities keyed by exact name, highest confidence wins, ties keep
          the first seen
        - relationships keyed by (from_name, type, to_name), highest
          confidence wins, exact ties concatenate evidence with " | "

    Across documents (independent sources):
        - confidence is averaged over occurrences
        - contributing document ids are unioned
        - relationship strength escalates and never downgrades

Example:
    >>> doc = consolidate_document("doc-1", outcomes, model="gpt-4o")
    >>> corpus = aggregate_corpus([doc, other_doc])
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from systems_kg.types import (
    ChunkExtraction,
    ConsolidatedEntity,
    ConsolidatedRelationship,
    CorpusConsolidation,
    DocumentConsolidation,
    ExtractedEntity,
    ExtractedQuote,
    ExtractedRelationship,
    escalate_strength,
)

logger = logging.getLogger(__name__)

EVIDENCE_SEPARATOR = " | "

# Quotes this short or shorter are dropped
QUOTE_MIN_LENGTH = 50


# -----------------------------------------------------------------------------
# Within-document merge (max confidence)
# -----------------------------------------------------------------------------


def merge_chunk_entities(entities: Iterable[ExtractedEntity]) -> dict[str, ExtractedEntity]:
    """
    Merge entities by exact name, keeping the highest-confidence observation.

    Returns:
        Mapping of name to winning entity, in first-seen order
    """
    merged: dict[str, ExtractedEntity] = {}
    for entity in entities:
        existing = merged.get(entity.name)
        if existing is None or entity.confidence > existing.confidence:
            merged[entity.name] = entity
    return merged


def merge_chunk_relationships(
    relationships: Iterable[ExtractedRelationship],
) -> dict[tuple[str, str, str], ExtractedRelationship]:
    """
    Merge relationships by (from_name, type, to_name).

    Higher confidence replaces the kept record. On an exact tie the evidence
    strings are joined so neither source is lost; an evidence string already
    present is not appended again.

    Returns:
        Mapping of key to merged relationship, in first-seen order
    """
    merged: dict[tuple[str, str, str], ExtractedRelationship] = {}
    for relationship in relationships:
        key = relationship.key
        existing = merged.get(key)
        if existing is None or relationship.confidence > existing.confidence:
            merged[key] = relationship.model_copy()
        elif relationship.confidence == existing.confidence:
            parts = existing.evidence.split(EVIDENCE_SEPARATOR) if existing.evidence else []
            if relationship.evidence and relationship.evidence not in parts:
                existing.evidence = EVIDENCE_SEPARATOR.join([*parts, relationship.evidence])
    return merged


def deduplicate_quotes(
    quotes: Iterable[ExtractedQuote],
    min_length: int = QUOTE_MIN_LENGTH,
) -> list[ExtractedQuote]:
    """
    Keep quotes longer than ``min_length`` characters that neither contain
    nor are contained in a quote already kept. First seen wins.
    """
    unique: list[ExtractedQuote] = []
    for quote in quotes:
        if len(quote.text) <= min_length:
            continue
        if any(quote.text in kept.text or kept.text in quote.text for kept in unique):
            continue
        unique.append(quote)
    return unique


def consolidate_document(
    document_id: str,
    outcomes: Iterable[ChunkExtraction],
    *,
    model: str | None = None,
    quote_min_length: int = QUOTE_MIN_LENGTH,
) -> DocumentConsolidation:
    """
    Consolidate every chunk outcome of one document.

    Failed chunks contribute nothing and add a warning. A pass with no
    entities and no relationships is a valid result. Quotes repeated by
    overlapping chunks are collapsed with deduplicate_quotes.
    """
    outcomes = list(outcomes)
    entities: list[ExtractedEntity] = []
    relationships: list[ExtractedRelationship] = []
    quotes: list[ExtractedQuote] = []
    warnings: list[str] = []
    failed = 0

    for outcome in outcomes:
        if not outcome.ok:
            failed += 1
            warnings.append(
                f"Chunk {outcome.chunk_id or '?'} failed ({outcome.status}): {outcome.error or 'unknown error'}"
            )
            continue
        entities.extend(outcome.result.entities)
        relationships.extend(outcome.result.relationships)
        quotes.extend(outcome.result.quotes)

    entity_counts: dict[str, int] = {}
    for e in entities:
        entity_counts[e.name] = entity_counts.get(e.name, 0) + 1
    relationship_counts: dict[tuple[str, str, str], int] = {}
    for r in relationships:
        relationship_counts[r.key] = relationship_counts.get(r.key, 0) + 1

    consolidated_entities = [
        ConsolidatedEntity(
            name=e.name,
            type=e.type,
            category=e.category,
            description=e.description,
            confidence=e.confidence,
            evidence=e.evidence,
            document_ids={document_id},
            occurrences=entity_counts[name],
            model=model,
        )
        for name, e in merge_chunk_entities(entities).items()
    ]
    consolidated_relationships = [
        ConsolidatedRelationship(
            from_name=r.from_name,
            to_name=r.to_name,
            type=r.type,
            strength=r.strength,
            description=r.description,
            confidence=r.confidence,
            evidence=r.evidence,
            document_ids={document_id},
            occurrences=relationship_counts[key],
        )
        for key, r in merge_chunk_relationships(relationships).items()
    ]

    result = DocumentConsolidation(
        document_id=document_id,
        entities=consolidated_entities,
        relationships=consolidated_relationships,
        quotes=deduplicate_quotes(quotes, quote_min_length),
        chunks_processed=len(outcomes),
        failed_chunks=failed,
        warnings=warnings,
    )
    logger.info("Document %s: %s (%d failed chunks)", document_id, result.message, failed)
    return result


# -----------------------------------------------------------------------------
# Cross-document aggregation (averaged confidence)
# -----------------------------------------------------------------------------


def aggregate_corpus(consolidations: Iterable[DocumentConsolidation]) -> CorpusConsolidation:
    """
    Aggregate per-document consolidations into corpus-level records.

    Each document counts as one occurrence of a record it contains, so the
    confidence is the mean of the per-document confidences.
    """
    entity_sums: dict[str, float] = {}
    entity_counts: dict[str, int] = {}
    entities: dict[str, ConsolidatedEntity] = {}

    rel_sums: dict[tuple[str, str, str], float] = {}
    rel_counts: dict[tuple[str, str, str], int] = {}
    relationships: dict[tuple[str, str, str], ConsolidatedRelationship] = {}

    document_ids: set[str] = set()

    for doc in consolidations:
        document_ids.add(doc.document_id)

        for e in doc.entities:
            existing = entities.get(e.name)
            if existing is None:
                entities[e.name] = e.model_copy(update={"document_ids": set(e.document_ids)})
                entity_sums[e.name] = e.confidence
                entity_counts[e.name] = 1
            else:
                existing.document_ids |= e.document_ids
                entity_sums[e.name] += e.confidence
                entity_counts[e.name] += 1

        for r in doc.relationships:
            key = r.key
            existing_rel = relationships.get(key)
            if existing_rel is None:
                relationships[key] = r.model_copy(update={"document_ids": set(r.document_ids)})
                rel_sums[key] = r.confidence
                rel_counts[key] = 1
            else:
                existing_rel.document_ids |= r.document_ids
                existing_rel.strength = escalate_strength(existing_rel.strength, r.strength)
                if r.description and r.description not in existing_rel.description.split(EVIDENCE_SEPARATOR):
                    existing_rel.description = EVIDENCE_SEPARATOR.join(
                        d for d in (existing_rel.description, r.description) if d
                    )
                rel_sums[key] += r.confidence
                rel_counts[key] += 1

    for name, e in entities.items():
        e.occurrences = entity_counts[name]
        e.confidence = entity_sums[name] / entity_counts[name]
    for key, r in relationships.items():
        r.occurrences = rel_counts[key]
        r.confidence = rel_sums[key] / rel_counts[key]

    return CorpusConsolidation(
        entities=list(entities.values()),
        relationships=list(relationships.values()),
        document_ids=document_ids,
    )
