"""
Ingestion Pipeline

Turns extracted document text into consolidated systems records.

Phases:
    Phase 1 - Chunking & Extraction (LLM-heavy):
        - Text -> overlapping paragraph chunks
        - One systems-extraction call per chunk, batched and cached

    Phase 2 - Consolidation:
        - Max-confidence merge of chunk outcomes per document
        - Average-confidence aggregation across documents

    Phase 3 - Review:
        - Fuzzy duplicate candidates, generic names, categories

Modules:
    chunking/: Plain text chunking
    extraction/: LLM-based systems extraction
    consolidation/: Within- and cross-document merging
    resolution/: Fuzzy duplicate detection
"""

from systems_kg.ingestion.consolidation import aggregate_corpus, consolidate_document
from systems_kg.ingestion.extraction import SystemsExtractor

__all__ = ["SystemsExtractor", "consolidate_document", "aggregate_corpus"]
