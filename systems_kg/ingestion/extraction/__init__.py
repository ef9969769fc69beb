"""
Systems Extraction

LLM-based extraction of system entities and relationships from chunks.

Modules:
    extractor: SystemsExtractor, response parsing helpers

Failure Handling:
    - Transient errors (timeout, rate limit) are retried with linear backoff
    - Any failure becomes a tagged, empty ChunkExtraction
    - Invalid items are dropped individually during parsing
"""

from systems_kg.ingestion.extraction.extractor import (
    SystemsExtractor,
    load_json_object,
    parse_extraction_response,
)

__all__ = ["SystemsExtractor", "load_json_object", "parse_extraction_response"]
