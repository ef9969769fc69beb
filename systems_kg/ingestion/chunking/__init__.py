"""
Document Chunking

Transforms extracted document text into bounded chunks for LLM extraction.

Modules:
    text: Plain text chunking (paragraph packing with overlap)
"""

from systems_kg.ingestion.chunking.text import chunk_text

__all__ = ["chunk_text"]
