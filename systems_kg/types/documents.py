"""
Document Types

Source documents, the plain text recovered from their payloads, and the chunks
handed to the extractor.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class Document(BaseModel):
    """
    A source document tracked by the storage backend.

    Attributes:
        uuid: Document identifier
        name: Original file name
        status: pending, processing, completed, failed or cancelled
        page_count: Pages reported by the text extractor
        content_length: Characters of extracted text
        error: Last processing error, if any
        quality_score: Document-level extraction quality (0-100)
        pass_id: Extraction pass whose records are current
    """

    uuid: str
    name: str
    status: str = "pending"
    page_count: int = 0
    content_length: int = 0
    error: str | None = None
    quality_score: int | None = None
    pass_id: str | None = None
    created_at: str | None = None
    processed_at: str | None = None


class ExtractedText(BaseModel):
    """Plain text recovered from a raw payload."""

    text: str
    page_count: int = 1


class ChunkInput(BaseModel):
    """
    A bounded slice of a document's text submitted as one extraction unit.

    Attributes:
        doc_id: Parent document
        content: Chunk text
        position: Zero-based order within the document
        chunk_id: Stable reference used as provenance on extracted records
    """

    doc_id: str
    content: str = Field(..., min_length=1)
    position: int = 0
    chunk_id: str | None = None

    @property
    def reference(self) -> str:
        return self.chunk_id or f"{self.doc_id}:{self.position}"
