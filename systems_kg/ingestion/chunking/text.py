"""
Plain Text Chunker

Paragraph-packing chunker for extracted document text.

Algorithm:
    1. Split text into paragraphs on blank lines
    2. Break paragraphs longer than the chunk size at sentence boundaries
       (hard split as a last resort)
    3. Pack paragraphs greedily up to the chunk size
    4. Prefix each chunk after the first with the tail of its predecessor
    5. Filter small chunks and build ChunkInput objects
"""

import re

from systems_kg.types import ChunkInput

_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")
_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")


def chunk_text(
    content: str,
    doc_id: str,
    *,
    max_chars: int = 4000,
    overlap_chars: int = 200,
    min_chunk_chars: int = 50,
) -> list[ChunkInput]:
    """
    Split plain text into overlapping, paragraph-aligned chunks.

    Args:
        content: Document text
        doc_id: Parent document ID for chunk association
        max_chars: Target upper bound on chunk length (before overlap)
        overlap_chars: Characters of the previous chunk repeated at the start
        min_chunk_chars: Filter out chunks smaller than this

    Returns:
        List of ChunkInput objects with ids "<doc_id>:<position>"
    """
    if max_chars <= 0:
        raise ValueError("max_chars must be positive")
    if overlap_chars < 0 or overlap_chars >= max_chars:
        raise ValueError("overlap_chars must be in [0, max_chars)")

    units: list[str] = []
    for paragraph in _split_into_paragraphs(content):
        if len(paragraph) > max_chars:
            units.extend(_split_long_paragraph(paragraph, max_chars))
        else:
            units.append(paragraph)

    # Greedy packing
    packed: list[str] = []
    current: list[str] = []
    current_len = 0
    for unit in units:
        added = len(unit) + (2 if current else 0)
        if current and current_len + added > max_chars:
            packed.append("\n\n".join(current))
            current = []
            current_len = 0
            added = len(unit)
        current.append(unit)
        current_len += added
    if current:
        packed.append("\n\n".join(current))

    chunks: list[ChunkInput] = []
    position = 0
    previous = ""
    for body in packed:
        text = body
        if previous and overlap_chars:
            text = f"{_tail(previous, overlap_chars)}\n\n{body}"
        previous = body
        if len(body) < min_chunk_chars:
            continue
        chunks.append(
            ChunkInput(
                doc_id=doc_id,
                content=text,
                position=position,
                chunk_id=f"{doc_id}:{position}",
            )
        )
        position += 1

    return chunks


def _split_into_paragraphs(text: str) -> list[str]:
    return [p.strip() for p in _PARAGRAPH_SPLIT.split(text) if p.strip()]


def _split_long_paragraph(paragraph: str, max_chars: int) -> list[str]:
    """Split at sentence boundaries; slice sentences that are still too long."""
    pieces: list[str] = []
    current = ""
    for sentence in _SENTENCE_SPLIT.split(paragraph):
        while len(sentence) > max_chars:
            if current:
                pieces.append(current)
                current = ""
            pieces.append(sentence[:max_chars])
            sentence = sentence[max_chars:]
        if not sentence:
            continue
        candidate = f"{current} {sentence}" if current else sentence
        if len(candidate) > max_chars:
            pieces.append(current)
            current = sentence
        else:
            current = candidate
    if current:
        pieces.append(current)
    return pieces


def _tail(text: str, n: int) -> str:
    """Last ``n`` characters, starting at a word boundary when possible."""
    if len(text) <= n:
        return text
    tail = text[-n:]
    space = tail.find(" ")
    if 0 <= space < len(tail) - 1:
        tail = tail[space + 1 :]
    return tail
