"""
Tests for the plain text chunker.
"""

import pytest

from systems_kg.ingestion.chunking import chunk_text


def paragraph(word: str, n: int) -> str:
    return " ".join([word] * n)


class TestChunkText:
    """Tests for chunk_text."""

    def test_short_text_is_one_chunk(self):
        text = "The Youth Hub supports young people in Tennant Creek and surrounding communities."
        chunks = chunk_text(text, "doc")
        assert len(chunks) == 1
        assert chunks[0].content == text
        assert chunks[0].chunk_id == "doc:0"
        assert chunks[0].position == 0

    def test_paragraphs_are_packed(self):
        paragraphs = [paragraph("alpha", 20), paragraph("beta", 20), paragraph("gamma", 20)]
        chunks = chunk_text("\n\n".join(paragraphs), "doc", max_chars=250, overlap_chars=0)
        assert len(chunks) == 2
        assert chunks[0].content == f"{paragraphs[0]}\n\n{paragraphs[1]}"
        assert chunks[1].content == paragraphs[2]

    def test_overlap_prefixes_previous_tail(self):
        paragraphs = [paragraph("alpha", 30), paragraph("beta", 30)]
        chunks = chunk_text("\n\n".join(paragraphs), "doc", max_chars=200, overlap_chars=20)
        assert len(chunks) == 2
        assert chunks[1].content.endswith(paragraphs[1])
        assert chunks[1].content.startswith("alpha")
        assert len(chunks[1].content) <= len(paragraphs[1]) + 22

    def test_long_paragraph_split_at_sentences(self):
        sentence = "Programs need stable funding to retain staff."
        text = " ".join([sentence] * 10)
        chunks = chunk_text(text, "doc", max_chars=100, overlap_chars=0)
        assert len(chunks) > 1
        for chunk in chunks:
            assert len(chunk.content) <= 100
            assert chunk.content.endswith(".")

    def test_unbreakable_text_is_hard_split(self):
        chunks = chunk_text("x" * 250, "doc", max_chars=100, overlap_chars=0)
        assert [len(c.content) for c in chunks] == [100, 100, 50]

    def test_small_chunks_filtered_and_positions_contiguous(self):
        text = "\n\n".join([paragraph("alpha", 20), "tiny", paragraph("beta", 20)])
        chunks = chunk_text(text, "doc", max_chars=120, overlap_chars=0)
        assert [c.position for c in chunks] == list(range(len(chunks)))
        assert all("tiny" != c.content for c in chunks)

    def test_empty_text(self):
        assert chunk_text("", "doc") == []
        assert chunk_text("\n\n  \n", "doc") == []

    def test_invalid_sizes(self):
        with pytest.raises(ValueError):
            chunk_text("text", "doc", max_chars=0)
        with pytest.raises(ValueError):
            chunk_text("text", "doc", max_chars=100, overlap_chars=100)
