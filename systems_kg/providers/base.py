"""
Abstract Provider Interfaces

Base classes for the two external collaborators a job depends on: the LLM
that reads chunks and the text extractor that turns a raw payload into text.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from systems_kg.types import ExtractedText


class LLMProvider(ABC):
    """
    Abstract interface for LLM providers.

    Implementations raise TransientServiceError for timeouts and rate limits
    so callers can retry; any other exception is treated as permanent.
    """

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float = 0.0,
        max_tokens: int = 4096,
    ) -> str:
        """Generate a completion."""
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Current model name."""
        ...


class TextExtractor(ABC):
    """Abstract interface for payload-to-text conversion."""

    @abstractmethod
    async def extract(self, payload: bytes, filename: str) -> ExtractedText:
        """Return the plain text of a payload and its page count."""
        ...


class PlainTextExtractor(TextExtractor):
    """
    Decode UTF-8 (or Latin-1 as a fallback) text payloads.

    Form feeds are counted as page breaks, so text dumped from a paginated
    source keeps a meaningful page count.
    """

    async def extract(self, payload: bytes, filename: str) -> ExtractedText:
        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError:
            text = payload.decode("latin-1")
        text = text.replace("\r\n", "\n")
        page_count = text.count("\f") + 1 if text.strip() else 0
        return ExtractedText(text=text.replace("\f", "\n\n"), page_count=page_count)
