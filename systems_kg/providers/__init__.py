"""
LLM and Text Extraction Providers

Provider-agnostic interfaces for the collaborators a processing job calls.

Modules:
    base: Abstract provider interfaces and the plain-text extractor
    llm/: LLM provider implementations

Supported LLM Providers:
    - OpenAI (gpt-4o, gpt-4o-mini) via LangChain

Design:
    - All providers implement abstract interfaces (LLMProvider, TextExtractor)
    - Lazy import to avoid requiring all dependencies
    - Timeouts and rate limits surface as TransientServiceError

Example:
    >>> from systems_kg.providers import LLMProvider, PlainTextExtractor
    >>> from systems_kg.providers.llm import OpenAILLMProvider
"""

from systems_kg.providers.base import LLMProvider, PlainTextExtractor, TextExtractor

__all__ = ["LLMProvider", "TextExtractor", "PlainTextExtractor"]
