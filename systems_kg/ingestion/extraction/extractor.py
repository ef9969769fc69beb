"""
Systems Extractor

Extracts system entities (services, themes, outcomes, factors), the typed
relationships between them and direct community quotes from text chunks with a
single LLM call per chunk.

Every call returns a tagged ChunkExtraction: a failed chunk (timeout, rate
limit, malformed response, anything else) carries an empty result and an
error kind instead of raising, so one bad chunk never fails a document.

Example:
    >>> from systems_kg.providers.llm import OpenAILLMProvider
    >>> extractor = SystemsExtractor(OpenAILLMProvider(), cache=BoundedCache(10_000_000))
    >>> outcome = await extractor.extract(chunk_text, context="annual-report.pdf")
    >>> if outcome.ok:
    ...     print(len(outcome.result.entities))
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from langchain_core.exceptions import OutputParserException
from langchain_core.output_parsers import JsonOutputParser
from pydantic import ValidationError

from systems_kg.errors import TransientServiceError
from systems_kg.scheduling.cache import MISSING, hash_key
from systems_kg.types import (
    ChunkExtraction,
    ChunkInput,
    ExtractedEntity,
    ExtractedQuote,
    ExtractedRelationship,
    SystemExtractionResult,
)

if TYPE_CHECKING:
    from systems_kg.providers.base import LLMProvider
    from systems_kg.scheduling.cache import BoundedCache

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Prompts
# -----------------------------------------------------------------------------

_SYSTEMS_SYSTEM_PROMPT = """\
You are an expert in youth development systems analysis.
Extract system entities, their relationships and direct community quotes
from the text.
Focus on identifying services, themes, outcomes, and environmental factors \
relevant to youth support systems."""

_SYSTEMS_USER_TEMPLATE = """\
Analyze this text to extract system entities and relationships:
{context_line}
Text: {content}

Extract and return in JSON format:
{{
  "entities": [
    {{
      "name": "Entity name (e.g., 'Youth Hub', 'Cultural Identity')",
      "type": "SERVICE|THEME|OUTCOME|FACTOR",
      "category": "Optional sub-category",
      "description": "Brief description of the entity",
      "confidence": 0.0-1.0,
      "evidence": "Direct quote or paraphrase supporting this entity"
    }}
  ],
  "relationships": [
    {{
      "fromName": "Source entity name",
      "toName": "Target entity name",
      "type": "SUPPORTS|BLOCKS|ENABLES|INFLUENCES|REQUIRES",
      "strength": "STRONG|MEDIUM|WEAK",
      "description": "How/why they are related",
      "confidence": 0.0-1.0,
      "evidence": "Text supporting this relationship"
    }}
  ],
  "quotes": [
    {{
      "quote_text": "Exact words of a community member or stakeholder",
      "knowledge_holder": "Speaker name if clearly identified, null otherwise",
      "cultural_sensitivity": "public|restricted|sacred|confidential",
      "requires_attribution": true|false
    }}
  ]
}}

Guidelines:
- SERVICE: Programs, organizations, or support systems (e.g., "Youth Mentoring Program", "Family Support Services")
- THEME: Key issues, challenges, or focus areas (e.g., "Cultural Identity", "Mental Health", "Education Access")
- OUTCOME: Goals, impacts, or results (e.g., "Improved Wellbeing", "Community Engagement", "Academic Success")
- FACTOR: Environmental conditions, barriers, or enablers (e.g., "Funding Constraints", "Geographic Isolation", "Community Support")

Relationship types:
- SUPPORTS: A strengthens or promotes B
- BLOCKS: A hinders or prevents B
- ENABLES: A makes B possible
- INFLUENCES: A affects B (neutral)
- REQUIRES: A needs B to function

Quotes: only direct community voices quoted verbatim in the text. Leave the list
empty if there are none.

Focus on the most significant entities and relationships (3-7 of each)."""


# -----------------------------------------------------------------------------
# Response Parsing
# -----------------------------------------------------------------------------

_json_parser = JsonOutputParser()


def load_json_object(text: str) -> dict[str, Any] | None:
    """
    Recover a JSON object from an LLM response.

    JsonOutputParser handles raw and markdown-fenced JSON. Failing that, the
    slice between the first "{" and the last "}" is tried, for answers that
    wrap the object in prose. Returns None if nothing parses to a dict.
    """
    candidates = [text]
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start : end + 1])

    for candidate in candidates:
        try:
            data = _json_parser.parse(candidate)
        except OutputParserException:
            continue
        if isinstance(data, dict):
            return data
    return None


def parse_extraction_response(text: str, source_chunk: str | None = None) -> SystemExtractionResult | None:
    """
    Parse and validate an extraction response.

    Items that fail validation are dropped one by one; the rest survive.

    Returns:
        The result, or None if the response holds no JSON object at all
    """
    data = load_json_object(text)
    if data is None:
        return None

    entities: list[ExtractedEntity] = []
    for raw in _as_list(data.get("entities")):
        try:
            entity = ExtractedEntity.model_validate(raw)
        except ValidationError as e:
            logger.debug("Dropping invalid entity %r: %s", raw, e.errors()[0]["msg"])
            continue
        entity.source_chunk = source_chunk
        entities.append(entity)

    relationships: list[ExtractedRelationship] = []
    for raw in _as_list(data.get("relationships")):
        try:
            relationship = ExtractedRelationship.model_validate(raw)
        except ValidationError as e:
            logger.debug("Dropping invalid relationship %r: %s", raw, e.errors()[0]["msg"])
            continue
        relationship.source_chunk = source_chunk
        relationships.append(relationship)

    quotes: list[ExtractedQuote] = []
    for raw in _as_list(data.get("quotes")):
        try:
            quote = ExtractedQuote.model_validate(raw)
        except ValidationError as e:
            logger.debug("Dropping invalid quote %r: %s", raw, e.errors()[0]["msg"])
            continue
        quote.source_chunk = source_chunk
        quotes.append(quote)

    return SystemExtractionResult(entities=entities, relationships=relationships, quotes=quotes)


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


# -----------------------------------------------------------------------------
# Extractor
# -----------------------------------------------------------------------------


class SystemsExtractor:
    """
    Chunk-level systems extractor with caching, retries and batching.

    Args:
        llm: LLM provider for generation
        cache: Optional bounded cache for successful chunk results
        batch_size: Chunks extracted concurrently per batch
        max_retries: Retries for transient failures (0 = no retries)
        retry_backoff_seconds: Linear backoff step between retries
        temperature: Sampling temperature for extraction calls
        max_tokens: Response token budget
    """

    def __init__(
        self,
        llm: "LLMProvider",
        cache: "BoundedCache | None" = None,
        *,
        batch_size: int = 3,
        max_retries: int = 1,
        retry_backoff_seconds: float = 1.0,
        temperature: float = 0.3,
        max_tokens: int = 2000,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.llm = llm
        self.cache = cache
        self.batch_size = batch_size
        self.max_retries = max_retries
        self.retry_backoff_seconds = retry_backoff_seconds
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._sleep = sleep

    def cache_key(self, chunk_text: str, context: str | None = None) -> str:
        return hash_key(self.llm.model_name, context or "", chunk_text)

    async def extract(
        self,
        chunk_text: str,
        context: str | None = None,
        *,
        chunk_id: str | None = None,
    ) -> ChunkExtraction:
        """
        Extract entities and relationships from one chunk.

        Args:
            chunk_text: Text to analyze
            context: Optional document context (usually the document name)
            chunk_id: Provenance reference copied onto every extracted item

        Returns:
            ChunkExtraction; never raises for LLM or parsing failures
        """
        key = self.cache_key(chunk_text, context)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not MISSING:
                return ChunkExtraction(
                    chunk_id=chunk_id,
                    result=_with_source(cached, chunk_id),
                    cached=True,
                )

        prompt = _SYSTEMS_USER_TEMPLATE.format(
            context_line=f"Context: {context}\n" if context else "",
            content=chunk_text,
        )

        attempt = 0
        while True:
            try:
                response = await self.llm.generate(
                    prompt,
                    system=_SYSTEMS_SYSTEM_PROMPT,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                )
                break
            except TransientServiceError as e:
                if attempt >= self.max_retries:
                    logger.warning("Chunk %s gave up after %d attempts: %s", chunk_id, attempt + 1, e)
                    status = "rate_limited" if e.kind == "rate_limited" else "timeout"
                    return ChunkExtraction(chunk_id=chunk_id, status=status, error=str(e))
                attempt += 1
                await self._sleep(self.retry_backoff_seconds * attempt)
            except Exception as e:
                # Isolate the failure to this chunk
                logger.warning("Chunk %s extraction failed: %s", chunk_id, e)
                return ChunkExtraction(chunk_id=chunk_id, status="error", error=str(e) or type(e).__name__)

        result = parse_extraction_response(response, chunk_id)
        if result is None:
            logger.warning("Chunk %s returned no parseable JSON", chunk_id)
            return ChunkExtraction(
                chunk_id=chunk_id,
                status="malformed",
                error="response contained no JSON object",
            )

        if self.cache is not None:
            self.cache.set(key, result)
        return ChunkExtraction(chunk_id=chunk_id, result=result)

    async def extract_chunks(
        self,
        chunks: list[ChunkInput],
        context: str | None = None,
    ) -> list[ChunkExtraction]:
        """
        Extract from many chunks in fixed-size concurrent batches.

        Each batch is fully awaited before the next starts.

        Returns:
            One ChunkExtraction per chunk, in input order
        """
        outcomes: list[ChunkExtraction] = []
        for i in range(0, len(chunks), self.batch_size):
            batch = chunks[i : i + self.batch_size]
            outcomes.extend(
                await asyncio.gather(
                    *(self.extract(c.content, context, chunk_id=c.reference) for c in batch)
                )
            )
        return outcomes


def _with_source(result: SystemExtractionResult, chunk_id: str | None) -> SystemExtractionResult:
    """Copy of a cached result re-tagged with the requesting chunk."""
    copy = result.model_copy(deep=True)
    for entity in copy.entities:
        entity.source_chunk = chunk_id
    for relationship in copy.relationships:
        relationship.source_chunk = chunk_id
    for quote in copy.quotes:
        quote.source_chunk = chunk_id
    return copy
