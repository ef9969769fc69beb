"""
SystemsKG - Primary Entry Point

The SystemsKG class manages a knowledge base directory, owns the job
scheduler and the result cache, and exposes the processing and review
operations.

A knowledge base is a self-contained directory containing:
    - documents.parquet/: Source documents and their processing state
    - system_entities.parquet/: Consolidated entities per document pass
    - system_relationships.parquet/: Consolidated relationships per pass
    - quotes.parquet/: Community quotes per pass
    - metadata.json: KB metadata and version

Processing pipeline (one scheduled job per document):
    payload -> text -> chunks -> per-chunk extraction (cached)
    -> per-document consolidation -> persisted records

Example:
    >>> async with SystemsKG("./my_kb") as skg:
    ...     job_id = await skg.submit_job(data, filename="plan.txt")
    ...     job = await skg.wait_for_job(job_id)
    ...     graph = await skg.get_systems_map([job.document_id])
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from pydantic import ValidationError

from systems_kg.errors import InvalidRequestError, SystemsKGError
from systems_kg.graph.systems_map import build_systems_map
from systems_kg.ingestion.chunking import chunk_text
from systems_kg.ingestion.consolidation import consolidate_document
from systems_kg.ingestion.extraction import SystemsExtractor
from systems_kg.ingestion.resolution import find_duplicate_candidates
from systems_kg.quality import QualityScorer
from systems_kg.scheduling import (
    BoundedCache,
    JobScheduler,
    build_request,
    get_optimal_processing_strategy,
)
from systems_kg.types import (
    ChunkInput,
    CorpusQualityReport,
    Document,
    DocumentConsolidation,
    DocumentQualityReport,
    DuplicateCandidate,
    Job,
    JobPriority,
    JobType,
    QueueMetrics,
    QuoteRecord,
    SystemEntityRecord,
    SystemEntityType,
    SystemRelationshipRecord,
    SystemsMap,
    SystemsMapFilters,
)

if TYPE_CHECKING:
    from systems_kg.config.settings import SKGConfig
    from systems_kg.providers.base import LLMProvider, TextExtractor
    from systems_kg.storage.base import StorageBackend

logger = logging.getLogger(__name__)


class SystemsKG:
    """
    A portable, embedded systems knowledge base.

    Args:
        path: Directory for the knowledge base. Created if doesn't exist.
        config: Optional configuration. Uses defaults if not provided.
        llm: LLM provider. Built from config on first use if not provided.
        text_extractor: Payload-to-text converter. Plain text by default.
        storage: Storage backend. Parquet in ``path`` by default.
        create: If True, create directory if missing. Default True.
    """

    def __init__(
        self,
        path: str | Path,
        config: "SKGConfig | None" = None,
        *,
        llm: "LLMProvider | None" = None,
        text_extractor: "TextExtractor | None" = None,
        storage: "StorageBackend | None" = None,
        create: bool = True,
    ) -> None:
        self._path = Path(path).resolve()
        self._create = create

        if config is None:
            from systems_kg.config import SKGConfig
            config = SKGConfig()
        self._config = config

        self._llm = llm
        if text_extractor is None:
            from systems_kg.providers.base import PlainTextExtractor
            text_extractor = PlainTextExtractor()
        self._text_extractor = text_extractor
        self._storage = storage
        self._extractor: SystemsExtractor | None = None
        self._initialized = False

        self.cache = BoundedCache(config.cache_max_bytes, config.cache_ttl_seconds)
        self.scheduler = JobScheduler(
            self._process_job,
            max_concurrent_jobs=config.max_concurrent_jobs,
            memory_threshold=config.memory_threshold,
            default_job_memory=config.default_job_memory,
            history_limit=config.job_history_limit,
        )
        self.scorer = QualityScorer(
            config.expected_keywords,
            generic_min_length=config.generic_name_min_length,
            duplicate_threshold=config.duplicate_similarity_threshold,
            high_confidence=config.high_confidence_threshold,
            review_confidence=config.review_confidence_threshold,
            low_confidence=config.low_confidence_threshold,
        )
        # Raw payloads of queued and processing jobs, by job id
        self._payloads: dict[str, tuple[str, bytes, str]] = {}

    async def _ensure_initialized(self) -> None:
        """Lazy initialization of storage and providers on first use."""
        if self._initialized:
            return

        if self._storage is None:
            if self._create:
                self._path.mkdir(parents=True, exist_ok=True)
            elif not self._path.exists():
                raise FileNotFoundError(f"Knowledge base not found: {self._path}")
            from systems_kg.storage.parquet.backend import ParquetBackend
            self._storage = ParquetBackend(self._path)
        await self._storage.initialize()

        self._initialized = True

    def _create_llm_provider(self) -> "LLMProvider":
        """Create LLM provider based on config."""
        provider = self._config.llm_provider.lower()

        if provider == "openai":
            from systems_kg.providers.llm.openai import OpenAILLMProvider
            return OpenAILLMProvider(
                api_key=self._config.openai_api_key,
                model=self._config.llm_model,
                timeout=self._config.llm_timeout_seconds,
            )
        raise ValueError(f"Unknown LLM provider: {provider}")

    @property
    def extractor(self) -> SystemsExtractor:
        """Chunk extractor, built on first use."""
        if self._extractor is None:
            if self._llm is None:
                self._llm = self._create_llm_provider()
            self._extractor = SystemsExtractor(
                self._llm,
                self.cache,
                batch_size=self._config.extraction_batch_size,
                max_retries=self._config.extraction_max_retries,
                retry_backoff_seconds=self._config.extraction_retry_backoff_seconds,
                temperature=self._config.llm_temperature,
                max_tokens=self._config.llm_max_tokens,
            )
        return self._extractor

    @property
    def storage(self) -> "StorageBackend":
        if self._storage is None or not self._initialized:
            raise RuntimeError("SystemsKG not initialized. Use 'async with' or call an async method first.")
        return self._storage

    # === Lifecycle ===

    async def __aenter__(self) -> "SystemsKG":
        await self._ensure_initialized()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Wait for outstanding jobs, then release resources."""
        await self.scheduler.drain()
        if self._storage is not None and self._initialized:
            await self._storage.close()
        self._initialized = False

    # === Properties ===

    @property
    def path(self) -> Path:
        """Path to the knowledge base directory."""
        return self._path

    @property
    def config(self) -> "SKGConfig":
        """Current configuration."""
        return self._config

    # === Jobs ===

    async def submit_job(
        self,
        payload: bytes,
        *,
        filename: str = "document.txt",
        document_id: str | None = None,
        job_type: str = "extraction",
        priority: str | None = None,
        memory_estimate: int | None = None,
    ) -> str:
        """
        Register a document and queue a processing job for it.

        Without an explicit priority, the size-based processing strategy
        picks one. The strategy and its warnings are attached to the job.
        Nothing is written until the request has been validated.

        Returns:
            The job id

        Raises:
            InvalidRequestError: Unknown job type or priority, or a negative
                memory estimate
        """
        if job_type not in {t.value for t in JobType}:
            raise InvalidRequestError(f"Unknown job type: {job_type!r}")
        if priority is not None and priority not in {p.value for p in JobPriority}:
            raise InvalidRequestError(f"Unknown priority: {priority!r}")

        strategy = get_optimal_processing_strategy(len(payload))
        document_id = document_id or str(uuid4())
        request = build_request(
            document_id,
            payload_size=len(payload),
            job_type=job_type,
            priority=priority or strategy.priority,
            memory_estimate=memory_estimate,
            strategy=strategy.strategy,
            warnings=strategy.warnings,
        )

        await self._ensure_initialized()
        for warning in strategy.warnings:
            logger.info("%s: %s", filename, warning)

        # A resubmitted document keeps its current pass until the new one completes
        if await self.storage.get_document(document_id) is None:
            await self.storage.write_document(Document(uuid=document_id, name=filename))
        else:
            await self.storage.update_document(document_id, status="pending", error=None)

        job_id = self.scheduler.enqueue(request)
        self._payloads[job_id] = (document_id, payload, filename)
        return job_id

    def get_job_status(self, job_id: str) -> Job | None:
        return self.scheduler.status(job_id)

    async def cancel_job(self, job_id: str) -> bool:
        """
        Cancel a queued job.

        The document is marked cancelled unless another job for it is
        still queued or processing.
        """
        cancelled = self.scheduler.cancel(job_id)
        if not cancelled:
            return False
        entry = self._payloads.pop(job_id, None)
        if entry is not None:
            document_id = entry[0]
            if not any(other[0] == document_id for other in self._payloads.values()):
                await self._ensure_initialized()
                await self.storage.update_document(document_id, status="cancelled")
        return True

    def get_queue_metrics(self) -> QueueMetrics:
        return self.scheduler.metrics()

    async def wait_for_job(self, job_id: str) -> Job | None:
        return await self.scheduler.wait(job_id)

    async def drain(self) -> None:
        """Wait until no jobs are queued or processing."""
        await self.scheduler.drain()

    async def _process_job(self, job: Job) -> None:
        """Scheduler handler: run the processing pipeline for one document."""
        storage = self.storage
        try:
            entry = self._payloads.get(job.id)
            if entry is None:
                raise SystemsKGError(f"No payload queued for job {job.id}")
            _, payload, filename = entry

            await storage.update_document(job.document_id, status="processing")
            extracted = await self._text_extractor.extract(payload, filename)
            chunks = chunk_text(
                extracted.text,
                job.document_id,
                max_chars=self._config.chunk_size_chars,
                overlap_chars=self._config.chunk_overlap_chars,
            )
            changes: dict[str, Any] = {
                "page_count": extracted.page_count,
                "content_length": len(extracted.text),
            }

            if job.job_type != "chunking":
                consolidation = await self.extract_systems(job.document_id, chunks, context=filename)
                for warning in consolidation.warnings:
                    logger.warning("Document %s: %s", job.document_id, warning)
                self.scheduler.add_warnings(job.id, consolidation.warnings)
                records = await self._persist(consolidation, pass_id=job.id)
                changes["pass_id"] = job.id
                if job.job_type == "analysis":
                    changes["quality_score"] = self.scorer.document_score(records)

            await storage.update_document(
                job.document_id,
                status="completed",
                error=None,
                processed_at=datetime.now(timezone.utc).isoformat(),
                **changes,
            )
        except Exception as e:
            await storage.update_document(job.document_id, status="failed", error=str(e) or type(e).__name__)
            raise
        finally:
            self._payloads.pop(job.id, None)

    # === Extraction ===

    async def extract_systems(
        self,
        document_id: str,
        chunks: list[ChunkInput] | list[str],
        *,
        context: str | None = None,
    ) -> DocumentConsolidation:
        """
        Extract and consolidate systems data for one document's chunks.

        Nothing is persisted; failed chunks appear as warnings.
        """
        chunk_inputs = [
            c if isinstance(c, ChunkInput)
            else ChunkInput(doc_id=document_id, content=c, position=i, chunk_id=f"{document_id}:{i}")
            for i, c in enumerate(chunks)
        ]
        outcomes = await self.extractor.extract_chunks(chunk_inputs, context)
        return consolidate_document(
            document_id,
            outcomes,
            model=self.extractor.llm.model_name,
            quote_min_length=self._config.quote_min_length,
        )

    async def _persist(
        self,
        consolidation: DocumentConsolidation,
        *,
        pass_id: str = "",
    ) -> list[SystemEntityRecord]:
        """
        Write a document pass. Relationships whose endpoints were not
        extracted as entities are dropped.
        """
        now = datetime.now(timezone.utc).isoformat()
        entities = [
            SystemEntityRecord(
                uuid=str(uuid4()),
                document_id=consolidation.document_id,
                name=e.name,
                type=e.type,
                category=e.category,
                description=e.description,
                confidence=e.confidence,
                evidence=e.evidence,
                model=e.model,
                pass_id=pass_id,
                created_at=now,
            )
            for e in consolidation.entities
        ]
        name_to_uuid = {e.name: e.uuid for e in entities}
        relationships = [
            SystemRelationshipRecord(
                uuid=str(uuid4()),
                document_id=consolidation.document_id,
                from_uuid=name_to_uuid[r.from_name],
                from_name=r.from_name,
                to_uuid=name_to_uuid[r.to_name],
                to_name=r.to_name,
                type=r.type,
                strength=r.strength,
                description=r.description,
                confidence=r.confidence,
                evidence=r.evidence,
                pass_id=pass_id,
                created_at=now,
            )
            for r in consolidation.relationships
            if r.from_name in name_to_uuid and r.to_name in name_to_uuid
        ]
        dropped = len(consolidation.relationships) - len(relationships)
        if dropped:
            logger.info(
                "Document %s: dropped %d relationships with unknown endpoints",
                consolidation.document_id,
                dropped,
            )
        quotes = [
            QuoteRecord(
                uuid=str(uuid4()),
                document_id=consolidation.document_id,
                text=q.text,
                knowledge_holder=q.knowledge_holder,
                cultural_sensitivity=q.cultural_sensitivity,
                requires_attribution=q.requires_attribution,
                pass_id=pass_id,
                created_at=now,
            )
            for q in consolidation.quotes
        ]

        await self.storage.write_system_entities(entities)
        await self.storage.write_system_relationships(relationships)
        await self.storage.write_quotes(quotes)
        return entities

    # === Review ===

    async def get_systems_map(
        self,
        document_ids: list[str],
        filters: SystemsMapFilters | dict[str, Any] | None = None,
    ) -> SystemsMap:
        """
        Build the systems graph for a set of documents.

        Raises:
            InvalidRequestError: Unknown entity type or out-of-range confidence
        """
        parsed = _parse_filters(filters)
        await self._ensure_initialized()
        entities = await self.storage.find_system_entities(
            document_ids, parsed.entity_types, parsed.min_confidence
        )
        relationships = await self.storage.find_system_relationships(
            document_ids, parsed.min_confidence
        )
        return build_systems_map(entities, relationships, parsed, document_ids)

    async def get_duplicate_candidates(self, document_id: str) -> list[DuplicateCandidate]:
        entities = await self._document_entities(document_id)
        ranked = sorted(entities, key=lambda e: -e.confidence)
        return find_duplicate_candidates(ranked, self._config.duplicate_similarity_threshold)

    async def get_quality_score(self, document_id: str) -> int:
        return (await self.get_quality_report(document_id)).quality_score

    async def get_quality_report(self, document_id: str) -> DocumentQualityReport:
        entities = await self._document_entities(document_id)
        quotes = await self.storage.find_quotes([document_id])
        return self.scorer.document_report(document_id, entities, total_quotes=len(quotes))

    async def get_quotes(self, document_id: str) -> list[QuoteRecord]:
        """Quotes of the document's current pass, in extraction order."""
        await self._ensure_initialized()
        return await self.storage.find_quotes([document_id])

    async def get_corpus_quality(self, document_ids: list[str] | None = None) -> CorpusQualityReport:
        """Quality across the given documents, or the whole knowledge base."""
        await self._ensure_initialized()
        entities = await self.storage.find_system_entities(document_ids)
        return self.scorer.corpus_report(entities)

    async def list_documents(self) -> list[Document]:
        await self._ensure_initialized()
        return await self.storage.list_documents()

    async def _document_entities(self, document_id: str) -> list[SystemEntityRecord]:
        await self._ensure_initialized()
        return await self.storage.find_system_entities([document_id])


def _parse_filters(filters: SystemsMapFilters | dict[str, Any] | None) -> SystemsMapFilters:
    if filters is None:
        return SystemsMapFilters()
    if isinstance(filters, SystemsMapFilters):
        parsed = filters
    else:
        try:
            parsed = SystemsMapFilters.model_validate(filters)
        except ValidationError as e:
            raise InvalidRequestError(f"Invalid systems map filters: {e}") from e
    if parsed.entity_types is not None:
        known = {t.value for t in SystemEntityType}
        unknown = [t for t in parsed.entity_types if t not in known]
        if unknown:
            raise InvalidRequestError(f"Unknown entity types: {unknown}")
    return parsed
