"""
Parquet Storage Backend

Orchestrates Parquet file writing and DuckDB queries.
"""

import asyncio
import json
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from uuid import uuid4

import pyarrow as pa
import pyarrow.parquet as pq
from filelock import FileLock, Timeout

from systems_kg.errors import PersistenceError
from systems_kg.storage.base import StorageBackend
from systems_kg.storage.duckdb.queries import DuckDBQueries
from systems_kg.types import Document, QuoteRecord, SystemEntityRecord, SystemRelationshipRecord


class ParquetBackend(StorageBackend):
    """
    Parquet-based storage backend.

    Directory structure:
        kb_path/
        ├── documents.parquet/
        ├── system_entities.parquet/
        ├── system_relationships.parquet/
        ├── quotes.parquet/
        └── metadata.json

    Documents are append-only revisions; the row with the highest
    ``revision`` is the current state. Systems records and quotes are written
    once per document pass, tagged with its ``pass_id``; reads only return
    each document's current pass.

    Thread safety:
        - Write operations use file locking (.kb.lock)
        - Read operations are concurrent-safe (part files are immutable)

    Failures (lock timeout, filesystem or Arrow errors) are raised as
    PersistenceError.
    """

    SCHEMA_VERSION = "1.0.0"

    def __init__(self, kb_path: Path | str, lock_timeout: float = 30):
        self._kb_path = Path(kb_path)
        self._lock = FileLock(self._kb_path / ".kb.lock", timeout=lock_timeout)
        self._duckdb = DuckDBQueries(self._kb_path)
        self._initialized = False

    @property
    def kb_path(self) -> Path:
        """Return the path to the knowledge base directory."""
        return self._kb_path

    async def initialize(self) -> None:
        """Initialize storage backend."""
        if self._initialized:
            return

        def _init() -> None:
            self.kb_path.mkdir(parents=True, exist_ok=True)
            self._write_metadata_if_missing()

        await asyncio.to_thread(_init)
        await self._duckdb.initialize()
        self._initialized = True

    async def close(self) -> None:
        """Close storage backend."""
        await self._duckdb.close()
        self._initialized = False

    def _write_metadata_if_missing(self) -> None:
        """Create metadata.json if it doesn't exist."""
        meta_path = self.kb_path / "metadata.json"
        if not meta_path.exists():
            metadata = {
                "schema_version": self.SCHEMA_VERSION,
                "created_at": datetime.now(timezone.utc).isoformat(),
            }
            meta_path.write_text(json.dumps(metadata, indent=2))

    # -------------------------------------------------------------------------
    # Parquet Schemas
    # -------------------------------------------------------------------------

    @staticmethod
    def _document_schema() -> pa.Schema:
        return pa.schema([
            ("uuid", pa.string()),
            ("name", pa.string()),
            ("status", pa.string()),
            ("page_count", pa.int32()),
            ("content_length", pa.int64()),
            ("error", pa.string()),
            ("quality_score", pa.int32()),
            ("pass_id", pa.string()),
            ("created_at", pa.string()),
            ("processed_at", pa.string()),
            ("revision", pa.int64()),
        ])

    @staticmethod
    def _entity_schema() -> pa.Schema:
        return pa.schema([
            ("uuid", pa.string()),
            ("document_id", pa.string()),
            ("name", pa.string()),
            ("type", pa.string()),
            ("category", pa.string()),
            ("description", pa.string()),
            ("confidence", pa.float64()),
            ("evidence", pa.string()),
            ("model", pa.string()),
            ("pass_id", pa.string()),
            ("position", pa.int32()),  # Order within the write
            ("created_at", pa.string()),
        ])

    @staticmethod
    def _relationship_schema() -> pa.Schema:
        return pa.schema([
            ("uuid", pa.string()),
            ("document_id", pa.string()),
            ("from_uuid", pa.string()),
            ("from_name", pa.string()),
            ("to_uuid", pa.string()),
            ("to_name", pa.string()),
            ("type", pa.string()),
            ("strength", pa.string()),
            ("description", pa.string()),
            ("confidence", pa.float64()),
            ("evidence", pa.string()),
            ("pass_id", pa.string()),
            ("position", pa.int32()),
            ("created_at", pa.string()),
        ])

    @staticmethod
    def _quote_schema() -> pa.Schema:
        return pa.schema([
            ("uuid", pa.string()),
            ("document_id", pa.string()),
            ("text", pa.string()),
            ("knowledge_holder", pa.string()),
            ("cultural_sensitivity", pa.string()),
            ("requires_attribution", pa.bool_()),
            ("pass_id", pa.string()),
            ("position", pa.int32()),
            ("created_at", pa.string()),
        ])

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    async def write_document(self, document: Document) -> None:
        """Write a single document (as a new revision)."""
        def _write() -> None:
            with self._lock:
                now = datetime.now(timezone.utc).isoformat()
                self._append_to_parquet(
                    "documents",
                    self._document_row(document, created_at=document.created_at or now),
                    self._document_schema(),
                )

        await self._run_write(_write, "document")

    async def update_document(self, uuid: str, **changes: Any) -> Document | None:
        """Append a revision of the document with ``changes`` applied."""
        unknown = set(changes) - set(Document.model_fields)
        if unknown:
            raise ValueError(f"Unknown document fields: {sorted(unknown)}")

        current = await self.get_document(uuid)
        if current is None:
            return None
        updated = current.model_copy(update=changes)

        def _write() -> None:
            with self._lock:
                self._append_to_parquet(
                    "documents",
                    self._document_row(updated, created_at=updated.created_at or ""),
                    self._document_schema(),
                )

        await self._run_write(_write, "document update")
        return updated

    @staticmethod
    def _document_row(document: Document, created_at: str) -> dict[str, list[Any]]:
        return {
            "uuid": [document.uuid],
            "name": [document.name],
            "status": [document.status],
            "page_count": [document.page_count],
            "content_length": [document.content_length],
            "error": [document.error or ""],
            "quality_score": [document.quality_score],
            "pass_id": [document.pass_id or ""],
            "created_at": [created_at],
            "processed_at": [document.processed_at or ""],
            "revision": [time.time_ns()],
        }

    async def write_system_entities(self, entities: list[SystemEntityRecord]) -> None:
        """Write consolidated entities in batch."""
        if not entities:
            return

        def _write() -> None:
            with self._lock:
                now = datetime.now(timezone.utc).isoformat()
                data = {
                    "uuid": [e.uuid for e in entities],
                    "document_id": [e.document_id for e in entities],
                    "name": [e.name for e in entities],
                    "type": [e.type for e in entities],
                    "category": [e.category or "" for e in entities],
                    "description": [e.description or "" for e in entities],
                    "confidence": [e.confidence for e in entities],
                    "evidence": [e.evidence for e in entities],
                    "model": [e.model or "" for e in entities],
                    "pass_id": [e.pass_id for e in entities],
                    "position": list(range(len(entities))),
                    "created_at": [e.created_at or now for e in entities],
                }
                self._append_to_parquet("system_entities", data, self._entity_schema())

        await self._run_write(_write, "system entities")

    async def write_system_relationships(
        self, relationships: list[SystemRelationshipRecord]
    ) -> None:
        """Write consolidated relationships in batch."""
        if not relationships:
            return

        def _write() -> None:
            with self._lock:
                now = datetime.now(timezone.utc).isoformat()
                data = {
                    "uuid": [r.uuid for r in relationships],
                    "document_id": [r.document_id for r in relationships],
                    "from_uuid": [r.from_uuid for r in relationships],
                    "from_name": [r.from_name for r in relationships],
                    "to_uuid": [r.to_uuid for r in relationships],
                    "to_name": [r.to_name for r in relationships],
                    "type": [r.type for r in relationships],
                    "strength": [r.strength for r in relationships],
                    "description": [r.description for r in relationships],
                    "confidence": [r.confidence for r in relationships],
                    "evidence": [r.evidence for r in relationships],
                    "pass_id": [r.pass_id for r in relationships],
                    "position": list(range(len(relationships))),
                    "created_at": [r.created_at or now for r in relationships],
                }
                self._append_to_parquet("system_relationships", data, self._relationship_schema())

        await self._run_write(_write, "system relationships")

    async def write_quotes(self, quotes: list[QuoteRecord]) -> None:
        """Write community quotes in batch."""
        if not quotes:
            return

        def _write() -> None:
            with self._lock:
                now = datetime.now(timezone.utc).isoformat()
                data = {
                    "uuid": [q.uuid for q in quotes],
                    "document_id": [q.document_id for q in quotes],
                    "text": [q.text for q in quotes],
                    "knowledge_holder": [q.knowledge_holder or "" for q in quotes],
                    "cultural_sensitivity": [q.cultural_sensitivity for q in quotes],
                    "requires_attribution": [q.requires_attribution for q in quotes],
                    "pass_id": [q.pass_id for q in quotes],
                    "position": list(range(len(quotes))),
                    "created_at": [q.created_at or now for q in quotes],
                }
                self._append_to_parquet("quotes", data, self._quote_schema())

        await self._run_write(_write, "quotes")

    async def _run_write(self, write: Any, what: str) -> None:
        try:
            await asyncio.to_thread(write)
        except Timeout as e:
            raise PersistenceError(f"Timed out waiting for knowledge base lock writing {what}") from e
        except (OSError, pa.ArrowException) as e:
            raise PersistenceError(f"Failed to write {what}: {e}") from e

    def _append_to_parquet(
        self,
        table_name: str,
        data: dict[str, list[Any]],
        schema: pa.Schema,
    ) -> None:
        """
        Append data as a new immutable part file in the table's dataset directory.

        Part files are written to a temp name and renamed into place, so
        readers never see a partial file.
        """
        path = self.kb_path / f"{table_name}.parquet"
        table = pa.Table.from_pydict(data, schema=schema)
        path.mkdir(parents=True, exist_ok=True)

        now_part = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        part_name = f"part-{now_part}-{uuid4().hex}.parquet"
        part_path = path / part_name
        temp_part_path = path / f".{part_name}.tmp"
        pq.write_table(table, temp_part_path, compression="zstd")
        temp_part_path.replace(part_path)

    # -------------------------------------------------------------------------
    # Read Operations (delegate to DuckDB)
    # -------------------------------------------------------------------------

    async def get_document(self, uuid: str) -> Document | None:
        return await self._duckdb.get_document(uuid)

    async def list_documents(self) -> list[Document]:
        return await self._duckdb.list_documents()

    async def find_system_entities(
        self,
        document_ids: list[str] | None = None,
        entity_types: list[str] | None = None,
        min_confidence: float | None = None,
    ) -> list[SystemEntityRecord]:
        return await self._duckdb.find_system_entities(document_ids, entity_types, min_confidence)

    async def find_system_relationships(
        self,
        document_ids: list[str] | None = None,
        min_confidence: float | None = None,
    ) -> list[SystemRelationshipRecord]:
        return await self._duckdb.find_system_relationships(document_ids, min_confidence)

    async def find_quotes(self, document_ids: list[str] | None = None) -> list[QuoteRecord]:
        return await self._duckdb.find_quotes(document_ids)
