"""
DuckDB Query Layer

SQL queries on the Parquet datasets written by ParquetBackend.
"""

import asyncio
import threading
from pathlib import Path
from typing import Any

import duckdb

from systems_kg.errors import PersistenceError
from systems_kg.types import Document, QuoteRecord, SystemEntityRecord, SystemRelationshipRecord

TABLES = ("documents", "system_entities", "system_relationships", "quotes")


class DuckDBQueries:
    """
    DuckDB query layer for the knowledge base.

    Thread safety:
        Uses thread-local storage for connections since DuckDB connections
        are not thread-safe and asyncio.to_thread() may use different threads.

    DuckDB reads Parquet files directly without loading into memory. A table
    that has never been written reads as empty.
    """

    def __init__(self, kb_path: Path):
        self.kb_path = kb_path
        self._local = threading.local()
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize DuckDB (marks as ready, connections created per-thread)."""
        self._initialized = True

    async def close(self) -> None:
        """Close the current thread's DuckDB connection."""
        self._initialized = False
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            self._local.conn = None

    def _get_conn(self) -> duckdb.DuckDBPyConnection:
        """Get thread-local DuckDB connection, creating if needed."""
        if not self._initialized:
            raise RuntimeError("DuckDB not initialized. Call initialize() first.")

        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = duckdb.connect()
            self._local.conn = conn
        return conn

    def _source(self, table: str) -> str | None:
        """read_parquet() argument for a table, or None if it has no data yet."""
        path = self.kb_path / f"{table}.parquet"
        if path.is_dir():
            if not any(path.glob("*.parquet")):
                return None
            return f"{path.as_posix()}/*.parquet"
        if path.is_file():
            return path.as_posix()
        return None

    def _refresh_view(self, table: str) -> bool:
        """(Re)create the view for a table. Returns False if it has no data."""
        source = self._source(table)
        if source is None:
            return False
        self._get_conn().execute(f"""
            CREATE OR REPLACE VIEW {table} AS
            SELECT * FROM read_parquet('{source}', union_by_name = true)
        """)
        return True

    def _fetch_dicts(self, sql: str, params: list[Any]) -> list[dict[str, Any]]:
        conn = self._get_conn()
        try:
            result = conn.execute(sql, params)
            rows = result.fetchall()
            col_names = [desc[0] for desc in result.description]
        except duckdb.Error as e:
            raise PersistenceError(f"Query failed: {e}") from e
        return [dict(zip(col_names, row)) for row in rows]

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    _LATEST_DOCUMENTS = """
        SELECT * FROM documents
        QUALIFY ROW_NUMBER() OVER (PARTITION BY uuid ORDER BY revision DESC) = 1
    """

    async def get_document(self, uuid: str) -> Document | None:
        """Latest revision of a document."""
        def _query() -> Document | None:
            if not self._refresh_view("documents"):
                return None
            rows = self._fetch_dicts(
                f"SELECT * FROM ({self._LATEST_DOCUMENTS}) WHERE uuid = ?",
                [uuid],
            )
            return self._row_to_document(rows[0]) if rows else None

        return await asyncio.to_thread(_query)

    async def list_documents(self) -> list[Document]:
        """Latest revision of every document, newest first."""
        def _query() -> list[Document]:
            if not self._refresh_view("documents"):
                return []
            rows = self._fetch_dicts(
                f"SELECT * FROM ({self._LATEST_DOCUMENTS}) ORDER BY created_at DESC, uuid",
                [],
            )
            return [self._row_to_document(row) for row in rows]

        return await asyncio.to_thread(_query)

    @staticmethod
    def _row_to_document(row: dict[str, Any]) -> Document:
        return Document(
            uuid=row["uuid"],
            name=row["name"],
            status=row["status"],
            page_count=row["page_count"] or 0,
            content_length=row["content_length"] or 0,
            error=row["error"] or None,
            quality_score=row["quality_score"],
            pass_id=row.get("pass_id") or None,
            created_at=row["created_at"] or None,
            processed_at=row["processed_at"] or None,
        )

    # -------------------------------------------------------------------------
    # Systems Records
    # -------------------------------------------------------------------------

    def _current_pass(self, table: str) -> str:
        """
        SELECT over ``table`` restricted to each document's current pass.

        The current pass is the one recorded on the document's latest revision
        or, when none is recorded, the pass written most recently. The view
        for ``table`` must already exist.
        """
        documents_join = ""
        current = "r.pass_id"
        if self._refresh_view("documents"):
            documents_join = f"""
                LEFT JOIN (
                    SELECT uuid, pass_id FROM ({self._LATEST_DOCUMENTS})
                ) d ON d.uuid = t.document_id
            """
            current = "COALESCE(NULLIF(d.pass_id, ''), r.pass_id)"
        return f"""
            SELECT t.* FROM {table} t
            JOIN (
                SELECT document_id, arg_max(pass_id, created_at) AS pass_id
                FROM {table}
                GROUP BY document_id
            ) r ON r.document_id = t.document_id
            {documents_join}
            WHERE t.pass_id = {current}
        """

    async def find_system_entities(
        self,
        document_ids: list[str] | None = None,
        entity_types: list[str] | None = None,
        min_confidence: float | None = None,
    ) -> list[SystemEntityRecord]:
        """Entities filtered by document, type and minimum confidence."""
        if document_ids is not None and not document_ids:
            return []
        if entity_types is not None and not entity_types:
            return []

        def _query() -> list[SystemEntityRecord]:
            if not self._refresh_view("system_entities"):
                return []
            clauses, params = _document_filter(document_ids)
            if entity_types is not None:
                clauses.append(f"type IN ({_placeholders(entity_types)})")
                params.extend(entity_types)
            if min_confidence is not None:
                clauses.append("confidence >= ?")
                params.append(min_confidence)
            rows = self._fetch_dicts(
                f"""
                SELECT * FROM ({self._current_pass('system_entities')})
                {_where(clauses)}
                ORDER BY created_at, position
                """,
                params,
            )
            return [
                SystemEntityRecord(
                    uuid=row["uuid"],
                    document_id=row["document_id"],
                    name=row["name"],
                    type=row["type"],
                    category=row["category"] or None,
                    description=row["description"] or None,
                    confidence=row["confidence"],
                    evidence=row["evidence"] or "",
                    model=row["model"] or None,
                    pass_id=row["pass_id"],
                    created_at=row["created_at"],
                )
                for row in rows
            ]

        return await asyncio.to_thread(_query)

    async def find_system_relationships(
        self,
        document_ids: list[str] | None = None,
        min_confidence: float | None = None,
    ) -> list[SystemRelationshipRecord]:
        """Relationships filtered by document and minimum confidence."""
        if document_ids is not None and not document_ids:
            return []

        def _query() -> list[SystemRelationshipRecord]:
            if not self._refresh_view("system_relationships"):
                return []
            clauses, params = _document_filter(document_ids)
            if min_confidence is not None:
                clauses.append("confidence >= ?")
                params.append(min_confidence)
            rows = self._fetch_dicts(
                f"""
                SELECT * FROM ({self._current_pass('system_relationships')})
                {_where(clauses)}
                ORDER BY created_at, position
                """,
                params,
            )
            return [
                SystemRelationshipRecord(
                    uuid=row["uuid"],
                    document_id=row["document_id"],
                    from_uuid=row["from_uuid"],
                    from_name=row["from_name"],
                    to_uuid=row["to_uuid"],
                    to_name=row["to_name"],
                    type=row["type"],
                    strength=row["strength"],
                    description=row["description"] or "",
                    confidence=row["confidence"],
                    evidence=row["evidence"] or "",
                    created_at=row["created_at"],
                )
                for row in rows
            ]

        return await asyncio.to_thread(_query)

    async def find_quotes(self, document_ids: list[str] | None = None) -> list[QuoteRecord]:
        """Quotes of each document's current pass."""
        if document_ids is not None and not document_ids:
            return []

        def _query() -> list[QuoteRecord]:
            if not self._refresh_view("quotes"):
                return []
            clauses, params = _document_filter(document_ids)
            rows = self._fetch_dicts(
                f"""
                SELECT * FROM ({self._current_pass('quotes')})
                {_where(clauses)}
                ORDER BY created_at, position
                """,
                params,
            )
            return [
                QuoteRecord(
                    uuid=row["uuid"],
                    document_id=row["document_id"],
                    text=row["text"],
                    knowledge_holder=row["knowledge_holder"] or None,
                    cultural_sensitivity=row["cultural_sensitivity"],
                    requires_attribution=bool(row["requires_attribution"]),
                    pass_id=row["pass_id"],
                    created_at=row["created_at"],
                )
                for row in rows
            ]

        return await asyncio.to_thread(_query)


def _placeholders(values: list[Any]) -> str:
    return ", ".join("?" for _ in values)


def _document_filter(document_ids: list[str] | None) -> tuple[list[str], list[Any]]:
    if document_ids is None:
        return [], []
    return [f"document_id IN ({_placeholders(document_ids)})"], list(document_ids)


def _where(clauses: list[str]) -> str:
    return f"WHERE {' AND '.join(clauses)}" if clauses else ""
