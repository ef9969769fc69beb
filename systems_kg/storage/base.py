"""
Abstract Storage Backend Interface

Defines the contract the processing pipeline and the read-side operations
(systems map, duplicates, quality) depend on.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from systems_kg.types import Document, QuoteRecord, SystemEntityRecord, SystemRelationshipRecord


class StorageBackend(ABC):
    """
    Abstract interface for storage backends.

    Writes are not transactional across calls: if entities are written and
    the relationship write fails, the entities stay.

    Lifecycle:
        backend = ParquetBackend(path)
        await backend.initialize()
        # ... operations ...
        await backend.close()

    Or using context manager:
        async with ParquetBackend(path) as backend:
            await backend.write_document(document)
    """

    @property
    @abstractmethod
    def kb_path(self) -> Path:
        """Return the path to the knowledge base directory."""
        ...

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize storage (create directories, metadata)."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close storage and release resources."""
        ...

    async def __aenter__(self) -> "StorageBackend":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    @abstractmethod
    async def write_document(self, document: "Document") -> None:
        """Write a single document."""
        ...

    @abstractmethod
    async def get_document(self, uuid: str) -> "Document | None":
        """Get the latest state of a document."""
        ...

    @abstractmethod
    async def update_document(self, uuid: str, **changes: Any) -> "Document | None":
        """Apply field changes to a document. Returns None if it doesn't exist."""
        ...

    @abstractmethod
    async def list_documents(self) -> list["Document"]:
        """All documents, newest first."""
        ...

    # -------------------------------------------------------------------------
    # Systems Records
    # -------------------------------------------------------------------------

    @abstractmethod
    async def write_system_entities(self, entities: list["SystemEntityRecord"]) -> None:
        """Write consolidated entities for one document pass."""
        ...

    @abstractmethod
    async def write_system_relationships(
        self, relationships: list["SystemRelationshipRecord"]
    ) -> None:
        """Write consolidated relationships for one document pass."""
        ...

    @abstractmethod
    async def find_system_entities(
        self,
        document_ids: list[str] | None = None,
        entity_types: list[str] | None = None,
        min_confidence: float | None = None,
    ) -> list["SystemEntityRecord"]:
        """
        Entities for the given documents (all documents if None), in write order.

        Only each document's current pass is returned: the pass recorded as
        ``Document.pass_id``, or the most recently written one if none is.

        Filters: entity type membership, confidence >= min_confidence.
        """
        ...

    @abstractmethod
    async def find_system_relationships(
        self,
        document_ids: list[str] | None = None,
        min_confidence: float | None = None,
    ) -> list["SystemRelationshipRecord"]:
        """Relationships for the given documents, in write order."""
        ...

    # -------------------------------------------------------------------------
    # Quotes
    # -------------------------------------------------------------------------

    @abstractmethod
    async def write_quotes(self, quotes: list["QuoteRecord"]) -> None:
        """Write community quotes for one document pass."""
        ...

    @abstractmethod
    async def find_quotes(self, document_ids: list[str] | None = None) -> list["QuoteRecord"]:
        """Quotes for the given documents (all documents if None), in write order."""
        ...
