"""
Storage Backends

Embedded storage using DuckDB + Parquet files.

Modules:
    base: Abstract storage interface
    parquet/: Primary storage implementation (append-only part files)
    duckdb/: Relational queries over the Parquet datasets

Knowledge Base Directory Structure:
    my_kb/
    ├── metadata.json                   # KB metadata and schema version
    ├── documents.parquet/              # Document revisions (latest wins)
    ├── system_entities.parquet/        # Consolidated entities per document pass
    └── system_relationships.parquet/   # Consolidated relationships per pass

Design Principles:
    - Zero infrastructure (embedded database)
    - Portable (knowledge base is just a directory)
    - Appends never read or rewrite existing data
"""

from systems_kg.storage.base import StorageBackend
from systems_kg.storage.parquet.backend import ParquetBackend

__all__ = [
    "StorageBackend",
    "ParquetBackend",
]
