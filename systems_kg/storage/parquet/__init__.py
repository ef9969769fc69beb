"""
Parquet Storage

Each table is a directory of immutable, zstd-compressed part files. Writes
are serialized with a file lock; reads go through DuckDB.
"""

from systems_kg.storage.parquet.backend import ParquetBackend

__all__ = ["ParquetBackend"]
