"""
DuckDB Query Layer

Relational queries on the Parquet datasets.

Modules:
    queries: SQL query implementations

Query Patterns:
    - Latest document revision by uuid
    - Systems entities/relationships by document set, type and confidence
"""

from systems_kg.storage.duckdb.queries import DuckDBQueries

__all__ = ["DuckDBQueries"]
