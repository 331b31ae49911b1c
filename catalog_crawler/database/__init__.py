"""Metadata sources for catalog-crawler.

This module provides the database-agnostic metadata source interface
with specific implementations for SQLite and DuckDB.
"""

from .base import MetadataSource
from .records import MetadataRecord
from .type_mappers import TypeMapper, GenericTypeMapper, SqliteTypeMapper, DuckDBTypeMapper
from .sqlite import SqliteMetadataSource
from .duckdb import DuckDBMetadataSource

__all__ = [
    # Base classes
    "MetadataSource",
    "MetadataRecord",
    # Type mappers
    "TypeMapper",
    "GenericTypeMapper",
    "SqliteTypeMapper",
    "DuckDBTypeMapper",
    # Sources
    "SqliteMetadataSource",
    "DuckDBMetadataSource",
]
