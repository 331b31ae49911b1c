"""Catalog model and crawl configuration.

The crawler and retrievers live in ``catalog_crawler.crawl.crawler`` and
``catalog_crawler.crawl.retrievers``; they are not imported here because
they depend on ``catalog_crawler.database``.
"""

from catalog_crawler.crawl.keys import NamedObjectKey, column_key, routine_key, schema_key, table_key
from catalog_crawler.crawl.sql_types import SqlType, SqlTypeGroup, SqlTypes, UNKNOWN
from catalog_crawler.crawl.type_map import DEFAULT_HOST_TYPE, TypeMap
from catalog_crawler.crawl.models import (
    Column,
    ColumnReference,
    DataType,
    DataTypeType,
    ForeignKey,
    ForeignKeyDeferrability,
    ForeignKeyRule,
    Index,
    IndexColumn,
    ParameterMode,
    PrimaryKey,
    Routine,
    RoutineParameter,
    RoutineType,
    Schema,
    Synonym,
    Table,
    TableConstraint,
    Trigger,
    View,
)
from catalog_crawler.crawl.rules import (
    AllOfRule,
    AnyOfRule,
    ExcludeAll,
    GlobRule,
    IncludeAll,
    InclusionRule,
    LimitOptions,
    RegularExpressionRule,
    RuleFor,
)
from catalog_crawler.crawl.options import CrawlOptions, InfoLevel, RetrievalCategory
from catalog_crawler.crawl.info import CrawlInfo, CrawlWarning, RetrievalResult
from catalog_crawler.crawl.catalog import Catalog, MutableCatalog
from catalog_crawler.crawl.connection import IdentifierCase, Identifiers, RetrieverConnection
from catalog_crawler.crawl.type_registry import TypeRegistry

__all__ = [
    # Keys
    "NamedObjectKey",
    "schema_key",
    "table_key",
    "column_key",
    "routine_key",
    # Types
    "SqlType",
    "SqlTypeGroup",
    "SqlTypes",
    "UNKNOWN",
    "TypeMap",
    "DEFAULT_HOST_TYPE",
    # Catalog objects
    "Schema",
    "DataType",
    "DataTypeType",
    "Column",
    "PrimaryKey",
    "ColumnReference",
    "ForeignKey",
    "ForeignKeyRule",
    "ForeignKeyDeferrability",
    "Index",
    "IndexColumn",
    "TableConstraint",
    "Trigger",
    "Table",
    "View",
    "Routine",
    "RoutineType",
    "RoutineParameter",
    "ParameterMode",
    "Synonym",
    # Rules and options
    "InclusionRule",
    "IncludeAll",
    "ExcludeAll",
    "RegularExpressionRule",
    "GlobRule",
    "AnyOfRule",
    "AllOfRule",
    "RuleFor",
    "LimitOptions",
    "CrawlOptions",
    "InfoLevel",
    "RetrievalCategory",
    # Results
    "CrawlInfo",
    "CrawlWarning",
    "RetrievalResult",
    "Catalog",
    "MutableCatalog",
    # Connection
    "Identifiers",
    "IdentifierCase",
    "RetrieverConnection",
    "TypeRegistry",
]
