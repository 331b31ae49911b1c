"""Database-specific type classification strategies.

Each mapper turns a vendor type name into a numeric SQL type code (JDBC
``java.sql.Types`` numbering) for sources that do not report one.
"""

from abc import ABC, abstractmethod
from typing import Iterable

from catalog_crawler.crawl.sql_types import SqlType, SqlTypeGroup, UNKNOWN_TYPE_CODE

ARRAY = 2003
BIGINT = -5
BINARY = -2
BLOB = 2004
BOOLEAN = 16
CHAR = 1
CLOB = 2005
DATE = 91
DECIMAL = 3
DOUBLE = 8
FLOAT = 6
INTEGER = 4
NUMERIC = 2
OTHER = 1111
REAL = 7
SMALLINT = 5
STRUCT = 2002
TIME = 92
TIMESTAMP = 93
TIMESTAMP_WITH_TIMEZONE = 2014
TINYINT = -6
VARBINARY = -3
VARCHAR = 12
HUGEINT = -1000


def base_type_name(db_type: str) -> str:
    """Upper-case type name without length, precision or array suffix."""
    name = db_type.strip().upper()
    if "(" in name:
        name = name[: name.index("(")]
    return name.strip()


class TypeMapper(ABC):
    """Abstract base class for database type classification."""

    @abstractmethod
    def to_type_code(self, db_type: str) -> int:
        """Convert a database type name to a SQL type code."""
        pass

    def extra_sql_types(self) -> Iterable[SqlType]:
        """Vendor-specific SQL types added to the standard registry."""
        return ()


class GenericTypeMapper(TypeMapper):
    """Type mapper for ANSI type names, used when a source has no better one."""

    _EXACT = {
        "BIGINT": BIGINT,
        "BINARY": BINARY,
        "BLOB": BLOB,
        "BOOLEAN": BOOLEAN,
        "CHAR": CHAR,
        "CHARACTER": CHAR,
        "CLOB": CLOB,
        "DATE": DATE,
        "DEC": DECIMAL,
        "DECIMAL": DECIMAL,
        "DOUBLE": DOUBLE,
        "DOUBLE PRECISION": DOUBLE,
        "FLOAT": FLOAT,
        "INT": INTEGER,
        "INTEGER": INTEGER,
        "NUMBER": NUMERIC,
        "NUMERIC": NUMERIC,
        "REAL": REAL,
        "SMALLINT": SMALLINT,
        "TIME": TIME,
        "TIMESTAMP": TIMESTAMP,
        "TINYINT": TINYINT,
        "VARBINARY": VARBINARY,
        "VARCHAR": VARCHAR,
        "VARCHAR2": VARCHAR,
    }

    def to_type_code(self, db_type: str) -> int:
        type_upper = base_type_name(db_type)
        if type_upper in self._EXACT:
            return self._EXACT[type_upper]

        if "TIMESTAMP" in type_upper:
            return TIMESTAMP_WITH_TIMEZONE if "ZONE" in type_upper else TIMESTAMP
        elif "CHAR" in type_upper or "TEXT" in type_upper or "STRING" in type_upper:
            return VARCHAR
        elif "INT" in type_upper:
            return INTEGER
        elif any(t in type_upper for t in ["FLOAT", "DOUBLE", "REAL"]):
            return DOUBLE
        elif "BOOL" in type_upper:
            return BOOLEAN
        elif "BLOB" in type_upper or "BINARY" in type_upper:
            return VARBINARY
        return UNKNOWN_TYPE_CODE


class SqliteTypeMapper(TypeMapper):
    """Type mapper for SQLite declared types.

    Follows SQLite's type affinity rules, which look for substrings of the
    declared type in a fixed order.
    """

    def to_type_code(self, db_type: str) -> int:
        type_upper = base_type_name(db_type)
        if not type_upper:
            return BLOB

        # Integer affinity
        if "INT" in type_upper:
            return BIGINT if "BIG" in type_upper else INTEGER

        # Text affinity
        elif any(t in type_upper for t in ["CHAR", "CLOB", "TEXT"]):
            if "CLOB" in type_upper:
                return CLOB
            return CHAR if type_upper in ("CHAR", "CHARACTER", "NCHAR") else VARCHAR

        # Blob affinity
        elif "BLOB" in type_upper:
            return BLOB

        # Real affinity
        elif any(t in type_upper for t in ["REAL", "FLOA", "DOUB"]):
            return REAL if type_upper == "REAL" else DOUBLE

        # Numeric affinity
        elif type_upper in ("BOOLEAN", "BOOL"):
            return BOOLEAN
        elif type_upper == "DATE":
            return DATE
        elif type_upper == "DATETIME" or "TIMESTAMP" in type_upper:
            return TIMESTAMP
        elif type_upper == "TIME":
            return TIME
        elif type_upper in ("DECIMAL", "DEC"):
            return DECIMAL
        return NUMERIC


class DuckDBTypeMapper(TypeMapper):
    """Type mapper for DuckDB database types."""

    def to_type_code(self, db_type: str) -> int:
        type_upper = db_type.strip().upper()

        # Nested types
        if type_upper.endswith("[]") or type_upper.startswith("LIST") or "[" in type_upper:
            return ARRAY
        elif type_upper.startswith("STRUCT") or type_upper.startswith("MAP") or type_upper.startswith("UNION"):
            return STRUCT

        type_upper = base_type_name(type_upper)

        # String types
        if any(t in type_upper for t in ["VARCHAR", "TEXT", "STRING", "UUID", "JSON"]):
            return VARCHAR
        elif type_upper in ("CHAR", "BPCHAR"):
            return CHAR

        # Integer types
        elif "HUGEINT" in type_upper:
            return HUGEINT
        elif any(t in type_upper for t in ["BIGINT", "UBIGINT", "INT8", "LONG"]):
            return BIGINT
        elif any(t in type_upper for t in ["SMALLINT", "INT2", "USMALLINT", "SHORT"]):
            return SMALLINT
        elif any(t in type_upper for t in ["TINYINT", "INT1", "UTINYINT"]):
            return TINYINT
        elif any(t in type_upper for t in ["INTEGER", "INT4", "UINTEGER", "SIGNED"]) or type_upper == "INT":
            return INTEGER

        # Floating point and fixed point types
        elif type_upper in ("DECIMAL", "NUMERIC"):
            return DECIMAL
        elif any(t in type_upper for t in ["DOUBLE", "FLOAT8"]):
            return DOUBLE
        elif any(t in type_upper for t in ["FLOAT", "FLOAT4", "REAL"]):
            return REAL

        # Boolean
        elif any(t in type_upper for t in ["BOOLEAN", "BOOL", "LOGICAL"]):
            return BOOLEAN

        # Date/Time types
        elif type_upper == "DATE":
            return DATE
        elif "TIMESTAMP" in type_upper and ("TZ" in type_upper or "ZONE" in type_upper):
            return TIMESTAMP_WITH_TIMEZONE
        elif "TIMESTAMP" in type_upper or type_upper == "DATETIME":
            return TIMESTAMP
        elif type_upper.startswith("TIME"):
            return TIME
        elif "INTERVAL" in type_upper:
            return OTHER

        # Binary types
        elif any(t in type_upper for t in ["BLOB", "BYTEA", "BINARY", "VARBINARY"]):
            return VARBINARY

        return OTHER

    def extra_sql_types(self) -> Iterable[SqlType]:
        return (SqlType("HUGEINT", HUGEINT, SqlTypeGroup.INTEGER),)
