"""Generic SQL type classification.

Numeric type codes follow the JDBC ``java.sql.Types`` constants so that
metadata from different vendors can be classified the same way.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, Optional


class SqlTypeGroup(str, Enum):
    """Broad family of a SQL type."""
    BINARY = "binary"
    BIT = "bit"
    CHARACTER = "character"
    ID = "id"
    INTEGER = "integer"
    LARGE_OBJECT = "large_object"
    OBJECT = "object"
    REAL = "real"
    REFERENCE = "reference"
    TEMPORAL = "temporal"
    URL = "url"
    XML = "xml"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SqlType:
    """A generic SQL type: canonical name, numeric code and group."""
    name: str
    code: int
    group: SqlTypeGroup = SqlTypeGroup.UNKNOWN

    def __str__(self) -> str:
        return self.name


UNKNOWN_TYPE_CODE = 2147483647
UNKNOWN = SqlType("UNKNOWN", UNKNOWN_TYPE_CODE, SqlTypeGroup.UNKNOWN)

STANDARD_SQL_TYPES = (
    SqlType("ARRAY", 2003, SqlTypeGroup.OBJECT),
    SqlType("BIGINT", -5, SqlTypeGroup.INTEGER),
    SqlType("BINARY", -2, SqlTypeGroup.BINARY),
    SqlType("BIT", -7, SqlTypeGroup.BIT),
    SqlType("BLOB", 2004, SqlTypeGroup.LARGE_OBJECT),
    SqlType("BOOLEAN", 16, SqlTypeGroup.BIT),
    SqlType("CHAR", 1, SqlTypeGroup.CHARACTER),
    SqlType("CLOB", 2005, SqlTypeGroup.LARGE_OBJECT),
    SqlType("DATALINK", 70, SqlTypeGroup.URL),
    SqlType("DATE", 91, SqlTypeGroup.TEMPORAL),
    SqlType("DECIMAL", 3, SqlTypeGroup.REAL),
    SqlType("DISTINCT", 2001, SqlTypeGroup.OBJECT),
    SqlType("DOUBLE", 8, SqlTypeGroup.REAL),
    SqlType("FLOAT", 6, SqlTypeGroup.REAL),
    SqlType("INTEGER", 4, SqlTypeGroup.INTEGER),
    SqlType("JAVA_OBJECT", 2000, SqlTypeGroup.OBJECT),
    SqlType("LONGNVARCHAR", -16, SqlTypeGroup.CHARACTER),
    SqlType("LONGVARBINARY", -4, SqlTypeGroup.BINARY),
    SqlType("LONGVARCHAR", -1, SqlTypeGroup.CHARACTER),
    SqlType("NCHAR", -15, SqlTypeGroup.CHARACTER),
    SqlType("NCLOB", 2011, SqlTypeGroup.LARGE_OBJECT),
    SqlType("NULL", 0, SqlTypeGroup.UNKNOWN),
    SqlType("NUMERIC", 2, SqlTypeGroup.REAL),
    SqlType("NVARCHAR", -9, SqlTypeGroup.CHARACTER),
    SqlType("OTHER", 1111, SqlTypeGroup.UNKNOWN),
    SqlType("REAL", 7, SqlTypeGroup.REAL),
    SqlType("REF", 2006, SqlTypeGroup.REFERENCE),
    SqlType("REF_CURSOR", 2012, SqlTypeGroup.REFERENCE),
    SqlType("ROWID", -8, SqlTypeGroup.ID),
    SqlType("SMALLINT", 5, SqlTypeGroup.INTEGER),
    SqlType("SQLXML", 2009, SqlTypeGroup.XML),
    SqlType("STRUCT", 2002, SqlTypeGroup.OBJECT),
    SqlType("TIME", 92, SqlTypeGroup.TEMPORAL),
    SqlType("TIME_WITH_TIMEZONE", 2013, SqlTypeGroup.TEMPORAL),
    SqlType("TIMESTAMP", 93, SqlTypeGroup.TEMPORAL),
    SqlType("TIMESTAMP_WITH_TIMEZONE", 2014, SqlTypeGroup.TEMPORAL),
    SqlType("TINYINT", -6, SqlTypeGroup.INTEGER),
    SqlType("VARBINARY", -3, SqlTypeGroup.BINARY),
    SqlType("VARCHAR", 12, SqlTypeGroup.CHARACTER),
)


class SqlTypes:
    """Registry of SQL types, keyed by code and by name.

    Sources may add vendor-specific codes on top of the standard set.
    Unknown codes and names resolve to UNKNOWN rather than failing.
    """

    def __init__(self, extra_types=None):
        self._by_code: Dict[int, SqlType] = {}
        self._by_name: Dict[str, SqlType] = {}
        for sql_type in STANDARD_SQL_TYPES:
            self._register(sql_type)
        for sql_type in extra_types or ():
            self._register(sql_type)

    def _register(self, sql_type: SqlType) -> None:
        self._by_code[sql_type.code] = sql_type
        self._by_name[sql_type.name.upper()] = sql_type

    def value_of(self, code: Optional[int]) -> SqlType:
        """Get the SQL type for a numeric code, or UNKNOWN."""
        if code is None:
            return UNKNOWN
        return self._by_code.get(code, UNKNOWN)

    def value_of_name(self, name: Optional[str]) -> SqlType:
        """Get the SQL type for a canonical name, or UNKNOWN."""
        if not name:
            return UNKNOWN
        return self._by_name.get(name.strip().upper(), UNKNOWN)

    def __contains__(self, code: int) -> bool:
        return code in self._by_code

    def __iter__(self) -> Iterator[SqlType]:
        return iter(sorted(self._by_code.values(), key=lambda t: t.name))

    def __len__(self) -> int:
        return len(self._by_code)
