"""Mapping from SQL type names to host (Python) type names."""

from typing import Dict, Iterator, Mapping, Optional


DEFAULT_HOST_TYPE = "object"

DEFAULT_HOST_TYPES: Dict[str, str] = {
    "ARRAY": "list",
    "BIGINT": "int",
    "BINARY": "bytes",
    "BIT": "bool",
    "BLOB": "bytes",
    "BOOLEAN": "bool",
    "CHAR": "str",
    "CLOB": "str",
    "DATALINK": "str",
    "DATE": "datetime.date",
    "DECIMAL": "decimal.Decimal",
    "DISTINCT": "object",
    "DOUBLE": "float",
    "FLOAT": "float",
    "INTEGER": "int",
    "JAVA_OBJECT": "object",
    "LONGNVARCHAR": "str",
    "LONGVARBINARY": "bytes",
    "LONGVARCHAR": "str",
    "NCHAR": "str",
    "NCLOB": "str",
    "NULL": "NoneType",
    "NUMERIC": "decimal.Decimal",
    "NVARCHAR": "str",
    "OTHER": "object",
    "REAL": "float",
    "REF": "object",
    "REF_CURSOR": "object",
    "ROWID": "bytes",
    "SMALLINT": "int",
    "SQLXML": "str",
    "STRUCT": "dict",
    "TIME": "datetime.time",
    "TIME_WITH_TIMEZONE": "datetime.time",
    "TIMESTAMP": "datetime.datetime",
    "TIMESTAMP_WITH_TIMEZONE": "datetime.datetime",
    "TINYINT": "int",
    "VARBINARY": "bytes",
    "VARCHAR": "str",
}


class TypeMap(Mapping[str, str]):
    """Case-insensitive, read-only map of type names to host type names.

    Explicit overrides (from configuration) take precedence over the
    defaults. Keys may be canonical SQL type names or vendor-specific
    type names.
    """

    def __init__(self, overrides: Optional[Mapping[str, str]] = None, defaults: Optional[Mapping[str, str]] = None):
        self._types: Dict[str, str] = {}
        for name, host_type in (defaults if defaults is not None else DEFAULT_HOST_TYPES).items():
            self._types[name.upper()] = host_type
        for name, host_type in (overrides or {}).items():
            self._types[name.strip().upper()] = host_type

    def __getitem__(self, name: str) -> str:
        return self._types[name.strip().upper()]

    def __contains__(self, name) -> bool:
        return isinstance(name, str) and name.strip().upper() in self._types

    def __iter__(self) -> Iterator[str]:
        return iter(self._types)

    def __len__(self) -> int:
        return len(self._types)
