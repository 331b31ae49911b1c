"""Capabilities of a metadata source, probed once per crawl."""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, TYPE_CHECKING

from catalog_crawler.crawl.sql_types import SqlTypes
from catalog_crawler.crawl.type_map import TypeMap
from catalog_crawler.errors import ConnectionFatalError

if TYPE_CHECKING:
    from catalog_crawler.database.base import MetadataSource
    from catalog_crawler.database.type_mappers import TypeMapper

logger = logging.getLogger(__name__)


SQL_2003_RESERVED_WORDS = frozenset({
    "ADD", "ALL", "ALLOCATE", "ALTER", "AND", "ANY", "ARE", "ARRAY", "AS",
    "ASENSITIVE", "ASYMMETRIC", "AT", "ATOMIC", "AUTHORIZATION", "BEGIN",
    "BETWEEN", "BIGINT", "BINARY", "BLOB", "BOOLEAN", "BOTH", "BY", "CALL",
    "CALLED", "CASCADED", "CASE", "CAST", "CHAR", "CHARACTER", "CHECK",
    "CLOB", "CLOSE", "COLLATE", "COLUMN", "COMMIT", "CONDITION", "CONNECT",
    "CONSTRAINT", "CONTINUE", "CORRESPONDING", "CREATE", "CROSS", "CUBE",
    "CURRENT", "CURRENT_DATE", "CURRENT_TIME", "CURRENT_TIMESTAMP",
    "CURRENT_USER", "CURSOR", "CYCLE", "DATE", "DAY", "DEALLOCATE", "DEC",
    "DECIMAL", "DECLARE", "DEFAULT", "DELETE", "DEREF", "DESCRIBE",
    "DETERMINISTIC", "DISCONNECT", "DISTINCT", "DO", "DOUBLE", "DROP",
    "DYNAMIC", "EACH", "ELEMENT", "ELSE", "ELSEIF", "END", "ESCAPE", "EXCEPT",
    "EXEC", "EXECUTE", "EXISTS", "EXIT", "EXTERNAL", "FALSE", "FETCH",
    "FILTER", "FLOAT", "FOR", "FOREIGN", "FREE", "FROM", "FULL", "FUNCTION",
    "GET", "GLOBAL", "GRANT", "GROUP", "GROUPING", "HANDLER", "HAVING",
    "HOLD", "HOUR", "IDENTITY", "IF", "IMMEDIATE", "IN", "INDICATOR",
    "INNER", "INOUT", "INPUT", "INSENSITIVE", "INSERT", "INT", "INTEGER",
    "INTERSECT", "INTERVAL", "INTO", "IS", "ITERATE", "JOIN", "LANGUAGE",
    "LARGE", "LATERAL", "LEADING", "LEAVE", "LEFT", "LIKE", "LOCAL",
    "LOCALTIME", "LOCALTIMESTAMP", "LOOP", "MATCH", "MEMBER", "MERGE",
    "METHOD", "MINUTE", "MODIFIES", "MODULE", "MONTH", "MULTISET",
    "NATIONAL", "NATURAL", "NCHAR", "NCLOB", "NEW", "NO", "NONE", "NOT",
    "NULL", "NUMERIC", "OF", "OLD", "ON", "ONLY", "OPEN", "OR", "ORDER",
    "OUT", "OUTER", "OUTPUT", "OVER", "OVERLAPS", "PARAMETER", "PARTITION",
    "PRECISION", "PREPARE", "PRIMARY", "PROCEDURE", "RANGE", "READS", "REAL",
    "RECURSIVE", "REF", "REFERENCES", "REFERENCING", "RELEASE", "REPEAT",
    "RESIGNAL", "RESULT", "RETURN", "RETURNS", "REVOKE", "RIGHT", "ROLLBACK",
    "ROLLUP", "ROW", "ROWS", "SAVEPOINT", "SCOPE", "SCROLL", "SEARCH",
    "SECOND", "SELECT", "SENSITIVE", "SESSION_USER", "SET", "SIGNAL",
    "SIMILAR", "SMALLINT", "SOME", "SPECIFIC", "SPECIFICTYPE", "SQL",
    "SQLEXCEPTION", "SQLSTATE", "SQLWARNING", "START", "STATIC",
    "SUBMULTISET", "SYMMETRIC", "SYSTEM", "SYSTEM_USER", "TABLE",
    "TABLESAMPLE", "THEN", "TIME", "TIMESTAMP", "TIMEZONE_HOUR",
    "TIMEZONE_MINUTE", "TO", "TRAILING", "TRANSLATION", "TREAT", "TRIGGER",
    "TRUE", "UNDO", "UNION", "UNIQUE", "UNKNOWN", "UNNEST", "UNTIL",
    "UPDATE", "USER", "USING", "VALUE", "VALUES", "VARCHAR", "VARYING",
    "WHEN", "WHENEVER", "WHERE", "WHILE", "WINDOW", "WITH", "WITHIN",
    "WITHOUT", "YEAR",
})

_UNQUOTED_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


class IdentifierCase(str, Enum):
    """How the source stores unquoted identifiers."""
    UPPER = "upper"
    LOWER = "lower"
    MIXED = "mixed"

    @classmethod
    def parse(cls, value: Optional[str]) -> "IdentifierCase":
        if not value:
            return cls.MIXED
        try:
            return cls(value.strip().lower())
        except ValueError:
            logger.debug("Unknown identifier case '%s', assuming mixed", value)
            return cls.MIXED


@dataclass(frozen=True)
class Identifiers:
    """Identifier quoting rules of a metadata source."""

    quote_string: str = '"'
    identifier_case: IdentifierCase = IdentifierCase.MIXED
    reserved_words: FrozenSet[str] = SQL_2003_RESERVED_WORDS

    def is_reserved_word(self, name: Optional[str]) -> bool:
        return bool(name) and name.upper() in self.reserved_words

    def is_quoting_needed(self, name: Optional[str]) -> bool:
        """Check whether a name must be quoted to be used as written.

        Reserved words, names with characters outside [A-Za-z0-9_] (or a
        leading digit), and names whose case differs from the case the
        source folds unquoted identifiers to all need quoting.
        """
        if not name:
            return False
        if self.is_reserved_word(name):
            return True
        if not _UNQUOTED_IDENTIFIER.fullmatch(name):
            return True
        if self.identifier_case == IdentifierCase.UPPER and name != name.upper():
            return True
        if self.identifier_case == IdentifierCase.LOWER and name != name.lower():
            return True
        return False

    def quote_name(self, name: Optional[str]) -> Optional[str]:
        if not name:
            return name
        quote = self.quote_string.strip()
        if quote and self.is_quoting_needed(name):
            return f"{quote}{name}{quote}"
        return name

    def quote_full_name(self, *parts: Optional[str]) -> str:
        return ".".join(self.quote_name(part) for part in parts if part)


@dataclass(frozen=True)
class RetrieverConnection:
    """Capability descriptor for one crawl.

    Resolved once by ``probe`` and consulted by every retriever: whether
    catalogs and schemas are modelled, identifier quoting, the SQL type
    registry, the vendor type classifier and the host type map.
    """

    product_name: str
    product_version: str
    supports_catalogs: bool
    supports_schemas: bool
    identifiers: Identifiers
    type_mapper: "TypeMapper" = field(repr=False)
    sql_types: SqlTypes = field(default_factory=SqlTypes, repr=False)
    type_map: TypeMap = field(default_factory=TypeMap, repr=False)

    @classmethod
    def probe(
        cls,
        source: "MetadataSource",
        type_map_overrides: Optional[Mapping[str, str]] = None,
    ) -> "RetrieverConnection":
        """Probe a connected metadata source.

        Args:
            source: Connected metadata source
            type_map_overrides: Explicit type name to host type entries

        Returns:
            Immutable capability descriptor

        Raises:
            ConnectionFatalError: If any capability cannot be determined
        """
        try:
            product = source.get_product_info()
            supports_catalogs = bool(source.supports_catalogs())
            supports_schemas = bool(source.supports_schemas())
            quote_string = source.get_identifier_quote_string() or ""
            identifier_case = IdentifierCase.parse(source.get_identifier_case())
            reserved_words = _merge_reserved_words(source.get_reserved_words())
            type_mapper = source.get_type_mapper()
        except ConnectionFatalError:
            raise
        except Exception as e:
            raise ConnectionFatalError(
                f"Cannot probe metadata source capabilities: {e}",
                details={"error_type": type(e).__name__},
            ) from e

        connection = cls(
            product_name=str(product.get("product_name") or "unknown"),
            product_version=str(product.get("product_version") or ""),
            supports_catalogs=supports_catalogs,
            supports_schemas=supports_schemas,
            identifiers=Identifiers(
                quote_string=quote_string,
                identifier_case=identifier_case,
                reserved_words=reserved_words,
            ),
            type_mapper=type_mapper,
            sql_types=SqlTypes(type_mapper.extra_sql_types()),
            type_map=TypeMap(overrides=type_map_overrides),
        )
        logger.info(
            "Probed %s %s: catalogs=%s, schemas=%s, quote=%r",
            connection.product_name,
            connection.product_version,
            connection.supports_catalogs,
            connection.supports_schemas,
            quote_string,
        )
        return connection

    def normalize_catalog_name(self, name: Optional[str]) -> Optional[str]:
        """Catalog name as stored in keys; None when catalogs are not modelled."""
        if not self.supports_catalogs:
            return None
        return name or None

    def normalize_schema_name(self, name: Optional[str]) -> Optional[str]:
        """Schema name as stored in keys; None when schemas are not modelled."""
        if not self.supports_schemas:
            return None
        return name or None

    def classify_type(self, type_name: Optional[str]) -> int:
        """Map a vendor type name to a numeric SQL type code."""
        return self.type_mapper.to_type_code(type_name or "")

    def summary(self) -> Dict[str, Any]:
        return {
            "product_name": self.product_name,
            "product_version": self.product_version,
            "supports_catalogs": self.supports_catalogs,
            "supports_schemas": self.supports_schemas,
            "identifier_quote_string": self.identifiers.quote_string,
            "identifier_case": self.identifiers.identifier_case.value,
        }


def _merge_reserved_words(words: Optional[Iterable[str]]) -> FrozenSet[str]:
    merged = set(SQL_2003_RESERVED_WORDS)
    for word in words or ():
        if word and word.strip():
            merged.add(word.strip().upper())
    return frozenset(merged)
