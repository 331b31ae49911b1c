"""SQLite metadata source."""

import logging
import re
import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from .base import MetadataSource, Row
from .type_mappers import SqliteTypeMapper, TypeMapper, base_type_name
from catalog_crawler.errors import ConnectionFatalError, SourceError

logger = logging.getLogger(__name__)

_FK_RULES = {
    "CASCADE": 0,
    "RESTRICT": 1,
    "SET NULL": 2,
    "NO ACTION": 3,
    "SET DEFAULT": 4,
}

# Storage classes, reported as the system type info
_TYPE_INFO: List[Tuple[str, int, Optional[str]]] = [
    ("INTEGER", 4, None),
    ("REAL", 8, None),
    ("TEXT", 12, "'"),
    ("BLOB", 2004, "X'"),
    ("NUMERIC", 2, None),
]

_SIZE_PATTERN = re.compile(r"\(\s*(\d+)\s*(?:,\s*(\d+)\s*)?\)")
_NAME_TOKEN = r"(?:\"(?:[^\"]|\"\")*\"|\[[^\]]*\]|`[^`]*`|[^\s.\"\[`]+)"
_TRIGGER_PATTERN = re.compile(
    r"CREATE\s+(?:TEMP\s+|TEMPORARY\s+)?TRIGGER\s+(?:IF\s+NOT\s+EXISTS\s+)?"
    + _NAME_TOKEN + r"(?:\s*\.\s*" + _NAME_TOKEN + r")?"
    + r"\s+(?:(BEFORE|AFTER|INSTEAD\s+OF)\s+)?(INSERT|UPDATE|DELETE)\b",
    re.IGNORECASE | re.DOTALL,
)
_WHEN_PATTERN = re.compile(r"\bWHEN\b(.*?)\bBEGIN\b", re.IGNORECASE | re.DOTALL)
_BODY_PATTERN = re.compile(r"\bBEGIN\b(.*)\bEND\b", re.IGNORECASE | re.DOTALL)
_CHECK_PATTERN = re.compile(r"(?:\bCONSTRAINT\s+(\"[^\"]+\"|\w+)\s+)?\bCHECK\s*\(", re.IGNORECASE)


def _trigger_header(trigger_sql: Optional[str]) -> Tuple[Optional[str], str]:
    """Event and timing of a CREATE TRIGGER statement; SQLite defaults to BEFORE."""
    header = _TRIGGER_PATTERN.search(trigger_sql or "")
    if not header:
        return None, "BEFORE"
    timing = header.group(1) or "BEFORE"
    return header.group(2).upper(), " ".join(timing.upper().split())


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def _parse_size(declared_type: str) -> Tuple[Optional[int], Optional[int]]:
    match = _SIZE_PATTERN.search(declared_type or "")
    if not match:
        return None, None
    size = int(match.group(1))
    digits = int(match.group(2)) if match.group(2) is not None else None
    return size, digits


def _balanced(text: str, start: int) -> Optional[str]:
    """Text inside the parentheses opening at ``start``."""
    depth = 0
    for position in range(start, len(text)):
        if text[position] == "(":
            depth += 1
        elif text[position] == ")":
            depth -= 1
            if depth == 0:
                return text[start + 1:position].strip()
    return None


def _check_constraints(table: str, sql: Optional[str]) -> List[Tuple[str, str]]:
    """Find CHECK constraints in a CREATE TABLE statement.

    Returns:
        (constraint name, check clause) pairs; unnamed checks get a
        generated name
    """
    checks = []
    for number, match in enumerate(_CHECK_PATTERN.finditer(sql or ""), start=1):
        clause = _balanced(sql, match.end() - 1)
        if clause is None:
            continue
        name = match.group(1).strip('"') if match.group(1) else f"{table}_check_{number}"
        checks.append((name, clause))
    return checks


class SqliteMetadataSource(MetadataSource):
    """Metadata source for SQLite databases.

    SQLite has no catalogs. Each attached database (``main`` and any
    ``ATTACH``-ed files) is reported as a schema. Routines and synonyms
    do not exist in SQLite.
    """

    EXCLUDED_SCHEMAS = {"temp"}

    def __init__(
        self,
        database_path: Optional[str] = None,
        connection: Optional[sqlite3.Connection] = None,
        read_only: bool = True,
    ):
        """Initialize SQLite metadata source.

        Args:
            database_path: Path to the database file, or :memory:
            connection: Existing connection to use instead of opening one;
                it is left open by close()
            read_only: Open the file in read-only mode
        """
        self.database_path = database_path
        self.read_only = read_only
        self._connection = connection
        self._owns_connection = connection is None
        self._type_mapper = SqliteTypeMapper()

    def connect(self):
        """Connect to the SQLite database."""
        if self._connection is not None:
            return self._connection

        path = self.database_path or ":memory:"
        if path != ":memory:" and not Path(path).exists():
            raise ConnectionFatalError(
                f"SQLite database not found: {path}",
                details={"path": path},
            )
        try:
            if self.read_only and path != ":memory:":
                self._connection = sqlite3.connect(f"{Path(path).resolve().as_uri()}?mode=ro", uri=True)
            else:
                self._connection = sqlite3.connect(path)
        except sqlite3.Error as e:
            raise ConnectionFatalError(f"Cannot open SQLite database {path}: {e}", details={"path": path}) from e
        self._owns_connection = True
        logger.debug("Opened SQLite database %s", path)
        return self._connection

    def close(self):
        """Close the SQLite connection if this source opened it."""
        if self._connection is not None and self._owns_connection:
            self._connection.close()
        self._connection = None

    def _query(self, sql: str, parameters: Sequence[Any] = ()) -> Iterator[Tuple[str, ...]]:
        """Run a query and yield rows, closing the cursor when done."""
        self.connect()
        try:
            cursor = self._connection.execute(sql, parameters)
        except sqlite3.Error as e:
            raise SourceError(f"SQLite query failed: {e}", details={"sql": sql}) from e
        try:
            for row in cursor:
                yield row
        finally:
            cursor.close()

    def _fetch(self, sql: str, parameters: Sequence[Any] = ()) -> List[Tuple[Any, ...]]:
        return list(self._query(sql, parameters))

    def get_product_info(self) -> Dict[str, str]:
        return {"product_name": "SQLite", "product_version": sqlite3.sqlite_version}

    def supports_catalogs(self) -> bool:
        return False

    def supports_schemas(self) -> bool:
        return True

    def get_type_mapper(self) -> TypeMapper:
        return self._type_mapper

    def list_schemas(self) -> Iterator[Row]:
        for _, name, _ in self._query("PRAGMA database_list"):
            if name.lower() in self.EXCLUDED_SCHEMAS:
                continue
            yield {"table_catalog": None, "table_schem": name}

    def list_type_info(self) -> Iterator[Row]:
        for type_name, data_type, literal_prefix in _TYPE_INFO:
            yield {
                "type_name": type_name,
                "data_type": data_type,
                "literal_prefix": literal_prefix,
                "literal_suffix": "'" if literal_prefix else None,
                "nullable": 1,
                "case_sensitive": type_name == "TEXT",
                "searchable": 3,
                "unsigned_attribute": False,
                "auto_increment": type_name == "INTEGER",
                "num_prec_radix": 10 if type_name in ("INTEGER", "REAL", "NUMERIC") else None,
            }

    def list_tables(self, catalog: Optional[str], schema: Optional[str]) -> Iterator[Row]:
        sql = (
            f"SELECT name, type FROM {_quote(schema or 'main')}.sqlite_master "
            "WHERE type IN ('table', 'view') AND name NOT LIKE 'sqlite\\_%' ESCAPE '\\' "
            "ORDER BY name"
        )
        for name, object_type in self._query(sql):
            yield {
                "table_cat": None,
                "table_schem": schema,
                "table_name": name,
                "table_type": "VIEW" if object_type == "view" else "TABLE",
                "remarks": None,
            }

    def _table_info(self, schema: Optional[str], table: str) -> List[Tuple[Any, ...]]:
        """Rows of PRAGMA table_xinfo: cid, name, type, notnull, dflt_value, pk, hidden."""
        return self._fetch(f"PRAGMA {_quote(schema or 'main')}.table_xinfo({_quote(table)})")

    def list_columns(self, catalog: Optional[str], schema: Optional[str], table: str) -> Iterator[Row]:
        info = self._table_info(schema, table)
        pk_columns = [row for row in info if row[5]]
        for cid, name, declared_type, not_null, default, pk, hidden in info:
            if hidden == 1:
                # Hidden columns of virtual tables
                continue
            size, digits = _parse_size(declared_type)
            type_name = base_type_name(declared_type or "")
            yield {
                "column_name": name,
                "ordinal_position": cid + 1,
                "type_name": type_name,
                "data_type": self._type_mapper.to_type_code(declared_type or ""),
                "column_size": size,
                "decimal_digits": digits,
                "nullable": 0 if not_null else 1,
                "column_def": default,
                "remarks": None,
                "is_autoincrement": bool(len(pk_columns) == 1 and pk and type_name == "INTEGER"),
                "is_generatedcolumn": hidden in (2, 3),
            }

    def list_primary_keys(self, catalog: Optional[str], schema: Optional[str], table: str) -> Iterator[Row]:
        for row in self._table_info(schema, table):
            if row[5]:
                yield {"column_name": row[1], "key_seq": row[5], "pk_name": None}

    def list_foreign_keys(self, catalog: Optional[str], schema: Optional[str], table: str) -> Iterator[Row]:
        rows = self._fetch(f"PRAGMA {_quote(schema or 'main')}.foreign_key_list({_quote(table)})")
        for fk_id, seq, referenced_table, from_column, to_column, on_update, on_delete, _ in rows:
            if to_column is None:
                # REFERENCES without a column list targets the primary key
                referenced_pk = [row[1] for row in sorted(
                    (row for row in self._table_info(schema, referenced_table) if row[5]),
                    key=lambda row: row[5],
                )]
                to_column = referenced_pk[seq] if seq < len(referenced_pk) else None
            yield {
                "fk_name": f"fk_{table}_{fk_id}",
                "key_seq": seq + 1,
                "fktable_name": table,
                "fkcolumn_name": from_column,
                "pktable_cat": None,
                "pktable_schem": schema,
                "pktable_name": referenced_table,
                "pkcolumn_name": to_column,
                "update_rule": _FK_RULES.get((on_update or "").upper(), 3),
                "delete_rule": _FK_RULES.get((on_delete or "").upper(), 3),
                "deferrability": 7,
            }

    def list_indexes(self, catalog: Optional[str], schema: Optional[str], table: str) -> Iterator[Row]:
        schema_name = _quote(schema or "main")
        indexes = self._fetch(f"PRAGMA {schema_name}.index_list({_quote(table)})")
        for index_row in indexes:
            index_name, unique = index_row[1], index_row[2]
            columns = self._fetch(f"PRAGMA {schema_name}.index_xinfo({_quote(index_name)})")
            position = 0
            for seqno, cid, column_name, desc, _, key in columns:
                if not key or cid is None or cid < 0:
                    continue
                position += 1
                yield {
                    "index_name": index_name,
                    "non_unique": not unique,
                    "type": 3,
                    "ordinal_position": position,
                    "column_name": column_name,
                    "asc_or_desc": "D" if desc else "A",
                }

    def _table_sql(self, schema: Optional[str], table: str) -> Optional[str]:
        rows = self._fetch(
            f"SELECT sql FROM {_quote(schema or 'main')}.sqlite_master WHERE type = 'table' AND name = ?",
            (table,),
        )
        return rows[0][0] if rows else None

    def list_table_constraints(self, catalog: Optional[str], schema: Optional[str], table: str) -> Iterator[Row]:
        schema_name = _quote(schema or "main")
        for index_row in self._fetch(f"PRAGMA {schema_name}.index_list({_quote(table)})"):
            index_name, unique, origin = index_row[1], index_row[2], index_row[3]
            if not unique or origin != "u":
                continue
            for info_row in self._fetch(f"PRAGMA {schema_name}.index_info({_quote(index_name)})"):
                yield {
                    "constraint_name": index_name,
                    "constraint_type": "UNIQUE",
                    "column_name": info_row[2],
                    "check_clause": None,
                }

        for name, clause in _check_constraints(table, self._table_sql(schema, table)):
            yield {
                "constraint_name": name,
                "constraint_type": "CHECK",
                "column_name": None,
                "check_clause": clause,
            }

    def list_triggers(self, catalog: Optional[str], schema: Optional[str], table: str) -> Iterator[Row]:
        sql = (
            f"SELECT name, sql FROM {_quote(schema or 'main')}.sqlite_master "
            "WHERE type = 'trigger' AND tbl_name = ? ORDER BY name"
        )
        for order, (name, trigger_sql) in enumerate(self._fetch(sql, (table,)), start=1):
            event, timing = _trigger_header(trigger_sql)
            when = _WHEN_PATTERN.search(trigger_sql or "")
            body = _BODY_PATTERN.search(trigger_sql or "")
            yield {
                "trigger_name": name,
                "event_manipulation": event,
                "action_timing": timing,
                "action_orientation": "ROW",
                "action_condition": when.group(1).strip() if when else None,
                "action_statement": body.group(1).strip() if body else trigger_sql,
                "action_order": order,
            }

    def list_view_definitions(self, catalog: Optional[str], schema: Optional[str]) -> Iterator[Row]:
        sql = f"SELECT name, sql FROM {_quote(schema or 'main')}.sqlite_master WHERE type = 'view' ORDER BY name"
        for name, view_sql in self._query(sql):
            yield {"table_name": name, "view_definition": view_sql}

    def get_row_count(self, catalog: Optional[str], schema: Optional[str], table: str) -> Optional[int]:
        rows = self._fetch(f"SELECT COUNT(*) FROM {_quote(schema or 'main')}.{_quote(table)}")
        return rows[0][0] if rows else None
