"""DuckDB metadata source."""

import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

from .base import MetadataSource, Row
from .type_mappers import DuckDBTypeMapper, TypeMapper
from catalog_crawler.errors import ConnectionFatalError, SourceError

logger = logging.getLogger(__name__)

_TABLE_TYPES = {
    "BASE TABLE": "TABLE",
    "VIEW": "VIEW",
    "LOCAL TEMPORARY": "LOCAL TEMPORARY",
}

_INDEX_COLUMNS = re.compile(r"\bON\s+\S+\s*\((.*)\)", re.IGNORECASE | re.DOTALL)


def _index_columns(sql: Optional[str]) -> List[str]:
    """Column expressions from a CREATE INDEX statement."""
    match = _INDEX_COLUMNS.search(sql or "")
    if not match:
        return []
    return [part.strip() for part in match.group(1).split(",") if part.strip()]


def _specific_name(row: Dict[str, Any]) -> str:
    """Unique name of one macro overload; overloads share a function oid."""
    return f"{row['function_name']}_{row['function_oid']}_{row['overload']}"


def _enum_signature(labels: Sequence[str]) -> str:
    """Type string information_schema.columns reports for an enum column."""
    quoted = ", ".join("'{}'".format(str(label).replace("'", "''")) for label in labels)
    return f"ENUM({quoted})"


class DuckDBMetadataSource(MetadataSource):
    """Metadata source for DuckDB databases.

    Every attached database is a catalog. Routines are the user-defined
    macros reported by ``duckdb_functions()``. DuckDB has no triggers or
    synonyms.
    """

    EXCLUDED_SCHEMAS = {"information_schema", "pg_catalog"}

    def __init__(
        self,
        database_path: Optional[str] = None,
        connection_string: Optional[str] = None,
        read_only: bool = True,
        connection=None,
    ):
        """Initialize DuckDB metadata source.

        Args:
            database_path: Path to .duckdb file (can be :memory: for in-memory)
            connection_string: Alternative connection string format
                               (e.g., duckdb:///path/to/db.duckdb)
            read_only: Open database in read-only mode (default True for crawling)
            connection: Existing DuckDB connection; it is left open by close()
        """
        self.database_path = database_path
        self.connection_string = connection_string
        self.read_only = read_only
        self._connection = connection
        self._owns_connection = connection is None
        self._type_mapper = DuckDBTypeMapper()
        self._enum_types: Dict[tuple, Dict[str, str]] = {}

    def _resolve_path(self) -> str:
        if self.database_path:
            return self.database_path
        if self.connection_string:
            # Remove duckdb:/// prefix and query parameters
            path = self.connection_string
            if path.startswith("duckdb:///"):
                path = path[10:]
            elif path.startswith("duckdb://"):
                path = path[9:]
            if "?" in path:
                path = path.split("?")[0]
            return path
        return ":memory:"

    def connect(self):
        """Connect to the DuckDB database."""
        if self._connection is not None:
            return self._connection

        try:
            import duckdb
        except ImportError:
            raise ImportError(
                "duckdb is required. "
                "Install it with: pip install duckdb"
            )

        path = self._resolve_path()
        if path != ":memory:" and not Path(path).exists():
            raise ConnectionFatalError(f"DuckDB database not found: {path}", details={"path": path})
        try:
            if path == ":memory:":
                self._connection = duckdb.connect(":memory:")
            else:
                self._connection = duckdb.connect(path, read_only=self.read_only)
        except duckdb.Error as e:
            raise ConnectionFatalError(f"Cannot open DuckDB database {path}: {e}", details={"path": path}) from e
        self._owns_connection = True
        logger.debug("Opened DuckDB database %s", path)
        return self._connection

    def close(self):
        """Close the DuckDB connection if this source opened it."""
        if self._connection is not None and self._owns_connection:
            self._connection.close()
        self._connection = None
        self._enum_types = {}

    def _query(self, sql: str, parameters: Sequence[Any] = ()) -> Iterator[Dict[str, Any]]:
        """Execute a query and yield rows as dictionaries.

        Args:
            sql: SQL query with ``?`` placeholders
            parameters: Placeholder values

        Yields:
            Rows keyed by lower-case column name
        """
        import duckdb

        connection = self.connect()
        try:
            cursor = connection.cursor()
        except duckdb.Error as e:
            raise SourceError(f"DuckDB cursor failed: {e}") from e
        try:
            try:
                if parameters:
                    cursor.execute(sql, list(parameters))
                else:
                    cursor.execute(sql)
                names = [description[0].lower() for description in cursor.description]
                rows = cursor.fetchall()
            except duckdb.Error as e:
                raise SourceError(f"DuckDB query failed: {e}", details={"sql": sql}) from e
            for row in rows:
                yield dict(zip(names, row))
        finally:
            cursor.close()

    def get_product_info(self) -> Dict[str, str]:
        rows = list(self._query("SELECT version() AS version"))
        version = rows[0]["version"] if rows else ""
        return {"product_name": "DuckDB", "product_version": str(version)}

    def supports_catalogs(self) -> bool:
        return True

    def supports_schemas(self) -> bool:
        return True

    def get_reserved_words(self) -> List[str]:
        return [
            row["keyword_name"]
            for row in self._query(
                "SELECT keyword_name FROM duckdb_keywords() WHERE keyword_category = 'reserved'"
            )
        ]

    def get_type_mapper(self) -> TypeMapper:
        return self._type_mapper

    def list_catalogs(self) -> Iterator[Row]:
        for row in self._query(
            "SELECT database_name FROM duckdb_databases() WHERE NOT internal ORDER BY database_name"
        ):
            yield {"table_cat": row["database_name"]}

    def list_schemas(self) -> Iterator[Row]:
        sql = """
            SELECT catalog_name, schema_name
            FROM information_schema.schemata
            WHERE catalog_name IN (SELECT database_name FROM duckdb_databases() WHERE NOT internal)
            ORDER BY catalog_name, schema_name
        """
        for row in self._query(sql):
            if row["schema_name"].lower() in self.EXCLUDED_SCHEMAS:
                continue
            yield {"table_catalog": row["catalog_name"], "table_schem": row["schema_name"]}

    def list_type_info(self) -> Iterator[Row]:
        sql = """
            SELECT DISTINCT type_name, logical_type, type_category
            FROM duckdb_types()
            WHERE database_name = 'system'
            ORDER BY type_name
        """
        for row in self._query(sql):
            category = row["type_category"]
            yield {
                "type_name": row["type_name"],
                "data_type": self._type_mapper.to_type_code(row["logical_type"] or row["type_name"]),
                "nullable": 1,
                "case_sensitive": category == "STRING",
                "searchable": 3,
                "num_prec_radix": 10 if category == "NUMERIC" else None,
            }

    def list_user_defined_types(self, catalog: Optional[str], schema: Optional[str]) -> Iterator[Row]:
        sql = """
            SELECT type_name, logical_type
            FROM duckdb_types()
            WHERE database_name = ? AND schema_name = ? AND NOT internal
            ORDER BY type_name
        """
        for row in self._query(sql, (catalog, schema)):
            yield {
                "type_cat": catalog,
                "type_schem": schema,
                "type_name": row["type_name"],
                "data_type": self._type_mapper.to_type_code(row["logical_type"] or ""),
                "base_type": row["logical_type"],
                "remarks": None,
            }

    def _enum_type_names(self, catalog: Optional[str], schema: Optional[str]) -> Dict[str, str]:
        """Map the expanded type string of each enum type in a schema to its name.

        DuckDB reports enum columns by their labels, e.g. ``ENUM('a', 'b')``,
        not by the declared type name.
        """
        key = (catalog, schema)
        if key not in self._enum_types:
            sql = """
                SELECT type_name, labels
                FROM duckdb_types()
                WHERE database_name = ? AND schema_name = ? AND NOT internal
                  AND logical_type = 'ENUM'
                ORDER BY type_name
            """
            names: Dict[str, str] = {}
            for row in self._query(sql, (catalog, schema)):
                if row["labels"]:
                    names.setdefault(_enum_signature(row["labels"]), row["type_name"])
            self._enum_types[key] = names
        return self._enum_types[key]

    def list_tables(self, catalog: Optional[str], schema: Optional[str]) -> Iterator[Row]:
        sql = """
            SELECT table_catalog, table_schema, table_name, table_type
            FROM information_schema.tables
            WHERE table_catalog = ? AND table_schema = ?
            ORDER BY table_name
        """
        for row in self._query(sql, (catalog, schema)):
            yield {
                "table_cat": row["table_catalog"],
                "table_schem": row["table_schema"],
                "table_name": row["table_name"],
                "table_type": _TABLE_TYPES.get(row["table_type"], row["table_type"]),
                "remarks": None,
            }

    def list_columns(self, catalog: Optional[str], schema: Optional[str], table: str) -> Iterator[Row]:
        sql = """
            SELECT
                column_name,
                ordinal_position,
                data_type,
                is_nullable,
                column_default,
                character_maximum_length,
                numeric_precision,
                numeric_scale
            FROM information_schema.columns
            WHERE table_catalog = ? AND table_schema = ? AND table_name = ?
            ORDER BY ordinal_position
        """
        enum_types = self._enum_type_names(catalog, schema)
        for row in self._query(sql, (catalog, schema, table)):
            default = row["column_default"]
            yield {
                "column_name": row["column_name"],
                "ordinal_position": row["ordinal_position"],
                "type_name": enum_types.get(row["data_type"], row["data_type"]),
                "data_type": self._type_mapper.to_type_code(row["data_type"]),
                "column_size": row["character_maximum_length"] or row["numeric_precision"],
                "decimal_digits": row["numeric_scale"],
                "is_nullable": row["is_nullable"],
                "column_def": default,
                "remarks": None,
                "is_autoincrement": bool(default and "nextval(" in str(default)),
                "is_generatedcolumn": False,
            }

    def _constraints(self, catalog: Optional[str], schema: Optional[str], table: str, constraint_types: Sequence[str]):
        placeholders = ", ".join("?" for _ in constraint_types)
        sql = f"""
            SELECT *
            FROM duckdb_constraints()
            WHERE database_name = ? AND schema_name = ? AND table_name = ?
              AND constraint_type IN ({placeholders})
            ORDER BY constraint_index
        """
        return self._query(sql, (catalog, schema, table, *constraint_types))

    def list_primary_keys(self, catalog: Optional[str], schema: Optional[str], table: str) -> Iterator[Row]:
        for row in self._constraints(catalog, schema, table, ["PRIMARY KEY"]):
            for sequence, column_name in enumerate(row["constraint_column_names"] or [], start=1):
                yield {"column_name": column_name, "key_seq": sequence, "pk_name": row.get("constraint_name")}

    def list_foreign_keys(self, catalog: Optional[str], schema: Optional[str], table: str) -> Iterator[Row]:
        for row in self._constraints(catalog, schema, table, ["FOREIGN KEY"]):
            referenced_table = row.get("referenced_table")
            if not referenced_table:
                continue
            fk_columns = row["constraint_column_names"] or []
            pk_columns = row.get("referenced_column_names") or []
            fk_name = row.get("constraint_name") or f"fk_{table}_{row['constraint_index']}"
            for sequence, (fk_column, pk_column) in enumerate(zip(fk_columns, pk_columns), start=1):
                yield {
                    "fk_name": fk_name,
                    "key_seq": sequence,
                    "fktable_name": table,
                    "fkcolumn_name": fk_column,
                    "pktable_cat": catalog,
                    "pktable_schem": schema,
                    "pktable_name": referenced_table,
                    "pkcolumn_name": pk_column,
                    "update_rule": 3,
                    "delete_rule": 3,
                    "deferrability": 7,
                }

    def list_indexes(self, catalog: Optional[str], schema: Optional[str], table: str) -> Iterator[Row]:
        sql = """
            SELECT index_name, is_unique, sql
            FROM duckdb_indexes()
            WHERE database_name = ? AND schema_name = ? AND table_name = ?
            ORDER BY index_name
        """
        for row in self._query(sql, (catalog, schema, table)):
            for position, expression in enumerate(_index_columns(row["sql"]), start=1):
                parts = expression.split()
                descending = len(parts) > 1 and parts[-1].upper() == "DESC"
                yield {
                    "index_name": row["index_name"],
                    "non_unique": not row["is_unique"],
                    "type": 3,
                    "ordinal_position": position,
                    "column_name": parts[0].strip('"'),
                    "asc_or_desc": "D" if descending else "A",
                }

    def list_table_constraints(self, catalog: Optional[str], schema: Optional[str], table: str) -> Iterator[Row]:
        for row in self._constraints(catalog, schema, table, ["UNIQUE", "CHECK"]):
            name = row.get("constraint_name") or f"{table}_{row['constraint_type'].lower()}_{row['constraint_index']}"
            check_clause = row["expression"] if row["constraint_type"] == "CHECK" else None
            for column_name in row["constraint_column_names"] or [None]:
                yield {
                    "constraint_name": name,
                    "constraint_type": row["constraint_type"],
                    "column_name": column_name,
                    "check_clause": check_clause,
                }

    def list_view_definitions(self, catalog: Optional[str], schema: Optional[str]) -> Iterator[Row]:
        sql = """
            SELECT view_name, sql
            FROM duckdb_views()
            WHERE database_name = ? AND schema_name = ? AND NOT internal
            ORDER BY view_name
        """
        for row in self._query(sql, (catalog, schema)):
            yield {"table_name": row["view_name"], "view_definition": row["sql"]}

    def _functions(self, catalog: Optional[str], schema: Optional[str]):
        sql = """
            SELECT function_name, function_oid, function_type, return_type,
                   parameters, parameter_types, macro_definition, description,
                   ROW_NUMBER() OVER (
                       PARTITION BY function_oid ORDER BY len(parameters), parameters
                   ) AS overload
            FROM duckdb_functions()
            WHERE database_name = ? AND schema_name = ? AND NOT internal
            ORDER BY function_name, function_oid, overload
        """
        return self._query(sql, (catalog, schema))

    def list_routines(self, catalog: Optional[str], schema: Optional[str]) -> Iterator[Row]:
        for row in self._functions(catalog, schema):
            yield {
                "routine_cat": catalog,
                "routine_schem": schema,
                "routine_name": row["function_name"],
                "specific_name": _specific_name(row),
                "routine_type": "function",
                "return_type": "table" if row["function_type"] == "table_macro" else "value",
                "remarks": row["description"],
                "routine_definition": row["macro_definition"],
            }

    def list_routine_parameters(self, catalog: Optional[str], schema: Optional[str]) -> Iterator[Row]:
        for row in self._functions(catalog, schema):
            parameter_types = row["parameter_types"] or []
            for position, name in enumerate(row["parameters"] or [], start=1):
                type_name = parameter_types[position - 1] if position <= len(parameter_types) else None
                yield {
                    "routine_name": row["function_name"],
                    "specific_name": _specific_name(row),
                    "parameter_name": name,
                    "ordinal_position": position,
                    "parameter_mode": "in",
                    "type_name": type_name,
                    "data_type": self._type_mapper.to_type_code(type_name) if type_name else None,
                    "nullable": 1,
                }

    def get_row_count(self, catalog: Optional[str], schema: Optional[str], table: str) -> Optional[int]:
        sql = """
            SELECT estimated_size
            FROM duckdb_tables()
            WHERE database_name = ? AND schema_name = ? AND table_name = ?
        """
        rows = list(self._query(sql, (catalog, schema, table)))
        return rows[0]["estimated_size"] if rows else None
