"""The catalog: indexed schemas, tables, routines, synonyms and data types.

Retrievers fill a MutableCatalog during a crawl. ``freeze()`` turns it
into a read-only Catalog for consumers.
"""

import logging
import threading
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Tuple, Union

from catalog_crawler.crawl.info import CrawlInfo
from catalog_crawler.crawl.keys import NamedObjectKey
from catalog_crawler.crawl.models import (
    Column,
    DataType,
    ForeignKey,
    Routine,
    Schema,
    Synonym,
    Table,
)
from catalog_crawler.errors import ConfigurationError, DuplicateKeyError, FrozenCatalogError

logger = logging.getLogger(__name__)

CatalogObject = Union[Table, Routine, Synonym]


class _CatalogIndex:
    """Read access shared by the mutable and the frozen catalog."""

    _schemas: Mapping[NamedObjectKey, Schema]
    _tables: Mapping[NamedObjectKey, Table]
    _routines: Mapping[NamedObjectKey, Routine]
    _synonyms: Mapping[NamedObjectKey, Synonym]
    _system_data_types: Mapping[NamedObjectKey, DataType]
    _data_types: Mapping[NamedObjectKey, DataType]

    def lookup_schema(self, key: NamedObjectKey) -> Optional[Schema]:
        return self._schemas.get(key)

    def lookup_table(self, key: NamedObjectKey) -> Optional[Table]:
        return self._tables.get(key)

    def lookup_column(self, key: NamedObjectKey) -> Optional[Column]:
        if key is None or len(key) != 4:
            return None
        table = self._tables.get(key.parent())
        if table is None:
            return None
        return table.lookup_column(key.name)

    def lookup_foreign_key(self, key: NamedObjectKey) -> Optional[ForeignKey]:
        if key is None or len(key) != 4:
            return None
        table = self._tables.get(key.parent())
        if table is None:
            return None
        return table.lookup_foreign_key(key.name)

    def lookup_routine(self, key: NamedObjectKey) -> Optional[Routine]:
        return self._routines.get(key)

    def lookup_synonym(self, key: NamedObjectKey) -> Optional[Synonym]:
        return self._synonyms.get(key)

    def lookup_data_type(self, schema: Optional[Schema], name: str) -> Optional[DataType]:
        """Look up a type in the pool of one schema (user-defined types)."""
        if schema is None:
            return None
        return self._data_types.get(schema.key.with_part(name))

    def lookup_system_data_type(self, name: str) -> Optional[DataType]:
        return self._system_data_types.get(NamedObjectKey(name))

    def resolve_column_reference(self, key: NamedObjectKey) -> Optional[Column]:
        """Resolve a column key stored in a foreign key or column."""
        return self.lookup_column(key)

    def resolve_synonym(self, synonym: Synonym) -> Optional[CatalogObject]:
        """Find the table, routine or synonym a synonym refers to, if crawled."""
        key = synonym.referenced_object_key
        found = self._tables.get(key) or self._synonyms.get(key)
        if found is not None:
            return found
        if len(key) == 3:
            return self._routines.get(key.with_part(key.name))
        return self._routines.get(key)

    def get_tables(self, schema: Schema) -> List[Table]:
        return [table for table in self._tables.values() if table.schema is schema]

    def get_routines(self, schema: Schema) -> List[Routine]:
        return [routine for routine in self._routines.values() if routine.schema is schema]

    def get_synonyms(self, schema: Schema) -> List[Synonym]:
        return [synonym for synonym in self._synonyms.values() if synonym.schema is schema]

    def get_columns(self, table: Table) -> List[Column]:
        return table.columns

    def get_data_types(self, schema: Schema) -> List[DataType]:
        return [data_type for data_type in self._data_types.values() if data_type.schema is schema]


class MutableCatalog(_CatalogIndex):
    """Catalog under construction.

    Inserts reject duplicate keys with DuplicateKeyError and run under one
    re-entrant lock. Lookups return None for missing objects.
    """

    def __init__(self, info: Optional[CrawlInfo] = None):
        self._lock = threading.RLock()
        self._frozen = False
        self._schemas: Dict[NamedObjectKey, Schema] = {}
        self._tables: Dict[NamedObjectKey, Table] = {}
        self._routines: Dict[NamedObjectKey, Routine] = {}
        self._synonyms: Dict[NamedObjectKey, Synonym] = {}
        self._system_data_types: Dict[NamedObjectKey, DataType] = {}
        self._data_types: Dict[NamedObjectKey, DataType] = {}
        self.info = info or CrawlInfo()

    def _check_mutable(self, operation: str) -> None:
        if self._frozen:
            raise FrozenCatalogError(operation)

    def _require_schema(self, schema: Schema, entity_type: str) -> None:
        if self._schemas.get(schema.key) is not schema:
            raise ConfigurationError(
                f"Cannot add {entity_type} to schema '{schema.full_name}' that is not in the catalog",
                details={"schema": str(schema.key)},
            )

    @property
    def schemas(self) -> List[Schema]:
        return list(self._schemas.values())

    @property
    def tables(self) -> List[Table]:
        return list(self._tables.values())

    @property
    def routines(self) -> List[Routine]:
        return list(self._routines.values())

    @property
    def synonyms(self) -> List[Synonym]:
        return list(self._synonyms.values())

    @property
    def data_types(self) -> List[DataType]:
        return list(self._system_data_types.values()) + list(self._data_types.values())

    def add_schema(self, schema: Schema) -> Schema:
        with self._lock:
            self._check_mutable("add schema")
            if schema.key in self._schemas:
                raise DuplicateKeyError("schema", schema.key)
            self._schemas[schema.key] = schema
            return schema

    def add_table(self, table: Table) -> Table:
        with self._lock:
            self._check_mutable("add table")
            self._require_schema(table.schema, "table")
            if table.key in self._tables:
                raise DuplicateKeyError("table", table.key)
            self._tables[table.key] = table
            return table

    def add_routine(self, routine: Routine) -> Routine:
        with self._lock:
            self._check_mutable("add routine")
            self._require_schema(routine.schema, "routine")
            if routine.key in self._routines:
                raise DuplicateKeyError("routine", routine.key)
            self._routines[routine.key] = routine
            return routine

    def add_synonym(self, synonym: Synonym) -> Synonym:
        with self._lock:
            self._check_mutable("add synonym")
            self._require_schema(synonym.schema, "synonym")
            if synonym.key in self._synonyms:
                raise DuplicateKeyError("synonym", synonym.key)
            self._synonyms[synonym.key] = synonym
            return synonym

    def _add_data_type(self, data_type: DataType) -> DataType:
        """Index a data type. Only the type registry calls this."""
        with self._lock:
            self._check_mutable("add data type")
            pool = self._system_data_types if data_type.schema is None else self._data_types
            if data_type.key in pool:
                raise DuplicateKeyError("data type", data_type.key)
            pool[data_type.key] = data_type
            return data_type

    def resolve_foreign_keys(self) -> int:
        """Re-resolve every foreign key through the column index.

        Marks foreign key columns and the columns they reference, and sets
        ``is_resolved`` on each foreign key.

        Returns:
            Number of foreign keys left unresolved
        """
        unresolved = 0
        with self._lock:
            for table in self._tables.values():
                for foreign_key in table.foreign_keys:
                    resolved = bool(foreign_key.column_references)
                    for reference in foreign_key.column_references:
                        fk_column = self.lookup_column(reference.foreign_key_column)
                        if fk_column is not None:
                            fk_column.is_part_of_foreign_key = True
                            fk_column.referenced_column_key = reference.primary_key_column
                        if self.lookup_column(reference.primary_key_column) is None:
                            resolved = False
                    foreign_key.is_resolved = resolved
                    if not resolved:
                        unresolved += 1
                        logger.debug(
                            "Foreign key %s references %s, which is not in the catalog",
                            foreign_key.full_name,
                            foreign_key.referenced_table_key,
                        )
        return unresolved

    def dangling_synonyms(self) -> List[Synonym]:
        return [synonym for synonym in self._synonyms.values() if self.resolve_synonym(synonym) is None]

    def freeze(self) -> "Catalog":
        """Stop accepting changes and return the read-only catalog."""
        with self._lock:
            self._frozen = True
            for table in self._tables.values():
                table.freeze()
            for routine in self._routines.values():
                routine.freeze()
            return Catalog(
                schemas=self._schemas,
                tables=self._tables,
                routines=self._routines,
                synonyms=self._synonyms,
                system_data_types=self._system_data_types,
                data_types=self._data_types,
                info=self.info,
            )

    def __repr__(self) -> str:
        return (
            f"MutableCatalog(schemas={len(self._schemas)}, tables={len(self._tables)}, "
            f"routines={len(self._routines)}, synonyms={len(self._synonyms)})"
        )


class Catalog(_CatalogIndex):
    """Read-only catalog returned by a crawl.

    Collections are tuples and indexes are mapping proxies; any attempt
    to add objects raises FrozenCatalogError.
    """

    def __init__(
        self,
        schemas: Mapping[NamedObjectKey, Schema],
        tables: Mapping[NamedObjectKey, Table],
        routines: Mapping[NamedObjectKey, Routine],
        synonyms: Mapping[NamedObjectKey, Synonym],
        system_data_types: Mapping[NamedObjectKey, DataType],
        data_types: Mapping[NamedObjectKey, DataType],
        info: CrawlInfo,
    ):
        self._schemas = MappingProxyType(dict(schemas))
        self._tables = MappingProxyType(dict(tables))
        self._routines = MappingProxyType(dict(routines))
        self._synonyms = MappingProxyType(dict(synonyms))
        self._system_data_types = MappingProxyType(dict(system_data_types))
        self._data_types = MappingProxyType(dict(data_types))
        self._info = info

    @property
    def info(self) -> CrawlInfo:
        return self._info

    @property
    def schemas(self) -> Tuple[Schema, ...]:
        return tuple(self._schemas.values())

    @property
    def tables(self) -> Tuple[Table, ...]:
        return tuple(self._tables.values())

    @property
    def routines(self) -> Tuple[Routine, ...]:
        return tuple(self._routines.values())

    @property
    def synonyms(self) -> Tuple[Synonym, ...]:
        return tuple(self._synonyms.values())

    @property
    def data_types(self) -> Tuple[DataType, ...]:
        return tuple(self._system_data_types.values()) + tuple(self._data_types.values())

    @property
    def system_data_types(self) -> Tuple[DataType, ...]:
        return tuple(self._system_data_types.values())

    @property
    def warnings(self):
        return tuple(self._info.all_warnings)

    def get_tables(self, schema: Schema) -> Tuple[Table, ...]:
        return tuple(super().get_tables(schema))

    def get_routines(self, schema: Schema) -> Tuple[Routine, ...]:
        return tuple(super().get_routines(schema))

    def get_synonyms(self, schema: Schema) -> Tuple[Synonym, ...]:
        return tuple(super().get_synonyms(schema))

    def get_columns(self, table: Table) -> Tuple[Column, ...]:
        return tuple(table.columns)

    def get_data_types(self, schema: Schema) -> Tuple[DataType, ...]:
        return tuple(super().get_data_types(schema))

    def add_schema(self, schema: Schema):
        raise FrozenCatalogError("add schema")

    def add_table(self, table: Table):
        raise FrozenCatalogError("add table")

    def add_routine(self, routine: Routine):
        raise FrozenCatalogError("add routine")

    def add_synonym(self, synonym: Synonym):
        raise FrozenCatalogError("add synonym")

    def _add_data_type(self, data_type: DataType):
        raise FrozenCatalogError("add data type")

    def summary(self) -> Dict[str, int]:
        """Object counts, as shown by the command line and the run log."""
        return {
            "schemas": len(self._schemas),
            "tables": len(self._tables),
            "columns": sum(len(table.columns) for table in self._tables.values()),
            "routines": len(self._routines),
            "synonyms": len(self._synonyms),
            "data_types": len(self._system_data_types) + len(self._data_types),
            "warnings": len(self._info.all_warnings),
        }

    def __iter__(self) -> Iterator[Schema]:
        return iter(self.schemas)

    def __repr__(self) -> str:
        return f"Catalog({self.summary()!r})"
