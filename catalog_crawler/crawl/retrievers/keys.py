"""Primary key and foreign key retrieval."""

import logging
from typing import Dict, List

from catalog_crawler.crawl.info import RetrievalResult
from catalog_crawler.crawl.keys import table_key
from catalog_crawler.crawl.models import (
    ColumnReference,
    ForeignKey,
    ForeignKeyDeferrability,
    ForeignKeyRule,
    PrimaryKey,
    Table,
)
from catalog_crawler.crawl.options import RetrievalCategory
from catalog_crawler.crawl.retrievers.base import BaseRetriever, RetrievalContext
from catalog_crawler.database.records import MetadataRecord

logger = logging.getLogger(__name__)


class PrimaryKeyRetriever(BaseRetriever):
    """Sets the primary key of every crawled table."""

    category = RetrievalCategory.PRIMARY_KEYS

    def _retrieve(self, context: RetrievalContext, result: RetrievalResult) -> None:
        self._for_each(
            result,
            "primary keys",
            context.catalog.tables,
            lambda table: self._retrieve_primary_key(context, result, table),
        )

    def _retrieve_primary_key(self, context: RetrievalContext, result: RetrievalResult, table: Table) -> None:
        if table.primary_key is not None:
            return
        schema = table.schema
        with self._records(context.source.list_primary_keys, schema.catalog_name, schema.name, table.name) as records:
            rows = list(records)
        if not rows:
            return

        rows.sort(key=lambda record: record.get_int("key_seq", 0))
        columns = []
        for record in rows:
            column = table.lookup_column(record.get_string("column_name") or "")
            if column is not None and column not in columns:
                columns.append(column)
        table.set_primary_key(PrimaryKey(table=table, name=rows[0].get_string("pk_name"), columns=columns))
        result.retrieved += 1


class ForeignKeyRetriever(BaseRetriever):
    """Adds the foreign keys each crawled table declares.

    Rows are grouped by foreign key name. The referenced side is stored as
    keys and checked against the catalog; a foreign key whose referenced
    columns are not crawled is kept and marked unresolved.
    """

    category = RetrievalCategory.FOREIGN_KEYS

    def _retrieve(self, context: RetrievalContext, result: RetrievalResult) -> None:
        self._for_each(
            result,
            "foreign keys",
            context.catalog.tables,
            lambda table: self._retrieve_foreign_keys(context, result, table),
        )

    def _retrieve_foreign_keys(self, context: RetrievalContext, result: RetrievalResult, table: Table) -> None:
        schema = table.schema
        groups: Dict[str, List[MetadataRecord]] = {}
        with self._records(context.source.list_foreign_keys, schema.catalog_name, schema.name, table.name) as records:
            for record in records:
                name = record.get_string("fk_name") or \
                    f"fk_{table.name}_{record.get_string('pktable_name', 'unknown')}"
                groups.setdefault(name, []).append(record)

        for name, rows in groups.items():
            if table.lookup_foreign_key(name) is not None:
                continue
            foreign_key = self._build(context, table, name, rows)
            table.add_foreign_key(foreign_key)
            result.retrieved += 1
            if not foreign_key.is_resolved:
                logger.debug(
                    "Foreign key %s references %s, which was not crawled",
                    foreign_key.full_name,
                    foreign_key.referenced_table_key,
                )

    def _build(self, context: RetrievalContext, table: Table, name: str, rows: List[MetadataRecord]) -> ForeignKey:
        connection = context.connection
        first = rows[0]
        referenced_table_key = table_key(
            connection.normalize_catalog_name(first.get_string("pktable_cat")),
            connection.normalize_schema_name(first.get_string("pktable_schem")),
            first.get_string("pktable_name") or "",
        )
        foreign_key = ForeignKey(
            table=table,
            name=name,
            referenced_table_key=referenced_table_key,
            update_rule=ForeignKeyRule.from_code(first.get_int("update_rule")),
            delete_rule=ForeignKeyRule.from_code(first.get_int("delete_rule")),
            deferrability=ForeignKeyDeferrability.from_code(first.get_int("deferrability")),
        )
        for position, record in enumerate(rows, start=1):
            fk_column_name = record.get_string("fkcolumn_name")
            pk_column_name = record.get_string("pkcolumn_name")
            if not fk_column_name or not pk_column_name:
                continue
            foreign_key.add_column_reference(ColumnReference(
                key_sequence=record.get_int("key_seq", position),
                foreign_key_column=table.key.with_part(fk_column_name),
                primary_key_column=referenced_table_key.with_part(pk_column_name),
            ))

        catalog = context.catalog
        resolved = bool(foreign_key.column_references)
        for reference in foreign_key.column_references:
            fk_column = catalog.lookup_column(reference.foreign_key_column)
            if fk_column is not None:
                fk_column.is_part_of_foreign_key = True
                fk_column.referenced_column_key = reference.primary_key_column
            if catalog.lookup_column(reference.primary_key_column) is None:
                resolved = False
        foreign_key.is_resolved = resolved
        return foreign_key
