"""Index retrieval."""

import logging
from typing import Dict, List, Optional

from catalog_crawler.crawl.info import RetrievalResult
from catalog_crawler.crawl.models import Index, IndexColumn, Table
from catalog_crawler.crawl.options import RetrievalCategory
from catalog_crawler.crawl.retrievers.base import BaseRetriever, RetrievalContext
from catalog_crawler.database.records import MetadataRecord

logger = logging.getLogger(__name__)

# JDBC DatabaseMetaData.tableIndex* constants
INDEX_TYPES = {
    0: "STATISTIC",
    1: "CLUSTERED",
    2: "HASHED",
    3: "OTHER",
}

SORT_SEQUENCES = {
    "A": "ASC",
    "ASC": "ASC",
    "D": "DESC",
    "DESC": "DESC",
}


def _index_type(record: MetadataRecord) -> str:
    code = record.get_int("type")
    if code is not None:
        return INDEX_TYPES.get(code, "OTHER")
    return (record.get_string("type") or "OTHER").upper()


def _sort_sequence(record: MetadataRecord) -> Optional[str]:
    value = record.get_string("asc_or_desc")
    if value is None:
        return None
    return SORT_SEQUENCES.get(value.strip().upper())


class IndexRetriever(BaseRetriever):
    """Adds the indexes of every crawled table.

    Index columns that were not crawled (excluded, or expressions) are
    left out; an index with no crawled column is dropped.
    """

    category = RetrievalCategory.INDEXES

    def _retrieve(self, context: RetrievalContext, result: RetrievalResult) -> None:
        self._for_each(
            result,
            "indexes",
            context.catalog.tables,
            lambda table: self._retrieve_indexes(context, result, table),
        )

    def _retrieve_indexes(self, context: RetrievalContext, result: RetrievalResult, table: Table) -> None:
        schema = table.schema
        groups: Dict[str, List[MetadataRecord]] = {}
        with self._records(context.source.list_indexes, schema.catalog_name, schema.name, table.name) as records:
            for record in records:
                name = record.get_string("index_name")
                if not name or _index_type(record) == "STATISTIC":
                    continue
                groups.setdefault(name, []).append(record)

        for name, rows in groups.items():
            if table.lookup_index(name) is not None:
                continue
            rows.sort(key=lambda record: record.get_int("ordinal_position", 0))
            index = Index(
                table=table,
                name=name,
                unique=not rows[0].get_bool("non_unique", True),
                index_type=_index_type(rows[0]),
                remarks=rows[0].get_string("remarks"),
            )
            for record in rows:
                column = table.lookup_column(record.get_string("column_name") or "")
                if column is None or any(existing.column is column for existing in index.columns):
                    continue
                column.is_part_of_index = True
                index.columns.append(IndexColumn(
                    column=column,
                    index_ordinal_position=len(index.columns) + 1,
                    sort_sequence=_sort_sequence(record),
                ))
            if not index.columns:
                logger.debug("Skipping index %s of %s with no crawled columns", name, table.full_name)
                result.excluded += 1
                continue
            table.add_index(index)
            result.retrieved += 1
