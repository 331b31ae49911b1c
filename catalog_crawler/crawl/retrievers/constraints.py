"""Check and unique constraint retrieval."""

import logging
from typing import Dict, List

from catalog_crawler.crawl.info import RetrievalResult
from catalog_crawler.crawl.models import Table, TableConstraint
from catalog_crawler.crawl.options import RetrievalCategory
from catalog_crawler.crawl.retrievers.base import BaseRetriever, RetrievalContext
from catalog_crawler.database.records import MetadataRecord

logger = logging.getLogger(__name__)


class TableConstraintRetriever(BaseRetriever):
    """Adds check and unique constraints to every crawled table."""

    category = RetrievalCategory.TABLE_CONSTRAINTS

    def _retrieve(self, context: RetrievalContext, result: RetrievalResult) -> None:
        self._for_each(
            result,
            "table constraints",
            context.catalog.tables,
            lambda table: self._retrieve_constraints(context, result, table),
        )

    def _retrieve_constraints(self, context: RetrievalContext, result: RetrievalResult, table: Table) -> None:
        schema = table.schema
        groups: Dict[str, List[MetadataRecord]] = {}
        with self._records(
            context.source.list_table_constraints, schema.catalog_name, schema.name, table.name
        ) as records:
            for record in records:
                name = record.get_string("constraint_name")
                if name:
                    groups.setdefault(name, []).append(record)

        for name, rows in groups.items():
            if table.lookup_table_constraint(name) is not None:
                continue
            first = rows[0]
            constraint = TableConstraint(
                table=table,
                name=name,
                constraint_type=(first.get_string("constraint_type") or "UNKNOWN").upper(),
                definition=first.get_string("check_clause"),
                deferrable=first.get_bool("is_deferrable"),
                initially_deferred=first.get_bool("initially_deferred"),
            )
            for record in rows:
                column = table.lookup_column(record.get_string("column_name") or "")
                if column is not None and column not in constraint.columns:
                    constraint.columns.append(column)
            table.add_table_constraint(constraint)
            result.retrieved += 1
