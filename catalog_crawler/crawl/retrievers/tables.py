"""Table and view retrieval."""

import logging

from catalog_crawler.crawl.info import RetrievalResult
from catalog_crawler.crawl.models import Schema, Table, View
from catalog_crawler.crawl.options import RetrievalCategory
from catalog_crawler.crawl.retrievers.base import BaseRetriever, RetrievalContext
from catalog_crawler.crawl.rules import RuleFor

logger = logging.getLogger(__name__)


class TableRetriever(BaseRetriever):
    """Adds the tables and views of every crawled schema.

    Tables are filtered by table type first, then by the table rule.
    """

    category = RetrievalCategory.TABLES

    def _retrieve(self, context: RetrievalContext, result: RetrievalResult) -> None:
        self._for_each(
            result,
            "tables",
            context.catalog.schemas,
            lambda schema: self._retrieve_tables(context, result, schema),
        )

    def _retrieve_tables(self, context: RetrievalContext, result: RetrievalResult, schema: Schema) -> None:
        catalog = context.catalog
        with self._records(context.source.list_tables, schema.catalog_name, schema.name) as records:
            for record in records:
                name = record.get_string("table_name")
                if not name:
                    continue
                table_type = (record.get_string("table_type") or "TABLE").strip().upper()
                key = schema.key.with_part(name)
                if not context.limit_options.include_table_type(table_type) or \
                        not context.include(RuleFor.TABLE, str(key)):
                    logger.debug("Excluding %s %s", table_type.lower(), key)
                    result.excluded += 1
                    continue
                if catalog.lookup_table(key) is not None:
                    continue

                table_class = View if "VIEW" in table_type else Table
                catalog.add_table(table_class(
                    schema=schema,
                    name=name,
                    table_type=table_type,
                    remarks=record.get_string("remarks"),
                ))
                result.retrieved += 1
