"""Row count retrieval."""

import logging

from catalog_crawler.crawl.info import RetrievalResult
from catalog_crawler.crawl.models import Table
from catalog_crawler.crawl.options import RetrievalCategory
from catalog_crawler.crawl.retrievers.base import BaseRetriever, RetrievalContext

logger = logging.getLogger(__name__)


class TableRowCountRetriever(BaseRetriever):
    """Sets row count estimates on crawled tables. Views are not counted."""

    category = RetrievalCategory.ROW_COUNTS

    def _retrieve(self, context: RetrievalContext, result: RetrievalResult) -> None:
        tables = [table for table in context.catalog.tables if not table.is_view]
        self._for_each(
            result,
            "row counts",
            tables,
            lambda table: self._retrieve_row_count(context, result, table),
        )

    def _retrieve_row_count(self, context: RetrievalContext, result: RetrievalResult, table: Table) -> None:
        schema = table.schema
        row_count = context.source.get_row_count(schema.catalog_name, schema.name, table.name)
        if row_count is None:
            return
        table.row_count = int(row_count)
        result.retrieved += 1
