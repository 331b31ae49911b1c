"""View definition retrieval."""

import logging

from catalog_crawler.crawl.info import RetrievalResult
from catalog_crawler.crawl.models import Schema, View
from catalog_crawler.crawl.options import RetrievalCategory
from catalog_crawler.crawl.retrievers.base import BaseRetriever, RetrievalContext

logger = logging.getLogger(__name__)


class ViewDefinitionRetriever(BaseRetriever):
    """Sets the SQL text of crawled views.

    Some sources split long definitions over several rows; those are
    concatenated in order.
    """

    category = RetrievalCategory.VIEW_DEFINITIONS

    def _retrieve(self, context: RetrievalContext, result: RetrievalResult) -> None:
        schemas = [
            schema for schema in context.catalog.schemas
            if any(table.is_view for table in context.catalog.get_tables(schema))
        ]
        self._for_each(
            result,
            "view definitions",
            schemas,
            lambda schema: self._retrieve_definitions(context, result, schema),
        )

    def _retrieve_definitions(self, context: RetrievalContext, result: RetrievalResult, schema: Schema) -> None:
        seen = set()
        with self._records(context.source.list_view_definitions, schema.catalog_name, schema.name) as records:
            for record in records:
                name = record.get_string("table_name")
                definition = record.get_string("view_definition")
                view = context.catalog.lookup_table(schema.key.with_part(name or ""))
                if not isinstance(view, View) or not definition:
                    continue
                if name in seen:
                    view.definition = (view.definition or "") + definition
                    continue
                seen.add(name)
                view.definition = definition
                result.retrieved += 1
