"""Schema retrieval."""

import logging
from typing import List, Optional

from catalog_crawler.crawl.info import RetrievalResult
from catalog_crawler.crawl.models import Schema
from catalog_crawler.crawl.options import RetrievalCategory
from catalog_crawler.crawl.retrievers.base import BaseRetriever, RetrievalContext
from catalog_crawler.crawl.rules import RuleFor

logger = logging.getLogger(__name__)


class SchemaRetriever(BaseRetriever):
    """Adds the schemas (and catalogs) that pass the schema rule.

    Sources without schema support get one schema per catalog with no
    schema name, or a single schema with neither name.
    """

    category = RetrievalCategory.SCHEMAS

    def _retrieve(self, context: RetrievalContext, result: RetrievalResult) -> None:
        connection = context.connection
        if not connection.supports_schemas:
            for catalog_name in self._catalog_names(context, result):
                self._add(context, result, Schema(catalog_name, None))
            return

        with self._records(context.source.list_schemas) as records:
            for record in records:
                catalog_name = connection.normalize_catalog_name(
                    record.get_string("table_catalog") or record.get_string("table_cat")
                )
                schema_name = connection.normalize_schema_name(record.get_string("table_schem"))
                self._add(context, result, Schema(catalog_name, schema_name))

    def _catalog_names(self, context: RetrievalContext, result: RetrievalResult) -> List[Optional[str]]:
        if not context.connection.supports_catalogs:
            return [None]
        names: List[Optional[str]] = []

        def collect():
            with self._records(context.source.list_catalogs) as records:
                for record in records:
                    name = context.connection.normalize_catalog_name(record.get_string("table_cat"))
                    if name not in names:
                        names.append(name)

        self._attempt(result, "catalogs", collect)
        return names or [None]

    def _add(self, context: RetrievalContext, result: RetrievalResult, schema: Schema) -> None:
        if not context.include(RuleFor.SCHEMA, schema.full_name):
            logger.debug("Excluding schema %s", schema.full_name)
            result.excluded += 1
            return
        if context.catalog.lookup_schema(schema.key) is not None:
            return
        context.catalog.add_schema(schema)
        result.retrieved += 1
