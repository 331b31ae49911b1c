"""Synonym retrieval."""

import logging

from catalog_crawler.crawl.info import RetrievalResult
from catalog_crawler.crawl.keys import NamedObjectKey
from catalog_crawler.crawl.models import Schema, Synonym
from catalog_crawler.crawl.options import RetrievalCategory
from catalog_crawler.crawl.retrievers.base import BaseRetriever, RetrievalContext
from catalog_crawler.crawl.rules import RuleFor

logger = logging.getLogger(__name__)


class SynonymRetriever(BaseRetriever):
    """Adds synonyms. The referenced object is kept as a key and may dangle."""

    category = RetrievalCategory.SYNONYMS

    def _retrieve(self, context: RetrievalContext, result: RetrievalResult) -> None:
        self._for_each(
            result,
            "synonyms",
            context.catalog.schemas,
            lambda schema: self._retrieve_synonyms(context, result, schema),
        )

    def _retrieve_synonyms(self, context: RetrievalContext, result: RetrievalResult, schema: Schema) -> None:
        connection = context.connection
        catalog = context.catalog
        with self._records(context.source.list_synonyms, schema.catalog_name, schema.name) as records:
            for record in records:
                name = record.get_string("synonym_name")
                referenced_name = record.get_string("referenced_object_name")
                if not name or not referenced_name:
                    continue
                key = schema.key.with_part(name)
                if not context.include(RuleFor.SYNONYM, str(key)):
                    result.excluded += 1
                    continue
                if catalog.lookup_synonym(key) is not None:
                    continue

                referenced_key = NamedObjectKey(
                    connection.normalize_catalog_name(record.get_string("referenced_object_catalog")),
                    connection.normalize_schema_name(record.get_string("referenced_object_schema")),
                    referenced_name,
                )
                catalog.add_synonym(Synonym(
                    schema=schema,
                    name=name,
                    referenced_object_key=referenced_key,
                    remarks=record.get_string("remarks"),
                ))
                result.retrieved += 1
