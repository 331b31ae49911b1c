"""Column retrieval."""

import logging

from catalog_crawler.crawl.info import RetrievalResult
from catalog_crawler.crawl.models import Column, DataTypeType, Table
from catalog_crawler.crawl.options import RetrievalCategory
from catalog_crawler.crawl.retrievers.base import BaseRetriever, RetrievalContext
from catalog_crawler.crawl.rules import RuleFor
from catalog_crawler.database.records import MetadataRecord

logger = logging.getLogger(__name__)


class ColumnRetriever(BaseRetriever):
    """Adds columns to every crawled table, in the source's ordinal order.

    Column data types go through the type registry, so every column of
    the same vendor type shares one DataType.
    """

    category = RetrievalCategory.COLUMNS

    def _retrieve(self, context: RetrievalContext, result: RetrievalResult) -> None:
        self._for_each(
            result,
            "columns",
            context.catalog.tables,
            lambda table: self._retrieve_columns(context, result, table),
        )

    def _retrieve_columns(self, context: RetrievalContext, result: RetrievalResult, table: Table) -> None:
        schema = table.schema
        with self._records(context.source.list_columns, schema.catalog_name, schema.name, table.name) as records:
            position = 0
            for record in records:
                name = record.get_string("column_name")
                if not name:
                    continue
                position += 1
                if not context.include(RuleFor.COLUMN, str(table.key.with_part(name))):
                    result.excluded += 1
                    continue
                if table.lookup_column(name) is not None:
                    continue

                data_type = context.type_registry.lookup_or_create(
                    DataTypeType.SYSTEM,
                    schema,
                    record.get_int("data_type"),
                    record.get_string("type_name"),
                )
                table.add_column(Column(
                    table=table,
                    name=name,
                    ordinal_position=record.get_int("ordinal_position", position),
                    data_type=data_type,
                    size=record.get_int("column_size"),
                    decimal_digits=record.get_int("decimal_digits"),
                    nullable=_nullable(record),
                    default_value=record.get_string("column_def"),
                    remarks=record.get_string("remarks"),
                    auto_incremented=record.get_bool("is_autoincrement"),
                    generated=record.get_bool("is_generatedcolumn"),
                    hidden=record.get_bool("is_hidden"),
                ))
                result.retrieved += 1


def _nullable(record: MetadataRecord) -> bool:
    if record.get("nullable") is not None:
        return record.get_nullable("nullable")
    return record.get_nullable("is_nullable")
