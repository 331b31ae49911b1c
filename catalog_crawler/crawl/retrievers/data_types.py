"""System and user-defined data type retrieval."""

import logging

from catalog_crawler.crawl.info import RetrievalResult
from catalog_crawler.crawl.models import DataTypeType, Schema
from catalog_crawler.crawl.options import RetrievalCategory
from catalog_crawler.crawl.retrievers.base import BaseRetriever, RetrievalContext

logger = logging.getLogger(__name__)


class DataTypeRetriever(BaseRetriever):
    """Fills the system type pool from type info, and schema pools from
    user-defined types."""

    category = RetrievalCategory.DATA_TYPES

    def _retrieve(self, context: RetrievalContext, result: RetrievalResult) -> None:
        self._attempt(result, "system data types", lambda: self._retrieve_system_types(context, result))
        self._for_each(
            result,
            "user-defined data types",
            context.catalog.schemas,
            lambda schema: self._retrieve_user_defined_types(context, result, schema),
        )

    def _retrieve_system_types(self, context: RetrievalContext, result: RetrievalResult) -> None:
        with self._records(context.source.list_type_info) as records:
            for record in records:
                name = record.get_string("type_name")
                if not name or context.catalog.lookup_system_data_type(name) is not None:
                    continue
                context.type_registry.lookup_or_create(
                    DataTypeType.SYSTEM,
                    None,
                    record.get_int("data_type"),
                    name,
                    precision=record.get_int("precision"),
                    literal_prefix=record.get_string("literal_prefix"),
                    literal_suffix=record.get_string("literal_suffix"),
                    create_parameters=record.get_string("create_params"),
                    nullable=record.get_nullable("nullable"),
                    case_sensitive=record.get_bool("case_sensitive"),
                    searchable=record.get_string("searchable"),
                    unsigned=record.get_bool("unsigned_attribute"),
                    fixed_precision_scale=record.get_bool("fixed_prec_scale"),
                    auto_incrementable=record.get_bool("auto_increment"),
                    minimum_scale=record.get_int("minimum_scale"),
                    maximum_scale=record.get_int("maximum_scale"),
                    num_precision_radix=record.get_int("num_prec_radix"),
                )
                result.retrieved += 1

    def _retrieve_user_defined_types(self, context: RetrievalContext, result: RetrievalResult, schema: Schema) -> None:
        registry = context.type_registry
        with self._records(context.source.list_user_defined_types, schema.catalog_name, schema.name) as records:
            for record in records:
                name = record.get_string("type_name")
                if not name or context.catalog.lookup_data_type(schema, name) is not None:
                    continue
                base_type = None
                base_type_name = record.get_string("base_type")
                if base_type_name:
                    base_type = registry.lookup_or_create(
                        DataTypeType.SYSTEM, None, None, base_type_name
                    )
                registry.lookup_or_create(
                    DataTypeType.USER_DEFINED,
                    schema,
                    record.get_int("data_type"),
                    name,
                    base_type=base_type,
                    remarks=record.get_string("remarks"),
                )
                result.retrieved += 1
