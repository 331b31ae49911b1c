"""Routine and routine parameter retrieval."""

import logging
from typing import Optional

from catalog_crawler.crawl.info import RetrievalResult
from catalog_crawler.crawl.keys import NamedObjectKey, routine_key
from catalog_crawler.crawl.models import (
    DataTypeType,
    ParameterMode,
    Routine,
    RoutineParameter,
    RoutineType,
    Schema,
)
from catalog_crawler.crawl.options import RetrievalCategory
from catalog_crawler.crawl.retrievers.base import BaseRetriever, RetrievalContext
from catalog_crawler.crawl.rules import RuleFor
from catalog_crawler.database.records import MetadataRecord

logger = logging.getLogger(__name__)

# JDBC procedureColumn* codes
PARAMETER_MODE_CODES = {
    1: ParameterMode.IN,
    2: ParameterMode.INOUT,
    3: ParameterMode.RESULT,
    4: ParameterMode.OUT,
    5: ParameterMode.RETURN,
}


def _routine_type(record: MetadataRecord) -> RoutineType:
    value = (record.get_string("routine_type") or "").strip().lower()
    try:
        return RoutineType(value)
    except ValueError:
        return RoutineType.UNKNOWN


def _parameter_mode(record: MetadataRecord) -> ParameterMode:
    code = record.get_int("parameter_mode")
    if code is not None:
        return PARAMETER_MODE_CODES.get(code, ParameterMode.UNKNOWN)
    value = (record.get_string("parameter_mode") or "").strip().lower().replace(" ", "")
    try:
        return ParameterMode(value)
    except ValueError:
        return ParameterMode.UNKNOWN


class RoutineRetriever(BaseRetriever):
    """Adds procedures and functions, filtered by routine type and rule."""

    category = RetrievalCategory.ROUTINES

    def _retrieve(self, context: RetrievalContext, result: RetrievalResult) -> None:
        self._for_each(
            result,
            "routines",
            context.catalog.schemas,
            lambda schema: self._retrieve_routines(context, result, schema),
        )

    def _retrieve_routines(self, context: RetrievalContext, result: RetrievalResult, schema: Schema) -> None:
        catalog = context.catalog
        with self._records(context.source.list_routines, schema.catalog_name, schema.name) as records:
            for record in records:
                name = record.get_string("routine_name")
                if not name:
                    continue
                routine_type = _routine_type(record)
                if not context.limit_options.include_routine_type(routine_type) or \
                        not context.include(RuleFor.ROUTINE, str(schema.key.with_part(name))):
                    result.excluded += 1
                    continue
                specific_name = record.get_string("specific_name") or name
                key = routine_key(schema.catalog_name, schema.name, name, specific_name)
                if catalog.lookup_routine(key) is not None:
                    continue

                catalog.add_routine(Routine(
                    schema=schema,
                    name=name,
                    specific_name=specific_name,
                    routine_type=routine_type,
                    return_type=record.get_string("return_type", "unknown"),
                    remarks=record.get_string("remarks"),
                    definition=record.get_string("routine_definition"),
                ))
                result.retrieved += 1


class RoutineParameterRetriever(BaseRetriever):
    """Adds parameters to crawled routines.

    Each row is matched to its routine by the four-part routine key;
    parameters of routines that were not crawled are ignored.
    """

    category = RetrievalCategory.ROUTINE_PARAMETERS

    def _retrieve(self, context: RetrievalContext, result: RetrievalResult) -> None:
        schemas = [schema for schema in context.catalog.schemas if context.catalog.get_routines(schema)]
        self._for_each(
            result,
            "routine parameters",
            schemas,
            lambda schema: self._retrieve_parameters(context, result, schema),
        )

    def _retrieve_parameters(self, context: RetrievalContext, result: RetrievalResult, schema: Schema) -> None:
        with self._records(context.source.list_routine_parameters, schema.catalog_name, schema.name) as records:
            for record in records:
                routine = self._lookup_routine(context, schema, record)
                if routine is None:
                    continue
                position = record.get_int("ordinal_position", len(routine.parameters) + 1)
                name = record.get_string("parameter_name") or record.get_string("column_name") or f"${position}"
                qualified_name = str(NamedObjectKey(schema.catalog_name, schema.name, routine.name, name))
                if not context.include(RuleFor.ROUTINE_PARAMETER, qualified_name):
                    result.excluded += 1
                    continue
                if routine.lookup_parameter(name) is not None:
                    continue

                data_type = context.type_registry.lookup_or_create(
                    DataTypeType.SYSTEM,
                    schema,
                    record.get_int("data_type"),
                    record.get_string("type_name"),
                )
                routine.add_parameter(RoutineParameter(
                    routine=routine,
                    name=name,
                    ordinal_position=position,
                    parameter_mode=_parameter_mode(record),
                    data_type=data_type,
                    size=record.get_int("length") or record.get_int("precision"),
                    decimal_digits=record.get_int("scale"),
                    nullable=record.get_nullable("nullable"),
                    remarks=record.get_string("remarks"),
                ))
                result.retrieved += 1

    def _lookup_routine(self, context: RetrievalContext, schema: Schema, record: MetadataRecord) -> Optional[Routine]:
        routine_name = record.get_string("routine_name")
        if not routine_name:
            return None
        specific_name = record.get_string("specific_name") or routine_name
        return context.catalog.lookup_routine(
            routine_key(schema.catalog_name, schema.name, routine_name, specific_name)
        )
