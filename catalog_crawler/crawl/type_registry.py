"""Lookup-or-create for data types, the only place DataTypes are built."""

import logging
from typing import Any, Optional

from catalog_crawler.crawl.catalog import MutableCatalog
from catalog_crawler.crawl.connection import RetrieverConnection
from catalog_crawler.crawl.models import DataType, DataTypeType, Schema
from catalog_crawler.crawl.sql_types import UNKNOWN, SqlType
from catalog_crawler.crawl.type_map import DEFAULT_HOST_TYPE

logger = logging.getLogger(__name__)


class TypeRegistry:
    """Deduplicating factory for the data types of one crawl.

    Types are pooled per schema (user-defined types) and in one system pool
    shared by the whole catalog. Repeated calls with the same schema and
    vendor type name return the same instance.
    """

    def __init__(self, catalog: MutableCatalog, connection: RetrieverConnection):
        self.catalog = catalog
        self.connection = connection
        self.created = 0

    def lookup_or_create(
        self,
        data_type_type: DataTypeType,
        schema: Optional[Schema],
        type_code: Optional[int],
        vendor_name: Optional[str],
        host_type_override: Optional[str] = None,
        **attributes: Any,
    ) -> DataType:
        """Find a data type, creating and indexing it on a miss.

        The schema pool is searched first, then the system pool. A
        user-defined type is only ever looked up in its own schema, so it is
        created there even when a system type of the same name exists.

        Args:
            data_type_type: SYSTEM for column/parameter references and type
                info, USER_DEFINED for types a schema declares
            schema: Owning or referencing schema, None for system types
            type_code: Numeric SQL type code, None to classify by name
            vendor_name: Type name as the source spells it
            host_type_override: Host type to use instead of the type map
            **attributes: DataType fields set only when the type is created

        Returns:
            The pooled DataType
        """
        name = (vendor_name or "").strip()
        if not name:
            name = self._sql_type(type_code, None).name

        existing = self.catalog.lookup_data_type(schema, name)
        if existing is not None:
            return existing

        user_defined = data_type_type == DataTypeType.USER_DEFINED and schema is not None
        system_type = self.catalog.lookup_system_data_type(name)
        if system_type is not None and not user_defined:
            return system_type
        if system_type is not None:
            logger.debug(
                "User-defined type %s shadows system type %s",
                schema.key.with_part(name),
                name,
            )

        sql_type = self._sql_type(type_code, name)
        data_type = DataType(
            name=name,
            schema=schema if user_defined else None,
            data_type_type=DataTypeType.USER_DEFINED if user_defined else DataTypeType.SYSTEM,
            sql_type=sql_type,
            host_type=self._host_type(name, sql_type, host_type_override),
        )
        for attribute, value in attributes.items():
            if value is not None:
                setattr(data_type, attribute, value)
        data_type.with_quoting(self.connection.identifiers)

        self.catalog._add_data_type(data_type)
        self.created += 1
        logger.debug("Created %s data type %s (%s)", data_type.data_type_type.value, data_type.key, sql_type.name)
        return data_type

    def _sql_type(self, type_code: Optional[int], name: Optional[str]) -> SqlType:
        sql_types = self.connection.sql_types
        if type_code is not None and type_code in sql_types:
            return sql_types.value_of(type_code)
        if name:
            classified = sql_types.value_of(self.connection.classify_type(name))
            if classified is not UNKNOWN:
                return classified
        return UNKNOWN

    def _host_type(self, name: str, sql_type: SqlType, override: Optional[str]) -> str:
        if override:
            return override
        type_map = self.connection.type_map
        if name in type_map:
            return type_map[name]
        if sql_type.name in type_map:
            return type_map[sql_type.name]
        return DEFAULT_HOST_TYPE
