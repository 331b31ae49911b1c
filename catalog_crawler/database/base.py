"""Abstract base class for database metadata sources."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional

from catalog_crawler.database.type_mappers import GenericTypeMapper, TypeMapper
from catalog_crawler.errors import UnsupportedFeatureError

Row = Dict[str, Any]


class MetadataSource(ABC):
    """Abstract base class for database metadata access.

    Subclasses implement the abstract methods for one database engine and
    override the optional ``list_*`` calls they can answer. Optional calls
    raise UnsupportedFeatureError by default.

    Rows are dictionaries keyed by lower-case names modelled on JDBC
    ``DatabaseMetaData`` result columns (``table_cat``, ``table_schem``,
    ``table_name``, ``column_name``, ``type_name``, ``data_type``, ...).
    Catalog and schema arguments are None when the source does not model
    them. Any ``list_*`` call may return a generator; callers close it.
    """

    # Override in subclasses to exclude system schemas
    EXCLUDED_SCHEMAS: set = {"INFORMATION_SCHEMA"}

    @abstractmethod
    def connect(self):
        """Open the connection. Calling it on an open source does nothing."""
        pass

    @abstractmethod
    def close(self):
        """Close the connection."""
        pass

    @abstractmethod
    def get_product_info(self) -> Dict[str, str]:
        """Get database product details.

        Returns:
            Dictionary with product_name and product_version
        """
        pass

    @abstractmethod
    def supports_catalogs(self) -> bool:
        pass

    @abstractmethod
    def supports_schemas(self) -> bool:
        pass

    def get_identifier_quote_string(self) -> str:
        return '"'

    def get_identifier_case(self) -> str:
        """Case unquoted identifiers are stored in: upper, lower or mixed."""
        return "mixed"

    def get_reserved_words(self) -> Iterable[str]:
        """Reserved words beyond the SQL-2003 list."""
        return ()

    def get_type_mapper(self) -> TypeMapper:
        return GenericTypeMapper()

    @abstractmethod
    def list_schemas(self) -> Iterable[Row]:
        """List schemas.

        Returns:
            Rows with table_schem and table_catalog
        """
        pass

    @abstractmethod
    def list_tables(self, catalog: Optional[str], schema: Optional[str]) -> Iterable[Row]:
        """List tables and views of a schema.

        Returns:
            Rows with table_cat, table_schem, table_name, table_type, remarks
        """
        pass

    @abstractmethod
    def list_columns(self, catalog: Optional[str], schema: Optional[str], table: str) -> Iterable[Row]:
        """List columns of a table.

        Returns:
            Rows with column_name, ordinal_position, type_name, data_type,
            column_size, decimal_digits, nullable, column_def, remarks,
            is_autoincrement, is_generatedcolumn
        """
        pass

    def list_catalogs(self) -> Iterable[Row]:
        """List catalogs. Rows have table_cat."""
        raise UnsupportedFeatureError(f"{type(self).__name__} does not list catalogs")

    def list_type_info(self) -> Iterable[Row]:
        """List the system data types.

        Returns:
            Rows with type_name, data_type, precision, literal_prefix,
            literal_suffix, create_params, nullable, case_sensitive,
            searchable, unsigned_attribute, fixed_prec_scale,
            auto_increment, minimum_scale, maximum_scale, num_prec_radix
        """
        raise UnsupportedFeatureError(f"{type(self).__name__} does not list type info")

    def list_user_defined_types(self, catalog: Optional[str], schema: Optional[str]) -> Iterable[Row]:
        """List user-defined types. Rows have type_name, data_type, base_type, remarks."""
        raise UnsupportedFeatureError(f"{type(self).__name__} does not list user-defined types")

    def list_primary_keys(self, catalog: Optional[str], schema: Optional[str], table: str) -> Iterable[Row]:
        """List primary key columns. Rows have column_name, key_seq, pk_name."""
        raise UnsupportedFeatureError(f"{type(self).__name__} does not list primary keys")

    def list_foreign_keys(self, catalog: Optional[str], schema: Optional[str], table: str) -> Iterable[Row]:
        """List foreign keys where the table is the referencing side.

        Returns:
            Rows with fk_name, key_seq, fkcolumn_name, pktable_cat,
            pktable_schem, pktable_name, pkcolumn_name, update_rule,
            delete_rule, deferrability
        """
        raise UnsupportedFeatureError(f"{type(self).__name__} does not list foreign keys")

    def list_indexes(self, catalog: Optional[str], schema: Optional[str], table: str) -> Iterable[Row]:
        """List index columns.

        Returns:
            Rows with index_name, non_unique, type, ordinal_position,
            column_name, asc_or_desc
        """
        raise UnsupportedFeatureError(f"{type(self).__name__} does not list indexes")

    def list_table_constraints(self, catalog: Optional[str], schema: Optional[str], table: str) -> Iterable[Row]:
        """List check and unique constraints, one row per constrained column.

        Returns:
            Rows with constraint_name, constraint_type, column_name,
            check_clause, is_deferrable, initially_deferred
        """
        raise UnsupportedFeatureError(f"{type(self).__name__} does not list table constraints")

    def list_triggers(self, catalog: Optional[str], schema: Optional[str], table: str) -> Iterable[Row]:
        """List triggers.

        Returns:
            Rows with trigger_name, event_manipulation, action_timing,
            action_orientation, action_condition, action_statement,
            action_order
        """
        raise UnsupportedFeatureError(f"{type(self).__name__} does not list triggers")

    def list_view_definitions(self, catalog: Optional[str], schema: Optional[str]) -> Iterable[Row]:
        """List view definitions of a schema. Rows have table_name, view_definition."""
        raise UnsupportedFeatureError(f"{type(self).__name__} does not list view definitions")

    def list_routines(self, catalog: Optional[str], schema: Optional[str]) -> Iterable[Row]:
        """List procedures and functions.

        Returns:
            Rows with routine_name, specific_name, routine_type
            ("procedure" or "function"), return_type, remarks,
            routine_definition
        """
        raise UnsupportedFeatureError(f"{type(self).__name__} does not list routines")

    def list_routine_parameters(self, catalog: Optional[str], schema: Optional[str]) -> Iterable[Row]:
        """List parameters of every routine in a schema.

        Returns:
            Rows with routine_name, specific_name, parameter_name,
            ordinal_position, parameter_mode, type_name, data_type,
            length, scale, nullable, remarks
        """
        raise UnsupportedFeatureError(f"{type(self).__name__} does not list routine parameters")

    def list_synonyms(self, catalog: Optional[str], schema: Optional[str]) -> Iterable[Row]:
        """List synonyms.

        Returns:
            Rows with synonym_name, referenced_object_catalog,
            referenced_object_schema, referenced_object_name, remarks
        """
        raise UnsupportedFeatureError(f"{type(self).__name__} does not list synonyms")

    def get_row_count(self, catalog: Optional[str], schema: Optional[str], table: str) -> Optional[int]:
        """Get a row count estimate for a table."""
        raise UnsupportedFeatureError(f"{type(self).__name__} does not count rows")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
