"""Tests for the per-category retrievers against an in-memory source."""

import pytest

from catalog_crawler.crawl.keys import NamedObjectKey, routine_key, table_key
from catalog_crawler.crawl.models import ForeignKeyRule, ParameterMode, RoutineType, View
from catalog_crawler.crawl.options import CrawlOptions
from catalog_crawler.crawl.retrievers import (
    ColumnRetriever,
    DataTypeRetriever,
    ForeignKeyRetriever,
    IndexRetriever,
    PrimaryKeyRetriever,
    RoutineParameterRetriever,
    RoutineRetriever,
    SchemaRetriever,
    SynonymRetriever,
    TableConstraintRetriever,
    TableRetriever,
    TableRowCountRetriever,
    TriggerRetriever,
    ViewDefinitionRetriever,
)
from catalog_crawler.crawl.retrievers.base import BaseRetriever
from catalog_crawler.crawl.rules import GlobRule, LimitOptions, RuleFor
from catalog_crawler.errors import ConfigurationError, ConnectionFatalError
from tests.fixtures import FakeMetadataSource


def _run(context, *retrievers):
    return [retriever().retrieve(context) for retriever in retrievers]


class DriverError(Exception):
    """Driver exception carrying a SQLSTATE."""

    def __init__(self, message, sqlstate):
        super().__init__(message)
        self.sqlstate = sqlstate


class TestSchemaRetriever:
    """Test schema retrieval."""

    def test_schemas(self, make_context, shop_source):
        """Test that reported schemas are added with a null catalog."""
        context = make_context(shop_source)
        result, = _run(context, SchemaRetriever)
        assert result.retrieved == 1
        assert context.catalog.lookup_schema(NamedObjectKey(None, "SHOP")) is not None

    def test_duplicate_rows(self, make_context):
        """Test that a schema reported twice is added once."""
        source = FakeMetadataSource().add_schema("APP").add_schema("APP")
        context = make_context(source)
        result, = _run(context, SchemaRetriever)
        assert result.retrieved == 1
        assert len(context.catalog.schemas) == 1

    def test_excluded_schema(self, make_context, shop_source):
        """Test the schema rule."""
        shop_source.add_schema("SCRATCH")
        options = CrawlOptions().with_rule(RuleFor.SCHEMA, GlobRule(exclude="SCRATCH"))
        context = make_context(shop_source, options)
        result, = _run(context, SchemaRetriever)
        assert [schema.name for schema in context.catalog.schemas] == ["SHOP"]
        assert result.excluded == 1

    def test_no_schema_support(self, make_context):
        """Test that a source without schemas or catalogs gets one unnamed schema."""
        source = FakeMetadataSource(supports_schemas=False)
        context = make_context(source)
        _run(context, SchemaRetriever)
        schema, = context.catalog.schemas
        assert schema.catalog_name is None
        assert schema.name is None
        assert source.called("list_schemas") == 0

    def test_catalogs_without_schemas(self, make_context):
        """Test one schema per catalog when only catalogs are modelled."""
        source = FakeMetadataSource(supports_catalogs=True, supports_schemas=False)
        source.catalogs = [{"table_cat": "main"}, {"table_cat": "temp"}, {"table_cat": "main"}]
        context = make_context(source)
        _run(context, SchemaRetriever)
        assert [schema.catalog_name for schema in context.catalog.schemas] == ["main", "temp"]
        assert all(schema.name is None for schema in context.catalog.schemas)


class TestTableRetriever:
    """Test table and view retrieval."""

    def test_tables_and_views(self, make_context, shop_source):
        """Test that views get the View type."""
        context = make_context(shop_source)
        _, result = _run(context, SchemaRetriever, TableRetriever)
        assert result.retrieved == 4
        view = context.catalog.lookup_table(table_key(None, "SHOP", "V_ORDERS"))
        assert isinstance(view, View)
        assert view.is_view
        assert not context.catalog.lookup_table(table_key(None, "SHOP", "ORDERS")).is_view

    def test_table_rule(self, make_context, shop_source):
        """Test excluding tables by a pattern on the qualified name."""
        options = CrawlOptions().with_rule(RuleFor.TABLE, GlobRule(exclude="*.TMP_*"))
        context = make_context(shop_source, options)
        _, result = _run(context, SchemaRetriever, TableRetriever)
        assert context.catalog.lookup_table(table_key(None, "SHOP", "TMP_STAGING")) is None
        assert result.excluded == 1

    def test_table_types(self, make_context, shop_source):
        """Test the table type filter."""
        options = CrawlOptions(limit_options=LimitOptions().with_table_types(["TABLE"]))
        context = make_context(shop_source, options)
        _run(context, SchemaRetriever, TableRetriever)
        assert not any(table.is_view for table in context.catalog.tables)

    def test_failure_in_one_schema(self, make_context):
        """Test that a failing schema is skipped and the next one is crawled."""
        source = FakeMetadataSource().add_schema("A").add_schema("B")
        source.add_table("A", "T1").add_table("B", "T2")
        source.failures[("list_tables", "A")] = RuntimeError("timeout")
        context = make_context(source)
        _, result = _run(context, SchemaRetriever, TableRetriever)
        assert [table.name for table in context.catalog.tables] == ["T2"]
        assert result.skipped == 1
        warning, = result.warnings
        assert warning.object_name == "A"
        assert warning.error_type == "RuntimeError"
        assert not warning.unsupported

    def test_configuration_error_propagates(self, make_context, shop_source):
        """Test that configuration errors are not turned into warnings."""
        shop_source.failures["list_tables"] = ConfigurationError("bad rule")
        context = make_context(shop_source)
        _run(context, SchemaRetriever)
        with pytest.raises(ConfigurationError):
            TableRetriever().retrieve(context)

    def test_connection_error_propagates(self, make_context, shop_source):
        """Test that a lost connection aborts the retriever."""
        shop_source.failures["list_tables"] = ConnectionFatalError("gone")
        context = make_context(shop_source)
        _run(context, SchemaRetriever)
        with pytest.raises(ConnectionFatalError):
            TableRetriever().retrieve(context)


class TestColumnRetriever:
    """Test column retrieval."""

    def test_columns_in_ordinal_order(self, make_context):
        """Test that columns follow the source's ordinal positions."""
        source = FakeMetadataSource().add_schema("APP").add_table("APP", "T")
        source.add_column("APP", "T", "b", ordinal_position=2)
        source.add_column("APP", "T", "a", ordinal_position=1)
        context = make_context(source)
        _run(context, SchemaRetriever, TableRetriever, ColumnRetriever)
        table = context.catalog.lookup_table(table_key(None, "APP", "T"))
        assert [column.name for column in table.columns] == ["a", "b"]

    def test_duplicate_column_rows(self, make_context, app_source):
        """Test that a column reported twice is added once."""
        app_source.add_column("APP", "T", "id", type_name="INT", nullable=0)
        context = make_context(app_source)
        *_, result = _run(context, SchemaRetriever, TableRetriever, ColumnRetriever)
        assert result.retrieved == 2
        assert len(context.catalog.lookup_table(table_key(None, "APP", "T")).columns) == 2

    def test_shared_data_type(self, make_context, shop_source):
        """Test that columns of the same vendor type share one DataType."""
        context = make_context(shop_source)
        _run(context, SchemaRetriever, TableRetriever, ColumnRetriever)
        total = context.catalog.lookup_table(table_key(None, "SHOP", "ORDERS")).lookup_column("TOTAL")
        amount = context.catalog.lookup_table(table_key(None, "SHOP", "V_ORDERS")).lookup_column("AMOUNT")
        assert total.data_type is amount.data_type
        assert total.data_type.name == "NUMBER(10,2)"
        assert total.data_type.sql_type.name == "NUMERIC"

    def test_column_attributes(self, make_context):
        """Test nullability, defaults and flags from column rows."""
        source = FakeMetadataSource().add_schema("APP").add_table("APP", "T")
        source.add_column(
            "APP", "T", "id", nullable=0, is_autoincrement="YES", column_def="0",
            column_size=10, decimal_digits=0, remarks="Identifier",
        )
        source.add_column("APP", "T", "note", type_name="VARCHAR", data_type=12, nullable=None, is_nullable="YES")
        context = make_context(source)
        _run(context, SchemaRetriever, TableRetriever, ColumnRetriever)
        table = context.catalog.lookup_table(table_key(None, "APP", "T"))
        column_id = table.lookup_column("id")
        assert not column_id.nullable
        assert column_id.auto_incremented
        assert column_id.default_value == "0"
        assert column_id.size == 10
        assert column_id.remarks == "Identifier"
        assert table.lookup_column("note").nullable

    def test_column_rule(self, make_context, app_source):
        """Test excluding columns by qualified name."""
        options = CrawlOptions().with_rule(RuleFor.COLUMN, GlobRule(exclude="*.name"))
        context = make_context(app_source, options)
        *_, result = _run(context, SchemaRetriever, TableRetriever, ColumnRetriever)
        table = context.catalog.lookup_table(table_key(None, "APP", "T"))
        assert [column.name for column in table.columns] == ["id"]
        assert result.excluded == 1

    def test_cursors_closed(self, make_context, shop_source):
        """Test that every metadata cursor is closed after retrieval."""
        context = make_context(shop_source)
        _run(context, SchemaRetriever, TableRetriever, ColumnRetriever)
        assert shop_source.open_cursors == 0


class TestKeyRetrievers:
    """Test primary and foreign key retrieval."""

    def test_primary_key(self, make_context, app_source):
        """Test that the primary key is set and its columns flagged."""
        context = make_context(app_source)
        _run(context, SchemaRetriever, TableRetriever, ColumnRetriever, PrimaryKeyRetriever)
        table = context.catalog.lookup_table(table_key(None, "APP", "T"))
        assert table.primary_key.name == "PK_T"
        assert table.primary_key.column_names == ["id"]
        assert table.lookup_column("id").is_part_of_primary_key
        assert not table.lookup_column("name").is_part_of_primary_key

    def test_composite_primary_key_order(self, make_context):
        """Test that primary key columns follow key sequence, not row order."""
        source = FakeMetadataSource().add_schema("APP").add_table("APP", "T")
        source.add_column("APP", "T", "a").add_column("APP", "T", "b")
        source.primary_keys[(None, "APP", "T")] = [
            {"column_name": "b", "key_seq": 2, "pk_name": "PK"},
            {"column_name": "a", "key_seq": 1, "pk_name": "PK"},
        ]
        context = make_context(source)
        _run(context, SchemaRetriever, TableRetriever, ColumnRetriever, PrimaryKeyRetriever)
        assert context.catalog.lookup_table(table_key(None, "APP", "T")).primary_key.column_names == ["a", "b"]

    def test_resolved_foreign_key(self, make_context, shop_source):
        """Test a foreign key between two crawled tables."""
        context = make_context(shop_source)
        _run(context, SchemaRetriever, TableRetriever, ColumnRetriever, ForeignKeyRetriever)
        orders = context.catalog.lookup_table(table_key(None, "SHOP", "ORDERS"))
        foreign_key = orders.lookup_foreign_key("FK_ORDERS_CUSTOMER")
        assert foreign_key.is_resolved
        assert foreign_key.referenced_table_key == table_key(None, "SHOP", "CUSTOMERS")
        assert foreign_key.delete_rule == ForeignKeyRule.CASCADE
        assert foreign_key.update_rule == ForeignKeyRule.NO_ACTION
        assert orders.lookup_column("CUSTOMER_ID").is_part_of_foreign_key

    def test_foreign_key_to_excluded_table(self, make_context, shop_source):
        """Test that a reference to an excluded table is kept unresolved without a warning."""
        options = CrawlOptions().with_rule(RuleFor.TABLE, GlobRule(exclude="*.CUSTOMERS"))
        context = make_context(shop_source, options)
        *_, result = _run(context, SchemaRetriever, TableRetriever, ColumnRetriever, ForeignKeyRetriever)
        foreign_key = context.catalog.lookup_table(table_key(None, "SHOP", "ORDERS")).lookup_foreign_key(
            "FK_ORDERS_CUSTOMER"
        )
        assert not foreign_key.is_resolved
        assert context.catalog.lookup_table(foreign_key.referenced_table_key) is None
        assert result.warnings == []

    def test_multi_column_foreign_key(self, make_context):
        """Test grouping several rows into one foreign key."""
        source = FakeMetadataSource().add_schema("APP")
        source.add_table("APP", "PARENT").add_column("APP", "PARENT", "a").add_column("APP", "PARENT", "b")
        source.add_table("APP", "CHILD").add_column("APP", "CHILD", "pa").add_column("APP", "CHILD", "pb")
        source.add_foreign_key("APP", "CHILD", "FK_PARENT", [("pa", "a"), ("pb", "b")], pk_table="PARENT")
        context = make_context(source)
        *_, result = _run(context, SchemaRetriever, TableRetriever, ColumnRetriever, ForeignKeyRetriever)
        assert result.retrieved == 1
        foreign_key = context.catalog.lookup_table(table_key(None, "APP", "CHILD")).lookup_foreign_key("FK_PARENT")
        assert [reference.key_sequence for reference in foreign_key.column_references] == [1, 2]
        assert foreign_key.is_resolved


class TestIndexRetriever:
    """Test index retrieval."""

    def test_index(self, make_context, shop_source):
        """Test a single-column index."""
        context = make_context(shop_source)
        _run(context, SchemaRetriever, TableRetriever, ColumnRetriever, IndexRetriever)
        orders = context.catalog.lookup_table(table_key(None, "SHOP", "ORDERS"))
        index = orders.lookup_index("IDX_ORDERS_CUSTOMER")
        assert index.column_names == ["CUSTOMER_ID"]
        assert not index.unique
        assert index.columns[0].sort_sequence == "ASC"
        assert orders.lookup_column("CUSTOMER_ID").is_part_of_index

    def test_statistics_and_uncrawled_columns(self, make_context, app_source):
        """Test that statistic rows are skipped and indexes on uncrawled columns dropped."""
        app_source.indexes[(None, "APP", "T")] = [
            {"index_name": None, "type": 0, "column_name": None},
            {"index_name": "IDX_EXPR", "non_unique": False, "type": 3, "ordinal_position": 1,
             "column_name": "lower(name)"},
            {"index_name": "UQ_NAME", "non_unique": False, "type": 3, "ordinal_position": 1,
             "column_name": "name", "asc_or_desc": "D"},
        ]
        context = make_context(app_source)
        *_, result = _run(context, SchemaRetriever, TableRetriever, ColumnRetriever, IndexRetriever)
        table = context.catalog.lookup_table(table_key(None, "APP", "T"))
        assert [index.name for index in table.indexes] == ["UQ_NAME"]
        assert table.lookup_index("UQ_NAME").unique
        assert table.lookup_index("UQ_NAME").columns[0].sort_sequence == "DESC"
        assert result.excluded == 1


class TestDetailRetrievers:
    """Test constraints, triggers and view definitions."""

    def test_constraints(self, make_context, app_source):
        """Test check and unique constraints grouped by name."""
        app_source.table_constraints[(None, "APP", "T")] = [
            {"constraint_name": "CK_NAME", "constraint_type": "check", "column_name": "name",
             "check_clause": "length(name) > 0"},
            {"constraint_name": "UQ_T", "constraint_type": "UNIQUE", "column_name": "id"},
            {"constraint_name": "UQ_T", "constraint_type": "UNIQUE", "column_name": "name"},
        ]
        context = make_context(app_source)
        *_, result = _run(context, SchemaRetriever, TableRetriever, ColumnRetriever, TableConstraintRetriever)
        table = context.catalog.lookup_table(table_key(None, "APP", "T"))
        assert result.retrieved == 2
        check = table.lookup_table_constraint("CK_NAME")
        assert check.constraint_type == "CHECK"
        assert check.definition == "length(name) > 0"
        assert [column.name for column in table.lookup_table_constraint("UQ_T").columns] == ["id", "name"]

    def test_trigger_events_merged(self, make_context, app_source):
        """Test that one row per event becomes one trigger."""
        app_source.triggers[(None, "APP", "T")] = [
            {"trigger_name": "TRG_AUDIT", "event_manipulation": "insert", "action_timing": "AFTER",
             "action_orientation": "ROW", "action_statement": "CALL audit()"},
            {"trigger_name": "TRG_AUDIT", "event_manipulation": "UPDATE", "action_timing": "AFTER",
             "action_orientation": "ROW", "action_statement": "CALL audit()"},
        ]
        context = make_context(app_source)
        _run(context, SchemaRetriever, TableRetriever, TriggerRetriever)
        trigger, = context.catalog.lookup_table(table_key(None, "APP", "T")).triggers
        assert trigger.event_manipulation_types == ["INSERT", "UPDATE"]
        assert trigger.action_timing == "AFTER"

    def test_view_definitions(self, make_context, shop_source):
        """Test that split definitions are concatenated."""
        shop_source.view_definitions[(None, "SHOP")].append(
            {"table_name": "V_ORDERS", "view_definition": " WHERE TOTAL > 0"}
        )
        shop_source.view_definitions[(None, "SHOP")].append(
            {"table_name": "ORDERS", "view_definition": "not a view"}
        )
        context = make_context(shop_source)
        *_, result = _run(context, SchemaRetriever, TableRetriever, ViewDefinitionRetriever)
        view = context.catalog.lookup_table(table_key(None, "SHOP", "V_ORDERS"))
        assert view.definition == "SELECT ID, TOTAL AS AMOUNT FROM ORDERS WHERE TOTAL > 0"
        assert result.retrieved == 1

    def test_view_definitions_unsupported(self, make_context, shop_source):
        """Test that the default source behavior is recorded as unsupported."""
        shop_source.unsupported.add("list_view_definitions")
        context = make_context(shop_source)
        *_, result = _run(context, SchemaRetriever, TableRetriever, ViewDefinitionRetriever)
        warning, = result.warnings
        assert warning.unsupported
        assert context.catalog.lookup_table(table_key(None, "SHOP", "V_ORDERS")).definition is None


class TestRoutineRetrievers:
    """Test routine and parameter retrieval."""

    def test_routines(self, make_context, shop_source):
        """Test functions and procedures."""
        context = make_context(shop_source)
        _, result = _run(context, SchemaRetriever, RoutineRetriever)
        assert result.retrieved == 2
        function = context.catalog.lookup_routine(routine_key(None, "SHOP", "ORDER_TOTAL"))
        assert function.routine_type == RoutineType.FUNCTION
        assert function.specific_name == "ORDER_TOTAL"

    def test_routine_types(self, make_context, shop_source):
        """Test the routine type filter."""
        options = CrawlOptions(limit_options=LimitOptions().with_routine_types(["procedure"]))
        context = make_context(shop_source, options)
        _, result = _run(context, SchemaRetriever, RoutineRetriever)
        assert [routine.name for routine in context.catalog.routines] == ["PURGE_STAGING"]
        assert result.excluded == 1

    def test_unsupported_stops_after_first_call(self, make_context, shop_source):
        """Test that an unsupported routine call is recorded once and not repeated."""
        shop_source.add_schema("ARCHIVE")
        shop_source.unsupported.add("list_routines")
        context = make_context(shop_source)
        _, result = _run(context, SchemaRetriever, RoutineRetriever)
        assert context.catalog.routines == []
        assert shop_source.called("list_routines") == 1
        warning, = result.warnings
        assert warning.unsupported
        assert warning.category == "routines"
        assert result.skipped == 0

    def test_sqlstate_unsupported(self, make_context, shop_source):
        """Test that a driver's feature-not-supported SQLSTATE counts as unsupported."""
        shop_source.failures["list_routines"] = DriverError("optional feature", "HYC00")
        context = make_context(shop_source)
        _, result = _run(context, SchemaRetriever, RoutineRetriever)
        assert result.warnings[0].unsupported

    def test_overloads(self, make_context):
        """Test that overloads are kept apart by specific name."""
        source = FakeMetadataSource().add_schema("APP")
        source.add_routine("APP", "area", specific_name="area_1")
        source.add_routine("APP", "area", specific_name="area_2")
        source.add_routine_parameter("APP", "area", "r", 1, specific_name="area_1")
        source.add_routine_parameter("APP", "area", "w", 1, specific_name="area_2")
        source.add_routine_parameter("APP", "area", "h", 2, specific_name="area_2")
        context = make_context(source)
        *_, result = _run(context, SchemaRetriever, RoutineRetriever, RoutineParameterRetriever)
        first = context.catalog.lookup_routine(routine_key(None, "APP", "area", "area_1"))
        second = context.catalog.lookup_routine(routine_key(None, "APP", "area", "area_2"))
        assert [parameter.name for parameter in first.parameters] == ["r"]
        assert [parameter.name for parameter in second.parameters] == ["w", "h"]
        assert result.retrieved == 3

    def test_parameter_modes(self, make_context):
        """Test numeric and textual parameter modes."""
        source = FakeMetadataSource().add_schema("APP")
        source.add_routine("APP", "p", routine_type="procedure")
        source.add_routine_parameter("APP", "p", "a", 1, parameter_mode=4)
        source.add_routine_parameter("APP", "p", "b", 2, parameter_mode="IN OUT")
        source.add_routine_parameter("APP", "p", None, 3, parameter_mode=None)
        source.add_routine_parameter("APP", "missing", "x", 1)
        context = make_context(source)
        _run(context, SchemaRetriever, RoutineRetriever, RoutineParameterRetriever)
        routine = context.catalog.lookup_routine(routine_key(None, "APP", "p"))
        assert [parameter.parameter_mode for parameter in routine.parameters] == [
            ParameterMode.OUT,
            ParameterMode.INOUT,
            ParameterMode.UNKNOWN,
        ]
        assert routine.parameters[2].name == "$3"


class TestSynonymRetriever:
    """Test synonym retrieval."""

    def test_synonyms(self, make_context, shop_source):
        """Test that synonyms keep the referenced key."""
        shop_source.add_synonym("SHOP", "OLD_ORDERS", "ORDERS_2019", referenced_schema="ARCHIVE")
        context = make_context(shop_source)
        _, result = _run(context, SchemaRetriever, SynonymRetriever)
        assert result.retrieved == 2
        synonym = context.catalog.lookup_synonym(NamedObjectKey(None, "SHOP", "CLIENTS"))
        assert synonym.referenced_object_key == table_key(None, "SHOP", "CUSTOMERS")
        assert [s.name for s in context.catalog.dangling_synonyms()] == ["CLIENTS", "OLD_ORDERS"]


class TestDataTypeRetriever:
    """Test system and user-defined type retrieval."""

    def test_system_types(self, make_context, shop_source):
        """Test that type info fills the system pool."""
        context = make_context(shop_source)
        _, result = _run(context, SchemaRetriever, DataTypeRetriever)
        assert result.retrieved == 3
        varchar = context.catalog.lookup_system_data_type("VARCHAR")
        assert varchar.create_parameters == "length"
        assert varchar.host_type == "str"

    def test_user_defined_types(self, make_context, shop_source):
        """Test user-defined types with a base type."""
        shop_source.user_defined_types[(None, "SHOP")] = [
            {"type_name": "EMAIL", "data_type": 2001, "base_type": "VARCHAR", "remarks": "An address"},
        ]
        context = make_context(shop_source)
        _run(context, SchemaRetriever, DataTypeRetriever)
        schema = context.catalog.lookup_schema(NamedObjectKey(None, "SHOP"))
        email = context.catalog.lookup_data_type(schema, "EMAIL")
        assert email.is_user_defined
        assert email.base_type is context.catalog.lookup_system_data_type("VARCHAR")
        assert email.remarks == "An address"

    def test_user_defined_types_unsupported(self, make_context, shop_source):
        """Test that missing user-defined type support leaves system types intact."""
        shop_source.unsupported.add("list_user_defined_types")
        context = make_context(shop_source)
        _, result = _run(context, SchemaRetriever, DataTypeRetriever)
        assert result.retrieved == 3
        assert result.warnings[0].unsupported


class TestRowCountRetriever:
    """Test row count retrieval."""

    def test_row_counts(self, make_context, shop_source):
        """Test that tables get counts and views are not counted."""
        context = make_context(shop_source)
        *_, result = _run(context, SchemaRetriever, TableRetriever, TableRowCountRetriever)
        assert result.retrieved == 2
        assert shop_source.called("get_row_count") == 3
        assert context.catalog.lookup_table(table_key(None, "SHOP", "ORDERS")).row_count == 40
        staging = context.catalog.lookup_table(table_key(None, "SHOP", "TMP_STAGING"))
        assert not staging.has_row_count


class TestRecordsCursor:
    """Test cursor handling in the base retriever."""

    def test_partially_read_cursor_is_closed(self, make_context, shop_source):
        """Test that a cursor abandoned early is still closed."""

        class FirstSchemaOnly(BaseRetriever):
            category = SchemaRetriever.category

            def _retrieve(self, context, result):
                with self._records(context.source.list_schemas) as records:
                    next(records)
                    assert context.source.open_cursors == 1

        shop_source.add_schema("OTHER")
        context = make_context(shop_source)
        FirstSchemaOnly().retrieve(context)
        assert shop_source.open_cursors == 0
