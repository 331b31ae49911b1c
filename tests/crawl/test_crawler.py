"""End-to-end crawl tests against an in-memory source."""

import logging

import pytest

from catalog_crawler.crawl.crawler import SchemaCrawler, crawl
from catalog_crawler.crawl.info import RetrievalResult
from catalog_crawler.crawl.keys import NamedObjectKey, table_key
from catalog_crawler.crawl.models import Schema, Table
from catalog_crawler.crawl.options import CrawlOptions, InfoLevel, RetrievalCategory
from catalog_crawler.crawl.retrievers import RETRIEVER_ORDER, BaseRetriever
from catalog_crawler.crawl.rules import GlobRule, RuleFor
from catalog_crawler.errors import ConfigurationError, ConnectionFatalError, FrozenCatalogError
from tests.fixtures import FakeMetadataSource


def _users_and_staging():
    source = FakeMetadataSource()
    source.add_schema("APP")
    source.add_table("APP", "USERS").add_column("APP", "USERS", "id")
    source.add_table("APP", "TMP_STAGING").add_column("APP", "TMP_STAGING", "payload", type_name="BLOB", data_type=2004)
    return source


def _shape(catalog):
    """Everything a crawl reports about each table, without object identity."""
    shape = {}
    for table in catalog.tables:
        primary_key = table.primary_key
        shape[table.key] = {
            "columns": [
                (column.name, column.data_type.name, column.data_type.key, column.referenced_column_key)
                for column in table.columns
            ],
            "primary_key": primary_key.column_names if primary_key else None,
            "foreign_keys": [
                (
                    foreign_key.name,
                    foreign_key.is_resolved,
                    [(ref.foreign_key_column, ref.primary_key_column) for ref in foreign_key.column_references],
                )
                for foreign_key in table.foreign_keys
            ],
            "indexes": [(index.name, index.column_names) for index in table.indexes],
        }
    return shape


class TestScenarios:
    """Crawls of small, fully known sources."""

    def test_single_table(self, app_source):
        """Test a schema-only source with one table and a primary key."""
        catalog = crawl(app_source)

        schema, = catalog.schemas
        assert schema.key == NamedObjectKey(None, "APP")
        table, = catalog.tables
        assert table.name == "T"
        assert [column.name for column in table.columns] == ["id", "name"]
        assert table.lookup_column("id").is_part_of_primary_key
        assert not table.lookup_column("name").is_part_of_primary_key

    def test_excluded_table_pattern(self):
        """Test that a table rule keeps staging tables out of the catalog."""
        options = CrawlOptions().with_rule(RuleFor.TABLE, GlobRule(exclude="*.TMP_*"))
        catalog = crawl(_users_and_staging(), options)
        assert [table.name for table in catalog.tables] == ["USERS"]
        assert catalog.info.get_result("tables").excluded == 1

    def test_shared_data_type(self, shop_source):
        """Test that columns of one vendor type in different tables share a DataType."""
        catalog = crawl(shop_source)
        total = catalog.lookup_table(table_key(None, "SHOP", "ORDERS")).lookup_column("TOTAL")
        amount = catalog.lookup_table(table_key(None, "SHOP", "V_ORDERS")).lookup_column("AMOUNT")
        assert total.data_type is amount.data_type
        assert sum(1 for data_type in catalog.data_types if data_type.name == "NUMBER(10,2)") == 1

    def test_foreign_key_to_excluded_table(self, shop_source):
        """Test that excluding the referenced table leaves an unresolved foreign key."""
        options = CrawlOptions().with_rule(RuleFor.TABLE, GlobRule(exclude="*.CUSTOMERS"))
        catalog = crawl(shop_source, options)

        assert catalog.lookup_table(table_key(None, "SHOP", "CUSTOMERS")) is None
        foreign_key = catalog.lookup_table(table_key(None, "SHOP", "ORDERS")).lookup_foreign_key("FK_ORDERS_CUSTOMER")
        assert foreign_key is not None
        assert not foreign_key.is_resolved
        assert foreign_key.referenced_table_key == table_key(None, "SHOP", "CUSTOMERS")
        assert catalog.info.get_result("foreign_keys").warnings == []

    def test_routines_not_supported(self, shop_source):
        """Test that an unsupported category is empty, warned about, and isolated."""
        shop_source.unsupported.add("list_routines")
        catalog = crawl(shop_source)

        assert catalog.routines == ()
        routine_warnings = [warning for warning in catalog.warnings if warning.category == "routines"]
        assert len(routine_warnings) == 1
        assert routine_warnings[0].unsupported
        assert len(catalog.tables) == 4
        assert catalog.summary()["columns"] == 8
        assert catalog.lookup_table(table_key(None, "SHOP", "ORDERS")).primary_key is not None


class TestCrawlBehavior:
    """Test orchestration: ordering, levels, failures and the frozen result."""

    def test_retrievers_run_in_order(self, shop_source):
        """Test that results are recorded in dependency order."""
        catalog = crawl(shop_source, CrawlOptions(info_level=InfoLevel.MAXIMUM))
        categories = [result.category for result in catalog.info.results]
        assert categories == [retriever.category.value for retriever in RETRIEVER_ORDER]

    def test_minimum_info_level(self, shop_source):
        """Test that the minimum level skips keys, indexes and type info."""
        catalog = crawl(shop_source, CrawlOptions(info_level=InfoLevel.MINIMUM))
        orders = catalog.lookup_table(table_key(None, "SHOP", "ORDERS"))
        assert orders.primary_key is None
        assert orders.foreign_keys == []
        assert orders.indexes == []
        assert shop_source.called("list_type_info") == 0
        assert shop_source.called("list_primary_keys") == 0
        assert {result.category for result in catalog.info.results} == {
            "schemas", "tables", "columns", "routines",
        }

    def test_maximum_info_level(self, shop_source):
        """Test that the maximum level adds row counts, synonyms and view text."""
        catalog = crawl(shop_source, CrawlOptions(info_level=InfoLevel.MAXIMUM))
        assert catalog.lookup_table(table_key(None, "SHOP", "CUSTOMERS")).row_count == 12
        assert catalog.lookup_table(table_key(None, "SHOP", "V_ORDERS")).definition.startswith("SELECT")
        synonym, = catalog.synonyms
        assert catalog.resolve_synonym(synonym).name == "CUSTOMERS"

    def test_disabled_category(self, shop_source):
        """Test switching a single category off."""
        options = CrawlOptions().with_categories(disable=[RetrievalCategory.INDEXES])
        catalog = crawl(shop_source, options)
        assert shop_source.called("list_indexes") == 0
        assert catalog.info.get_result("indexes") is None

    def test_column_types_reuse_type_info(self, shop_source):
        """Test that column types resolve to the system types from type info."""
        catalog = crawl(shop_source)
        column = catalog.lookup_table(table_key(None, "SHOP", "CUSTOMERS")).lookup_column("ID")
        assert column.data_type is catalog.lookup_system_data_type("INTEGER")

    def test_failed_table_is_skipped(self, shop_source, caplog):
        """Test that a failing table is logged and the rest of the crawl continues."""
        shop_source.failures[("list_columns", "ORDERS")] = RuntimeError("disk I/O error")
        with caplog.at_level(logging.WARNING, logger="catalog_crawler"):
            catalog = crawl(shop_source)

        assert catalog.lookup_table(table_key(None, "SHOP", "ORDERS")).columns == []
        assert len(catalog.lookup_table(table_key(None, "SHOP", "CUSTOMERS")).columns) == 2
        result = catalog.info.get_result("columns")
        assert result.skipped == 1
        assert result.warnings[0].object_name == "SHOP.ORDERS"
        assert "Could not retrieve columns for SHOP.ORDERS" in caplog.text

    def test_retriever_crash_empties_category(self, app_source):
        """Test that an exception escaping a retriever becomes a warning."""

        class CrashingRetriever(BaseRetriever):
            category = RetrievalCategory.INDEXES

            def retrieve(self, context):
                raise RuntimeError("unexpected row shape")

            def _retrieve(self, context, result):
                pass

        retrievers = [r for r in RETRIEVER_ORDER if r.category != RetrievalCategory.INDEXES] + [CrashingRetriever]
        catalog = SchemaCrawler(app_source, retrievers=retrievers).crawl()

        result = catalog.info.get_result("indexes")
        assert isinstance(result, RetrievalResult)
        assert result.retrieved == 0
        assert result.warnings[0].message == "Retrieval failed: unexpected row shape"
        assert len(catalog.tables) == 1

    def test_configuration_error_fails_crawl(self, app_source):
        """Test that configuration errors from the source abort the crawl."""
        app_source.failures["list_tables"] = ConfigurationError("rule references unknown schema")
        with pytest.raises(ConfigurationError):
            crawl(app_source)
        assert app_source.closed

    def test_connect_failure(self, app_source):
        """Test that a connection failure is fatal and the source is still closed."""
        app_source.connect_error = OSError("connection refused")
        with pytest.raises(ConnectionFatalError) as exc_info:
            crawl(app_source)
        assert "connection refused" in exc_info.value.message
        assert exc_info.value.details["error_type"] == "OSError"
        assert app_source.closed

    def test_source_closed_after_crawl(self, app_source):
        """Test that the crawl helper closes the source and all cursors."""
        crawl(app_source)
        assert app_source.closed
        assert app_source.open_cursors == 0

    def test_catalog_is_frozen(self, app_source):
        """Test that the returned catalog refuses changes."""
        catalog = crawl(app_source)
        schema = catalog.schemas[0]
        with pytest.raises(FrozenCatalogError):
            catalog.add_table(Table(schema=schema, name="NEW"))
        with pytest.raises(FrozenCatalogError):
            catalog.add_schema(Schema(None, "NEW"))

    def test_failed_categories(self, shop_source):
        """Test that a category is failed only when errors, not missing support, left it empty."""
        shop_source.failures["list_indexes"] = RuntimeError("database is locked")
        shop_source.unsupported.add("list_routines")
        catalog = crawl(shop_source)
        assert catalog.info.get_result("indexes").failed
        assert not catalog.info.get_result("routines").failed
        assert not catalog.info.get_result("tables").failed

    def test_idempotent(self, shop_source):
        """Test that crawling an unchanged source twice gives the same catalog."""
        first = crawl(shop_source)
        second = crawl(shop_source)
        assert first.summary() == second.summary()
        assert [table.key for table in first.tables] == [table.key for table in second.tables]
        assert first.tables[0] is not second.tables[0]
        assert _shape(first) == _shape(second)
        assert any(table.foreign_keys for table in first.tables)

    def test_catalog_names_normalized(self):
        """Test that catalog names are dropped when the source does not model catalogs."""
        source = FakeMetadataSource(supports_catalogs=False)
        source.add_schema("APP", catalog="main")
        source.add_table("APP", "T").add_column("APP", "T", "id")
        catalog = crawl(source)
        assert catalog.lookup_schema(NamedObjectKey(None, "APP")) is not None
        assert catalog.lookup_table(table_key(None, "APP", "T")) is not None

    def test_crawl_info(self, shop_source):
        """Test product details and timing recorded on the catalog."""
        catalog = crawl(shop_source)
        info = catalog.info
        assert info.product_name == "ShopDB"
        assert info.product_version == "2.3"
        assert info.info_level == "standard"
        assert info.capabilities["supports_schemas"] is True
        assert info.duration_ms is not None
        assert info.to_dict()["results"][0]["category"] == "schemas"
