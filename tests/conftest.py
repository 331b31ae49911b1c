"""Shared pytest fixtures for catalog-crawler tests."""

import sqlite3

import pytest

from catalog_crawler.crawl.catalog import MutableCatalog
from catalog_crawler.crawl.connection import RetrieverConnection
from catalog_crawler.crawl.options import CrawlOptions
from catalog_crawler.crawl.retrievers.base import RetrievalContext
from catalog_crawler.crawl.type_registry import TypeRegistry
from tests.fixtures import FakeMetadataSource


@pytest.fixture
def app_source():
    """Source with one schema APP holding T(id INT PK, name VARCHAR)."""
    source = FakeMetadataSource()
    source.add_schema("APP")
    source.add_table("APP", "T")
    source.add_column("APP", "T", "id", type_name="INT", data_type=4, nullable=0)
    source.add_column("APP", "T", "name", type_name="VARCHAR", data_type=12)
    source.add_primary_key("APP", "T", ["id"], name="PK_T")
    return source


@pytest.fixture
def shop_source():
    """Source with customers, orders, a staging table, a view and routines."""
    source = FakeMetadataSource(product_name="ShopDB", product_version="2.3")
    source.add_schema("SHOP")
    source.add_type_info("INTEGER", 4)
    source.add_type_info("VARCHAR", 12, create_params="length")
    source.add_type_info("NUMBER", 2, create_params="precision,scale")

    source.add_table("SHOP", "CUSTOMERS")
    source.add_column("SHOP", "CUSTOMERS", "ID", type_name="INTEGER", nullable=0)
    source.add_column("SHOP", "CUSTOMERS", "NAME", type_name="VARCHAR", data_type=12)
    source.add_primary_key("SHOP", "CUSTOMERS", ["ID"], name="PK_CUSTOMERS")

    source.add_table("SHOP", "ORDERS")
    source.add_column("SHOP", "ORDERS", "ID", type_name="INTEGER", nullable=0)
    source.add_column("SHOP", "ORDERS", "CUSTOMER_ID", type_name="INTEGER")
    source.add_column("SHOP", "ORDERS", "TOTAL", type_name="NUMBER(10,2)", data_type=2)
    source.add_primary_key("SHOP", "ORDERS", ["ID"], name="PK_ORDERS")
    source.add_foreign_key(
        "SHOP", "ORDERS", "FK_ORDERS_CUSTOMER",
        [("CUSTOMER_ID", "ID")],
        pk_table="CUSTOMERS",
    )
    source.add_index("SHOP", "ORDERS", "IDX_ORDERS_CUSTOMER", ["CUSTOMER_ID"])

    source.add_table("SHOP", "TMP_STAGING")
    source.add_column("SHOP", "TMP_STAGING", "PAYLOAD", type_name="VARCHAR", data_type=12)

    source.add_table("SHOP", "V_ORDERS", table_type="VIEW")
    source.add_column("SHOP", "V_ORDERS", "ID", type_name="INTEGER")
    source.add_column("SHOP", "V_ORDERS", "AMOUNT", type_name="NUMBER(10,2)", data_type=2)
    source.view_definitions[(None, "SHOP")] = [
        {"table_name": "V_ORDERS", "view_definition": "SELECT ID, TOTAL AS AMOUNT FROM ORDERS"},
    ]

    source.add_routine("SHOP", "ORDER_TOTAL", routine_type="function")
    source.add_routine_parameter("SHOP", "ORDER_TOTAL", "ORDER_ID", 1)
    source.add_routine("SHOP", "PURGE_STAGING", routine_type="procedure")

    source.add_synonym("SHOP", "CLIENTS", "CUSTOMERS")
    source.row_counts[(None, "SHOP", "CUSTOMERS")] = 12
    source.row_counts[(None, "SHOP", "ORDERS")] = 40
    return source


@pytest.fixture
def make_context():
    """Factory for a retrieval context over a connected fake source."""

    def _make(source, options=None):
        options = options or CrawlOptions()
        source.connect()
        connection = RetrieverConnection.probe(source, options.type_map_overrides)
        catalog = MutableCatalog()
        return RetrievalContext(
            source=source,
            connection=connection,
            catalog=catalog,
            options=options,
            type_registry=TypeRegistry(catalog, connection),
        )

    return _make


@pytest.fixture
def sqlite_path(tmp_path):
    """SQLite database file with related tables, a view, an index and a trigger."""
    path = tmp_path / "shop.db"
    conn = sqlite3.connect(str(path))
    conn.executescript(
        """
        CREATE TABLE customers (
            id INTEGER PRIMARY KEY,
            name VARCHAR(100) NOT NULL,
            email TEXT UNIQUE,
            CONSTRAINT name_not_blank CHECK (length(name) > 0)
        );
        CREATE TABLE orders (
            id INTEGER PRIMARY KEY,
            customer_id INTEGER NOT NULL REFERENCES customers(id) ON DELETE CASCADE,
            total DECIMAL(10,2) DEFAULT 0,
            created_at DATETIME
        );
        CREATE TABLE tmp_staging (payload BLOB);
        CREATE INDEX idx_orders_customer ON orders (customer_id DESC);
        CREATE VIEW customer_orders AS
            SELECT c.name, o.total FROM customers c JOIN orders o ON o.customer_id = c.id;
        CREATE TRIGGER orders_audit AFTER INSERT ON orders
        FOR EACH ROW WHEN NEW.total > 100
        BEGIN
            UPDATE customers SET name = name WHERE id = NEW.customer_id;
        END;
        INSERT INTO customers (id, name, email) VALUES (1, 'Ada', 'ada@example.com');
        INSERT INTO customers (id, name, email) VALUES (2, 'Grace', NULL);
        INSERT INTO orders (id, customer_id, total) VALUES (1, 1, 10.5);
        """
    )
    conn.commit()
    conn.close()
    return str(path)
