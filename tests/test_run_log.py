"""Tests for crawl run logging to SQLite."""

from datetime import datetime, timedelta

import pytest

from catalog_crawler.crawl.crawler import crawl
from catalog_crawler.logging import CrawlRunDatabase, CrawlRunLogger


@pytest.fixture
def run_db(tmp_path):
    """Run database in a temporary file."""
    with CrawlRunDatabase(str(tmp_path / "runs.db")) as db:
        yield db


class TestCrawlRunDatabase:
    """Test the crawl_runs table operations."""

    def test_successful_run(self, run_db):
        """Test recording a run from start to success."""
        run_db.insert_run("abc123", "sqlite", "/data/app.db", "standard", arguments={"tables": "main.*"})
        run_db.update_crawl_results(
            "abc123", "SQLite", "3.45.0",
            schemas_count=1, tables_count=4, columns_count=9, routines_count=0,
            warnings=[{"category": "routines", "message": "not supported"}],
        )
        run_db.update_success("abc123", duration_ms=42)

        run = run_db.get_run_by_id("abc123")
        assert run["status"] == "success"
        assert run["tables_count"] == 4
        assert run["warnings_count"] == 1
        assert run["warnings"][0]["category"] == "routines"
        assert run["arguments"] == {"tables": "main.*"}
        assert run["duration_ms"] == 42

    def test_failed_run(self, run_db):
        """Test recording an error."""
        run_db.insert_run("err1", "duckdb", "/missing.duckdb")
        run_db.update_error("err1", "DuckDB database not found", "ConnectionFatalError", duration_ms=3)

        run = run_db.get_run_by_id("err1")
        assert run["status"] == "error"
        assert run["error_type"] == "ConnectionFatalError"
        assert run_db.get_run_by_id("unknown") is None

    def test_query_filters(self, run_db):
        """Test filtering by status, source type and age."""
        run_db.insert_run("r1", "sqlite")
        run_db.update_success("r1", 10)
        run_db.insert_run("r2", "duckdb")
        run_db.insert_run("r3", "sqlite", timestamp=datetime.utcnow() - timedelta(hours=48))

        assert {run["run_id"] for run in run_db.query_runs()} == {"r1", "r2"}
        assert [run["run_id"] for run in run_db.query_runs(status="success")] == ["r1"]
        assert [run["run_id"] for run in run_db.query_runs(source_type="duckdb")] == ["r2"]
        assert len(run_db.query_runs(since_hours=72)) == 3

    def test_stats(self, run_db):
        """Test aggregate statistics."""
        run_db.insert_run("ok", "sqlite")
        run_db.update_crawl_results("ok", "SQLite", "3", 1, 5, 20, 0, warnings=[])
        run_db.update_success("ok", 100)
        run_db.insert_run("bad", "sqlite")
        run_db.update_error("bad", "boom", "RuntimeError", duration_ms=50)

        stats = run_db.get_stats()
        assert stats["total_runs"] == 2
        assert stats["success_count"] == 1
        assert stats["error_count"] == 1
        assert stats["avg_duration_ms"] == 75
        assert stats["total_tables_crawled"] == 5
        assert stats["by_source_type"][0]["source_type"] == "sqlite"
        assert stats["recent_errors"][0]["run_id"] == "bad"

    def test_cleanup_old_runs(self, run_db):
        """Test deleting runs past the retention period."""
        run_db.insert_run("old", "sqlite", timestamp=datetime.utcnow() - timedelta(days=40))
        run_db.insert_run("new", "sqlite")
        assert run_db.cleanup_old_runs(retention_days=30) == 1
        assert run_db.get_run_by_id("old") is None
        assert run_db.get_run_by_id("new") is not None


class TestCrawlRunLogger:
    """Test the run logging context manager."""

    def test_log_successful_crawl(self, tmp_path, app_source):
        """Test that catalog counts are stored when the block completes."""
        run_logger = CrawlRunLogger(db_path=str(tmp_path / "runs.db"))
        with run_logger.log_run("fake", "app", info_level="standard", arguments={"tables": None}) as ctx:
            catalog = crawl(app_source)
            ctx.record_catalog(catalog)

        run = run_logger.get_run(ctx.run_id)
        assert run["status"] == "success"
        assert run["source_type"] == "fake"
        assert run["schemas_count"] == 1
        assert run["tables_count"] == 1
        assert run["columns_count"] == 2
        assert run["warnings_count"] == len(catalog.warnings)
        assert run["python_version"]

    def test_log_failed_crawl(self, tmp_path):
        """Test that an error is recorded and re-raised."""
        run_logger = CrawlRunLogger(db_path=str(tmp_path / "runs.db"))
        with pytest.raises(RuntimeError):
            with run_logger.log_run("sqlite", "/data/app.db") as ctx:
                raise RuntimeError("disk I/O error")

        run = run_logger.get_run(ctx.run_id)
        assert run["status"] == "error"
        assert run["error_message"] == "disk I/O error"
        assert "RuntimeError" in run["error_traceback"]
        assert run_logger.get_stats()["error_count"] == 1

    def test_disabled(self, tmp_path):
        """Test that a disabled logger records nothing."""
        run_logger = CrawlRunLogger(db_path=str(tmp_path / "runs.db"), enabled=False)
        with run_logger.log_run("sqlite") as ctx:
            assert ctx.run_id
        assert run_logger.db is None
        assert run_logger.query_runs() == []
        assert run_logger.get_run(ctx.run_id) is None
        assert "error" in run_logger.get_stats()

    def test_unusable_database_disables_logging(self, tmp_path, caplog):
        """Test that a database that cannot be opened turns logging off."""
        run_logger = CrawlRunLogger(db_path=str(tmp_path / "no" / "such" / "dir" / "runs.db"))
        assert not run_logger.enabled
        assert "Failed to initialize crawl run logging" in caplog.text
