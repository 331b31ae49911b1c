"""SQLite storage for the crawl run history."""

import json
import logging
import sqlite3
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS crawl_runs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id TEXT UNIQUE NOT NULL,
    timestamp TEXT NOT NULL,
    source_type TEXT NOT NULL,
    source_path TEXT,
    info_level TEXT,
    arguments TEXT,  -- JSON object of command options
    status TEXT DEFAULT 'started',  -- 'started', 'success', 'error'
    duration_ms INTEGER,

    -- What the crawl found
    product_name TEXT,
    product_version TEXT,
    schemas_count INTEGER,
    tables_count INTEGER,
    columns_count INTEGER,
    routines_count INTEGER,
    warnings_count INTEGER,
    warnings TEXT,  -- JSON array of CrawlWarning dicts

    -- Why it failed
    error_message TEXT,
    error_type TEXT,
    error_traceback TEXT,

    -- Where it ran
    python_version TEXT,
    package_version TEXT,
    working_directory TEXT
);

CREATE INDEX IF NOT EXISTS idx_crawl_runs_timestamp ON crawl_runs(timestamp);
CREATE INDEX IF NOT EXISTS idx_crawl_runs_status ON crawl_runs(status);
CREATE INDEX IF NOT EXISTS idx_crawl_runs_source_type ON crawl_runs(source_type);
"""

# Columns holding JSON text
_JSON_COLUMNS = ("arguments", "warnings")

# Columns that may be changed after a run is inserted
_UPDATABLE_COLUMNS = {
    "status", "duration_ms", "product_name", "product_version",
    "schemas_count", "tables_count", "columns_count", "routines_count",
    "warnings_count", "warnings", "error_message", "error_type", "error_traceback",
}


def _now() -> datetime:
    return datetime.utcnow()


def _since(hours: int) -> str:
    """ISO timestamp ``hours`` before now; run timestamps compare as text."""
    return (_now() - timedelta(hours=hours)).isoformat()


def get_default_run_db_path() -> str:
    """Get the default database path (~/.catalog-crawler/crawl_runs.db)."""
    crawler_dir = Path.home() / ".catalog-crawler"
    crawler_dir.mkdir(exist_ok=True)
    return str(crawler_dir / "crawl_runs.db")


class CrawlRunDatabase:
    """One row per crawl in a local SQLite file.

    Rows are inserted when a crawl starts and updated with its counts and
    its final status. The connection is opened lazily in autocommit mode.
    """

    def __init__(self, db_path: Optional[str] = None):
        """Initialize the run database.

        Args:
            db_path: SQLite file; defaults to ~/.catalog-crawler/crawl_runs.db
        """
        self.db_path = db_path or get_default_run_db_path()
        self._connection: Optional[sqlite3.Connection] = None
        self._initialized = False

    def _get_connection(self) -> sqlite3.Connection:
        if self._connection is None:
            connection = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
            connection.row_factory = sqlite3.Row
            self._connection = connection
        return self._connection

    def initialize(self) -> None:
        """Create the crawl_runs table and its indexes if needed."""
        if self._initialized:
            return
        try:
            self._get_connection().executescript(SCHEMA_SQL)
        except sqlite3.Error as e:
            logger.error("Failed to initialize crawl run database %s: %s", self.db_path, e)
            raise
        self._initialized = True
        logger.debug("Crawl run database ready at %s", self.db_path)

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
        self._connection = None
        self._initialized = False

    def insert_run(
        self,
        run_id: str,
        source_type: str,
        source_path: Optional[str] = None,
        info_level: Optional[str] = None,
        arguments: Optional[Dict[str, Any]] = None,
        python_version: Optional[str] = None,
        package_version: Optional[str] = None,
        working_directory: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> int:
        """Record the start of a crawl.

        Args:
            run_id: Short unique run identifier
            source_type: Metadata source type ('sqlite', 'duckdb')
            source_path: Database file or connection string
            info_level: Info level of the crawl
            arguments: Command options, stored as JSON
            python_version: Interpreter version
            package_version: catalog-crawler version
            working_directory: Directory the command ran in
            timestamp: Start time (UTC); defaults to now

        Returns:
            Row id of the new entry
        """
        self.initialize()
        row = {
            "run_id": run_id,
            "timestamp": (timestamp or _now()).isoformat(),
            "source_type": source_type,
            "source_path": source_path,
            "info_level": info_level,
            "arguments": json.dumps(arguments, default=str) if arguments else None,
            "status": "started",
            "python_version": python_version,
            "package_version": package_version,
            "working_directory": working_directory,
        }
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        cursor = self._get_connection().execute(
            f"INSERT INTO crawl_runs ({columns}) VALUES ({placeholders})",
            list(row.values()),
        )
        return cursor.lastrowid

    def _update(self, run_id: str, **values: Any) -> None:
        unknown = set(values) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Not an updatable crawl_runs column: {', '.join(sorted(unknown))}")
        assignments = ", ".join(f"{column} = ?" for column in values)
        self._get_connection().execute(
            f"UPDATE crawl_runs SET {assignments} WHERE run_id = ?",
            [*values.values(), run_id],
        )

    def update_crawl_results(
        self,
        run_id: str,
        product_name: Optional[str],
        product_version: Optional[str],
        schemas_count: int,
        tables_count: int,
        columns_count: int,
        routines_count: int,
        warnings: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        """Store what a crawl found.

        Args:
            run_id: Run identifier
            product_name: Database product name
            product_version: Database product version
            schemas_count: Schemas in the catalog
            tables_count: Tables and views in the catalog
            columns_count: Columns across all tables
            routines_count: Routines in the catalog
            warnings: ``CrawlWarning.to_dict()`` entries
        """
        warnings = warnings or []
        self._update(
            run_id,
            product_name=product_name,
            product_version=product_version,
            schemas_count=schemas_count,
            tables_count=tables_count,
            columns_count=columns_count,
            routines_count=routines_count,
            warnings_count=len(warnings),
            warnings=json.dumps(warnings) if warnings else None,
        )

    def update_success(self, run_id: str, duration_ms: int) -> None:
        self._update(run_id, status="success", duration_ms=duration_ms)

    def update_error(
        self,
        run_id: str,
        error_message: str,
        error_type: Optional[str] = None,
        error_traceback: Optional[str] = None,
        duration_ms: Optional[int] = None,
    ) -> None:
        """Mark a crawl as failed.

        Args:
            run_id: Run identifier
            error_message: Exception message
            error_type: Exception class name
            error_traceback: Formatted traceback
            duration_ms: Time until the failure
        """
        self._update(
            run_id,
            status="error",
            error_message=error_message,
            error_type=error_type,
            error_traceback=error_traceback,
            duration_ms=duration_ms,
        )

    def query_runs(
        self,
        status: Optional[str] = None,
        source_type: Optional[str] = None,
        since_hours: int = 24,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Find runs started in the last ``since_hours`` hours, newest first.

        Args:
            status: Only runs with this status
            source_type: Only runs against this source type
            since_hours: How far back to look
            limit: Maximum number of runs
            offset: Runs to skip, for paging

        Returns:
            Runs as dictionaries with JSON columns decoded
        """
        self.initialize()
        filters = {"timestamp >= ?": _since(since_hours)}
        if status:
            filters["status = ?"] = status
        if source_type:
            filters["source_type = ?"] = source_type

        cursor = self._get_connection().execute(
            f"""
            SELECT * FROM crawl_runs
            WHERE {" AND ".join(filters)}
            ORDER BY timestamp DESC, id DESC
            LIMIT ? OFFSET ?
            """,
            [*filters.values(), limit, offset],
        )
        return [self._row_to_dict(row) for row in cursor.fetchall()]

    def get_run_by_id(self, run_id: str) -> Optional[Dict[str, Any]]:
        self.initialize()
        row = self._get_connection().execute(
            "SELECT * FROM crawl_runs WHERE run_id = ?", (run_id,)
        ).fetchone()
        return self._row_to_dict(row) if row else None

    @staticmethod
    def _row_to_dict(row: sqlite3.Row) -> Dict[str, Any]:
        entry = dict(row)
        for column in _JSON_COLUMNS:
            if entry.get(column):
                entry[column] = json.loads(entry[column])
        return entry

    def get_stats(self, since_hours: int = 24) -> Dict[str, Any]:
        """Summarize the runs of the last ``since_hours`` hours.

        Returns:
            Totals, per-source-type counts and the five latest errors
        """
        self.initialize()
        conn = self._get_connection()
        since = _since(since_hours)

        totals = conn.execute(
            """
            SELECT COUNT(*) AS runs,
                   COALESCE(SUM(status = 'success'), 0) AS succeeded,
                   COALESCE(SUM(status = 'error'), 0) AS failed,
                   AVG(duration_ms) AS avg_duration_ms,
                   COALESCE(SUM(tables_count), 0) AS tables,
                   COALESCE(SUM(warnings_count), 0) AS warnings
            FROM crawl_runs
            WHERE timestamp >= ?
            """,
            (since,),
        ).fetchone()

        by_source_type = [
            dict(row)
            for row in conn.execute(
                """
                SELECT source_type, COUNT(*) AS runs,
                       SUM(status = 'success') AS succeeded,
                       SUM(status = 'error') AS failed
                FROM crawl_runs
                WHERE timestamp >= ?
                GROUP BY source_type
                ORDER BY runs DESC, source_type
                """,
                (since,),
            )
        ]

        recent_errors = [
            dict(row)
            for row in conn.execute(
                """
                SELECT run_id, timestamp, source_type, source_path, error_type, error_message
                FROM crawl_runs
                WHERE timestamp >= ? AND status = 'error'
                ORDER BY timestamp DESC
                LIMIT 5
                """,
                (since,),
            )
        ]

        return {
            "total_runs": totals["runs"],
            "success_count": totals["succeeded"],
            "error_count": totals["failed"],
            "avg_duration_ms": round(totals["avg_duration_ms"] or 0, 2),
            "total_tables_crawled": totals["tables"],
            "total_warnings": totals["warnings"],
            "since_hours": since_hours,
            "by_source_type": by_source_type,
            "recent_errors": recent_errors,
        }

    def cleanup_old_runs(self, retention_days: int = 30) -> int:
        """Delete runs started more than ``retention_days`` days ago.

        Returns:
            Number of deleted runs
        """
        self.initialize()
        cursor = self._get_connection().execute(
            "DELETE FROM crawl_runs WHERE timestamp < ?",
            (_since(retention_days * 24),),
        )
        if cursor.rowcount > 0:
            logger.info("Deleted %d crawl runs older than %d days", cursor.rowcount, retention_days)
        return cursor.rowcount

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
