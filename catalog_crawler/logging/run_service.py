"""Crawl run history: records each CLI crawl in the run database.

Recording is best effort. Problems with the run database are logged and
never change the outcome of the crawl being recorded.
"""

import logging
import os
import platform
import time
import traceback
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from catalog_crawler.logging.run_db import CrawlRunDatabase

logger = logging.getLogger(__name__)

_run_logger: Optional["CrawlRunLogger"] = None


def get_run_logger() -> "CrawlRunLogger":
    """Shared run logger, built from settings on first use."""
    global _run_logger
    if _run_logger is None:
        from catalog_crawler.config import settings

        _run_logger = CrawlRunLogger(
            db_path=settings.run_log_db_path,
            enabled=settings.run_log_enabled,
            retention_days=settings.run_log_retention_days,
        )
    return _run_logger


def _package_version() -> str:
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("catalog-crawler")
    except PackageNotFoundError:
        return "unknown"


@dataclass
class RunContext:
    """State of one crawl run, filled in while the crawl runs."""

    run_id: str
    source_type: str
    source_path: Optional[str] = None
    info_level: Optional[str] = None
    arguments: Dict[str, Any] = field(default_factory=dict)
    start_time: float = field(default_factory=time.monotonic)

    product_name: Optional[str] = None
    product_version: Optional[str] = None
    schemas_count: int = 0
    tables_count: int = 0
    columns_count: int = 0
    routines_count: int = 0
    warnings: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.start_time) * 1000)

    def record_catalog(self, catalog) -> None:
        """Copy counts and warnings from a crawled catalog."""
        summary = catalog.summary()
        self.product_name = catalog.info.product_name
        self.product_version = catalog.info.product_version
        self.schemas_count = summary["schemas"]
        self.tables_count = summary["tables"]
        self.columns_count = summary["columns"]
        self.routines_count = summary["routines"]
        self.warnings = [warning.to_dict() for warning in catalog.warnings]


class CrawlRunLogger:
    """Records crawl runs in a CrawlRunDatabase.

    Example:
        with get_run_logger().log_run("sqlite", "./app.db", "standard") as ctx:
            ctx.record_catalog(crawl(SqliteMetadataSource("./app.db")))

    Exceptions raised inside the block are recorded and re-raised.
    """

    def __init__(self, db_path: Optional[str] = None, enabled: bool = True, retention_days: int = 30):
        """Open the run database and drop expired runs.

        Args:
            db_path: Run database file; None uses the default location
            enabled: False records nothing
            retention_days: Runs older than this are deleted here
        """
        self.enabled = enabled
        self._db: Optional[CrawlRunDatabase] = None
        if not enabled:
            return
        try:
            db = CrawlRunDatabase(db_path)
            db.initialize()
            db.cleanup_old_runs(retention_days)
        except Exception as e:
            logger.warning("Failed to initialize crawl run logging: %s", e)
            self.enabled = False
            return
        self._db = db

    @property
    def db(self) -> Optional[CrawlRunDatabase]:
        return self._db

    @property
    def _available(self) -> bool:
        return self.enabled and self._db is not None

    @contextmanager
    def log_run(
        self,
        source_type: str,
        source_path: Optional[str] = None,
        info_level: Optional[str] = None,
        arguments: Optional[Dict[str, Any]] = None,
    ) -> Iterator[RunContext]:
        """Record the crawl run inside the ``with`` block.

        Args:
            source_type: Metadata source type
            source_path: Database path
            info_level: Info level of the crawl
            arguments: Command options

        Yields:
            RunContext to record the crawled catalog in
        """
        ctx = RunContext(
            run_id=uuid.uuid4().hex[:8],
            source_type=source_type,
            source_path=source_path,
            info_level=info_level,
            arguments=arguments or {},
        )
        if not self._available:
            yield ctx
            return

        self._record_start(ctx)
        try:
            yield ctx
        except Exception as e:
            self._record_failure(ctx, e)
            raise
        self._record_success(ctx)

    def _record_start(self, ctx: RunContext) -> None:
        try:
            self._db.insert_run(
                run_id=ctx.run_id,
                source_type=ctx.source_type,
                source_path=ctx.source_path,
                info_level=ctx.info_level,
                arguments=ctx.arguments,
                python_version=platform.python_version(),
                package_version=_package_version(),
                working_directory=os.getcwd(),
            )
        except Exception as e:
            logger.warning("Failed to record start of crawl run %s: %s", ctx.run_id, e)

    def _record_failure(self, ctx: RunContext, error: Exception) -> None:
        elapsed_ms = ctx.elapsed_ms
        try:
            self._db.update_error(
                ctx.run_id,
                error_message=str(error),
                error_type=type(error).__name__,
                error_traceback=traceback.format_exc(),
                duration_ms=elapsed_ms,
            )
        except Exception as e:
            logger.warning("Failed to record failure of crawl run %s: %s", ctx.run_id, e)
        logger.debug("Crawl run %s failed after %dms: %s", ctx.run_id, elapsed_ms, error)

    def _record_success(self, ctx: RunContext) -> None:
        elapsed_ms = ctx.elapsed_ms
        try:
            self._db.update_crawl_results(
                ctx.run_id,
                ctx.product_name,
                ctx.product_version,
                ctx.schemas_count,
                ctx.tables_count,
                ctx.columns_count,
                ctx.routines_count,
                warnings=ctx.warnings,
            )
            self._db.update_success(ctx.run_id, elapsed_ms)
        except Exception as e:
            logger.warning("Failed to record results of crawl run %s: %s", ctx.run_id, e)
            return
        logger.debug("Crawl run %s finished in %dms", ctx.run_id, elapsed_ms)

    def query_runs(
        self,
        status: Optional[str] = None,
        source_type: Optional[str] = None,
        since_hours: int = 24,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        if not self._available:
            return []
        return self._db.query_runs(status=status, source_type=source_type, since_hours=since_hours, limit=limit)

    def get_run(self, run_id: str) -> Optional[Dict[str, Any]]:
        return self._db.get_run_by_id(run_id) if self._available else None

    def get_stats(self, since_hours: int = 24) -> Dict[str, Any]:
        if not self._available:
            return {"error": "Crawl run logging is disabled"}
        return self._db.get_stats(since_hours=since_hours)

    def cleanup_old_runs(self, retention_days: int = 30) -> int:
        return self._db.cleanup_old_runs(retention_days) if self._available else 0


def log_crawl_run(
    source_type: str,
    source_path: Optional[str] = None,
    info_level: Optional[str] = None,
    arguments: Optional[Dict[str, Any]] = None,
):
    """``get_run_logger().log_run(...)`` shorthand used by the crawl commands."""
    return get_run_logger().log_run(
        source_type=source_type,
        source_path=source_path,
        info_level=info_level,
        arguments=arguments,
    )
