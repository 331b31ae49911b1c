"""Crawl run logging module for catalog-crawler.

Provides database logging for crawl runs to help with
debugging and auditing.
"""

from catalog_crawler.logging.run_db import CrawlRunDatabase, get_default_run_db_path
from catalog_crawler.logging.run_service import (
    CrawlRunLogger,
    RunContext,
    get_run_logger,
    log_crawl_run,
)

__all__ = [
    "CrawlRunDatabase",
    "get_default_run_db_path",
    "CrawlRunLogger",
    "RunContext",
    "get_run_logger",
    "log_crawl_run",
]
