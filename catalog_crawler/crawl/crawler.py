"""Crawl orchestrator.

Opens a metadata source, probes its capabilities, runs the enabled
retrievers in dependency order and returns the frozen catalog.
"""

import logging
from datetime import datetime
from typing import List, Optional, Type

from catalog_crawler.crawl.catalog import Catalog, MutableCatalog
from catalog_crawler.crawl.connection import RetrieverConnection
from catalog_crawler.crawl.info import CrawlInfo, CrawlWarning, RetrievalResult
from catalog_crawler.crawl.options import CrawlOptions
from catalog_crawler.crawl.retrievers import RETRIEVER_ORDER, BaseRetriever, RetrievalContext
from catalog_crawler.crawl.type_registry import TypeRegistry
from catalog_crawler.database.base import MetadataSource
from catalog_crawler.errors import ConfigurationError, ConnectionFatalError

logger = logging.getLogger(__name__)


class SchemaCrawler:
    """Builds a catalog from a metadata source.

    A category that fails completely ends up empty with a warning; only
    connection and configuration errors fail the crawl. The caller owns
    the source and closes it (``crawl()`` does this for you).
    """

    def __init__(
        self,
        source: MetadataSource,
        options: Optional[CrawlOptions] = None,
        retrievers: Optional[List[Type[BaseRetriever]]] = None,
    ):
        """Initialize the crawler.

        Args:
            source: Metadata source to crawl
            options: Crawl options; defaults include everything at the
                standard info level
            retrievers: Retriever classes in run order, for testing
        """
        self.source = source
        self.options = options or CrawlOptions()
        self.retrievers = retrievers or RETRIEVER_ORDER

    def crawl(self) -> Catalog:
        """Crawl the source.

        Returns:
            The frozen catalog

        Raises:
            ConnectionFatalError: If the source cannot be opened or probed
            ConfigurationError: If options are invalid or a retriever
                inserts a duplicate object
        """
        info = CrawlInfo(info_level=self.options.info_level.value)
        self._connect()
        connection = RetrieverConnection.probe(self.source, self.options.type_map_overrides)
        info.product_name = connection.product_name
        info.product_version = connection.product_version
        info.capabilities = connection.summary()

        catalog = MutableCatalog(info)
        context = RetrievalContext(
            source=self.source,
            connection=connection,
            catalog=catalog,
            options=self.options,
            type_registry=TypeRegistry(catalog, connection),
        )

        enabled = set(self.options.enabled_categories())
        for retriever_class in self.retrievers:
            if retriever_class.category not in enabled:
                logger.debug("Skipping %s at info level %s", retriever_class.category.value, self.options.info_level.value)
                continue
            info.results.append(self._run(retriever_class(), context))

        unresolved = catalog.resolve_foreign_keys()
        if unresolved:
            logger.info("%d foreign keys reference objects outside the catalog", unresolved)
        dangling = catalog.dangling_synonyms()
        if dangling:
            logger.info("%d synonyms reference objects outside the catalog", len(dangling))

        info.finished_at = datetime.now()
        frozen = catalog.freeze()
        logger.info(
            "Crawled %s %s in %sms: %s",
            info.product_name,
            info.product_version,
            info.duration_ms,
            frozen.summary(),
        )
        return frozen

    def _connect(self) -> None:
        try:
            self.source.connect()
        except ConnectionFatalError:
            raise
        except Exception as e:
            raise ConnectionFatalError(
                f"Cannot connect to metadata source: {e}",
                details={"error_type": type(e).__name__},
            ) from e

    def _run(self, retriever: BaseRetriever, context: RetrievalContext) -> RetrievalResult:
        """Run one retriever; anything it lets escape empties its category."""
        try:
            return retriever.retrieve(context)
        except (ConfigurationError, ConnectionFatalError):
            raise
        except Exception as e:
            logger.warning("Retrieving %s failed: %s", retriever.category.value, e)
            logger.debug("Retrieving %s failed", retriever.category.value, exc_info=True)
            result = RetrievalResult(category=retriever.category.value)
            result.warnings.append(CrawlWarning(
                category=retriever.category.value,
                message=f"Retrieval failed: {e}",
                error_type=type(e).__name__,
            ))
            return result


def crawl(source: MetadataSource, options: Optional[CrawlOptions] = None) -> Catalog:
    """Crawl a metadata source and close it.

    Args:
        source: Metadata source to crawl
        options: Crawl options

    Returns:
        The frozen catalog
    """
    with source:
        return SchemaCrawler(source, options).crawl()
