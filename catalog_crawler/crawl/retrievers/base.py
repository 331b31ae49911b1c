"""Shared retrieval machinery: context, row access and failure handling."""

import logging
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Optional

from catalog_crawler.crawl.catalog import MutableCatalog
from catalog_crawler.crawl.connection import RetrieverConnection
from catalog_crawler.crawl.info import RetrievalResult
from catalog_crawler.crawl.options import CrawlOptions, RetrievalCategory
from catalog_crawler.crawl.rules import LimitOptions, RuleFor
from catalog_crawler.crawl.type_registry import TypeRegistry
from catalog_crawler.database.base import MetadataSource
from catalog_crawler.database.records import MetadataRecord
from catalog_crawler.errors import ConfigurationError, ConnectionFatalError, is_unsupported_feature

logger = logging.getLogger(__name__)


@dataclass
class RetrievalContext:
    """Everything a retriever needs for one crawl."""
    source: MetadataSource
    connection: RetrieverConnection
    catalog: MutableCatalog
    options: CrawlOptions
    type_registry: TypeRegistry

    @property
    def limit_options(self) -> LimitOptions:
        return self.options.limit_options

    def include(self, rule_for: RuleFor, qualified_name: str) -> bool:
        return self.options.limit_options.test(rule_for, qualified_name)


class BaseRetriever(ABC):
    """Base class for the retriever of one metadata category.

    Subclasses implement ``_retrieve``. Failures are classified here:
    unsupported features are logged at INFO and recorded as warnings,
    other source errors are logged at WARNING and the item is skipped.
    ConfigurationError and ConnectionFatalError always propagate.
    """

    category: RetrievalCategory

    def retrieve(self, context: RetrievalContext) -> RetrievalResult:
        """Retrieve this category into the context's catalog.

        Args:
            context: Retrieval context of the running crawl

        Returns:
            Counts and warnings for the category
        """
        result = RetrievalResult(category=self.category.value)
        started = time.monotonic()
        self._attempt(result, self.category.value.replace("_", " "), lambda: self._retrieve(context, result))
        result.duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "Retrieved %d %s (%d excluded, %d skipped, %d warnings)",
            result.retrieved,
            self.category.value,
            result.excluded,
            result.skipped,
            len(result.warnings),
        )
        return result

    @abstractmethod
    def _retrieve(self, context: RetrievalContext, result: RetrievalResult) -> None:
        pass

    @contextmanager
    def _records(self, call: Callable[..., Iterable[Any]], *args: Any) -> Iterator[Iterator[MetadataRecord]]:
        """Run a metadata call and yield its rows as MetadataRecords.

        The source's cursor (a generator, usually) is closed on exit,
        whether or not the rows were fully consumed.
        """
        rows = iter(call(*args))
        try:
            yield (MetadataRecord(row) for row in rows)
        finally:
            close = getattr(rows, "close", None)
            if close is not None:
                close()

    def classify_failure(
        self,
        error: Exception,
        result: RetrievalResult,
        what: str,
        object_name: Optional[str] = None,
    ) -> bool:
        """Log and record a failed metadata call.

        Args:
            error: The exception raised by the source
            result: Result to record the warning in
            what: Description of what was being retrieved
            object_name: Object the call was made for, if any

        Returns:
            True if the source does not support the call at all

        Raises:
            ConfigurationError, ConnectionFatalError: Re-raised unchanged
        """
        if isinstance(error, (ConfigurationError, ConnectionFatalError)):
            raise error
        where = f" for {object_name}" if object_name else ""
        if is_unsupported_feature(error):
            logger.info("Source does not support retrieving %s: %s", what, error)
            result.warn(f"Retrieving {what} is not supported: {error}", object_name, error, unsupported=True)
            return True
        logger.warning("Could not retrieve %s%s: %s", what, where, error)
        logger.debug("Retrieval of %s%s failed", what, where, exc_info=error)
        result.skipped += 1
        result.warn(f"Could not retrieve {what}: {error}", object_name, error)
        return False

    def _attempt(
        self,
        result: RetrievalResult,
        what: str,
        action: Callable[[], None],
        object_name: Optional[str] = None,
    ) -> bool:
        """Run one retrieval step.

        Returns:
            False if the source does not support the step, so callers can
            stop asking for the remaining items
        """
        try:
            action()
        except (ConfigurationError, ConnectionFatalError):
            raise
        except Exception as e:
            return not self.classify_failure(e, result, what, object_name)
        return True

    def _for_each(
        self,
        result: RetrievalResult,
        what: str,
        items: Iterable[Any],
        action: Callable[[Any], None],
    ) -> None:
        """Run ``action`` per item, stopping early if the call is unsupported."""
        for item in items:
            if not self._attempt(result, what, lambda: action(item), getattr(item, "full_name", None)):
                break

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
