"""Error types for catalog crawling."""

from typing import Optional, Dict, Any


# SQLSTATE codes that drivers use for "optional feature not implemented".
# HY000 is a general error, but some drivers raise it for unsupported calls.
UNSUPPORTED_SQLSTATES = {"HYC00", "HY000"}


class CrawlerError(Exception):
    """Base exception for crawler errors."""

    def __init__(self, message: str, code: str = "CRAWLER_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for reporting."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class UnsupportedFeatureError(CrawlerError):
    """The metadata source does not implement a category or call."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="UNSUPPORTED_FEATURE", details=details)


class SourceError(CrawlerError):
    """An individual metadata call failed (bad result, driver error)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="SOURCE_ERROR", details=details)


class ConfigurationError(CrawlerError):
    """Invalid crawl configuration or an inconsistent catalog insert."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFIGURATION_ERROR", details=details)


class DuplicateKeyError(ConfigurationError):
    """An entity with the same composite key is already in the catalog."""

    def __init__(self, entity_type: str, key: Any):
        super().__init__(
            f"Duplicate {entity_type}: {key}",
            details={"entity_type": entity_type, "key": str(key)},
        )
        self.code = "DUPLICATE_KEY"
        self.entity_type = entity_type
        self.key = key


class ConnectionFatalError(CrawlerError):
    """The metadata source cannot be reached or probed."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONNECTION_FATAL", details=details)


class FrozenCatalogError(CrawlerError):
    """A frozen catalog was asked to change."""

    def __init__(self, operation: str):
        super().__init__(
            f"Catalog is frozen; cannot {operation}",
            code="FROZEN_CATALOG",
            details={"operation": operation},
        )


def is_unsupported_feature(error: BaseException) -> bool:
    """Check whether an exception signals an unsupported metadata feature.

    Args:
        error: Exception raised by a metadata source call

    Returns:
        True for UnsupportedFeatureError, NotImplementedError, or a driver
        error carrying an "optional feature not implemented" SQLSTATE
    """
    if isinstance(error, (UnsupportedFeatureError, NotImplementedError)):
        return True
    sqlstate = getattr(error, "sqlstate", None)
    if isinstance(sqlstate, str) and sqlstate.upper() in UNSUPPORTED_SQLSTATES:
        return True
    return False
