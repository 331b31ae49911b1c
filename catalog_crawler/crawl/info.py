"""Outcome records of a crawl: warnings and per-category results."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class CrawlWarning:
    """A non-fatal problem met while retrieving metadata."""
    category: str
    message: str
    object_name: Optional[str] = None
    error_type: Optional[str] = None
    unsupported: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "message": self.message,
            "object_name": self.object_name,
            "error_type": self.error_type,
            "unsupported": self.unsupported,
        }

    def __str__(self) -> str:
        where = f" [{self.object_name}]" if self.object_name else ""
        return f"{self.category}{where}: {self.message}"


@dataclass
class RetrievalResult:
    """Counts and warnings of one retriever run."""
    category: str
    retrieved: int = 0
    skipped: int = 0
    excluded: int = 0
    warnings: List[CrawlWarning] = field(default_factory=list)
    duration_ms: Optional[int] = None

    @property
    def failed(self) -> bool:
        """True when nothing was retrieved because of errors.

        Categories the source does not support are not failures.
        """
        return self.retrieved == 0 and any(not warning.unsupported for warning in self.warnings)

    def warn(
        self,
        message: str,
        object_name: Optional[str] = None,
        error: Optional[BaseException] = None,
        unsupported: bool = False,
    ) -> CrawlWarning:
        warning = CrawlWarning(
            category=self.category,
            message=message,
            object_name=object_name,
            error_type=type(error).__name__ if error is not None else None,
            unsupported=unsupported,
        )
        self.warnings.append(warning)
        return warning

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "retrieved": self.retrieved,
            "skipped": self.skipped,
            "excluded": self.excluded,
            "warnings": [warning.to_dict() for warning in self.warnings],
            "duration_ms": self.duration_ms,
        }


@dataclass
class CrawlInfo:
    """Where and when a catalog was crawled, and how it went."""
    product_name: str = "unknown"
    product_version: str = ""
    capabilities: Dict[str, Any] = field(default_factory=dict)
    info_level: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    results: List[RetrievalResult] = field(default_factory=list)
    warnings: List[CrawlWarning] = field(default_factory=list)

    @property
    def duration_ms(self) -> Optional[int]:
        if self.finished_at is None:
            return None
        return int((self.finished_at - self.started_at).total_seconds() * 1000)

    @property
    def all_warnings(self) -> List[CrawlWarning]:
        """Warnings of every category, then crawl-level warnings."""
        collected = []
        for result in self.results:
            collected.extend(result.warnings)
        collected.extend(self.warnings)
        return collected

    def get_result(self, category: str) -> Optional[RetrievalResult]:
        for result in self.results:
            if result.category == category:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_name": self.product_name,
            "product_version": self.product_version,
            "capabilities": dict(self.capabilities),
            "info_level": self.info_level,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_ms": self.duration_ms,
            "results": [result.to_dict() for result in self.results],
            "warnings": [warning.to_dict() for warning in self.all_warnings],
        }
