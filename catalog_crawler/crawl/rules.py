"""Inclusion rules deciding which named objects a crawl keeps.

Rules test the unquoted, dotted qualified name of an object, made of its
non-null key parts: ``APP.USERS`` for a table, ``APP.USERS.ID`` for a
column, ``MAIN.APP.PROC`` for a routine in catalog ``MAIN``.
"""

import fnmatch
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Union

from catalog_crawler.crawl.models import RoutineType
from catalog_crawler.errors import ConfigurationError

logger = logging.getLogger(__name__)

Patterns = Union[str, Sequence[str], None]


class InclusionRule(ABC):
    """Predicate over qualified object names."""

    @abstractmethod
    def test(self, name: Optional[str]) -> bool:
        """Return True if the named object should be kept."""
        pass

    def __call__(self, name: Optional[str]) -> bool:
        return self.test(name)


class IncludeAll(InclusionRule):
    def test(self, name: Optional[str]) -> bool:
        return True

    def __repr__(self) -> str:
        return "IncludeAll()"


class ExcludeAll(InclusionRule):
    def test(self, name: Optional[str]) -> bool:
        return False

    def __repr__(self) -> str:
        return "ExcludeAll()"


def _compile(pattern: Optional[str], flags: int = 0) -> Optional["re.Pattern"]:
    if pattern is None:
        return None
    try:
        return re.compile(pattern, flags | re.DOTALL)
    except re.error as e:
        raise ConfigurationError(
            f"Invalid inclusion pattern '{pattern}': {e}",
            details={"pattern": pattern},
        ) from e


class RegularExpressionRule(InclusionRule):
    """Include and exclude regular expressions; exclusion wins.

    Both patterns must match the whole qualified name. A missing include
    pattern includes everything; a missing exclude pattern excludes nothing.
    """

    def __init__(self, include: Optional[str] = ".*", exclude: Optional[str] = None, ignore_case: bool = False):
        flags = re.IGNORECASE if ignore_case else 0
        self.include_pattern = include
        self.exclude_pattern = exclude
        self._include = _compile(include, flags)
        self._exclude = _compile(exclude, flags)

    def test(self, name: Optional[str]) -> bool:
        text = name or ""
        if self._exclude is not None and self._exclude.fullmatch(text):
            return False
        if self._include is None:
            return True
        return bool(self._include.fullmatch(text))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(include={self.include_pattern!r}, exclude={self.exclude_pattern!r})"


def _split_patterns(patterns: Patterns) -> List[str]:
    if patterns is None:
        return []
    if isinstance(patterns, str):
        patterns = patterns.split(",")
    return [pattern.strip() for pattern in patterns if pattern and pattern.strip()]


def _globs_to_regex(patterns: Patterns) -> Optional[str]:
    globs = _split_patterns(patterns)
    if not globs:
        return None
    return "|".join(f"(?:{fnmatch.translate(glob)})" for glob in globs)


class GlobRule(RegularExpressionRule):
    """Shell-style patterns (``*``, ``?``, ``[seq]``), comma-separated or listed.

    Example:
        GlobRule(include="APP.*", exclude="*.TMP_*")
    """

    def __init__(self, include: Patterns = "*", exclude: Patterns = None, ignore_case: bool = False):
        self.include_globs = _split_patterns(include)
        self.exclude_globs = _split_patterns(exclude)
        super().__init__(
            include=_globs_to_regex(include) if include is not None else None,
            exclude=_globs_to_regex(exclude),
            ignore_case=ignore_case,
        )

    def __repr__(self) -> str:
        return f"GlobRule(include={self.include_globs!r}, exclude={self.exclude_globs!r})"


class AnyOfRule(InclusionRule):
    """Keeps a name if any child rule keeps it."""

    def __init__(self, rules: Iterable[InclusionRule]):
        self.rules = list(rules)

    def test(self, name: Optional[str]) -> bool:
        return any(rule.test(name) for rule in self.rules)

    def __repr__(self) -> str:
        return f"AnyOfRule({self.rules!r})"


class AllOfRule(InclusionRule):
    """Keeps a name only if every child rule keeps it."""

    def __init__(self, rules: Iterable[InclusionRule]):
        self.rules = list(rules)

    def test(self, name: Optional[str]) -> bool:
        return all(rule.test(name) for rule in self.rules)

    def __repr__(self) -> str:
        return f"AllOfRule({self.rules!r})"


class RuleFor(str, Enum):
    """Granularity an inclusion rule applies to."""
    SCHEMA = "schema"
    TABLE = "table"
    COLUMN = "column"
    ROUTINE = "routine"
    ROUTINE_PARAMETER = "routine_parameter"
    SYNONYM = "synonym"


_INCLUDE_ALL = IncludeAll()


@dataclass(frozen=True)
class LimitOptions:
    """Inclusion rules per granularity, plus table and routine type filters.

    Granularities without a rule include everything. ``table_types`` and
    ``routine_types`` of None mean no filtering.
    """

    rules: Dict[RuleFor, InclusionRule] = field(default_factory=dict)
    table_types: Optional[FrozenSet[str]] = None
    routine_types: Optional[FrozenSet[RoutineType]] = None

    def get_rule(self, rule_for: RuleFor) -> InclusionRule:
        return self.rules.get(rule_for, _INCLUDE_ALL)

    def test(self, rule_for: RuleFor, name: Optional[str]) -> bool:
        return self.get_rule(rule_for).test(name)

    def with_rule(self, rule_for: RuleFor, rule: InclusionRule) -> "LimitOptions":
        rules = dict(self.rules)
        rules[rule_for] = rule
        return replace(self, rules=rules)

    def with_table_types(self, table_types: Optional[Iterable[str]]) -> "LimitOptions":
        if table_types is None:
            return replace(self, table_types=None)
        return replace(self, table_types=frozenset(t.strip().upper() for t in table_types if t and t.strip()))

    def with_routine_types(self, routine_types: Optional[Iterable[Union[str, RoutineType]]]) -> "LimitOptions":
        if routine_types is None:
            return replace(self, routine_types=None)
        parsed = set()
        for routine_type in routine_types:
            try:
                parsed.add(RoutineType(str(getattr(routine_type, "value", routine_type)).strip().lower()))
            except ValueError as e:
                raise ConfigurationError(
                    f"Unknown routine type '{routine_type}'",
                    details={"allowed": [t.value for t in RoutineType]},
                ) from e
        return replace(self, routine_types=frozenset(parsed))

    def include_table_type(self, table_type: Optional[str]) -> bool:
        if self.table_types is None:
            return True
        return (table_type or "").strip().upper() in self.table_types

    def include_routine_type(self, routine_type: RoutineType) -> bool:
        if self.routine_types is None:
            return True
        return routine_type in self.routine_types
