"""Crawl options: what to retrieve and which objects to keep."""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Iterable, List, Optional, TYPE_CHECKING

from catalog_crawler.crawl.rules import (
    GlobRule,
    IncludeAll,
    InclusionRule,
    LimitOptions,
    RegularExpressionRule,
    RuleFor,
)
from catalog_crawler.errors import ConfigurationError

if TYPE_CHECKING:
    from catalog_crawler.config import Settings

logger = logging.getLogger(__name__)


class RetrievalCategory(str, Enum):
    """Metadata categories, in the order they are retrieved."""
    SCHEMAS = "schemas"
    DATA_TYPES = "data_types"
    TABLES = "tables"
    COLUMNS = "columns"
    PRIMARY_KEYS = "primary_keys"
    FOREIGN_KEYS = "foreign_keys"
    INDEXES = "indexes"
    TABLE_CONSTRAINTS = "table_constraints"
    TRIGGERS = "triggers"
    VIEW_DEFINITIONS = "view_definitions"
    ROUTINES = "routines"
    ROUTINE_PARAMETERS = "routine_parameters"
    SYNONYMS = "synonyms"
    ROW_COUNTS = "row_counts"


class InfoLevel(str, Enum):
    """Preset amount of metadata to retrieve."""
    MINIMUM = "minimum"
    STANDARD = "standard"
    DETAILED = "detailed"
    MAXIMUM = "maximum"

    @property
    def categories(self) -> List[RetrievalCategory]:
        levels = list(InfoLevel)
        enabled = set()
        for level in levels[: levels.index(self) + 1]:
            enabled.update(_LEVEL_CATEGORIES[level])
        return [category for category in RetrievalCategory if category in enabled]


_LEVEL_CATEGORIES: Dict[InfoLevel, List[RetrievalCategory]] = {
    InfoLevel.MINIMUM: [
        RetrievalCategory.SCHEMAS,
        RetrievalCategory.TABLES,
        RetrievalCategory.COLUMNS,
        RetrievalCategory.ROUTINES,
    ],
    InfoLevel.STANDARD: [
        RetrievalCategory.DATA_TYPES,
        RetrievalCategory.PRIMARY_KEYS,
        RetrievalCategory.FOREIGN_KEYS,
        RetrievalCategory.INDEXES,
        RetrievalCategory.ROUTINE_PARAMETERS,
    ],
    InfoLevel.DETAILED: [
        RetrievalCategory.TABLE_CONSTRAINTS,
        RetrievalCategory.TRIGGERS,
        RetrievalCategory.VIEW_DEFINITIONS,
        RetrievalCategory.SYNONYMS,
    ],
    InfoLevel.MAXIMUM: [
        RetrievalCategory.ROW_COUNTS,
    ],
}


def _parse_enum(enum_cls, value, what: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError as e:
        raise ConfigurationError(
            f"Unknown {what} '{value}'",
            details={"allowed": [member.value for member in enum_cls]},
        ) from e


@dataclass(frozen=True)
class CrawlOptions:
    """Options for one crawl.

    Attributes:
        limit_options: Inclusion rules and type filters
        info_level: Preset of categories to retrieve
        category_overrides: Per-category switches applied on top of the level
        type_map_overrides: Type name to host type entries
    """

    limit_options: LimitOptions = field(default_factory=LimitOptions)
    info_level: InfoLevel = InfoLevel.STANDARD
    category_overrides: Dict[RetrievalCategory, bool] = field(default_factory=dict)
    type_map_overrides: Dict[str, str] = field(default_factory=dict)

    def is_enabled(self, category: RetrievalCategory) -> bool:
        if category in self.category_overrides:
            return self.category_overrides[category]
        return category in self.info_level.categories

    def enabled_categories(self) -> List[RetrievalCategory]:
        return [category for category in RetrievalCategory if self.is_enabled(category)]

    def with_info_level(self, info_level) -> "CrawlOptions":
        return replace(self, info_level=_parse_enum(InfoLevel, info_level, "info level"))

    def with_categories(
        self,
        enable: Optional[Iterable] = None,
        disable: Optional[Iterable] = None,
    ) -> "CrawlOptions":
        overrides = dict(self.category_overrides)
        for category in enable or ():
            overrides[_parse_enum(RetrievalCategory, category, "retrieval category")] = True
        for category in disable or ():
            overrides[_parse_enum(RetrievalCategory, category, "retrieval category")] = False
        return replace(self, category_overrides=overrides)

    def with_rule(self, rule_for: RuleFor, rule: InclusionRule) -> "CrawlOptions":
        return replace(self, limit_options=self.limit_options.with_rule(rule_for, rule))

    @classmethod
    def from_settings(cls, settings: "Settings") -> "CrawlOptions":
        """Build crawl options from application settings.

        Args:
            settings: Loaded settings

        Returns:
            CrawlOptions with rules compiled from the configured patterns

        Raises:
            ConfigurationError: If a pattern, level or category is invalid
        """
        limit_options = LimitOptions()
        patterns = {
            RuleFor.SCHEMA: (settings.schema_include, settings.schema_exclude),
            RuleFor.TABLE: (settings.table_include, settings.table_exclude),
            RuleFor.COLUMN: (settings.column_include, settings.column_exclude),
            RuleFor.ROUTINE: (settings.routine_include, settings.routine_exclude),
            RuleFor.ROUTINE_PARAMETER: (settings.parameter_include, settings.parameter_exclude),
            RuleFor.SYNONYM: (settings.synonym_include, settings.synonym_exclude),
        }
        for rule_for, (include, exclude) in patterns.items():
            rule = build_rule(include, exclude, syntax=settings.pattern_syntax)
            if not isinstance(rule, IncludeAll):
                limit_options = limit_options.with_rule(rule_for, rule)

        if settings.table_types:
            limit_options = limit_options.with_table_types(settings.table_types.split(","))
        if settings.routine_types:
            limit_options = limit_options.with_routine_types(settings.routine_types.split(","))

        options = cls(
            limit_options=limit_options,
            info_level=_parse_enum(InfoLevel, settings.info_level, "info level"),
            type_map_overrides=dict(settings.type_map or {}),
        )
        return options.with_categories(
            enable=_split(settings.enable_categories),
            disable=_split(settings.disable_categories),
        )


def _split(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def build_rule(include: Optional[str], exclude: Optional[str], syntax: str = "glob") -> InclusionRule:
    """Build an inclusion rule from include/exclude pattern strings.

    Args:
        include: Include pattern(s), or None to include everything
        exclude: Exclude pattern(s), or None to exclude nothing
        syntax: "glob" for comma-separated shell patterns, "regex" for a
            regular expression

    Returns:
        IncludeAll when neither pattern is set, otherwise a pattern rule
    """
    if not include and not exclude:
        return IncludeAll()
    if syntax == "glob":
        return GlobRule(include=include or "*", exclude=exclude or None)
    if syntax == "regex":
        return RegularExpressionRule(include=include or ".*", exclude=exclude or None)
    raise ConfigurationError(
        f"Unknown pattern syntax '{syntax}'",
        details={"allowed": ["glob", "regex"]},
    )
