"""Configuration management for catalog-crawler."""

import os
from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Dict, Optional


def _find_env_file() -> Optional[str]:
    """Find .env file in multiple locations.

    Search order:
    1. Current working directory
    2. ~/.catalog-crawler/.env
    """
    # Current directory
    if os.path.exists(".env"):
        return ".env"

    # User config directory
    user_env = Path.home() / ".catalog-crawler" / ".env"
    if user_env.exists():
        return str(user_env)

    return None


class Settings(BaseSettings):
    """Application settings loaded from CATALOG_CRAWLER_* environment variables."""

    # Crawl level
    info_level: str = Field(
        default="standard",
        description="Info level preset: minimum, standard, detailed or maximum"
    )
    enable_categories: Optional[str] = Field(
        default=None,
        description="Comma-separated retrieval categories to enable on top of the info level"
    )
    disable_categories: Optional[str] = Field(
        default=None,
        description="Comma-separated retrieval categories to disable"
    )

    # Inclusion rules
    pattern_syntax: str = Field(
        default="glob",
        description="Syntax of include/exclude patterns: glob or regex"
    )
    schema_include: Optional[str] = Field(default=None, description="Schemas to include")
    schema_exclude: Optional[str] = Field(default=None, description="Schemas to exclude")
    table_include: Optional[str] = Field(default=None, description="Tables to include")
    table_exclude: Optional[str] = Field(default=None, description="Tables to exclude")
    column_include: Optional[str] = Field(default=None, description="Columns to include")
    column_exclude: Optional[str] = Field(default=None, description="Columns to exclude")
    routine_include: Optional[str] = Field(default=None, description="Routines to include")
    routine_exclude: Optional[str] = Field(default=None, description="Routines to exclude")
    parameter_include: Optional[str] = Field(default=None, description="Routine parameters to include")
    parameter_exclude: Optional[str] = Field(default=None, description="Routine parameters to exclude")
    synonym_include: Optional[str] = Field(default=None, description="Synonyms to include")
    synonym_exclude: Optional[str] = Field(default=None, description="Synonyms to exclude")

    # Type filters
    table_types: Optional[str] = Field(
        default=None,
        description="Comma-separated table types to crawl (default: all)"
    )
    routine_types: Optional[str] = Field(
        default=None,
        description="Comma-separated routine types to crawl: procedure, function"
    )

    # Host type mapping
    type_map: Dict[str, str] = Field(
        default_factory=dict,
        description="Database type name to host type overrides, as JSON"
    )

    # Crawl run logging configuration
    run_log_enabled: bool = Field(
        default=True,
        description="Enable database logging for crawl runs"
    )
    run_log_db_path: Optional[str] = Field(
        default=None,
        description="Path to crawl runs database file (default: ~/.catalog-crawler/crawl_runs.db)"
    )
    run_log_retention_days: int = Field(
        default=30,
        description="Number of days to retain crawl run log entries"
    )

    log_level: str = Field(
        default="WARNING",
        description="Console log level"
    )

    class Config:
        env_prefix = "CATALOG_CRAWLER_"
        env_file = _find_env_file()
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()
