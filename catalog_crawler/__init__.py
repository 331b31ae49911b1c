"""Catalog crawler: builds an in-memory catalog of database metadata."""

__version__ = "0.1.0"
