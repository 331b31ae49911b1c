"""Command groups of the catalog-crawler CLI."""
