"""Test fixtures for catalog-crawler tests."""

from tests.fixtures.fake_source import FakeMetadataSource

__all__ = ["FakeMetadataSource"]
