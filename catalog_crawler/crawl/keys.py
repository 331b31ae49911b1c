"""Composite keys used to index and cross-reference catalog objects."""

from functools import total_ordering
from typing import Iterator, Optional, Tuple


@total_ordering
class NamedObjectKey:
    """Immutable key made of optional name parts.

    A part may be None, for example the catalog name when the source does
    not model catalogs, or the specific name of a routine. Equality,
    hashing and ordering cover every part, with None sorting before any
    string, so the same key works for both insertion and lookup.
    """

    __slots__ = ("_parts",)

    def __init__(self, *parts: Optional[str]):
        for part in parts:
            if part is not None and not isinstance(part, str):
                raise TypeError(f"Key parts must be strings or None, got {type(part).__name__}")
        self._parts: Tuple[Optional[str], ...] = tuple(parts)

    @property
    def parts(self) -> Tuple[Optional[str], ...]:
        return self._parts

    def with_part(self, part: Optional[str]) -> "NamedObjectKey":
        """Return a new key with one more part appended."""
        return NamedObjectKey(*self._parts, part)

    def parent(self) -> "NamedObjectKey":
        """Return the key without its last part."""
        return NamedObjectKey(*self._parts[:-1])

    @property
    def name(self) -> Optional[str]:
        """Last part of the key."""
        return self._parts[-1] if self._parts else None

    def _sort_key(self):
        return tuple((part is not None, part or "") for part in self._parts)

    def __eq__(self, other) -> bool:
        if not isinstance(other, NamedObjectKey):
            return NotImplemented
        return self._parts == other._parts

    def __lt__(self, other) -> bool:
        if not isinstance(other, NamedObjectKey):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __hash__(self) -> int:
        return hash(self._parts)

    def __len__(self) -> int:
        return len(self._parts)

    def __iter__(self) -> Iterator[Optional[str]]:
        return iter(self._parts)

    def __repr__(self) -> str:
        return f"NamedObjectKey{self._parts!r}"

    def __str__(self) -> str:
        return ".".join(part for part in self._parts if part is not None)


def schema_key(catalog_name: Optional[str], schema_name: Optional[str]) -> NamedObjectKey:
    return NamedObjectKey(catalog_name, schema_name)


def table_key(catalog_name: Optional[str], schema_name: Optional[str], table_name: str) -> NamedObjectKey:
    return NamedObjectKey(catalog_name, schema_name, table_name)


def column_key(
    catalog_name: Optional[str],
    schema_name: Optional[str],
    table_name: str,
    column_name: str,
) -> NamedObjectKey:
    return NamedObjectKey(catalog_name, schema_name, table_name, column_name)


def routine_key(
    catalog_name: Optional[str],
    schema_name: Optional[str],
    routine_name: str,
    specific_name: Optional[str] = None,
) -> NamedObjectKey:
    """Build the four-part routine key.

    The specific name tells overloaded routines apart; when the source
    omits it the routine name is used so every routine has a full key.
    """
    return NamedObjectKey(catalog_name, schema_name, routine_name, specific_name or routine_name)
