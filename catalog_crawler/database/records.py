"""Typed access to metadata rows returned by a MetadataSource."""

from typing import Any, Iterator, Mapping, Optional


_TRUE_STRINGS = {"y", "yes", "true", "t", "1", "on"}


class MetadataRecord(Mapping[str, Any]):
    """One metadata row with lenient, typed getters.

    Keys are matched case-insensitively so sources may return either
    ``TABLE_NAME`` or ``table_name``. Getters return the default for
    missing keys and for values that cannot be converted.
    """

    __slots__ = ("_values",)

    def __init__(self, row: Mapping[str, Any]):
        self._values = {str(key).lower(): value for key, value in row.items()}

    def __getitem__(self, key: str) -> Any:
        return self._values[key.lower()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"MetadataRecord({self._values!r})"

    def get_string(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._values.get(key.lower())
        if value is None:
            return default
        text = str(value)
        return text if text != "" else default

    def get_int(self, key: str, default: Optional[int] = None) -> Optional[int]:
        value = self._values.get(key.lower())
        if value is None or isinstance(value, bool):
            return default if value is None else int(value)
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self._values.get(key.lower())
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        return str(value).strip().lower() in _TRUE_STRINGS

    def get_nullable(self, key: str, default: bool = True) -> bool:
        """Read a JDBC-style nullability flag.

        Accepts the numeric codes (0 no nulls, 1 nullable, 2 unknown),
        "YES"/"NO" strings, or booleans. Unknown maps to the default.
        """
        value = self._values.get(key.lower())
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        if isinstance(value, int):
            if value == 0:
                return False
            if value == 1:
                return True
            return default
        text = str(value).strip().upper()
        if text in ("NO", "N", "FALSE"):
            return False
        if text in ("YES", "Y", "TRUE"):
            return True
        return default
