from __future__ import annotations

import math
from enum import IntEnum
from typing import Any, TypeVar

_E = TypeVar("_E", bound="RawIntEnum")


def to_int(value: Any, default: int = 0) -> int:
    """Lenient integer conversion for values read from JSON documents.

    Booleans map to 0/1, finite floats are truncated, numeric strings are parsed.
    Anything else yields ``default``.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default


def to_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() not in {"", "0", "false"}
    return default


class RawIntEnum(IntEnum):
    """IntEnum with a clamping conversion from raw document values."""

    @classmethod
    def from_raw(cls: type[_E], value: Any, default: _E) -> _E:
        if value is None:
            return default
        raw = to_int(value, default=-1)
        try:
            return cls(raw)
        except ValueError:
            return default


class UUIDEncoding(RawIntEnum):
    DEFAULT = 0
    JAVA_LEGACY = 1
    CSHARP_LEGACY = 2
    PYTHON_LEGACY = 3


class SupportedTimes(RawIntEnum):
    UTC = 0
    LOCAL_TIME = 1


class ViewMode(RawIntEnum):
    TEXT = 0
    TREE = 1
    TABLE = 2
    CUSTOM = 3


class AutocompletionMode(RawIntEnum):
    NONE = 0
    NO_COLLECTION_NAMES = 1
    ALL = 2


__all__ = [
    "RawIntEnum",
    "UUIDEncoding",
    "SupportedTimes",
    "ViewMode",
    "AutocompletionMode",
    "to_int",
    "to_bool",
]
