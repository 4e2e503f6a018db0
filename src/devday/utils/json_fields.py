"""Narrow, default-on-mismatch accessors for untyped JSON values."""

import math
from typing import Any


def as_object(value: Any) -> dict | None:
    return value if isinstance(value, dict) else None


def as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def as_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def as_number(value: Any) -> int | float:
    """Return a finite number, or 0 for anything else (bools included)."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)) and math.isfinite(value):
        return value
    return 0


def as_int(value: Any) -> int:
    return int(as_number(value))


def dig(value: Any, *keys: str) -> Any:
    """Follow a chain of object keys, returning None at the first miss."""
    current = value
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def first_str(obj: Any, *keys: str) -> str | None:
    """Return the first non-empty string value among the given keys."""
    if not isinstance(obj, dict):
        return None
    for key in keys:
        value = obj.get(key)
        if isinstance(value, str) and value:
            return value
    return None
