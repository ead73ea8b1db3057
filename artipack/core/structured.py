"""Helpers for safely working with dynamic (untyped) structures.

Collection definitions (YAML), registry overrides and the config file
(TOML) and runtime configs (JSON) all arrive as untyped data. These helpers
validate at the boundary and narrow types for the rest of the code.
"""

from __future__ import annotations

from typing import Mapping, TypeGuard, cast

StrDict = dict[str, object]
ObjList = list[object]


def is_str_dict(obj: object) -> TypeGuard[StrDict]:
    """Return True if obj is a dict with string keys."""
    if not isinstance(obj, dict):
        return False
    d = cast(dict[object, object], obj)
    return all(isinstance(k, str) for k in d.keys())


def as_str_dict(obj: object) -> StrDict | None:
    """Return obj as StrDict if it matches, else None."""
    if is_str_dict(obj):
        return obj
    return None


def as_obj_list(obj: object) -> ObjList | None:
    """Return obj as a list, else None."""
    if isinstance(obj, list):
        return cast(ObjList, obj)
    return None


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """Get a string value from a mapping, stripping whitespace.

    Returns None if missing, not a str, or empty after stripping.
    """
    value = table.get(key)
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None


def get_scalar_str(table: Mapping[str, object], key: str) -> str | None:
    """Like get_str, but also accepts numbers and booleans (YAML defaults)."""
    value = table.get(key)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return get_str(table, key)


def get_int(table: Mapping[str, object], key: str) -> int | None:
    """Get an int value (bools are rejected)."""
    value = table.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def get_float(table: Mapping[str, object], key: str) -> float | None:
    """Get a numeric value as float."""
    value = table.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def get_bool(table: Mapping[str, object], key: str) -> bool | None:
    value = table.get(key)
    return value if isinstance(value, bool) else None


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    """Get a nested table (dict with string keys) from a mapping."""
    return as_str_dict(table.get(key))


def get_list(table: Mapping[str, object], key: str) -> ObjList | None:
    """Get a list from a mapping."""
    return as_obj_list(table.get(key))


def get_str_list(table: Mapping[str, object], key: str) -> list[str]:
    """Get a list of non-empty strings; a bare string is a one-item list.

    Non-string items are dropped.
    """
    value = table.get(key)
    if isinstance(value, str):
        value = [value]
    items = as_obj_list(value) or []
    return [s.strip() for s in items if isinstance(s, str) and s.strip()]
