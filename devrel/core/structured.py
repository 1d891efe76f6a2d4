"""Narrowing helpers for untyped TOML and JSON payloads.

Hosting API responses, registry metadata and config files all arrive as
``object``. These helpers validate shapes at the boundary so the rest of
the code works with typed values.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TypeGuard, cast

StrDict = dict[str, object]
ObjList = list[object]


def is_str_dict(obj: object) -> TypeGuard[StrDict]:
    if not isinstance(obj, dict):
        return False
    d = cast(dict[object, object], obj)
    return all(isinstance(k, str) for k in d)


def as_str_dict(obj: object) -> StrDict | None:
    return obj if is_str_dict(obj) else None


def as_obj_list(obj: object) -> ObjList | None:
    return cast(ObjList, obj) if isinstance(obj, list) else None


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """Return a stripped, non-empty string value or None."""
    value = table.get(key)
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None


def get_int(table: Mapping[str, object], key: str) -> int | None:
    value = table.get(key)
    # bool is an int subclass; TOML `true` is not a number.
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def get_bool(table: Mapping[str, object], key: str) -> bool | None:
    value = table.get(key)
    return value if isinstance(value, bool) else None


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    return as_str_dict(table.get(key))


def get_list(table: Mapping[str, object], key: str) -> ObjList | None:
    return as_obj_list(table.get(key))


def get_str_list(table: Mapping[str, object], key: str) -> list[str] | None:
    """Return a list value if every item is a string, else None."""
    items = get_list(table, key)
    if items is None or not all(isinstance(item, str) for item in items):
        return None
    return [cast(str, item) for item in items]


def get_str_map(table: Mapping[str, object], key: str) -> dict[str, str]:
    """Return the string-valued entries of a nested table."""
    nested = get_table(table, key) or {}
    return {k: v for k, v in nested.items() if isinstance(v, str)}
