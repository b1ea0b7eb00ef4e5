"""
Response fields that the API reports under more than one name.

Each tuple is an ordered fallback list: the first name holding a non-empty
value wins. The order is part of the wire contract and is covered by tests.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Sequence


DISPLAY_NAME = ("display_name", "first_name")
USED_STORAGE = ("used_storage_size", "storage_used")
STORAGE_LIMIT = ("storage_limit", "storage_limit_free")
FILE_NAME = ("filename", "name")
FOLDER_KEY = ("folder_key", "folderkey")
NEW_FOLDER_KEYS = ("new_folderkeys", "new_folder_keys")
NEW_QUICK_KEYS = ("new_quickkeys", "new_quick_keys")


def first_present(data: Optional[Mapping[str, Any]], names: Sequence[str], default: Any = None) -> Any:
    if not data:
        return default
    for name in names:
        val = data.get(name)
        if val not in (None, "", [], {}):
            return val
    return default


def first_item(data: Optional[Mapping[str, Any]], single: str, plural: str) -> Optional[Dict[str, Any]]:
    """`data[single]` if it is an object, else the first element of `data[plural]`."""
    if not data:
        return None
    obj = data.get(single)
    if isinstance(obj, dict):
        return obj
    many = data.get(plural)
    if isinstance(many, list) and many and isinstance(many[0], dict):
        return many[0]
    return None


__all__ = [
    "DISPLAY_NAME",
    "FILE_NAME",
    "FOLDER_KEY",
    "NEW_FOLDER_KEYS",
    "NEW_QUICK_KEYS",
    "STORAGE_LIMIT",
    "USED_STORAGE",
    "first_item",
    "first_present",
]
