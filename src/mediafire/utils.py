from __future__ import annotations

from typing import Any, Optional


_UNITS = ("Bytes", "KB", "MB", "GB", "TB")


def format_bytes(size: int) -> str:
    """Human-readable size in base 1024, e.g. `1536 -> "1.5 KB"`."""
    if size <= 0:
        return "0 Bytes"
    i = 0
    while i < len(_UNITS) - 1 and size >= 1024 ** (i + 1):
        i += 1
    # Drop trailing zeros: 1.50 -> 1.5, 2.00 -> 2
    text = f"{size / 1024 ** i:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_UNITS[i]}"


def to_int(value: Any, default: int = 0) -> int:
    """Parse the decimal strings the API uses for counts and sizes."""
    if value in (None, ""):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return default


def yes(value: Optional[str]) -> bool:
    return value == "yes"
