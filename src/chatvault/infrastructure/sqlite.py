"""Shared SQLite helpers: read-only connections and column coercion."""

import sqlite3
from pathlib import Path


def connect_read_only(path: Path) -> sqlite3.Connection:
    """Open a SQLite file read-only, shareable across threads."""
    uri = f"{Path(path).resolve().as_uri()}?mode=ro"
    return sqlite3.connect(uri, uri=True, check_same_thread=False)


def column_int(value: object) -> int:
    """NULL -> 0. Raises ValueError for values that are not numeric."""
    if value is None:
        return 0
    if not isinstance(value, int | float | str):
        raise ValueError(f"not an integer column value: {value!r}")
    return int(value)


def column_text(value: object) -> str:
    """NULL -> "". BLOBs are decoded as UTF-8 with replacement."""
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if not isinstance(value, str):
        raise ValueError(f"not a text column value: {value!r}")
    return value
