"""SQLite implementation of ContactSource, reading the archive's contact.db.
Schema: contact(id, username, nick_name, remark, alias, local_type, delete_flag).
"""

import logging
import sqlite3
import threading
from collections.abc import Iterable
from pathlib import Path

from chatvault.domain import Contact
from chatvault.infrastructure.sqlite import column_int, column_text, connect_read_only

logger = logging.getLogger(__name__)

_CONTACT_COLUMNS = "username, nick_name, remark, alias, local_type, delete_flag"

# Stay well below SQLite's default limit on bound parameters.
_LOOKUP_BATCH_SIZE = 500


def _row_to_contact(row: tuple) -> Contact:
    username, nick_name, remark, alias, local_type, delete_flag = row
    return Contact(
        username=column_text(username),
        nick_name=column_text(nick_name),
        remark=column_text(remark),
        alias=column_text(alias),
        local_type=column_int(local_type),
        deleted=column_int(delete_flag) != 0,
    )


class SqliteContactSource:
    """Read-only view of the contact table. One connection, shared across threads."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._conn: sqlite3.Connection | None = connect_read_only(self.path)
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def _fetch(self, sql: str, params: tuple = ()) -> list[tuple]:
        with self._lock:
            if self._conn is None:
                raise sqlite3.ProgrammingError(f"contact database is closed: {self.path}")
            return self._conn.execute(sql, params).fetchall()

    def list_all(self) -> list[Contact]:
        rows = self._fetch(f"SELECT {_CONTACT_COLUMNS} FROM contact")
        contacts = []
        for row in rows:
            try:
                contacts.append(_row_to_contact(row))
            except (TypeError, ValueError) as exc:
                logger.debug("Skipping malformed contact row: %s", exc)
        return contacts

    def get(self, username: str) -> Contact | None:
        try:
            rows = self._fetch(
                f"SELECT {_CONTACT_COLUMNS} FROM contact WHERE username = ? LIMIT 1",
                (username,),
            )
            return _row_to_contact(rows[0]) if rows else None
        except (sqlite3.Error, TypeError, ValueError) as exc:
            logger.warning("Contact lookup failed for %s: %s", username, exc)
            return None

    def display_names(self, usernames: Iterable[str]) -> dict[str, str]:
        wanted = list(dict.fromkeys(usernames))
        names: dict[str, str] = {}
        for start in range(0, len(wanted), _LOOKUP_BATCH_SIZE):
            batch = wanted[start : start + _LOOKUP_BATCH_SIZE]
            placeholders = ", ".join("?" * len(batch))
            try:
                rows = self._fetch(
                    f"SELECT {_CONTACT_COLUMNS} FROM contact WHERE username IN ({placeholders})",
                    tuple(batch),
                )
            except sqlite3.Error as exc:
                logger.warning("Display name lookup failed: %s", exc)
                continue
            for row in rows:
                try:
                    contact = _row_to_contact(row)
                except (TypeError, ValueError):
                    continue
                names[contact.username] = contact.display_name
        return names

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
