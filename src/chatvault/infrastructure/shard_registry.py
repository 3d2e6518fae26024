"""Message shard discovery and read-only SQLite handles.
Shards are files named message_*.db anywhere below the archive root. Each
contact's messages live in a table Msg_<md5(username)>, present in zero or more shards.
"""

import logging
import sqlite3
import threading
from pathlib import Path

from chatvault.application.ports import ShardReadError
from chatvault.domain import MessageRecord
from chatvault.infrastructure.sqlite import column_int, column_text, connect_read_only

logger = logging.getLogger(__name__)

CONTACT_DATABASE_NAME = "contact.db"
SHARD_GLOB = "message_*.db"

_MESSAGE_COLUMNS = (
    "local_id, create_time, local_type, message_content, is_send, sender_username"
)

# Rows outside this filter are neither counted nor paged. Ordering columns must be
# integers so SQLite ORDER BY agrees with the merge key.
_VALID_ROW = (
    "typeof(local_id) = 'integer' AND typeof(create_time) = 'integer' "
    "AND typeof(local_type) IN ('integer', 'null') "
    "AND typeof(is_send) IN ('integer', 'null') "
    "AND typeof(message_content) IN ('text', 'blob', 'null') "
    "AND typeof(sender_username) IN ('text', 'blob', 'null')"
)


def find_contact_database(root: Path) -> Path | None:
    """Return the contact directory file below root, or None if there is none."""
    matches = sorted(p for p in Path(root).rglob(CONTACT_DATABASE_NAME) if p.is_file())
    if not matches:
        return None
    if len(matches) > 1:
        logger.warning(
            "Found %d %s files under %s, using %s",
            len(matches),
            CONTACT_DATABASE_NAME,
            root,
            matches[0],
        )
    return matches[0]


def _row_to_record(row: tuple) -> MessageRecord:
    local_id, create_time, local_type, content, is_send, sender = row
    return MessageRecord(
        local_id=column_int(local_id),
        create_time=column_int(create_time),
        local_type=column_int(local_type),
        content=column_text(content),
        is_send=column_int(is_send) == 1,
        sender_username=column_text(sender),
    )


class ShardHandle:
    """One opened shard. Queries are serialized per handle."""

    def __init__(self, path: Path, connection: sqlite3.Connection) -> None:
        self.path = path
        self._conn = connection
        self._lock = threading.Lock()

    def _fetch(self, sql: str, params: tuple = ()) -> list[tuple]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as exc:
                raise ShardReadError(str(exc)) from exc

    def has_table(self, table: str) -> bool:
        rows = self._fetch(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?",
            (table,),
        )
        return bool(rows)

    def count(self, table: str) -> int:
        rows = self._fetch(f'SELECT COUNT(*) FROM "{table}" WHERE {_VALID_ROW}')
        return int(rows[0][0]) if rows else 0

    def fetch_recent(self, table: str, limit: int) -> list[MessageRecord]:
        """Newest limit valid rows, ordered by (create_time DESC, local_id DESC).

        Rows that fail to map are skipped and replaced by reading further, so the
        result is short only when the table runs out.
        """
        sql = (
            f'SELECT {_MESSAGE_COLUMNS} FROM "{table}" WHERE {_VALID_ROW} '
            "ORDER BY create_time DESC, local_id DESC LIMIT ? OFFSET ?"
        )
        records: list[MessageRecord] = []
        scanned = 0
        while len(records) < limit:
            wanted = limit - len(records)
            rows = self._fetch(sql, (wanted, scanned))
            scanned += len(rows)
            for row in rows:
                try:
                    records.append(_row_to_record(row))
                except (TypeError, ValueError) as exc:
                    logger.debug("Skipping malformed row in %s/%s: %s", self.path, table, exc)
            if len(rows) < wanted:
                break
        return records

    def close(self) -> None:
        with self._lock:
            self._conn.close()


class ShardRegistry:
    """Finds shard files under root and caches one open handle per path for the process lifetime."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self._handles: dict[Path, ShardHandle] = {}
        self._lock = threading.Lock()

    def discover(self) -> list[Path]:
        """Scan root for shard files. Sorted, so the order is stable between scans."""
        if not self.root.is_dir():
            return []
        return sorted(p for p in self.root.rglob(SHARD_GLOB) if p.is_file())

    def open(self, path: Path) -> ShardHandle:
        path = Path(path)
        with self._lock:
            handle = self._handles.get(path)
        if handle is not None:
            return handle

        # Connect outside the lock; if another thread won the race, keep its handle.
        try:
            connection = connect_read_only(path)
        except sqlite3.Error as exc:
            raise ShardReadError(f"cannot open {path}: {exc}") from exc
        with self._lock:
            handle = self._handles.get(path)
            if handle is None:
                handle = self._handles[path] = ShardHandle(path, connection)
                connection = None
        if connection is not None:
            connection.close()
        else:
            logger.info("Opened message shard %s", path)
        return handle

    @property
    def open_count(self) -> int:
        return len(self._handles)

    def close(self) -> None:
        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
        for handle in handles:
            handle.close()
