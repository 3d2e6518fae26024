"""Open an archive directory: find contact.db, prepare the shard registry, build the service."""

import logging
import sqlite3
from pathlib import Path

from chatvault.application import DEFAULT_REFRESH_INTERVAL_SECONDS, ArchiveService
from chatvault.infrastructure.shard_registry import ShardRegistry, find_contact_database
from chatvault.infrastructure.sqlite_contacts import SqliteContactSource
from chatvault.infrastructure.table_locator import locate_table

logger = logging.getLogger(__name__)


class ArchiveError(Exception):
    """The archive directory cannot be served."""


class ArchiveNotFound(ArchiveError):
    """The root directory or its contact.db is missing."""


def open_archive(
    root: Path, *, refresh_interval: int = DEFAULT_REFRESH_INTERVAL_SECONDS
) -> ArchiveService:
    """Return an ArchiveService over root. Raises ArchiveError if root is not a usable archive.

    Message shards are optional; an archive without them serves contacts and empty histories.
    """
    root = Path(root)
    if not root.is_dir():
        raise ArchiveNotFound(f"Database directory does not exist: {root}")
    contact_db = find_contact_database(root)
    if contact_db is None:
        raise ArchiveNotFound(f"No contact.db found under {root}")
    try:
        contacts = SqliteContactSource(contact_db)
    except sqlite3.Error as exc:
        raise ArchiveError(f"Cannot open {contact_db}: {exc}") from exc
    logger.info("Contact database: %s", contact_db)

    shards = ShardRegistry(root)
    logger.info("Message shards found: %d", len(shards.discover()))
    return ArchiveService(
        contacts,
        shards,
        locate_table=locate_table,
        database_path=root,
        refresh_interval=refresh_interval,
    )
