"""Infrastructure layer: concrete implementations of application ports."""

from chatvault.infrastructure.archive import ArchiveError, ArchiveNotFound, open_archive
from chatvault.infrastructure.md5 import md5_digest, md5_hexdigest
from chatvault.infrastructure.memory_contacts import InMemoryContactSource
from chatvault.infrastructure.shard_registry import (
    ShardHandle,
    ShardRegistry,
    find_contact_database,
)
from chatvault.infrastructure.sqlite_contacts import SqliteContactSource
from chatvault.infrastructure.table_locator import MESSAGE_TABLE_PREFIX, locate_table

__all__ = [
    "MESSAGE_TABLE_PREFIX",
    "ArchiveError",
    "ArchiveNotFound",
    "InMemoryContactSource",
    "ShardHandle",
    "ShardRegistry",
    "SqliteContactSource",
    "find_contact_database",
    "locate_table",
    "md5_digest",
    "md5_hexdigest",
    "open_archive",
]
