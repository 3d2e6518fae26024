"""
chatvault core: read-only access to a decrypted chat export.

- domain: entities (Contact, ContactSnapshot, MessageRecord). No outer dependencies.
- application: services (ContactDirectory, MessageAggregator, ArchiveService), ports, DTOs.
- infrastructure: adapters (SqliteContactSource, ShardRegistry, InMemoryContactSource) and the table locator.
"""

from chatvault.application import (
    ArchiveService,
    ContactDirectory,
    ContactSource,
    MessageAggregator,
    MessagePage,
    ShardSource,
)
from chatvault.domain import Contact, ContactSnapshot, MessageRecord
from chatvault.infrastructure import (
    InMemoryContactSource,
    ShardRegistry,
    SqliteContactSource,
    locate_table,
    open_archive,
)

__all__ = [
    "ArchiveService",
    "Contact",
    "ContactDirectory",
    "ContactSnapshot",
    "ContactSource",
    "InMemoryContactSource",
    "MessageAggregator",
    "MessagePage",
    "MessageRecord",
    "ShardRegistry",
    "ShardSource",
    "SqliteContactSource",
    "locate_table",
    "open_archive",
]
