"""Application ports (interfaces). Implemented by infrastructure adapters."""

from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from chatvault.domain import Contact, MessageRecord


class ShardReadError(Exception):
    """A shard could not be opened or queried. Raised by shard adapters, swallowed per shard."""


class ContactSource(Protocol):
    """Read-only access to the contact directory file."""

    @property
    def is_open(self) -> bool:
        """True while the underlying connection is usable."""
        ...

    def list_all(self) -> list[Contact]:
        """Return every well-formed contact row, deleted ones included. Malformed rows are skipped."""
        ...

    def get(self, username: str) -> Contact | None:
        """Return the contact with the given identifier, or None."""
        ...

    def display_names(self, usernames: Iterable[str]) -> dict[str, str]:
        """Return identifier -> display name for the identifiers that resolve."""
        ...

    def close(self) -> None: ...


class MessageShard(Protocol):
    """One opened message shard file."""

    path: Path

    def has_table(self, table: str) -> bool: ...

    def count(self, table: str) -> int: ...

    def fetch_recent(self, table: str, limit: int) -> list[MessageRecord]:
        """Return up to limit rows ordered by (create_time DESC, local_id DESC)."""
        ...


class ShardSource(Protocol):
    """Discovers shard files and hands out cached read-only handles."""

    def discover(self) -> list[Path]:
        """Return shard paths in discovery order. Re-scanned on every call."""
        ...

    def open(self, path: Path) -> MessageShard:
        """Return the cached handle for path, opening it on first use. Raises ShardReadError."""
        ...

    def close(self) -> None: ...
