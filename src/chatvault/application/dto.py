"""Result types returned by the application services."""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from chatvault.domain import MessageRecord


@dataclass(frozen=True)
class EnrichedMessage:
    """A message plus the resolved display name of its sender."""

    record: MessageRecord
    sender_display_name: str


@dataclass(frozen=True)
class SessionInfo:
    username: str
    nick_name: str
    remark: str
    display_name: str
    message_count: int


@dataclass(frozen=True)
class MessagePage:
    """One window of a contact's merged message history."""

    session: SessionInfo
    messages: list[EnrichedMessage]
    limit: int
    offset: int
    total: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.messages) < self.total


@dataclass(frozen=True)
class ArchiveStatus:
    database_connected: bool
    database_path: Path
    contacts_cache_time: datetime | None
    contacts_count: int
    shard_count: int
    uptime_seconds: int
    refresh_interval_seconds: int
