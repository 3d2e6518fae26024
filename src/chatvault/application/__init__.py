"""Application layer: services, ports, and DTOs. Depends only on domain."""

from chatvault.application.archive_service import ArchiveService
from chatvault.application.contact_directory import (
    DEFAULT_REFRESH_INTERVAL_SECONDS,
    MIN_REFRESH_INTERVAL_SECONDS,
    ContactDirectory,
    is_listed,
)
from chatvault.application.dto import (
    ArchiveStatus,
    EnrichedMessage,
    MessagePage,
    SessionInfo,
)
from chatvault.application.message_service import SELF_LABEL, MessageAggregator
from chatvault.application.ports import (
    ContactSource,
    MessageShard,
    ShardReadError,
    ShardSource,
)

__all__ = [
    "DEFAULT_REFRESH_INTERVAL_SECONDS",
    "MIN_REFRESH_INTERVAL_SECONDS",
    "SELF_LABEL",
    "ArchiveService",
    "ArchiveStatus",
    "ContactDirectory",
    "ContactSource",
    "EnrichedMessage",
    "MessageAggregator",
    "MessagePage",
    "MessageShard",
    "SessionInfo",
    "ShardReadError",
    "ShardSource",
    "is_listed",
]
