"""One opened archive: a contact directory and a message aggregator over the same files."""

import logging
import time
from collections.abc import Callable
from pathlib import Path

from chatvault.application.contact_directory import (
    DEFAULT_REFRESH_INTERVAL_SECONDS,
    ContactDirectory,
)
from chatvault.application.dto import ArchiveStatus
from chatvault.application.message_service import MessageAggregator
from chatvault.application.ports import ContactSource, ShardSource

logger = logging.getLogger(__name__)


class ArchiveService:
    """Owns exactly one ContactDirectory and one ShardSource. start() warms and schedules, close() releases."""

    def __init__(
        self,
        contacts: ContactSource,
        shards: ShardSource,
        *,
        locate_table: Callable[[str], str],
        database_path: Path,
        refresh_interval: int = DEFAULT_REFRESH_INTERVAL_SECONDS,
    ) -> None:
        self._contacts = contacts
        self._shards = shards
        self.database_path = Path(database_path)
        self.directory = ContactDirectory(contacts, refresh_interval=refresh_interval)
        self.messages = MessageAggregator(shards, contacts, locate_table=locate_table)
        self._started_at: float | None = None

    @property
    def uptime_seconds(self) -> int:
        if self._started_at is None:
            return 0
        return int(time.monotonic() - self._started_at)

    def start(self, *, preload: bool = True) -> None:
        if preload:
            self.directory.refresh()
        self.directory.start()
        self._started_at = time.monotonic()

    def close(self) -> None:
        self.directory.stop()
        self._shards.close()
        self._contacts.close()
        self._started_at = None
        logger.info("Archive closed: %s", self.database_path)

    def status(self) -> ArchiveStatus:
        snapshot = self.directory.snapshot
        return ArchiveStatus(
            database_connected=self._contacts.is_open,
            database_path=self.database_path,
            contacts_cache_time=snapshot.captured_at if snapshot else None,
            contacts_count=len(snapshot) if snapshot else 0,
            shard_count=len(self._shards.discover()),
            uptime_seconds=self.uptime_seconds,
            refresh_interval_seconds=self.directory.refresh_interval,
        )
