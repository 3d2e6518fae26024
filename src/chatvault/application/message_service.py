"""Cross-shard message lookup: locate, merge, window, and label senders."""

import heapq
import itertools
import logging
from collections.abc import Callable, Iterator
from operator import itemgetter

from chatvault.application.dto import EnrichedMessage, MessagePage, SessionInfo
from chatvault.application.ports import (
    ContactSource,
    MessageShard,
    ShardReadError,
    ShardSource,
)
from chatvault.domain import MessageRecord

logger = logging.getLogger(__name__)

SELF_LABEL = "我"


def _order_key(record: MessageRecord, shard_index: int) -> tuple[int, int, int]:
    """Newest first; ties go to the earlier-discovered shard, then the higher local id."""
    return (-record.create_time, shard_index, -record.local_id)


class MessageAggregator:
    """Reads one contact's messages from every shard that holds its table.

    Windowing is global: (limit, offset) apply to the merged sequence. Each shard
    contributes at most limit + offset of its newest rows, which always covers
    the global window because every record in the first limit + offset merged
    positions is also within the first limit + offset positions of its own shard.
    """

    def __init__(
        self,
        shards: ShardSource,
        contacts: ContactSource,
        *,
        locate_table: Callable[[str], str],
    ) -> None:
        self._shards = shards
        self._contacts = contacts
        self._locate_table = locate_table

    def _shards_with_table(self, table: str) -> Iterator[tuple[int, MessageShard]]:
        """Yield (discovery index, shard) for shards that contain table. Broken shards are skipped."""
        for index, path in enumerate(self._shards.discover()):
            try:
                shard = self._shards.open(path)
                if not shard.has_table(table):
                    continue
            except ShardReadError as exc:
                logger.warning("Skipping shard %s: %s", path, exc)
                continue
            yield index, shard

    def count(self, contact_id: str) -> int:
        """Exact number of messages for contact_id across all shards."""
        table = self._locate_table(contact_id)
        total = 0
        for _, shard in self._shards_with_table(table):
            try:
                total += shard.count(table)
            except ShardReadError as exc:
                logger.warning("Could not count %s in %s: %s", table, shard.path, exc)
        return total

    def query(self, contact_id: str, limit: int, offset: int) -> list[MessageRecord]:
        """Return the merged window [offset, offset + limit) of contact_id's messages, newest first."""
        if limit <= 0:
            return []
        table = self._locate_table(contact_id)
        per_shard = limit + offset
        runs = []
        for index, shard in self._shards_with_table(table):
            try:
                rows = shard.fetch_recent(table, per_shard)
            except ShardReadError as exc:
                logger.warning("Could not read %s from %s: %s", table, shard.path, exc)
                continue
            runs.append(sorted(((_order_key(r, index), r) for r in rows), key=itemgetter(0)))
        merged = heapq.merge(*runs, key=itemgetter(0))
        return [record for _, record in itertools.islice(merged, offset, offset + limit)]

    def enrich(self, records: list[MessageRecord]) -> list[EnrichedMessage]:
        """Attach sender display names, resolved in one batch against the contact source."""
        senders = {
            r.sender_username for r in records if not r.is_send and r.sender_username
        }
        names = self._contacts.display_names(sorted(senders)) if senders else {}
        out = []
        for record in records:
            if record.is_send:
                label = SELF_LABEL
            elif record.sender_username:
                label = names.get(record.sender_username) or record.sender_username
            else:
                label = ""
            out.append(EnrichedMessage(record=record, sender_display_name=label))
        return out

    def page(self, contact_id: str, limit: int, offset: int) -> MessagePage:
        """Count, query and enrich one page, with the contact's own details as the session."""
        contact = self._contacts.get(contact_id)
        total = self.count(contact_id)
        messages = self.enrich(self.query(contact_id, limit, offset))
        session = SessionInfo(
            username=contact_id,
            nick_name=contact.nick_name if contact else "",
            remark=contact.remark if contact else "",
            display_name=contact.display_name if contact else contact_id,
            message_count=total,
        )
        return MessagePage(
            session=session,
            messages=messages,
            limit=limit,
            offset=offset,
            total=total,
        )
