"""Domain entities: Contact, ContactSnapshot, MessageRecord, and message type labels."""

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum


@dataclass(frozen=True)
class Contact:
    """
    One row of the contact directory.
    Immutable once loaded; a refresh replaces the whole snapshot instead of patching contacts.
    """

    username: str
    nick_name: str = ""
    remark: str = ""
    alias: str = ""
    local_type: int = 0
    deleted: bool = False

    def __post_init__(self):
        if not isinstance(self.username, str):
            raise ValueError("Contact username must be a string.")

    @property
    def display_name(self) -> str:
        """Remark, else nickname, else alias, else the raw identifier."""
        return self.remark or self.nick_name or self.alias or self.username


@dataclass(frozen=True)
class ContactSnapshot:
    """Contacts sorted by display name plus the time they were captured. Swapped as a whole."""

    contacts: tuple[Contact, ...] = ()
    captured_at: datetime | None = None

    def __len__(self) -> int:
        return len(self.contacts)


EMPTY_SNAPSHOT = ContactSnapshot()


class MessageType(IntEnum):
    TEXT = 1
    IMAGE = 3
    VOICE = 34
    VIDEO = 43
    EMOJI = 47
    APP = 49
    SYSTEM = 10000


MESSAGE_TYPE_LABELS: dict[int, str] = {
    MessageType.TEXT: "文本",
    MessageType.IMAGE: "图片",
    MessageType.VOICE: "语音",
    MessageType.VIDEO: "视频",
    MessageType.EMOJI: "表情",
    MessageType.APP: "链接/文件",
    MessageType.SYSTEM: "系统消息",
}


def message_type_label(local_type: int) -> str:
    """Human label for a message type code; unknown codes become 其他(<code>)."""
    return MESSAGE_TYPE_LABELS.get(local_type, f"其他({local_type})")


@dataclass(frozen=True)
class MessageRecord:
    """
    One message row read from a shard.
    local_id is unique only inside its shard's table, not across shards.
    """

    local_id: int
    create_time: int
    local_type: int = MessageType.TEXT
    content: str = ""
    is_send: bool = False
    sender_username: str = ""

    @property
    def type_label(self) -> str:
        return message_type_label(self.local_type)

    @property
    def formatted_time(self) -> str:
        """create_time rendered in local time as YYYY-MM-DD HH:MM:SS."""
        return datetime.fromtimestamp(self.create_time).strftime("%Y-%m-%d %H:%M:%S")
