"""Domain layer: entities and value objects. No dependencies on outer layers."""

from chatvault.domain.entities import (
    EMPTY_SNAPSHOT,
    Contact,
    ContactSnapshot,
    MessageRecord,
    MessageType,
    message_type_label,
)

__all__ = [
    "EMPTY_SNAPSHOT",
    "Contact",
    "ContactSnapshot",
    "MessageRecord",
    "MessageType",
    "message_type_label",
]
