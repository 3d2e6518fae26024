"""Contact identifier -> message table name, as written by the archive producer."""

from chatvault.infrastructure.md5 import md5_hexdigest

MESSAGE_TABLE_PREFIX = "Msg_"


def locate_table(contact_id: str) -> str:
    """Return "Msg_" + lowercase hex MD5 of the UTF-8 bytes of contact_id."""
    return MESSAGE_TABLE_PREFIX + md5_hexdigest(contact_id.encode("utf-8"))
