"""Shared fixtures: an on-disk archive with a contact.db and two overlapping message shards."""

from pathlib import Path

import pytest

from archive_builders import CONTACT_ROWS, write_contact_db, write_shard


@pytest.fixture
def archive_dir(tmp_path: Path) -> Path:
    """contact.db plus two shards; alice's history is split across both with overlapping times."""
    root = tmp_path / "decrypted"
    write_contact_db(root / "contact" / "contact.db", CONTACT_ROWS)
    write_shard(
        root / "message" / "message_0.db",
        {
            "alice": [
                (1, 100, 1, "hi", 0, "alice"),
                (2, 110, 1, "hello", 1, ""),
                (3, 130, 3, "<img>", 0, "alice"),
                (4, 150, 1, "later", 1, ""),
            ],
        },
    )
    write_shard(
        root / "message" / "message_1.db",
        {
            "alice": [
                (1, 105, 1, "from shard one", 0, "alice"),
                (2, 130, 34, "<voice>", 0, "alice"),
                (3, 160, 1, "newest", 0, "bob"),
            ],
            "bob": [
                (1, 200, 1, "yo", 0, "bob"),
                (2, 210, 10000, "bob joined", 0, ""),
            ],
        },
    )
    return root
