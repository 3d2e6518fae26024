"""Tests for shard discovery, handle caching, and the SQLite contact source."""

import threading

import pytest

from chatvault.application import ShardReadError
from chatvault.infrastructure import (
    ArchiveNotFound,
    ShardRegistry,
    SqliteContactSource,
    find_contact_database,
    open_archive,
    shard_registry,
)
from archive_builders import table_for, write_contact_db, write_shard


def test_discover_finds_shards_recursively_in_sorted_order(archive_dir):
    (archive_dir / "message" / "message_0.db-wal").write_bytes(b"")
    (archive_dir / "message" / "notes.db").write_bytes(b"")
    registry = ShardRegistry(archive_dir)

    names = [p.name for p in registry.discover()]
    assert names == ["message_0.db", "message_1.db"]


def test_discover_is_rescanned_each_time(archive_dir):
    registry = ShardRegistry(archive_dir)
    assert len(registry.discover()) == 2

    write_shard(archive_dir / "later" / "message_2.db", {"zed": [(1, 1, 1, "x", 0, "zed")]})
    assert len(registry.discover()) == 3


def test_discover_missing_root_is_empty(tmp_path):
    assert ShardRegistry(tmp_path / "nope").discover() == []


def test_open_caches_one_handle_per_path(archive_dir):
    registry = ShardRegistry(archive_dir)
    path = registry.discover()[0]

    first = registry.open(path)
    assert registry.open(path) is first
    assert registry.open_count == 1
    registry.close()
    assert registry.open_count == 0


def test_handle_reads_newest_first(archive_dir):
    registry = ShardRegistry(archive_dir)
    shard = registry.open(archive_dir / "message" / "message_0.db")
    table = table_for("alice")

    assert shard.has_table(table)
    assert not shard.has_table(table_for("nobody"))
    assert shard.count(table) == 4
    assert [r.create_time for r in shard.fetch_recent(table, 3)] == [150, 130, 110]
    registry.close()


def test_handle_skips_malformed_rows(tmp_path):
    path = write_shard(
        tmp_path / "message_0.db",
        {
            "alice": [
                (1, 100, 1, "ok", 0, "alice"),
                (2, 120, 1, "ok", 0, "alice"),
                (3, "soon", 1, "bad", 0, ""),
            ]
        },
    )
    registry = ShardRegistry(tmp_path)
    shard = registry.open(path)
    assert shard.count(table_for("alice")) == 2
    records = shard.fetch_recent(table_for("alice"), 10)
    assert [r.local_id for r in records] == [2, 1]
    registry.close()


def test_fetch_recent_refills_after_unmappable_rows(tmp_path, monkeypatch):
    path = write_shard(
        tmp_path / "message_0.db",
        {"alice": [(i, 100 + i, 1, "bad" if i in (5, 4) else f"m{i}", 0, "alice") for i in range(1, 6)]},
    )
    real_row_to_record = shard_registry._row_to_record

    def strict_row_to_record(row):
        if row[3] == "bad":
            raise ValueError("unmappable")
        return real_row_to_record(row)

    monkeypatch.setattr(shard_registry, "_row_to_record", strict_row_to_record)
    registry = ShardRegistry(tmp_path)
    shard = registry.open(path)
    assert [r.content for r in shard.fetch_recent(table_for("alice"), 2)] == ["m3", "m2"]
    assert [r.content for r in shard.fetch_recent(table_for("alice"), 10)] == ["m3", "m2", "m1"]
    registry.close()


def test_concurrent_opens_share_one_handle(archive_dir):
    registry = ShardRegistry(archive_dir)
    paths = registry.discover()
    barrier = threading.Barrier(8)
    handles = []

    def open_shard(path):
        barrier.wait(5)
        handles.append(registry.open(path))

    threads = [threading.Thread(target=open_shard, args=(paths[i % 2],)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(5)

    assert registry.open_count == 2
    assert len(handles) == 8
    assert {id(h) for h in handles} == {id(registry.open(p)) for p in paths}
    registry.close()


def test_corrupt_shard_raises_shard_read_error(tmp_path):
    path = tmp_path / "message_9.db"
    path.write_bytes(b"this is not a sqlite database" * 10)
    registry = ShardRegistry(tmp_path)
    with pytest.raises(ShardReadError):
        registry.open(path).has_table("Msg_x")
    registry.close()


def test_blob_content_is_decoded(tmp_path):
    path = tmp_path / "message_0.db"
    write_shard(path, {"alice": [(1, 100, 1, b"x\xff", 0, "alice")]})
    registry = ShardRegistry(tmp_path)
    [record] = registry.open(path).fetch_recent(table_for("alice"), 1)
    assert record.content == "x\ufffd"
    registry.close()


def test_find_contact_database(archive_dir, tmp_path):
    assert find_contact_database(archive_dir) == archive_dir / "contact" / "contact.db"
    empty = tmp_path / "empty"
    empty.mkdir()
    assert find_contact_database(empty) is None


def test_sqlite_contact_source_reads_rows(archive_dir):
    source = SqliteContactSource(archive_dir / "contact" / "contact.db")
    contacts = source.list_all()
    assert len(contacts) == 9
    dave = source.get("dave")
    assert dave is not None and dave.deleted
    assert source.get("missing") is None
    assert source.display_names(["bob", "carol", "missing"]) == {
        "bob": "Bobby",
        "carol": "carol_alias",
    }
    source.close()
    assert not source.is_open


def test_sqlite_contact_source_skips_malformed_row(tmp_path):
    path = write_contact_db(
        tmp_path / "contact.db",
        [("alice", "Alice", "", "", 1, 0), ("bob", "Bob", "", "", "friend", 0)],
    )
    source = SqliteContactSource(path)
    assert [c.username for c in source.list_all()] == ["alice"]
    source.close()


def test_open_archive_requires_root_and_contact_db(tmp_path):
    with pytest.raises(ArchiveNotFound):
        open_archive(tmp_path / "missing")
    (tmp_path / "empty").mkdir()
    with pytest.raises(ArchiveNotFound):
        open_archive(tmp_path / "empty")


def test_open_archive_without_shards_is_valid(tmp_path):
    write_contact_db(tmp_path / "contact.db", [("alice", "Alice", "", "", 1, 0)])
    service = open_archive(tmp_path)
    assert service.messages.count("alice") == 0
    assert service.messages.query("alice", 10, 0) == []
    assert len(service.directory.get()) == 1
    service.close()
