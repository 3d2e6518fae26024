"""Unit tests for ContactDirectory. In-memory contact source only."""

import logging
import threading
import time

from chatvault.application import ContactDirectory, contact_directory, is_listed
from chatvault.domain import Contact
from chatvault.infrastructure import InMemoryContactSource


def _contacts() -> list[Contact]:
    return [
        Contact(username="zed", nick_name="zed"),
        Contact(username="alice", nick_name="Alice"),
        Contact(username="bob", nick_name="bob", remark="Bobby"),
        Contact(username="dave", nick_name="Dave", deleted=True),
        Contact(username="gh_news", nick_name="News"),
        Contact(username="1234@chatroom", nick_name="Group"),
        Contact(username="weixin", nick_name="Team"),
        Contact(username="", nick_name="Nobody"),
    ]


class BlockingSource(InMemoryContactSource):
    """list_all blocks until released, so a refresh can be held in flight."""

    def __init__(self, contacts) -> None:
        super().__init__(contacts)
        self.entered = threading.Event()
        self.release = threading.Event()

    def list_all(self) -> list[Contact]:
        self.entered.set()
        assert self.release.wait(5)
        return super().list_all()


class FlakySource(InMemoryContactSource):
    def __init__(self, contacts) -> None:
        super().__init__(contacts)
        self.fail = False

    def list_all(self) -> list[Contact]:
        if self.fail:
            raise RuntimeError("contact.db is locked")
        return super().list_all()


def test_display_name_fallback_order() -> None:
    assert Contact(username="u", nick_name="n", remark="r", alias="a").display_name == "r"
    assert Contact(username="u", nick_name="n", alias="a").display_name == "n"
    assert Contact(username="u", alias="a").display_name == "a"
    assert Contact(username="u").display_name == "u"


def test_is_listed_excludes_denylist_and_deleted() -> None:
    listed = [c.username for c in _contacts() if is_listed(c)]
    assert listed == ["zed", "alice", "bob"]


def test_cold_get_loads_synchronously_and_sorts_by_display_name() -> None:
    source = InMemoryContactSource(_contacts())
    directory = ContactDirectory(source)
    assert directory.snapshot is None

    snapshot = directory.get()
    assert source.list_calls == 1
    assert [c.display_name for c in snapshot.contacts] == ["Alice", "Bobby", "zed"]
    assert snapshot.captured_at is not None

    assert directory.get() is snapshot
    assert source.list_calls == 1


def test_sort_is_case_insensitive() -> None:
    source = InMemoryContactSource(
        [
            Contact(username="a", nick_name="beta"),
            Contact(username="b", nick_name="Alpha"),
            Contact(username="c", nick_name="Gamma"),
            Contact(username="d", nick_name="delta"),
        ]
    )
    names = [c.display_name for c in ContactDirectory(source).get().contacts]
    assert names == ["Alpha", "beta", "delta", "Gamma"]


def test_refresh_swaps_in_new_snapshot_without_touching_old() -> None:
    source = InMemoryContactSource(_contacts())
    directory = ContactDirectory(source)
    before = directory.get()

    source.replace([Contact(username="new", nick_name="Newcomer")])
    assert directory.manual_refresh() == 1

    after = directory.get()
    assert after is not before
    assert [c.username for c in after.contacts] == ["new"]
    assert [c.username for c in before.contacts] == ["alice", "bob", "zed"]


def test_failed_refresh_keeps_previous_snapshot(caplog) -> None:
    source = FlakySource(_contacts())
    directory = ContactDirectory(source)
    before = directory.get()

    source.fail = True
    with caplog.at_level(logging.ERROR):
        count = directory.refresh()

    assert count == 3
    assert directory.get() is before
    assert "Contact refresh failed" in caplog.text


def test_failed_cold_refresh_returns_empty_snapshot() -> None:
    source = FlakySource(_contacts())
    source.fail = True
    directory = ContactDirectory(source)

    snapshot = directory.get()
    assert snapshot.contacts == ()
    assert snapshot.captured_at is None
    assert directory.snapshot is None


def test_concurrent_refreshes_collapse_into_one_reload(caplog) -> None:
    caplog.set_level(logging.INFO, logger=contact_directory.__name__)
    source = BlockingSource(_contacts())
    directory = ContactDirectory(source)
    results: list[int] = []

    def run() -> None:
        results.append(directory.manual_refresh())

    leader = threading.Thread(target=run)
    leader.start()
    assert source.entered.wait(5)

    followers = [threading.Thread(target=run) for _ in range(4)]
    for t in followers:
        t.start()

    def waiting() -> int:
        return sum("already in progress" in r.getMessage() for r in caplog.records)

    deadline = time.monotonic() + 5
    while waiting() < len(followers) and time.monotonic() < deadline:
        time.sleep(0.01)
    assert waiting() == len(followers)

    source.release.set()
    for t in [leader, *followers]:
        t.join(5)

    assert source.list_calls == 1
    assert results == [3] * 5


def test_refresh_interval_floor() -> None:
    directory = ContactDirectory(InMemoryContactSource(), refresh_interval=1)
    assert directory.refresh_interval == contact_directory.MIN_REFRESH_INTERVAL_SECONDS
    assert ContactDirectory(InMemoryContactSource(), refresh_interval=600).refresh_interval == 600


def test_background_timer_refreshes_until_stopped(monkeypatch) -> None:
    monkeypatch.setattr(contact_directory, "MIN_REFRESH_INTERVAL_SECONDS", 0)
    source = InMemoryContactSource(_contacts())
    directory = ContactDirectory(source, refresh_interval=0.02)

    directory.start()
    deadline = time.monotonic() + 5
    while source.list_calls < 2 and time.monotonic() < deadline:
        time.sleep(0.01)
    directory.stop()

    assert source.list_calls >= 2
    assert directory.snapshot is not None
    calls = source.list_calls
    time.sleep(0.1)
    assert source.list_calls == calls
