"""In-memory implementation of ContactSource (no database file)."""

from collections.abc import Iterable

from chatvault.domain import Contact


class InMemoryContactSource:
    """Holds contacts in memory, in insertion order.
    replace() swaps the whole contact list, the way a new contact.db would after a re-export.
    """

    def __init__(self, contacts: Iterable[Contact] = ()) -> None:
        self._by_username: dict[str, Contact] = {}
        self._order: list[Contact] = []
        self.list_calls = 0
        self.closed = False
        self.replace(contacts)

    def replace(self, contacts: Iterable[Contact]) -> None:
        self._order = list(contacts)
        self._by_username = {c.username: c for c in self._order}

    @property
    def is_open(self) -> bool:
        return not self.closed

    def list_all(self) -> list[Contact]:
        self.list_calls += 1
        return list(self._order)

    def get(self, username: str) -> Contact | None:
        return self._by_username.get(username)

    def display_names(self, usernames: Iterable[str]) -> dict[str, str]:
        return {
            name: self._by_username[name].display_name
            for name in usernames
            if name in self._by_username
        }

    def close(self) -> None:
        self.closed = True
