"""Cached contact directory with single-flight refresh and a background refresh timer."""

import logging
import threading
from concurrent.futures import Future
from datetime import datetime

from chatvault.application.ports import ContactSource
from chatvault.domain import EMPTY_SNAPSHOT, Contact, ContactSnapshot

logger = logging.getLogger(__name__)

MIN_REFRESH_INTERVAL_SECONDS = 10
DEFAULT_REFRESH_INTERVAL_SECONDS = 300

# Official accounts, group chats and built-in pseudo-accounts are not people.
OFFICIAL_ACCOUNT_PREFIX = "gh_"
GROUP_CHAT_SUFFIX = "@chatroom"
PSEUDO_ACCOUNTS = frozenset(
    {"filehelper", "fmessage", "medianote", "floatbottle", "weixin"}
)


def is_listed(contact: Contact) -> bool:
    """True if the contact belongs in the directory listing."""
    username = contact.username
    if contact.deleted or not username:
        return False
    if username.startswith(OFFICIAL_ACCOUNT_PREFIX):
        return False
    if GROUP_CHAT_SUFFIX in username:
        return False
    return username not in PSEUDO_ACCOUNTS


class ContactDirectory:
    """Owns the current ContactSnapshot.

    Readers take whatever snapshot reference is current; a refresh builds a new
    snapshot off to the side and swaps the reference in one assignment.
    Concurrent refresh triggers collapse into the one already running.
    """

    def __init__(
        self,
        source: ContactSource,
        *,
        refresh_interval: int = DEFAULT_REFRESH_INTERVAL_SECONDS,
    ) -> None:
        if refresh_interval < MIN_REFRESH_INTERVAL_SECONDS:
            logger.warning(
                "Refresh interval %ss is below the %ss floor, using the floor",
                refresh_interval,
                MIN_REFRESH_INTERVAL_SECONDS,
            )
            refresh_interval = MIN_REFRESH_INTERVAL_SECONDS
        self._source = source
        self._refresh_interval = refresh_interval
        self._snapshot: ContactSnapshot | None = None
        self._lock = threading.Lock()
        self._in_flight: Future[int] | None = None
        self._stopped = threading.Event()
        self._timer: threading.Thread | None = None

    @property
    def refresh_interval(self) -> int:
        return self._refresh_interval

    @property
    def snapshot(self) -> ContactSnapshot | None:
        """Current snapshot without triggering a load; None before the first successful refresh."""
        return self._snapshot

    def get(self) -> ContactSnapshot:
        """Return the current snapshot, loading it synchronously on cold start."""
        snapshot = self._snapshot
        if snapshot is None:
            self.refresh()
            snapshot = self._snapshot
        return snapshot if snapshot is not None else EMPTY_SNAPSHOT

    def refresh(self) -> int:
        """Reload contacts from the source. Returns the contact count after the reload.

        If a reload is already running, waits for it and returns its count instead
        of starting another. A failed reload keeps the previous snapshot.
        """
        with self._lock:
            in_flight = self._in_flight
            if in_flight is None:
                future: Future[int] = Future()
                self._in_flight = future
        if in_flight is not None:
            logger.info("Contact refresh already in progress, waiting for it")
            return in_flight.result()

        count = len(self._snapshot or EMPTY_SNAPSHOT)
        try:
            count = self._reload()
        except Exception:
            logger.exception("Contact refresh failed, keeping previous snapshot")
        finally:
            with self._lock:
                self._in_flight = None
            future.set_result(count)
        return count

    def manual_refresh(self) -> int:
        """Refresh on request. Same path as the timer."""
        return self.refresh()

    def _reload(self) -> int:
        logger.info("Refreshing contact directory")
        contacts = [c for c in self._source.list_all() if is_listed(c)]
        contacts.sort(key=lambda c: c.display_name.lower())
        self._snapshot = ContactSnapshot(
            contacts=tuple(contacts), captured_at=datetime.now()
        )
        logger.info("Contact directory refreshed: %d contacts", len(contacts))
        return len(contacts)

    def start(self) -> None:
        """Start the background refresh timer. No-op if already running."""
        if self._timer is not None and self._timer.is_alive():
            return
        self._stopped.clear()
        self._timer = threading.Thread(
            target=self._run_timer, name="contact-refresh", daemon=True
        )
        self._timer.start()
        logger.info(
            "Contact refresh timer started, interval %ss", self._refresh_interval
        )

    def stop(self) -> None:
        """Cancel the background refresh timer."""
        self._stopped.set()
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.join(timeout=5)

    def _run_timer(self) -> None:
        while not self._stopped.wait(self._refresh_interval):
            self.refresh()
