"""
Booking persistence backends.

Stores keep the ledger's records and hand out the per-date locks that make
booking creation atomic. Two bookings can only conflict if their occupied
ranges share an instant, so they always share at least one UTC date; locking
every date a candidate touches is enough to serialize competing creations.
"""

from __future__ import annotations

import json
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from filelock import FileLock
from pendulum import Date, DateTime

from ..domain.models import Booking, TimeRange

logger = logging.getLogger(__name__)

BookingChange = Callable[[Booking], Booking]


class DateLockRegistry:
    """Hands out one lock per UTC calendar date."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def _lock_for(self, date: Date) -> threading.Lock:
        key = date.isoformat()
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def acquire(self, dates: Iterable[Date]) -> Iterator[None]:
        """Hold the locks for all ``dates``, taken in ascending order."""
        locks = [self._lock_for(date) for date in sorted(set(dates))]
        acquired: List[threading.Lock] = []
        try:
            for lock in locks:
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


def _index(bookings: Iterable[Booking]) -> Dict[str, Booking]:
    indexed: Dict[str, Booking] = {}
    for booking in bookings:
        if booking.id in indexed:
            raise ValueError(f"Booking {booking.id} appears more than once")
        indexed[booking.id] = booking
    return indexed


class InMemoryBookingStore:
    """
    Thread-safe in-process booking store.

    Writes are all-or-nothing: the new record set is handed to ``_persist``
    first and only becomes visible once that succeeded.
    """

    def __init__(self, bookings: Optional[Iterable[Booking]] = None):
        self._records_lock = threading.RLock()
        self._bookings: Dict[str, Booking] = _index(bookings or [])
        self._date_locks = DateLockRegistry()

    @contextmanager
    def locked(self, time_range: TimeRange) -> Iterator[None]:
        """Serialize writers whose ranges touch the same UTC dates."""
        with self._date_locks.acquire(time_range.covered_dates()):
            yield

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        with self._records_lock:
            yield

    def get(self, booking_id: str) -> Optional[Booking]:
        with self._exclusive():
            return self._bookings.get(booking_id)

    def list_all(self) -> List[Booking]:
        with self._exclusive():
            return list(self._bookings.values())

    def active_overlapping(self, start: DateTime, end: DateTime) -> List[Booking]:
        """Active bookings whose buffer-inflated range overlaps ``[start, end)``."""
        window = TimeRange(start=start, end=end)
        with self._exclusive():
            return [
                booking for booking in self._bookings.values()
                if booking.is_active and booking.occupied_range().overlaps(window)
            ]

    def add(self, booking: Booking) -> None:
        with self._exclusive():
            if booking.id in self._bookings:
                raise ValueError(f"Booking {booking.id} already exists")
            self._commit({**self._bookings, booking.id: booking})

    def update(self, booking_id: str, change: BookingChange) -> Tuple[Booking, Booking]:
        """
        Apply ``change`` to the stored booking as one atomic step.

        ``change`` receives the current record and returns the replacement,
        or the same object to leave it untouched. It may raise to refuse the
        change. A replacement older than the stored record is discarded.

        Returns:
            ``(before, after)``: the record before the call and the record
            stored afterwards

        Raises:
            KeyError: If the id is unknown
        """
        with self._exclusive():
            current = self._bookings.get(booking_id)
            if current is None:
                raise KeyError(booking_id)

            updated = change(current)
            if updated is current:
                return current, current
            if current.updated_at > updated.updated_at:
                logger.debug(
                    "Discarding stale write for booking %s (%s < %s)",
                    booking_id,
                    updated.updated_at,
                    current.updated_at,
                )
                return current, current

            self._commit({**self._bookings, booking_id: updated})
            return current, updated

    def _commit(self, bookings: Dict[str, Booking]) -> None:
        self._persist(bookings)
        self._bookings = bookings

    def _persist(self, bookings: Dict[str, Booking]) -> None:
        """Hook for durable subclasses; called with the records lock held."""


class JsonFileBookingStore(InMemoryBookingStore):
    """
    Booking store persisted to a JSON file.

    The whole ledger is rewritten through a temporary file on every change,
    so a crash never leaves a half-written file behind. Every access holds
    an OS-level lock on ``<path>.lock`` and re-reads the file first, so
    several processes can share one ledger.
    """

    def __init__(self, path: Path, lock_timeout: float = 10):
        self.path = Path(path)
        self._file_lock = FileLock(str(self.path) + ".lock", timeout=lock_timeout)
        super().__init__(self._load())

    @contextmanager
    def locked(self, time_range: TimeRange) -> Iterator[None]:
        with super().locked(time_range), self._exclusive():
            yield

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        with self._records_lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self._file_lock:
                self._bookings = _index(self._load())
                yield

    def _load(self) -> List[Booking]:
        if not self.path.exists():
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid booking ledger file {self.path}: {exc}") from exc

        if not isinstance(data, list):
            raise ValueError("Booking ledger file must contain a list at the root level.")

        bookings = [Booking.from_dict(record) for record in data]
        logger.debug("Loaded %d bookings from %s", len(bookings), self.path)
        return bookings

    def _persist(self, bookings: Dict[str, Booking]) -> None:
        records = [booking.to_dict() for booking in bookings.values()]
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(records, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp.replace(self.path)
