"""
Tests for booking persistence backends.
"""

import json
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from bookingengine.adapters.booking_store import DateLockRegistry, InMemoryBookingStore, JsonFileBookingStore
from bookingengine.domain.exceptions import SlotNoLongerAvailable
from bookingengine.domain.models import BookingStatus, CustomerInfo
from bookingengine.services.booking_ledger import BookingLedger

from conftest import EARLY_NOW, local, make_booking

CUSTOMER = CustomerInfo(name="Ada Lovelace", email="ada@example.com")


class FailingJsonStore(JsonFileBookingStore):
    """JSON store whose file writes can be made to fail."""

    fail = False

    def _persist(self, bookings):
        if self.fail:
            raise OSError("disk full")
        super()._persist(bookings)


class TestInMemoryBookingStore:
    """Tests for InMemoryBookingStore."""

    def test_active_overlapping_uses_occupied_range(self):
        store = InMemoryBookingStore([make_booking("2024-11-25 09:30", "2024-11-25 10:00", buffers=(0, 15))])

        assert store.active_overlapping(local("2024-11-25 10:10"), local("2024-11-25 10:40"))
        assert not store.active_overlapping(local("2024-11-25 10:15"), local("2024-11-25 10:45"))

    def test_duplicate_ids_rejected(self):
        store = InMemoryBookingStore([make_booking("2024-11-25 09:30", "2024-11-25 10:00")])

        with pytest.raises(ValueError, match="already exists"):
            store.add(make_booking("2024-11-25 11:00", "2024-11-25 11:30"))

    def test_duplicate_ids_rejected_on_load(self):
        with pytest.raises(ValueError, match="more than once"):
            InMemoryBookingStore([
                make_booking("2024-11-25 09:30", "2024-11-25 10:00"),
                make_booking("2024-11-25 11:00", "2024-11-25 11:30"),
            ])

    def test_last_write_wins(self):
        booking = make_booking("2024-11-25 09:30", "2024-11-25 10:00", status=BookingStatus.PENDING)
        store = InMemoryBookingStore([booking])
        newer = booking.with_status(BookingStatus.CONFIRMED, EARLY_NOW.add(hours=2))
        older = booking.with_status(BookingStatus.CANCELLED, EARLY_NOW.add(hours=1))

        store.update(booking.id, lambda current: newer)
        before, after = store.update(booking.id, lambda current: older)

        assert before.status is BookingStatus.CONFIRMED
        assert after.status is BookingStatus.CONFIRMED
        assert store.get(booking.id).status is BookingStatus.CONFIRMED

    def test_update_sees_stored_record(self):
        booking = make_booking("2024-11-25 09:30", "2024-11-25 10:00", status=BookingStatus.PENDING)
        store = InMemoryBookingStore([booking])
        seen = []

        def change(current):
            seen.append(current)
            return current

        before, after = store.update(booking.id, change)

        assert seen == [booking]
        assert before is after is booking

    def test_refused_update_leaves_record(self):
        booking = make_booking("2024-11-25 09:30", "2024-11-25 10:00", status=BookingStatus.PENDING)
        store = InMemoryBookingStore([booking])

        def refuse(current):
            raise RuntimeError("refused")

        with pytest.raises(RuntimeError):
            store.update(booking.id, refuse)

        assert store.get(booking.id) == booking

    def test_update_unknown_booking_raises(self):
        store = InMemoryBookingStore()

        with pytest.raises(KeyError):
            store.update("missing", lambda current: current)


class TestDateLockRegistry:
    """Tests for DateLockRegistry."""

    def test_same_date_is_exclusive(self):
        registry = DateLockRegistry()
        date = local("2024-11-25 09:00").date()
        entered = threading.Event()

        def contender():
            with registry.acquire([date]):
                entered.set()

        with registry.acquire([date]):
            thread = threading.Thread(target=contender)
            thread.start()
            assert not entered.wait(timeout=0.2)

        thread.join(timeout=2)
        assert entered.is_set()

    def test_different_dates_do_not_block(self):
        registry = DateLockRegistry()
        monday = local("2024-11-25 09:00").date()
        entered = threading.Event()

        def contender():
            with registry.acquire([monday.add(days=1)]):
                entered.set()

        with registry.acquire([monday]):
            thread = threading.Thread(target=contender)
            thread.start()
            assert entered.wait(timeout=2)

        thread.join(timeout=2)


class TestJsonFileBookingStore:
    """Tests for JsonFileBookingStore."""

    def test_round_trip_through_file(self, tmp_path):
        path = tmp_path / "bookings.json"
        booking = make_booking("2024-11-25 09:30", "2024-11-25 10:00", buffers=(0, 15))

        JsonFileBookingStore(path).add(booking)
        reloaded = JsonFileBookingStore(path)

        assert reloaded.get(booking.id) == booking
        assert not (tmp_path / "bookings.json.tmp").exists()

    def test_status_updates_are_persisted(self, tmp_path):
        path = tmp_path / "bookings.json"
        booking = make_booking("2024-11-25 09:30", "2024-11-25 10:00", status=BookingStatus.PENDING)
        store = JsonFileBookingStore(path)
        store.add(booking)

        store.update(booking.id, lambda current: current.with_status(BookingStatus.CANCELLED, EARLY_NOW.add(hours=1), "No show"))

        records = json.loads(path.read_text(encoding="utf-8"))
        assert records[0]["status"] == "cancelled"
        assert records[0]["cancellationReason"] == "No show"

    def test_missing_file_starts_empty(self, tmp_path):
        assert JsonFileBookingStore(tmp_path / "missing.json").list_all() == []

    def test_invalid_file_rejected(self, tmp_path):
        path = tmp_path / "bookings.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid booking ledger"):
            JsonFileBookingStore(path)

    def test_non_list_root_rejected(self, tmp_path):
        path = tmp_path / "bookings.json"
        path.write_text('{"id": "x"}', encoding="utf-8")

        with pytest.raises(ValueError, match="list at the root"):
            JsonFileBookingStore(path)

    def test_failed_write_leaves_store_unchanged(self, tmp_path):
        path = tmp_path / "bookings.json"
        booking = make_booking("2024-11-25 09:30", "2024-11-25 10:00", status=BookingStatus.PENDING)
        store = FailingJsonStore(path)
        store.add(booking)
        store.fail = True

        with pytest.raises(OSError):
            store.add(make_booking("2024-11-25 11:00", "2024-11-25 11:30", booking_id="second"))
        with pytest.raises(OSError):
            store.update(booking.id, lambda current: current.with_status(BookingStatus.CONFIRMED, EARLY_NOW.add(hours=1)))

        assert store.list_all() == [booking]
        assert JsonFileBookingStore(path).list_all() == [booking]

    def test_failed_write_does_not_block_the_slot(self, tmp_path, catalog, window_policy):
        store = FailingJsonStore(tmp_path / "bookings.json")
        store.fail = True
        ledger = BookingLedger(store=store, catalog=catalog, window_policy=window_policy)

        with pytest.raises(OSError):
            ledger.create_booking("pickup", local("2024-11-25 09:30"), CUSTOMER, EARLY_NOW)

        assert store.list_all() == []
        assert store.active_overlapping(local("2024-11-25 09:00"), local("2024-11-25 12:00")) == []

    def test_duplicate_ids_in_file_rejected(self, tmp_path):
        path = tmp_path / "bookings.json"
        record = make_booking("2024-11-25 09:30", "2024-11-25 10:00").to_dict()
        path.write_text(json.dumps([record, record]), encoding="utf-8")

        with pytest.raises(ValueError, match="more than once"):
            JsonFileBookingStore(path)


class TestSharedLedgerFile:
    """Several store instances, as separate CLI processes would open them, on one file."""

    def test_second_instance_sees_first_booking(self, tmp_path, catalog, window_policy):
        path = tmp_path / "bookings.json"
        first = BookingLedger(store=JsonFileBookingStore(path), catalog=catalog, window_policy=window_policy)
        second = BookingLedger(store=JsonFileBookingStore(path), catalog=catalog, window_policy=window_policy)

        booking = first.create_booking("pickup", local("2024-11-25 09:30"), CUSTOMER, EARLY_NOW)

        with pytest.raises(SlotNoLongerAvailable):
            second.create_booking("pickup", local("2024-11-25 09:30"), CUSTOMER, EARLY_NOW)

        assert [b.id for b in JsonFileBookingStore(path).list_all()] == [booking.id]

    def test_writes_from_both_instances_are_kept(self, tmp_path, catalog, window_policy):
        path = tmp_path / "bookings.json"
        first = BookingLedger(store=JsonFileBookingStore(path), catalog=catalog, window_policy=window_policy)
        second = BookingLedger(store=JsonFileBookingStore(path), catalog=catalog, window_policy=window_policy)

        morning = first.create_booking("pickup", local("2024-11-25 09:30"), CUSTOMER, EARLY_NOW)
        late = second.create_booking("consultation", local("2024-11-25 11:00"), CUSTOMER, EARLY_NOW)
        first.cancel(late.id, EARLY_NOW.add(minutes=1))

        stored = {b.id: b.status for b in JsonFileBookingStore(path).list_all()}
        assert stored == {morning.id: BookingStatus.PENDING, late.id: BookingStatus.CANCELLED}

    def test_concurrent_instances_admit_one_booking(self, tmp_path, catalog, window_policy):
        path = tmp_path / "bookings.json"
        ledgers = [
            BookingLedger(store=JsonFileBookingStore(path), catalog=catalog, window_policy=window_policy)
            for _ in range(4)
        ]
        barrier = threading.Barrier(len(ledgers))

        def attempt(ledger):
            barrier.wait()
            try:
                return ledger.create_booking("pickup", local("2024-11-25 09:30"), CUSTOMER, EARLY_NOW)
            except SlotNoLongerAvailable:
                return None

        with ThreadPoolExecutor(max_workers=len(ledgers)) as pool:
            results = list(pool.map(attempt, ledgers))

        winners = [booking for booking in results if booking is not None]
        assert len(winners) == 1
        assert [b.id for b in JsonFileBookingStore(path).list_all()] == [winners[0].id]
