"""
Tests for the storage adapters.
"""

import json

import pendulum
import pytest
from filelock import FileLock

from bookingengine.adapters.json_repository import JsonBookingRepository
from bookingengine.adapters.memory_repository import InMemoryBookingRepository
from bookingengine.domain.exceptions import ConflictError, ConflictKind, StorageUnavailableError
from bookingengine.domain.models import Booking, BookingStatus
from bookingengine.services.ledger import BookingLedger

from .support import FIXED_NOW, window


def _booking(booking_id: str, start: str, end: str, resource_id: str = "emp-1") -> Booking:
    return Booking(
        id=booking_id,
        resource_id=resource_id,
        subject_id="client-1",
        service_id="haircut",
        interval=window(start, end),
        status=BookingStatus.PENDING,
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
    )


class TestInMemoryBookingRepository:
    """Tests for InMemoryBookingRepository."""

    def test_insert_refuses_overlap(self):
        repository = InMemoryBookingRepository()

        assert repository.insert_if_no_conflict(_booking("b-1", "10:00", "11:00"))
        assert not repository.insert_if_no_conflict(_booking("b-2", "10:30", "11:30"))
        assert repository.insert_if_no_conflict(_booking("b-3", "11:00", "12:00"))
        assert repository.insert_if_no_conflict(_booking("b-4", "10:30", "11:30", resource_id="emp-2"))

    def test_insert_refuses_existing_id(self):
        repository = InMemoryBookingRepository()
        repository.insert_if_no_conflict(_booking("b-1", "10:00", "11:00"))

        assert not repository.insert_if_no_conflict(_booking("b-1", "14:00", "15:00"))

    def test_find_active_by_resource_and_range(self):
        repository = InMemoryBookingRepository([
            _booking("b-1", "09:00", "10:00"),
            _booking("b-2", "12:00", "13:00"),
            _booking("b-3", "09:00", "10:00", resource_id="emp-2"),
        ])
        repository.update_status("b-2", BookingStatus.CANCELLED, FIXED_NOW)

        found = repository.find_active_by_resource_and_range("emp-1", window("08:00", "18:00"))

        assert [b.id for b in found] == ["b-1"]

    def test_update_interval_refuses_overlap(self):
        repository = InMemoryBookingRepository([
            _booking("b-1", "09:00", "10:00"),
            _booking("b-2", "12:00", "13:00"),
        ])

        with pytest.raises(ConflictError) as exc_info:
            repository.update_interval("b-1", window("12:30", "13:30"), FIXED_NOW)

        assert exc_info.value.kind == ConflictKind.DOUBLE_BOOKED
        assert repository.get("b-1").interval == window("09:00", "10:00")
        moved = repository.update_interval("b-1", window("09:30", "10:30"), FIXED_NOW)
        assert moved.interval == window("09:30", "10:30")

    def test_update_missing_booking_returns_none(self):
        repository = InMemoryBookingRepository()

        assert repository.update_status("missing", BookingStatus.CONFIRMED, FIXED_NOW) is None
        assert repository.update_interval("missing", window("10:00", "11:00"), FIXED_NOW) is None


class TestJsonBookingRepository:
    """Tests for JsonBookingRepository."""

    def test_missing_file_is_empty(self, tmp_path):
        repository = JsonBookingRepository(tmp_path / "bookings.json")

        assert repository.list_bookings() == []

    def test_writes_survive_reload(self, tmp_path):
        path = tmp_path / "data" / "bookings.json"
        ledger = BookingLedger(repository=JsonBookingRepository(path))
        booking = ledger.reserve("emp-1", "client-1", "haircut", window("10:00", "11:00"))
        ledger.update_status(booking.id, BookingStatus.CONFIRMED)

        reloaded = JsonBookingRepository(path)

        stored = reloaded.get(booking.id)
        assert stored is not None
        assert stored.status == BookingStatus.CONFIRMED
        assert stored.interval == window("10:00", "11:00")
        assert json.loads(path.read_text(encoding="utf-8"))[0]["id"] == booking.id

    def test_reloaded_bookings_still_block(self, tmp_path):
        path = tmp_path / "bookings.json"
        BookingLedger(repository=JsonBookingRepository(path)).reserve(
            "emp-1", "client-1", "haircut", window("10:00", "11:00")
        )

        repository = JsonBookingRepository(path)

        assert not repository.insert_if_no_conflict(_booking("b-new", "10:30", "11:30"))

    def test_invalid_json_is_storage_error(self, tmp_path):
        path = tmp_path / "bookings.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(StorageUnavailableError, match="Invalid JSON"):
            JsonBookingRepository(path)

    def test_non_list_root_is_storage_error(self, tmp_path):
        path = tmp_path / "bookings.json"
        path.write_text(json.dumps({"bookings": []}), encoding="utf-8")

        with pytest.raises(StorageUnavailableError):
            JsonBookingRepository(path)

    def test_corrupt_record_is_storage_error(self, tmp_path):
        path = tmp_path / "bookings.json"
        path.write_text(json.dumps([{"id": "b-1"}]), encoding="utf-8")

        with pytest.raises(StorageUnavailableError, match="Corrupt booking record"):
            JsonBookingRepository(path)

    def test_failed_write_is_rolled_back(self, tmp_path):
        path = tmp_path / "bookings.json"
        repository = JsonBookingRepository(path)
        # A directory in place of the temp file makes the write fail
        (tmp_path / "bookings.json.tmp").mkdir()

        with pytest.raises(StorageUnavailableError, match="Cannot write bookings"):
            repository.insert_if_no_conflict(_booking("b-1", "10:00", "11:00"))

        assert repository.get("b-1") is None
        assert not path.exists()

    def test_timestamps_keep_their_instant(self, tmp_path):
        path = tmp_path / "bookings.json"
        repository = JsonBookingRepository(path)
        repository.insert_if_no_conflict(_booking("b-1", "10:00", "11:00"))

        stored = JsonBookingRepository(path).get("b-1")

        assert stored.interval.start == pendulum.parse("2024-11-25T09:00:00Z")
        assert stored.created_at == FIXED_NOW

    def test_unreadable_directory_is_storage_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")

        with pytest.raises(StorageUnavailableError):
            JsonBookingRepository(blocker / "bookings.json")

    def test_held_lock_times_out_as_storage_error(self, tmp_path):
        path = tmp_path / "bookings.json"
        repository = JsonBookingRepository(path, lock_timeout=0.1)

        with FileLock(f"{path}.lock"):
            with pytest.raises(StorageUnavailableError, match="Timed out") as exc_info:
                repository.list_bookings()

        assert exc_info.value.retryable


class TestSharedJsonFile:
    """Two repositories (as two CLI processes would open) on one file."""

    def test_overlap_from_other_instance_is_refused(self, tmp_path):
        path = tmp_path / "bookings.json"
        first = BookingLedger(repository=JsonBookingRepository(path))
        second = BookingLedger(repository=JsonBookingRepository(path))

        kept = first.reserve("emp-1", "client-1", "haircut", window("10:00", "11:00"))

        with pytest.raises(ConflictError) as exc_info:
            second.reserve("emp-1", "client-2", "haircut", window("10:30", "11:30"))

        assert exc_info.value.kind == ConflictKind.DOUBLE_BOOKED
        records = json.loads(path.read_text(encoding="utf-8"))
        assert [r["id"] for r in records] == [kept.id]

    def test_stale_instance_cannot_insert_overlap(self, tmp_path):
        path = tmp_path / "bookings.json"
        first = JsonBookingRepository(path)
        second = JsonBookingRepository(path)

        assert first.insert_if_no_conflict(_booking("b-1", "10:00", "11:00"))
        assert not second.insert_if_no_conflict(_booking("b-2", "10:30", "11:30"))

    def test_writes_from_both_instances_are_kept(self, tmp_path):
        path = tmp_path / "bookings.json"
        first = BookingLedger(repository=JsonBookingRepository(path))
        second = BookingLedger(repository=JsonBookingRepository(path))

        a = first.reserve("emp-1", "client-1", "haircut", window("10:00", "11:00"))
        b = second.reserve("emp-1", "client-2", "haircut", window("11:00", "12:00"))
        first.cancel(a.id, "client-1")
        second.update_status(b.id, BookingStatus.CONFIRMED)

        stored = {r["id"]: r["status"] for r in json.loads(path.read_text(encoding="utf-8"))}
        assert stored == {a.id: "CANCELLED", b.id: "CONFIRMED"}

    def test_reschedule_sees_other_instance(self, tmp_path):
        path = tmp_path / "bookings.json"
        first = BookingLedger(repository=JsonBookingRepository(path))
        second = BookingLedger(repository=JsonBookingRepository(path))

        moving = first.reserve("emp-1", "client-1", "haircut", window("09:00", "10:00"))
        second.reserve("emp-1", "client-2", "haircut", window("14:00", "15:00"))

        with pytest.raises(ConflictError):
            first.reschedule(moving.id, window("14:30", "15:30"))

        assert JsonBookingRepository(path).get(moving.id).interval == window("09:00", "10:00")
