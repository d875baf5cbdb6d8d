"""Tests for derived cleaner occupancy."""

import pytest

from booking_engine.schemas.booking_schema import BookingStatus, Cleaner, CleanerStatus
from booking_engine.tools.cleaners import assignment_counts, derive_cleaner_status, filter_cleaners
from tests.conftest import make_record


@pytest.fixture
def cleaners():
    return [
        Cleaner(id="c-1", first_name="Ana", last_name="Lopez"),
        Cleaner(id="c-2", first_name="Ben", last_name="Okafor"),
        Cleaner(id="c-3", first_name="Cy", last_name="Moss", status="Inactive"),
    ]


@pytest.fixture
def bookings():
    return [
        make_record("a", status=BookingStatus.ASSIGNED, cleaner_id="c-1"),
        make_record("b", status=BookingStatus.PAID, cleaner_id="c-1"),
        make_record("c", status=BookingStatus.COMPLETED, cleaner_id="c-2"),
        make_record("d", status=BookingStatus.CANCELLED, cleaner_id="c-2"),
        make_record("e", status=BookingStatus.ASSIGNED, cleaner_id="c-3"),
        make_record("f", status=BookingStatus.PENDING),
    ]


class TestAssignmentCounts:
    def test_counts_only_active(self, bookings):
        counts = assignment_counts(bookings)
        assert counts["c-1"] == 2
        assert counts["c-2"] == 0
        assert counts["c-3"] == 1


class TestDerivedStatus:
    def test_occupied_with_active_assignment(self, cleaners, bookings):
        assert derive_cleaner_status(cleaners[0], bookings) == CleanerStatus.OCCUPIED

    def test_finished_assignments_leave_cleaner_available(self, cleaners, bookings):
        assert derive_cleaner_status(cleaners[1], bookings) == CleanerStatus.AVAILABLE

    def test_inactive_wins(self, cleaners, bookings):
        assert cleaners[2].status == CleanerStatus.INACTIVE
        assert derive_cleaner_status(cleaners[2], bookings) == CleanerStatus.INACTIVE


class TestFilter:
    def test_all(self, cleaners, bookings):
        assert len(filter_cleaners(cleaners, bookings)) == 3

    def test_occupied(self, cleaners, bookings):
        assert [c.id for c in filter_cleaners(cleaners, bookings, "occupied")] == ["c-1"]

    def test_available(self, cleaners, bookings):
        assert [c.id for c in filter_cleaners(cleaners, bookings, "available")] == ["c-2"]

    def test_unknown_filter(self, cleaners, bookings):
        with pytest.raises(ValueError):
            filter_cleaners(cleaners, bookings, "busy")
