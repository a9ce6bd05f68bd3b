from datetime import datetime

import pytest
from sqlalchemy import DateTime
from sqlalchemy.exc import OperationalError

from errors import ConflictError, NotFoundError, StorageError
from intervals import Interval
from models import Booking, BookingStatus
from repository import BookingRepository


def at(hour, minute=0):
    return datetime(2024, 6, 1, hour, minute)


class BrokenSession:
    """Session double whose database has gone away."""

    def __init__(self):
        self.rolled_back = False

    async def execute(self, statement):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    async def commit(self):
        raise OperationalError("COMMIT", {}, Exception("connection refused"))

    async def rollback(self):
        self.rolled_back = True


class TestStorageFailures:
    async def test_reads_raise_storage_error(self):
        repo = BookingRepository(BrokenSession())
        with pytest.raises(StorageError):
            await repo.find_booking_by_id(1)

    async def test_listing_raises_storage_error(self):
        repo = BookingRepository(BrokenSession())
        with pytest.raises(StorageError):
            await repo.list_admin_bookings()

    async def test_failed_commit_rolls_back(self):
        session = BrokenSession()
        repo = BookingRepository(session)

        with pytest.raises(StorageError):
            async with repo.transaction():
                pass
        assert session.rolled_back

    async def test_booking_errors_pass_through(self):
        session = BrokenSession()
        repo = BookingRepository(session)

        with pytest.raises(ConflictError):
            async with repo.transaction():
                raise ConflictError("taken")
        assert session.rolled_back


class TestQueries:
    async def test_active_bookings_for_room(self, repo, seed, make_booking):
        kept = await make_booking(seed.orion, at(9), at(10))
        await make_booking(seed.orion, at(11), at(12), status=BookingStatus.REJECTED)
        other = await make_booking(seed.orion, at(13), at(14), status=BookingStatus.PENDING)

        everything = await repo.find_active_bookings_for_room(seed.orion.id)
        assert [b.id for b in everything] == [kept.id, other.id]

        windowed = await repo.find_active_bookings_for_room(seed.orion.id, window=Interval(at(10), at(13)))
        assert windowed == []

        excluded = await repo.find_active_bookings_for_room(seed.orion.id, exclude_id=kept.id)
        assert [b.id for b in excluded] == [other.id]

    async def test_rooms_for_floor_by_name(self, repo, seed):
        rooms = await repo.list_rooms_for_floor(seed.floor.id)
        assert [r.name for r in rooms] == ["Atlas", "Orion"]
        assert [r.name for r in await repo.list_all_rooms()] == ["Atlas", "Orion", "Vega"]

    async def test_lock_unknown_room(self, repo, seed):
        with pytest.raises(NotFoundError):
            await repo.lock_room(999)

    async def test_update_unknown_booking(self, repo, seed):
        with pytest.raises(NotFoundError):
            await repo.update_booking_status(999, BookingStatus.APPROVED)


class TestNaiveUtcTimestamps:
    @pytest.mark.parametrize("column", ["start_time", "end_time", "created_at"])
    def test_columns_are_plain_datetime(self, column):
        column_type = Booking.__table__.c[column].type
        assert type(column_type) is DateTime
        assert column_type.timezone is False

    async def test_insert_and_window_query(self, repo, seed):
        async with repo.transaction():
            booking = await repo.insert_booking(seed.orion.id, seed.alice.id, at(9), at(10), "Sync")
        booking_id = booking.id

        found = await repo.find_active_bookings_for_room(seed.orion.id, window=Interval(at(9, 30), at(9, 45)))

        assert [b.id for b in found] == [booking_id]
        assert found[0].start_time == at(9)
        assert found[0].start_time.tzinfo is None
        assert found[0].created_at.tzinfo is None
