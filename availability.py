"""Read-only availability views used by the calendar and grid screens."""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, time, tzinfo
from typing import Dict, List, Optional

from errors import NotFoundError, ValidationError
from intervals import SLOT_MINUTES, Interval, day_window, local_range, slot_window
from models import Booking, BookingStatus
from repository import BookingRepository

AVAILABLE = "available"


@dataclass
class RoomAvailability:
    room_id: int
    room_name: str
    booked_intervals: List[Interval] = field(default_factory=list)


@dataclass
class BookingSlot:
    room_id: int
    status: BookingStatus
    start: datetime
    end: datetime


@dataclass
class GridCell:
    start: datetime
    end: datetime
    status: str
    booking_id: Optional[int] = None


@dataclass
class RoomGrid:
    room_id: int
    room_name: str
    slots: List[GridCell] = field(default_factory=list)


async def _floor_bookings(repo: BookingRepository, floor_id: int, window: Interval):
    if await repo.get_floor(floor_id) is None:
        raise NotFoundError(f"Floor {floor_id} not found")

    rooms = await repo.list_rooms_for_floor(floor_id)
    if not rooms:
        return rooms, {}

    # Single query for the whole floor, then group by room
    bookings = await repo.find_active_bookings_in_window(window, room_ids=[r.id for r in rooms])
    by_room: Dict[int, List[Booking]] = defaultdict(list)
    for booking in bookings:
        by_room[booking.room_id].append(booking)
    return rooms, by_room


async def floor_availability(
    repo: BookingRepository, floor_id: int, day: date, tz: tzinfo
) -> List[RoomAvailability]:
    """Booked intervals of every room on the floor for one local day.

    Every room gets an entry, ordered by room name, even when it is free.
    """
    rooms, by_room = await _floor_bookings(repo, floor_id, day_window(day, tz))
    return [
        RoomAvailability(
            room_id=room.id,
            room_name=room.name,
            booked_intervals=[
                b.interval for b in sorted(by_room.get(room.id, []), key=lambda b: b.start_time)
            ],
        )
        for room in rooms
    ]


async def slot_status(repo: BookingRepository, day: date, at: time, tz: tzinfo) -> List[BookingSlot]:
    """Active bookings across all rooms touching the 15 minute slot at ``day`` ``at``."""
    window = slot_window(day, at, tz)
    bookings = await repo.find_active_bookings_in_window(window)
    return [
        BookingSlot(room_id=b.room_id, status=b.status, start=b.start_time, end=b.end_time)
        for b in bookings
    ]


def _cell_status(slot: Interval, bookings: List[Booking]):
    hit = None
    for booking in bookings:
        if not slot.overlaps(booking.interval):
            continue
        if booking.status == BookingStatus.APPROVED:
            return booking.status.value, booking.id
        hit = hit or booking
    if hit is not None:
        return hit.status.value, hit.id
    return AVAILABLE, None


async def floor_grid(
    repo: BookingRepository,
    floor_id: int,
    day: date,
    tz: tzinfo,
    opening: time = time(9, 0),
    closing: time = time(18, 0),
) -> List[RoomGrid]:
    """Per-room grid of 15 minute slots between opening and closing time."""
    if opening >= closing:
        raise ValidationError("Opening time must be before closing time")

    hours = local_range(day, opening, closing, tz)
    rooms, by_room = await _floor_bookings(repo, floor_id, hours)
    slots = list(hours.slots(SLOT_MINUTES))

    grid = []
    for room in rooms:
        bookings = by_room.get(room.id, [])
        cells = []
        for slot in slots:
            status, booking_id = _cell_status(slot, bookings)
            cells.append(GridCell(start=slot.start, end=slot.end, status=status, booking_id=booking_id))
        grid.append(RoomGrid(room_id=room.id, room_name=room.name, slots=cells))
    return grid
