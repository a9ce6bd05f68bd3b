"""Conflict checking and the pending -> approved/rejected lifecycle."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from intervals import Interval
from models import ACTIVE_STATUSES, Booking, BookingStatus
from repository import BookingRepository

logger = logging.getLogger(__name__)


@dataclass
class BookingRequest:
    room_id: int
    requester_id: int
    start_time: datetime  # naive UTC
    end_time: datetime  # naive UTC
    purpose: str


async def has_conflict(
    repo: BookingRepository,
    room_id: int,
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[int] = None,
    statuses: Sequence[BookingStatus] = ACTIVE_STATUSES,
) -> bool:
    """True if an active booking of the room overlaps ``[start, end)``.

    The caller guarantees ``start < end``.
    """
    overlapping = await repo.find_active_bookings_for_room(
        room_id,
        window=Interval(start, end),
        exclude_id=exclude_booking_id,
        statuses=statuses,
    )
    return bool(overlapping)


def _clean_reason(reason: Optional[str]) -> Optional[str]:
    if reason is None:
        return None
    return reason.strip() or None


def _blocking_statuses(allow_overlapping_pending: bool) -> Sequence[BookingStatus]:
    if allow_overlapping_pending:
        return (BookingStatus.APPROVED,)
    return ACTIVE_STATUSES


async def create_booking(
    repo: BookingRepository,
    request: BookingRequest,
    allow_overlapping_pending: bool = False,
) -> Booking:
    """Validate and store a new pending booking.

    With ``allow_overlapping_pending`` only approved bookings block the
    request, and approval checks against approved bookings only.
    """
    if not Interval(request.start_time, request.end_time).is_valid:
        raise ValidationError("Start time must be before end time")
    purpose = (request.purpose or "").strip()
    if not purpose:
        raise ValidationError("Purpose is required")

    if await repo.get_user(request.requester_id) is None:
        raise NotFoundError(f"User {request.requester_id} not found")

    statuses = _blocking_statuses(allow_overlapping_pending)

    async with repo.transaction():
        await repo.lock_room(request.room_id)
        if await has_conflict(repo, request.room_id, request.start_time, request.end_time, statuses=statuses):
            logger.warning(
                "Booking request for room %s rejected: %s - %s overlaps an existing booking",
                request.room_id, request.start_time, request.end_time,
            )
            raise ConflictError("Room is already booked for this time slot. Please choose a different time.")

        booking = await repo.insert_booking(
            room_id=request.room_id,
            user_id=request.requester_id,
            start_time=request.start_time,
            end_time=request.end_time,
            purpose=purpose,
        )

    logger.info("Booking %s created for room %s", booking.id, booking.room_id)
    return booking


async def _pending_booking(repo: BookingRepository, booking_id: int) -> Booking:
    booking = await repo.find_booking_by_id(booking_id)
    if booking is None:
        raise NotFoundError(f"Booking {booking_id} not found")
    if booking.status != BookingStatus.PENDING:
        raise InvalidStateError(f"Booking {booking_id} is already {booking.status.value}")
    return booking


async def approve_booking(
    repo: BookingRepository,
    booking_id: int,
    reason: Optional[str] = None,
    allow_overlapping_pending: bool = False,
) -> Booking:
    """Move a pending booking to approved after re-checking the room.

    Under ``allow_overlapping_pending`` other pending requests do not block
    approval; the first one approved wins and the rest then conflict.
    """
    statuses = _blocking_statuses(allow_overlapping_pending)
    async with repo.transaction():
        booking = await _pending_booking(repo, booking_id)
        await repo.lock_room(booking.room_id)
        # Re-read under the lock: a concurrent approval may have won
        await repo.refresh(booking)
        if booking.status != BookingStatus.PENDING:
            raise InvalidStateError(f"Booking {booking_id} is already {booking.status.value}")

        if await has_conflict(
            repo, booking.room_id, booking.start_time, booking.end_time,
            exclude_booking_id=booking.id, statuses=statuses,
        ):
            logger.warning("Approval of booking %s refused: room %s is taken", booking.id, booking.room_id)
            raise ConflictError("Cannot approve: Room is already booked for this time slot")

        booking = await repo.update_booking_status(booking.id, BookingStatus.APPROVED, _clean_reason(reason))

    logger.info("Booking %s approved", booking.id)
    return booking


async def reject_booking(repo: BookingRepository, booking_id: int, reason: str) -> Booking:
    reason = _clean_reason(reason)
    if not reason:
        raise ValidationError("Reason is required for rejection")

    async with repo.transaction():
        booking = await _pending_booking(repo, booking_id)
        booking = await repo.update_booking_status(booking.id, BookingStatus.REJECTED, reason)

    logger.info("Booking %s rejected: %s", booking.id, reason)
    return booking
