from datetime import date, datetime, time
from typing import List, Optional

from fastapi import FastAPI, Depends, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import availability
import booking_service
from booking_service import BookingRequest
from config import configure_logging, settings
from database import get_repository, init_db
from errors import BookingError, NotFoundError, ValidationError
from intervals import to_utc
from models import BookingStatus
from repository import BookingRepository
from schemas import (
    ApproveRequest,
    BookingCreate,
    BookingListingOut,
    BookingOut,
    BookingResponse,
    BookingSlotOut,
    ConflictCheck,
    FloorAvailability,
    RejectRequest,
    RoomAvailabilityOut,
    RoomGridOut,
)

configure_logging(settings)

app = FastAPI(title="Room Booking System")


@app.on_event("startup")
async def on_startup():
    await init_db()


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "code": exc.code})


def _listing_out(listing) -> BookingListingOut:
    return BookingListingOut(
        **BookingOut.model_validate(listing.booking).model_dump(),
        user_name=listing.user_name,
        room_name=listing.room_name,
        floor_number=listing.floor_number,
        building_name=listing.building_name,
    )


# --- Bookings ---

@app.post("/api/bookings", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    repo: BookingRepository = Depends(get_repository),
):
    request = BookingRequest(
        room_id=payload.room_id,
        requester_id=payload.requester_id,
        start_time=to_utc(payload.start_time, settings.timezone),
        end_time=to_utc(payload.end_time, settings.timezone),
        purpose=payload.purpose,
    )
    booking = await booking_service.create_booking(
        repo, request, allow_overlapping_pending=settings.allow_overlapping_pending
    )
    return BookingResponse(message="Booking request submitted successfully", booking=BookingOut.model_validate(booking))


@app.get("/api/bookings", response_model=List[BookingListingOut])
async def list_bookings(
    room_id: Optional[int] = None,
    booking_status: Optional[BookingStatus] = Query(default=None, alias="status"),
    repo: BookingRepository = Depends(get_repository),
):
    # Per-room listing for calendars, otherwise the admin overview
    if room_id is not None:
        bookings = await repo.list_bookings(room_id=room_id, status=booking_status)
        return [BookingListingOut.model_validate(b) for b in bookings]
    listings = await repo.list_admin_bookings(status=booking_status)
    return [_listing_out(listing) for listing in listings]


@app.get("/api/bookings/my", response_model=List[BookingListingOut])
async def my_bookings(user_id: int, repo: BookingRepository = Depends(get_repository)):
    listings = await repo.list_user_bookings(user_id)
    return [_listing_out(listing) for listing in listings]


@app.put("/api/bookings/{booking_id}/approve", response_model=BookingResponse)
async def approve_booking(
    booking_id: int,
    payload: Optional[ApproveRequest] = None,
    repo: BookingRepository = Depends(get_repository),
):
    reason = payload.reason if payload else None
    booking = await booking_service.approve_booking(
        repo, booking_id, reason, allow_overlapping_pending=settings.allow_overlapping_pending
    )
    return BookingResponse(message="Booking approved successfully", booking=BookingOut.model_validate(booking))


@app.put("/api/bookings/{booking_id}/reject", response_model=BookingResponse)
async def reject_booking(
    booking_id: int,
    payload: RejectRequest,
    repo: BookingRepository = Depends(get_repository),
):
    booking = await booking_service.reject_booking(repo, booking_id, payload.reason)
    return BookingResponse(message="Booking rejected successfully", booking=BookingOut.model_validate(booking))


# --- Availability ---

@app.get("/api/bookings/availability", response_model=FloorAvailability)
async def get_floor_availability(
    floor_id: int,
    target_date: date = Query(alias="date"),
    repo: BookingRepository = Depends(get_repository),
):
    rooms = await availability.floor_availability(repo, floor_id, target_date, settings.timezone)
    return FloorAvailability(rooms=[RoomAvailabilityOut.model_validate(r) for r in rooms])


@app.get("/api/bookings/availability/all", response_model=List[BookingSlotOut])
async def get_slot_status(
    target_date: date = Query(alias="date"),
    slot_time: time = Query(alias="time"),
    repo: BookingRepository = Depends(get_repository),
):
    slots = await availability.slot_status(repo, target_date, slot_time, settings.timezone)
    return [BookingSlotOut.model_validate(s) for s in slots]


@app.get("/api/bookings/availability/grid", response_model=List[RoomGridOut])
async def get_floor_grid(
    floor_id: int,
    target_date: date = Query(alias="date"),
    repo: BookingRepository = Depends(get_repository),
):
    grid = await availability.floor_grid(
        repo,
        floor_id,
        target_date,
        settings.timezone,
        opening=settings.office_opening,
        closing=settings.office_closing,
    )
    return [RoomGridOut.model_validate(room) for room in grid]


@app.get("/api/rooms/{room_id}/conflicts", response_model=ConflictCheck)
async def check_room_conflict(
    room_id: int,
    start: datetime,
    end: datetime,
    exclude_id: Optional[int] = None,
    repo: BookingRepository = Depends(get_repository),
):
    start, end = to_utc(start, settings.timezone), to_utc(end, settings.timezone)
    if start >= end:
        raise ValidationError("Start time must be before end time")
    if await repo.get_room(room_id) is None:
        raise NotFoundError(f"Room {room_id} not found")
    conflict = await booking_service.has_conflict(repo, room_id, start, end, exclude_booking_id=exclude_id)
    return ConflictCheck(room_id=room_id, conflict=conflict)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
