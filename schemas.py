from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, field_validator

from intervals import as_aware_utc
from models import BookingStatus


class UTCModel(BaseModel):
    """Stored timestamps are naive UTC; render them with an explicit offset."""

    @field_validator("*", mode="after")
    @classmethod
    def _attach_utc(cls, value):
        if isinstance(value, datetime):
            return as_aware_utc(value)
        return value


# Requests

class BookingCreate(BaseModel):
    room_id: int
    requester_id: int
    start_time: datetime
    end_time: datetime
    purpose: str


class ApproveRequest(BaseModel):
    reason: str | None = None


class RejectRequest(BaseModel):
    reason: str | None = None


# Responses

class BookingOut(UTCModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    room_id: int
    user_id: int
    start_time: datetime
    end_time: datetime
    purpose: str
    status: BookingStatus
    admin_reason: str | None = None
    created_at: datetime


class BookingListingOut(BookingOut):
    user_name: str | None = None
    room_name: str | None = None
    floor_number: int | None = None
    building_name: str | None = None


class BookingResponse(BaseModel):
    message: str
    booking: BookingOut


class IntervalOut(UTCModel):
    model_config = ConfigDict(from_attributes=True)

    start: datetime
    end: datetime


class RoomAvailabilityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    room_id: int
    room_name: str
    booked_intervals: List[IntervalOut]


class FloorAvailability(BaseModel):
    rooms: List[RoomAvailabilityOut]


class BookingSlotOut(UTCModel):
    model_config = ConfigDict(from_attributes=True)

    room_id: int
    status: BookingStatus
    start: datetime
    end: datetime


class GridCellOut(UTCModel):
    model_config = ConfigDict(from_attributes=True)

    start: datetime
    end: datetime
    status: str
    booking_id: int | None = None


class RoomGridOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    room_id: int
    room_name: str
    slots: List[GridCellOut]


class ConflictCheck(BaseModel):
    room_id: int
    conflict: bool
