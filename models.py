import enum
from typing import Optional
from pydantic import NaiveDatetime
from sqlmodel import SQLModel, Field
from sqlalchemy import CheckConstraint, Column, DateTime, Enum as SAEnum

from intervals import Interval, utcnow


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Statuses that take part in conflict checks and availability
ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.APPROVED)


class Building(SQLModel, table=True):
    __tablename__ = "buildings"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: Optional[str] = None


class Floor(SQLModel, table=True):
    __tablename__ = "floors"

    id: Optional[int] = Field(default=None, primary_key=True)
    building_id: int = Field(foreign_key="buildings.id", index=True)
    floor_number: int


class Room(SQLModel, table=True):
    __tablename__ = "rooms"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    floor_id: int = Field(foreign_key="floors.id", index=True)
    capacity: int = Field(default=1, ge=1)
    description: Optional[str] = None


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(unique=True, index=True)


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"
    __table_args__ = (
        # Database-level guard for the start < end invariant
        CheckConstraint("start_time < end_time", name="ck_booking_interval"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    room_id: int = Field(foreign_key="rooms.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    # Timestamps are naive UTC; plain DateTime columns keep them naive
    start_time: NaiveDatetime = Field(sa_column=Column(DateTime(), nullable=False, index=True))
    end_time: NaiveDatetime = Field(sa_column=Column(DateTime(), nullable=False))
    purpose: str
    status: BookingStatus = Field(
        default=BookingStatus.PENDING,
        sa_column=Column(
            SAEnum(
                BookingStatus,
                name="booking_status",
                values_callable=lambda statuses: [s.value for s in statuses],
            ),
            nullable=False,
            index=True,
        ),
    )
    admin_reason: Optional[str] = None
    created_at: NaiveDatetime = Field(default_factory=utcnow, sa_column=Column(DateTime(), nullable=False))

    @property
    def interval(self) -> Interval:
        return Interval(self.start_time, self.end_time)
