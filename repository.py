import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, List, NamedTuple, Optional, Sequence

from sqlalchemy import select as sa_select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from errors import BookingError, NotFoundError, StorageError
from intervals import Interval, overlap_clause
from models import ACTIVE_STATUSES, Booking, BookingStatus, Building, Floor, Room, User

logger = logging.getLogger(__name__)


class BookingListing(NamedTuple):
    booking: Booking
    user_name: Optional[str]
    room_name: str
    floor_number: int
    building_name: str


class BookingRepository:
    """Booking store over a single AsyncSession.

    Reads may run on their own. Writes go through :meth:`transaction` so the
    conflict check and the insert/update that follows commit together.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # --- plumbing -------------------------------------------------------

    async def _all(self, statement) -> list:
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as exc:
            logger.exception("Booking store query failed")
            raise StorageError("Storage failure while reading bookings") from exc
        return list(result.scalars().all())

    async def _first(self, statement):
        rows = await self._all(statement.limit(1))
        return rows[0] if rows else None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["BookingRepository"]:
        try:
            yield self
            await self.session.commit()
        except BookingError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("Booking transaction failed")
            raise StorageError("Storage failure while saving booking") from exc
        except Exception:
            await self.session.rollback()
            raise

    async def refresh(self, booking: Booking) -> None:
        try:
            await self.session.refresh(booking)
        except SQLAlchemyError as exc:
            logger.exception("Booking store refresh failed")
            raise StorageError("Storage failure while reading bookings") from exc

    # --- lookups --------------------------------------------------------

    async def find_booking_by_id(self, booking_id: int) -> Optional[Booking]:
        return await self._first(select(Booking).where(Booking.id == booking_id))

    async def get_room(self, room_id: int) -> Optional[Room]:
        return await self._first(select(Room).where(Room.id == room_id))

    async def get_floor(self, floor_id: int) -> Optional[Floor]:
        return await self._first(select(Floor).where(Floor.id == floor_id))

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self._first(select(User).where(User.id == user_id))

    async def lock_room(self, room_id: int) -> Room:
        """Row-lock the room so writers on the same room run one at a time.

        SQLite has no FOR UPDATE; its single writer gives the same effect.
        """
        room = await self._first(select(Room).where(Room.id == room_id).with_for_update())
        if room is None:
            raise NotFoundError(f"Room {room_id} not found")
        return room

    async def list_rooms_for_floor(self, floor_id: int) -> List[Room]:
        return await self._all(select(Room).where(Room.floor_id == floor_id).order_by(Room.name, Room.id))

    async def list_all_rooms(self) -> List[Room]:
        return await self._all(select(Room).order_by(Room.name, Room.id))

    # --- active bookings ------------------------------------------------

    async def find_active_bookings_for_room(
        self,
        room_id: int,
        window: Optional[Interval] = None,
        exclude_id: Optional[int] = None,
        statuses: Sequence[BookingStatus] = ACTIVE_STATUSES,
    ) -> List[Booking]:
        statement = select(Booking).where(
            Booking.room_id == room_id,
            Booking.status.in_(statuses),
        )
        if window is not None:
            statement = statement.where(overlap_clause(Booking.start_time, Booking.end_time, window))
        if exclude_id is not None:
            statement = statement.where(Booking.id != exclude_id)
        return await self._all(statement.order_by(Booking.start_time, Booking.id))

    async def find_active_bookings_in_window(
        self, window: Interval, room_ids: Optional[Sequence[int]] = None
    ) -> List[Booking]:
        statement = select(Booking).where(
            Booking.status.in_(ACTIVE_STATUSES),
            overlap_clause(Booking.start_time, Booking.end_time, window),
        )
        if room_ids is not None:
            statement = statement.where(Booking.room_id.in_(list(room_ids)))
        return await self._all(statement.order_by(Booking.start_time, Booking.room_id, Booking.id))

    # --- writes ---------------------------------------------------------

    async def insert_booking(
        self,
        room_id: int,
        user_id: int,
        start_time: datetime,
        end_time: datetime,
        purpose: str,
    ) -> Booking:
        booking = Booking(
            room_id=room_id,
            user_id=user_id,
            start_time=start_time,
            end_time=end_time,
            purpose=purpose,
            status=BookingStatus.PENDING,
        )
        self.session.add(booking)
        # Flush so the caller sees the generated id before commit
        await self.session.flush()
        return booking

    async def update_booking_status(
        self, booking_id: int, status: BookingStatus, reason: Optional[str] = None
    ) -> Booking:
        booking = await self.find_booking_by_id(booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        booking.status = status
        booking.admin_reason = reason
        self.session.add(booking)
        await self.session.flush()
        return booking

    # --- listings -------------------------------------------------------

    async def list_bookings(
        self, room_id: Optional[int] = None, status: Optional[BookingStatus] = None
    ) -> List[Booking]:
        statement = select(Booking)
        if room_id is not None:
            statement = statement.where(Booking.room_id == room_id)
        if status is not None:
            statement = statement.where(Booking.status == status)
        return await self._all(statement.order_by(Booking.start_time, Booking.id))

    async def _listings(self, statement) -> List[BookingListing]:
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as exc:
            logger.exception("Booking listing query failed")
            raise StorageError("Storage failure while reading bookings") from exc
        return [BookingListing(*row) for row in result.all()]

    def _listing_statement(self):
        return (
            sa_select(Booking, User.name, Room.name, Floor.floor_number, Building.name)
            .join(User, Booking.user_id == User.id)
            .join(Room, Booking.room_id == Room.id)
            .join(Floor, Room.floor_id == Floor.id)
            .join(Building, Floor.building_id == Building.id)
        )

    async def list_admin_bookings(self, status: Optional[BookingStatus] = None) -> List[BookingListing]:
        statement = self._listing_statement()
        if status is not None:
            statement = statement.where(Booking.status == status)
        return await self._listings(statement.order_by(Booking.created_at.desc(), Booking.id.desc()))

    async def list_user_bookings(self, user_id: int) -> List[BookingListing]:
        statement = self._listing_statement().where(Booking.user_id == user_id)
        return await self._listings(statement.order_by(Booking.created_at.desc(), Booking.id.desc()))
