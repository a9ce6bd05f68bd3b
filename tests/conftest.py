from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

from database import get_session, init_db, session_factory
from main import app
from models import Booking, BookingStatus, Building, Floor, Room, User
from repository import BookingRepository


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'bookings.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    async with session_factory(engine)() as session:
        yield session


@pytest.fixture
def repo(session):
    return BookingRepository(session)


@pytest_asyncio.fixture
async def seed(engine):
    """One building, two floors, three rooms and two users.

    Seeded through its own session so the objects stay readable after the
    session under test rolls back.
    """
    async with session_factory(engine)() as session:
        return await _seed(session)


async def _seed(session):
    building = Building(name="Main")
    session.add(building)
    await session.flush()

    first = Floor(building_id=building.id, floor_number=1)
    second = Floor(building_id=building.id, floor_number=2)
    session.add_all([first, second])
    await session.flush()

    # Inserted out of name order on purpose
    orion = Room(name="Orion", floor_id=first.id, capacity=8)
    atlas = Room(name="Atlas", floor_id=first.id, capacity=4)
    vega = Room(name="Vega", floor_id=second.id, capacity=12)
    alice = User(name="Alice", email="alice@example.com")
    bob = User(name="Bob", email="bob@example.com")
    session.add_all([orion, atlas, vega, alice, bob])
    await session.commit()

    return SimpleNamespace(
        building=building,
        floor=first,
        other_floor=second,
        orion=orion,
        atlas=atlas,
        vega=vega,
        alice=alice,
        bob=bob,
    )


@pytest.fixture
def make_booking(engine, seed):
    """Insert a booking directly, bypassing the lifecycle checks."""

    async def _make(room, start, end, status=BookingStatus.APPROVED, user=None, purpose="Standup"):
        booking = Booking(
            room_id=room.id,
            user_id=(user or seed.alice).id,
            start_time=start,
            end_time=end,
            purpose=purpose,
            status=status,
        )
        async with session_factory(engine)() as session:
            session.add(booking)
            await session.commit()
        return booking

    return _make


@pytest_asyncio.fixture
async def client(engine, seed):
    async def override_session():
        async with session_factory(engine)() as s:
            yield s

    app.dependency_overrides[get_session] = override_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
