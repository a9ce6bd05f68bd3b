import os
from typing import AsyncIterator, Optional

from fastapi import Depends
from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from config import settings
from repository import BookingRepository

_engine: Optional[AsyncEngine] = None


def get_engine() -> AsyncEngine:
    """Create the async engine on first use from DATABASE_URL."""
    global _engine
    if _engine is None:
        database_url = os.environ.get("DATABASE_URL")
        if not database_url:
            raise ValueError("DATABASE_URL is not set. Please check your .env file.")
        _engine = create_async_engine(database_url, echo=settings.sql_echo, future=True)
    return _engine


def session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: Optional[AsyncEngine] = None):
    engine = engine or get_engine()
    async with engine.begin() as conn:
        # This creates the tables if they don't exist
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session() -> AsyncIterator[AsyncSession]:
    async_session = session_factory(get_engine())
    async with async_session() as session:
        yield session


def get_repository(session: AsyncSession = Depends(get_session)) -> BookingRepository:
    return BookingRepository(session)
