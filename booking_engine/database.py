"""Async database engine, session factory and declarative base"""

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from booking_engine.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_pre_ping=True,
)

SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp; all stored datetimes are naive UTC"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


async def get_db():
    """FastAPI dependency yielding a session per request"""
    async with SessionLocal() as session:
        yield session
