"""
Database engines and session factories.

FastAPI handlers use the asyncpg engine through ``get_db``; Celery tasks open
``SyncSessionLocal`` sessions on the psycopg2 engine.
"""
from typing import AsyncGenerator
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from app.config import settings


def async_url(database_url: str) -> str:
    """Point a plain postgres URL at the asyncpg driver."""
    return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)


class Base(DeclarativeBase):
    """Declarative base for walletfolio tables."""
    pass


# Celery tasks
sync_engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=5
)

SyncSessionLocal = sessionmaker(bind=sync_engine, autoflush=False)

# API requests
async_engine = create_async_engine(
    async_url(settings.database_url),
    pool_pre_ping=True,
    pool_size=10,
    max_overflow=20
)

AsyncSessionLocal = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a session per request.

    Repositories commit their own writes; anything left pending when the
    handler raises is rolled back.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
