# app/core/database.py
"""
Async engine and session factory.

One session serves one request or one Celery task. Services roll back on
failure, which expires everything loaded through that session, so sessions
are never shared between concurrent callers.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession
from app.core.config import settings

engine = create_async_engine(
    settings.DATABASE_URL,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_timeout=settings.DB_POOL_TIMEOUT,
    pool_recycle=3600,      # Recycle connections every hour
    echo=settings.DEBUG,
    pool_pre_ping=True,
)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    # services keep using documents and balances after commit
    return async_sessionmaker(bind=bind, class_=AsyncSession, expire_on_commit=False)


async_session_maker = build_session_factory(engine)


async def get_async_session() -> AsyncIterator[AsyncSession]:
    async with async_session_maker() as session:
        yield session


@asynccontextmanager
async def unit_of_work(factory: Optional[async_sessionmaker] = None) -> AsyncIterator[AsyncSession]:
    """Session for a single request or task; uncommitted work is rolled back if the block raises"""
    factory = factory or async_session_maker
    async with factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
