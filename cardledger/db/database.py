"""
Database engine and session management.

Provides the async SQLAlchemy engine and session factory backing the
SQL ledger store.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cardledger.config import settings
from cardledger.models.db import Base

# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

# Session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@asynccontextmanager
async def get_session(
    session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a session that commits on success and rolls back on any error.

    Usage:
        async with get_session() as session:
            store = SqlLedgerStore(session)
            ...
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """
    Initialize database tables.

    Creates all tables defined in the ORM models.
    Should be called once before the first invocation.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

