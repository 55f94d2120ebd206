"""Async engine and session wiring for the engagement service.

Provides:
- Base: DeclarativeBase for all ORM models
- engine / async_session_factory: built once from settings
- get_async_session: FastAPI dependency, one transaction per request
"""

import logging
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from src.config.settings import LogLevel, get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base shared by every table in src.db.tables."""


_settings = get_settings()

engine = create_async_engine(
    _settings.DATABASE_URL,
    echo=_settings.LOG_LEVEL == LogLevel.DEBUG,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session that commits once when the request succeeds.

    Repositories only add() and flush(). Settlement runs inside a SAVEPOINT
    of this transaction, so its writes become durable here and nowhere else.
    Any exception rolls the whole request back.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            logger.debug("Rolling back request transaction", exc_info=True)
            await session.rollback()
            raise
