# clinic/db/sql.py
from __future__ import annotations

import logging
from functools import lru_cache
from typing import AsyncIterator, Optional

from fastapi import Depends, Request
from sqlalchemy import insert, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from clinic.core.config import settings
from clinic.db.base import Base

logger = logging.getLogger(__name__)


def build_engine(dsn: str, echo: bool = False) -> AsyncEngine:
    options = {"echo": echo, "pool_pre_ping": True}
    if not dsn.startswith("sqlite"):
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
        )
    return create_async_engine(dsn, **options)


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
        class_=AsyncSession,
    )


# Built on first use so importing the app does not need the DB driver
@lru_cache
def get_engine() -> AsyncEngine:
    return build_engine(settings.SQL_DSN, echo=settings.DB_ECHO)


@lru_cache
def _default_sessionmaker() -> async_sessionmaker[AsyncSession]:
    return build_sessionmaker(get_engine())


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    return _default_sessionmaker()


async def get_session(
    request: Request,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_sessionmaker),
) -> AsyncIterator[AsyncSession]:
    """
    Provide a DB session for each request.
    Commit on success, roll back on any exception, and record the outcome
    in audit_logs either way.
    """
    # Lazy import to avoid circular import
    from clinic.modules.users.models import AuditLog

    action = f"{request.method} {request.url.path}"

    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception as exc:
            await session.rollback()
            # set by get_current_user once the token is resolved
            user_id = getattr(request.state, "user_id", None)
            await session.execute(
                insert(AuditLog).values(
                    user_id=user_id,
                    action=f"{action} ROLLBACK",
                    details=str(exc)[:1000],
                )
            )
            await session.commit()
            raise

        user_id = getattr(request.state, "user_id", None)
        await session.execute(
            insert(AuditLog).values(
                user_id=user_id,
                action=f"{action} COMMIT",
                details="Operation completed successfully",
            )
        )
        await session.commit()


async def ping_db(session_factory: Optional[async_sessionmaker[AsyncSession]] = None) -> bool:
    factory = session_factory or get_sessionmaker()
    async with factory() as session:
        await session.execute(text("SELECT 1"))
        return True


def _register_models() -> None:
    # Importing the modules registers their tables on Base.metadata
    from clinic.modules.appointments import models as _appointments  # noqa: F401
    from clinic.modules.payments import models as _payments  # noqa: F401
    from clinic.modules.users import models as _users  # noqa: F401


async def init_db(engine: Optional[AsyncEngine] = None, *, drop: bool = False) -> None:
    """Create every table (dropping them first when `drop` is set)."""
    _register_models()
    engine = engine or get_engine()
    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready (%d tables)", len(Base.metadata.tables))
