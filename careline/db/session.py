from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from careline.core.config import Settings, get_settings

from .utils import normalize_database_url

logger = logging.getLogger(__name__)


def engine_options(settings: Settings) -> dict[str, Any]:
    """Keyword arguments for ``create_async_engine`` derived from settings."""
    options: dict[str, Any] = {
        "pool_pre_ping": True,
        "echo": settings.db_echo,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_recycle": settings.db_pool_recycle_seconds,
    }
    if settings.db_statement_timeout_ms > 0:
        # libpq startup option; bounds the unread aggregate and the fallback queries.
        options["connect_args"] = {
            "options": f"-c statement_timeout={settings.db_statement_timeout_ms}"
        }
    return options


def build_async_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(
        normalize_database_url(settings.database_dsn),
        **engine_options(settings),
    )


async_engine = build_async_engine(get_settings())
AsyncSessionLocal = async_sessionmaker(bind=async_engine, expire_on_commit=False)


async def get_db_session() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            logger.debug("Rolling back request session after an error.")
            await session.rollback()
            raise
