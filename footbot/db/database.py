"""
Database engine and session factories.

The web process uses the module-level engine. Celery tasks run each on a
fresh event loop, so each task opens its own engine through task_session_factory.
"""
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from footbot.core.config import settings

Base = declarative_base()


def _engine_options(database_url: str, **pool_options: Any) -> dict[str, Any]:
    """SQLite (tests, local runs) does not take pool sizing arguments"""
    options: dict[str, Any] = {"echo": settings.DEBUG}
    if make_url(database_url).get_backend_name() != "sqlite":
        options["pool_pre_ping"] = True
        options.update(pool_options)
    return options


engine = create_async_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False
)


@asynccontextmanager
async def task_session_factory() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """
    Session factory on an engine bound to the current event loop.

    Reusing the module-level engine from a Celery task fails with "attached
    to a different loop", so each task builds one engine here, hands the
    factory to the ledger and the SQL event store, and disposes it on exit.
    """
    task_engine = create_async_engine(
        settings.DATABASE_URL,
        **_engine_options(settings.DATABASE_URL, pool_size=5, max_overflow=10),
    )
    try:
        yield async_sessionmaker(
            bind=task_engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
    finally:
        await task_engine.dispose()
