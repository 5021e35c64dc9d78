"""
Chirpline Backend: Engine and Sessions
========================================

One async engine per process and one AsyncSession per request. A request's
writes (a new tweet, an update, or every row a cascading delete touches)
share the session's transaction: get_db_session commits after the handler
returns and rolls back if it raises, so a request lands completely or not
at all. Media files follow the same outcome through the after_commit and
after_rollback hooks.

PostgreSQL (asyncpg) gets a sized, pre-pinged pool; SQLite (aiosqlite) is
used by the test suite and takes the dialect defaults.
"""

from typing import Any, AsyncGenerator, Awaitable, Callable, Dict

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.config import settings


def _engine_options() -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not settings.is_sqlite:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=1800,
        )
    return options


engine = create_async_engine(settings.database_url, **_engine_options())

# Response models are built after flush/commit, so loaded attributes must survive commit
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    """Declarative base; its metadata is what Alembic autogenerates against."""


# Work that must follow the request transaction's outcome, kept in session.info
Hook = Callable[[], Awaitable[None]]
AFTER_COMMIT = "chirpline.after_commit"
AFTER_ROLLBACK = "chirpline.after_rollback"


def after_commit(session: AsyncSession, hook: Hook) -> None:
    """Run `hook` once get_db_session has committed; dropped on rollback."""
    session.info.setdefault(AFTER_COMMIT, []).append(hook)


def after_rollback(session: AsyncSession, hook: Hook) -> None:
    """Run `hook` if the request transaction rolls back, commit failures included."""
    session.info.setdefault(AFTER_ROLLBACK, []).append(hook)


async def _run_hooks(session: AsyncSession, key: str) -> None:
    for hook in session.info.pop(key, []):
        await hook()


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency: a session whose transaction spans the whole request.

        @router.delete("/tweets/{tweet_id}")
        async def delete_tweet(tweet_id: int, db: AsyncSession = Depends(get_db_session)):
            ...

    The commit happens after the handler returns. If the handler or the
    commit raises, the session rolls back, the rollback hooks run and the
    exception is re-raised for the global handlers in main.py.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            session.info.pop(AFTER_COMMIT, None)
            await _run_hooks(session, AFTER_ROLLBACK)
            raise
        session.info.pop(AFTER_ROLLBACK, None)
        await _run_hooks(session, AFTER_COMMIT)


async def dispose_engine() -> None:
    await engine.dispose()
