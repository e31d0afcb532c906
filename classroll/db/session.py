from typing import Any, AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from classroll.core.config import settings


def build_engine(database_url: str, **overrides: Any) -> AsyncEngine:
    """
    Async engine for `database_url`.

    Server databases get pool_pre_ping (check the connection is alive before use)
    and pool_recycle (drop connections the server may have closed while idle).
    SQLite URLs, used for local runs and tests, skip both.
    """
    options: dict = {"echo": False}
    if database_url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    else:
        options.update(pool_pre_ping=True, pool_recycle=300)
    options.update(overrides)
    return create_async_engine(database_url, **options)


engine = build_engine(settings.database_url)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One session per request; uncommitted work is rolled back if the request fails."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
