"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode — create_async_engine for connection pooling,
AsyncSession for per-request database access, dependency injection via FastAPI.

Pool sizing comes from settings: db_pool_size connections are kept open,
up to db_max_overflow more are opened under load, and every connection is
recycled after db_pool_recycle_minutes.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from deepresearch.config import Settings, settings


def build_engine(cfg: Settings) -> AsyncEngine:
    """Create the async engine for the configured database."""
    url = cfg.sqlalchemy_url
    if url.startswith("sqlite"):
        # SQLite pools don't take sizing arguments
        return create_async_engine(url, echo=cfg.debug)

    return create_async_engine(
        url,
        echo=cfg.debug,
        pool_size=cfg.db_pool_size,
        max_overflow=cfg.db_max_overflow,
        pool_recycle=cfg.db_pool_recycle_minutes * 60,
        pool_pre_ping=True,
    )


engine = build_engine(settings)

# Session factory — each request gets its own session.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """FastAPI dependency — the factory itself, for work that outlives the request
    scope (streaming responses open their own sessions)."""
    return async_session_factory


async def get_db() -> AsyncSession:
    """FastAPI dependency — yields a session per request, auto-closes."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def create_schema(bind: AsyncEngine = engine) -> None:
    """Create all tables that don't exist yet."""
    from deepresearch.db.models import Base

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
