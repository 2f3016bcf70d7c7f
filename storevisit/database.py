"""Database engine, session factory and lifecycle helpers."""
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from storevisit.config import settings


def engine_options(database_url: str) -> Dict[str, Any]:
    """Engine keyword arguments for a database URL.

    SQLite (tests, local runs) shares one connection across the app; server
    databases get a bounded, recycled pool sized from settings.
    """
    options: Dict[str, Any] = {"echo": settings.DATABASE_ECHO}
    if database_url.startswith("sqlite"):
        options.update(
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        options.update(
            pool_pre_ping=True,
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
            pool_recycle=settings.DATABASE_POOL_RECYCLE,
        )
    return options


engine = create_async_engine(settings.DATABASE_URL, **engine_options(settings.DATABASE_URL))

# Objects stay readable after commit; services refresh them explicitly
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db() -> AsyncSession:
    """Dependency yielding one session per request."""
    async with AsyncSessionLocal() as session:
        yield session


async def init_db() -> None:
    """Create missing tables from model metadata (alembic owns real migrations)."""
    import storevisit.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
