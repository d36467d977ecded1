from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from ecolens.core.config import settings


def build_engine(url: str) -> AsyncEngine:
    # Postgres in production (asyncpg), sqlite+aiosqlite in tests
    return create_async_engine(url, echo=False, pool_pre_ping=True)


engine = build_engine(settings.DATABASE_URL)

# Reports are returned to the client right after commit, so nothing may expire
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)


async def create_db_tables() -> None:
    """Create every table registered on the models' metadata (development only)."""
    from ecolens.models.base import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One session per request; the report assembler owns commit and rollback."""
    async with AsyncSessionLocal() as session:
        yield session
