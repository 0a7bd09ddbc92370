from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.base import Base  # noqa: F401
from app.core.config import settings

# Postgres via asyncpg in production, sqlite via aiosqlite for small installs
engine = create_async_engine(settings.DATABASE_URL, echo=False, pool_pre_ping=True)

# Keep attributes loaded after commit, lazy refreshes do not work in async code
SessionLocal = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        yield session
