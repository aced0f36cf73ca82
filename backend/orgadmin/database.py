"""Database engine, session factory, and declarative base.

  - Base      → every orgadmin table
  - get_db()  → request-scoped session; commits once on success,
                rolls back on any error so a write endpoint is one
                atomic unit.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase

from orgadmin.config import settings


def _engine_options(url: str) -> dict:
    # SQLite (tests, local dev) has no connection pool sizing
    if url.startswith("sqlite"):
        return {}
    return {"pool_size": 20, "max_overflow": 10}


engine = create_async_engine(
    settings.database_url,
    echo=settings.debug and settings.environment == "development",
    **_engine_options(settings.database_url),
)

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:
    """Yield a session wrapping the whole request in one transaction."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
