from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from openmd.core.config import settings

Base = declarative_base()


def build_engine(url: str):
    """Create the async engine, enabling foreign keys on SQLite"""
    engine = create_async_engine(url, pool_pre_ping=not url.startswith("sqlite"))

    if url.startswith("sqlite"):
        # Shares rely on ON DELETE CASCADE, which SQLite only honours with this pragma
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


engine = build_engine(settings.DATABASE_URL)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """Yield a database session for the duration of a request"""
    async with AsyncSessionLocal() as session:
        yield session
