"""Database engine and session factory."""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from classified_ad_bot.config.settings import settings
from classified_ad_bot.config.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    future=True
)

if engine.dialect.name == "sqlite":
    # Publications and moderation requests are deleted together with their ad
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def create_db_session() -> AsyncSession:
    """Create a new session for one unit of work; the caller closes it."""
    return AsyncSessionLocal()


def _load_models():
    # Registers every table on Base.metadata
    from classified_ad_bot import models  # noqa: F401


async def init_database():
    """Create missing tables."""
    logger.info("Initializing database...")
    _load_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info(f"Database ready: {len(Base.metadata.tables)} tables")


async def drop_database():
    """Drop all database tables (for testing/development)."""
    logger.warning("Dropping all database tables...")
    _load_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    logger.warning("All database tables dropped")
