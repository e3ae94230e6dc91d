from sqlalchemy import BigInteger, Integer, event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
import logging

logger = logging.getLogger("database_engine")

# BIGINT primary keys do not autoincrement on SQLite; fall back to INTEGER there
BigIntPK = BigInteger().with_variant(Integer(), "sqlite")


# Base class for declarative models
class Base(DeclarativeBase):
    pass


def create_db_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine for the configured database."""
    # log host/database only, never credentials
    logger.info(f"Connecting to database at {database_url.rsplit('@', 1)[-1]}")
    engine = create_async_engine(database_url, echo=echo)

    if engine.dialect.name == "sqlite":
        # ondelete cascades are only enforced with foreign_keys on
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_sqlite_fks(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


# Create async session maker to be used throughout the application
def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


# Function to initialize the database (create tables)
async def init_db(engine: AsyncEngine) -> None:
    # import models so they register on Base.metadata
    import database.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# Function to close database connections
async def close_db(engine: AsyncEngine) -> None:
    """Close database engine and connections."""
    await engine.dispose()
