"""
Database initialization.
Creates tables for local development; deployed environments use migrations.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from app.db.base import Base
from app.db.repositories.counter_repository import CounterRepository
from app.models.counter import REQUEST_COUNTER
from app.core.logging import get_logger

logger = get_logger(__name__)


async def create_tables(engine: AsyncEngine) -> None:
    """Create all database tables registered on Base and seed the request counter."""
    import app.models  # noqa: F401  registers every model with Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSession(engine) as session:
        await CounterRepository(session).ensure(REQUEST_COUNTER)
        await session.commit()

    logger.info(
        "Database tables initialized",
        extra={"tables": sorted(Base.metadata.tables.keys())},
    )
