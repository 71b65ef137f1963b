"""
Database table creation script.

Creates all tables defined in ORM models using SQLAlchemy metadata. On
PostgreSQL the pgvector extension is enabled first.

Dependencies: sqlalchemy, tutor_rag.configs
System role: Database schema initialization

Usage:
    python -m tutor_rag.boundary.db.create_tables
"""

import asyncio
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from tutor_rag.boundary.db.base import Base
from tutor_rag.boundary.db.connection import get_async_engine

# Import all models to register them with Base.metadata
from tutor_rag.boundary.db.models import (  # noqa: F401
    KnowledgeChunkModel,
    VectorEmbeddingModel,
    WebSearchCacheModel,
)

logger = logging.getLogger(__name__)


async def create_all_tables(engine: AsyncEngine | None = None) -> None:
    """
    Create all database tables from registered ORM models.

    Idempotent: CREATE EXTENSION/TABLE IF NOT EXISTS, so safe to run
    multiple times. Existing tables remain unchanged.

    Raises:
        SQLAlchemyError: If the connection or DDL fails
    """
    engine = engine or get_async_engine()
    async with engine.begin() as conn:
        if conn.dialect.name == "postgresql":
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"{__name__}:create_all_tables - Tables created ({engine.dialect.name})")


async def drop_all_tables(engine: AsyncEngine | None = None) -> None:
    """
    Drop all database tables and their data.

    WARNING: Irreversible data loss. Only use in development environments.
    """
    engine = engine or get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info(f"{__name__}:drop_all_tables - Tables dropped")


if __name__ == "__main__":
    asyncio.run(create_all_tables())
