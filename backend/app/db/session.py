"""
Database session configuration.

This module handles database engine creation and session management
using SQLAlchemy with async support. The fleet tables are only ever
touched through the row store (one session per single-row call).
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from backend.app.core.config import settings


def build_engine(database_url: str = None, **kwargs):
    """
    Create an async engine.

    Pool sizing only applies to server databases; SQLite manages its own pool.
    """
    database_url = database_url or settings.database_url
    options = {"echo": settings.db_echo, "future": True}
    if not database_url.startswith("sqlite"):
        options.update(pool_size=settings.db_pool_size, max_overflow=settings.db_max_overflow)
    options.update(kwargs)
    return create_async_engine(database_url, **options)


# Create async engine
engine = build_engine()

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Create declarative base for models
Base = declarative_base()
