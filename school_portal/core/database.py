from typing import AsyncGenerator
from sqlalchemy import Column, DateTime, Integer, func
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from school_portal.core.config import get_database_url, settings


class BaseModel:
    """Base model class with common attributes"""
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


# Create declarative base
Base = declarative_base(cls=BaseModel)


def build_engine(url: str) -> AsyncEngine:
    """Create an async engine; SQLite gets a single shared connection, servers get a pool"""
    if url.startswith("sqlite"):
        return create_async_engine(
            url,
            echo=settings.DB_ECHO,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_async_engine(
        url,
        echo=settings.DB_ECHO,
        pool_pre_ping=True,        # Connection health check
        pool_size=20,              # Maximum number of connections in the pool
        max_overflow=10,           # Connections allowed beyond pool_size
        pool_timeout=30,           # Seconds to wait on pool checkout
        pool_recycle=1800,         # Recycle connections after 30 minutes
    )


def build_session_factory(bind: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,    # Don't expire objects after commit
        autocommit=False,
        autoflush=False
    )


engine = build_engine(get_database_url())

# Create async session factory
AsyncSessionLocal = build_session_factory(engine)


# FastAPI dependency for database sessions
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides an async database session.
    Usage: db: AsyncSession = Depends(get_db)
    """
    session = AsyncSessionLocal()
    try:
        yield session
    except Exception:
        # Rollback on error
        await session.rollback()
        raise
    finally:
        await session.close()


async def init_db(bind: AsyncEngine = None) -> None:
    """Initialize database tables"""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections"""
    await engine.dispose()


# Import all models after Base is defined so they register with the metadata
import school_portal.models  # noqa: E402,F401
