import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from arcade_oracle.models.schemas import Base


def create_engine(database_url: str) -> AsyncEngine:
    if database_url.startswith("sqlite"):
        return create_async_engine(url=database_url, echo=False)
    return create_async_engine(database_url, pool_size=20, max_overflow=20)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    # Centralized session factory to avoid creating it in router modules.
    return async_sessionmaker(
        autocommit=False,
        class_=AsyncSession,
        autoflush=True,
        expire_on_commit=False,
        bind=engine,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create tables if not exists"""
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except IntegrityError as e:
        logging.warning(f"Table already exists or other integrity error: {e}")
