from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from app.core.config import get_settings

settings = get_settings()

Base = declarative_base()


def create_engine_from_url(database_url: Optional[str] = None, **engine_kwargs) -> AsyncEngine:
    """Create the async engine for the reporting database."""
    return create_async_engine(
        database_url or settings.DATABASE_URL,
        echo=False,
        future=True,
        **engine_kwargs
    )


def create_session_factory(bind: AsyncEngine) -> sessionmaker:
    # Report rows are read after commit, so instances must not expire
    return sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False
    )


engine = create_engine_from_url()

AsyncSessionLocal = create_session_factory(engine)

async def get_db():
    session = AsyncSessionLocal()
    try:
        yield session
    finally:
        await session.close()
