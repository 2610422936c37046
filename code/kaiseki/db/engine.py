from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from kaiseki.config import Settings
from kaiseki.db.models import Base


def create_db_engine(settings: Settings) -> AsyncEngine:
    url = settings.db.url
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.db.echo)
    return create_async_engine(
        url,
        echo=settings.db.echo,
        pool_size=settings.db.pool_size,
        max_overflow=settings.db.max_overflow,
        connect_args={"server_settings": {"statement_timeout": "30000"}},
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Create missing tables. Existing tables are left untouched."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
