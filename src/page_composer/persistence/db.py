from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from page_composer.config import DEFAULT_DATABASE_URL
from page_composer.persistence.models import Base


def make_engine(db_url: str = DEFAULT_DATABASE_URL) -> AsyncEngine:
    if db_url.startswith("sqlite") and ":memory:" in db_url:
        # One shared connection, otherwise every checkout sees an empty DB.
        return create_async_engine(db_url, poolclass=StaticPool)
    return create_async_engine(db_url)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, expire_on_commit=False)


async def create_tables(engine: AsyncEngine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
