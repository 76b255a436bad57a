from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.platform.config import Settings
from app.platform.db.base import Base
from app.platform.logger import get_logger

logger = get_logger("database")


class Database:
    """
    Process-wide database handle.

    Built once at application startup, kept on ``app.state.database`` and
    disposed at shutdown. Nothing in the code base reaches for a module level
    engine; every consumer receives the handle (or a session made from it).
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        engine_kwargs = {"echo": echo, "future": True, "pool_pre_ping": True}
        if not url.startswith("sqlite"):
            engine_kwargs.update(pool_recycle=1800, pool_size=20, max_overflow=30, pool_timeout=30)

        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine, expire_on_commit=False, autoflush=False, autocommit=False
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(settings.DATABASE_URL, echo=settings.DB_ECHO)

    async def create_tables(self) -> None:
        # Register mappers on Base.metadata before create_all
        from app.features.auth.models.user import User  # noqa: F401
        from app.features.otp.models.otp import OtpRecord  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured")

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database engine disposed")


def get_database(request: Request) -> Database:
    return request.app.state.database


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    async with get_database(request).session() as session:
        yield session
