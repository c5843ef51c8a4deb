from typing import Any, AsyncGenerator, Dict

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ..models.base import AllocationServiceBase
from ..utils.logging import setup_allocation_logging as setup_logging
from .setting import get_settings

logger = setup_logging("allocation_service.database", log_level=get_settings().LOG_LEVEL)


def _mask_url(database_url: str) -> str:
    return make_url(database_url).render_as_string(hide_password=True)


class AllocationDatabaseManager:
    """Database manager for the Allocation Service."""

    def __init__(self, database_url: str, echo: bool = False) -> None:
        logger.info(
            "Initializing Allocation Service database manager",
            extra={
                "operation": "database_manager_init",
                "database_url": _mask_url(database_url),
                "echo": echo,
                "event_type": "database_manager_initialization",
            },
        )

        engine_kwargs: Dict[str, Any] = {"echo": echo}

        if "sqlite" in database_url:
            engine_kwargs["connect_args"] = {
                "timeout": 60,
                "check_same_thread": False,
            }
        else:
            settings = get_settings()
            engine_kwargs.update(
                {
                    "pool_size": settings.DATABASE_POOL_SIZE,
                    "max_overflow": settings.DATABASE_MAX_OVERFLOW,
                    "pool_timeout": 30,
                    "pool_recycle": 3600,
                    "pool_pre_ping": True,
                    "connect_args": {"command_timeout": 30},
                }
            )

        self.async_engine = create_async_engine(database_url, **engine_kwargs)
        self.async_session_maker = async_sessionmaker(
            bind=self.async_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def create_tables(self) -> None:
        """Create all Allocation Service tables."""
        async with self.async_engine.begin() as conn:
            await conn.run_sync(
                AllocationServiceBase.metadata.create_all, checkfirst=True
            )
        logger.info(
            "Database tables created successfully",
            extra={"operation": "create_tables", "event_type": "database_tables_created"},
        )

    async def get_async_session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self.async_session_maker() as session:
            yield session

    async def close(self) -> None:
        """Dispose the engine and its pooled connections."""
        await self.async_engine.dispose()
        logger.info(
            "Allocation Service database connections closed",
            extra={"operation": "database_close", "event_type": "database_shutdown"},
        )


settings = get_settings()
database_manager = AllocationDatabaseManager(
    database_url=settings.ALLOCATION_DATABASE_URL, echo=settings.DEBUG
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session for dependency injection."""
    async for session in database_manager.get_async_session():
        yield session
