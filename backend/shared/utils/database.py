"""
Async database connection manager using SQLAlchemy 2.0+ async engine.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from shared.config import Settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)


class DatabaseManager:
    """Manages async SQLAlchemy engine and session factory."""

    def __init__(
        self,
        url: str,
        *,
        safe_url: Optional[str] = None,
        pool_min: int = 2,
        pool_max: int = 10,
        command_timeout: int = 30,
        echo: bool = False,
    ) -> None:
        self._url = url
        self._safe_url = safe_url or make_url(url).render_as_string(hide_password=True)
        self._pool_min = pool_min
        self._pool_max = pool_max
        self._command_timeout = command_timeout
        self._echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabaseManager":
        return cls(
            settings.database_url_str,
            safe_url=settings.database_url_safe_log,
            pool_min=settings.db_pool_min,
            pool_max=settings.db_pool_max,
            command_timeout=settings.db_command_timeout,
            echo=settings.debug,
        )

    def _engine_kwargs(self) -> dict[str, Any]:
        if make_url(self._url).get_backend_name() != "postgresql":
            return {"echo": self._echo}
        return {
            "pool_size": self._pool_min,
            "max_overflow": self._pool_max - self._pool_min,
            "pool_pre_ping": True,
            "pool_recycle": 300,
            "echo": self._echo,
            "connect_args": {
                "timeout": self._command_timeout,
                "command_timeout": self._command_timeout,
            },
        }

    async def connect(self) -> None:
        """Create the async engine and session factory."""
        self._engine = create_async_engine(self._url, **self._engine_kwargs())
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info("database_connected", url=self._safe_url)

    async def disconnect(self) -> None:
        """Dispose of the engine and all connections."""
        if self._engine:
            await self._engine.dispose()
            logger.info("database_disconnected")

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("DatabaseManager not connected.")
        return self._engine

    @asynccontextmanager
    async def read_session(self) -> AsyncIterator[AsyncSession]:
        """Provide a read-only session (no commit)."""
        if self._session_factory is None:
            raise RuntimeError("DatabaseManager not connected.")
        async with self._session_factory() as session:
            yield session

    @asynccontextmanager
    async def write_session(self) -> AsyncIterator[AsyncSession]:
        """Provide a transactional session that auto-commits on success. Used by fixtures and tooling."""
        if self._session_factory is None:
            raise RuntimeError("DatabaseManager not connected.")
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
