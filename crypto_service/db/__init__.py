"""
Database connection management
Owns the async SQLAlchemy engine (connection pool) and session factory.
"""

import logging
from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from crypto_service.db.models import Base, Cryptocurrency

logger = logging.getLogger(__name__)

__all__ = ["Base", "Cryptocurrency", "Database"]


class Database:
    """Relational store connection: one pooled engine per process"""

    def __init__(
        self,
        url: str,
        pool_size: int = 10,
        pool_timeout: float = 30.0,
        echo: bool = False,
    ):
        self.url = url
        self.dialect = make_url(url).get_backend_name()
        engine_kwargs = {"echo": echo}
        if self.dialect != "sqlite":
            # bounded pool, callers queue up to pool_timeout seconds when it is exhausted
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=0,
                pool_timeout=pool_timeout,
                pool_pre_ping=True,
            )
        self._engine: Optional[AsyncEngine] = create_async_engine(url, **engine_kwargs)
        self._session_maker = async_sessionmaker(
            self._engine, class_=AsyncSession, expire_on_commit=False
        )

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is closed")
        return self._engine

    def session(self) -> AsyncSession:
        """Open a new session (use as `async with db.session() as s`)"""
        return self._session_maker()

    async def connect(self) -> bool:
        """Connectivity check, returns whether the database answered"""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info(f"✅ Database connected: {self._safe_url()}")
            return True
        except Exception as exc:
            logger.error(f"❌ Database connection failed: {exc}")
            return False

    async def init_schema(self) -> None:
        """Create the cryptocurrencies table if it does not exist yet"""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info('✅ Database table "cryptocurrencies" created/verified')

    async def check_health(self) -> dict:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return {"status": "healthy", "dialect": self.dialect}
        except Exception as exc:
            return {"status": "unhealthy", "error": str(exc)}

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info("Database connection pool closed")

    def _safe_url(self) -> str:
        return make_url(self.url).render_as_string(hide_password=True)
