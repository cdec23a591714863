"""
Service configuration
Reads settings from environment variables / .env and switches default hosts
to compose service names when running inside a Docker container.
"""

import os
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _is_docker() -> bool:
    """Detect whether we are running inside a Docker container"""
    return (
        os.path.exists("/.dockerenv")
        or os.environ.get("DOCKER_CONTAINER", "").lower() in ("1", "true", "yes")
    )


def _default_db_host() -> str:
    """Docker uses the service name 'postgres'; locally no host means SQLite"""
    return "postgres" if _is_docker() else ""


def _default_redis_host() -> str:
    """Docker uses the service name 'redis', locally 'localhost'"""
    return "redis" if _is_docker() else "localhost"


class CryptoServiceSettings(BaseSettings):
    """Crypto tracker service settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Server ────────────────────────────────────────────
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=5000)
    DEBUG: bool = Field(default=False)
    ALLOWED_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000"]
    )

    # ── Database ──────────────────────────────────────────
    DB_URL: str = Field(default="")                   # full SQLAlchemy URL, wins over the parts below
    DB_HOST: str = Field(default_factory=_default_db_host)
    DB_PORT: int = Field(default=5432)
    DB_USER: str = Field(default="postgres")
    DB_PASSWORD: str = Field(default="")
    DB_NAME: str = Field(default="crypto_tracker")
    DB_POOL_SIZE: int = Field(default=10)
    DB_POOL_TIMEOUT: float = Field(default=30.0)      # seconds to wait for a free connection
    SQLITE_PATH: str = Field(default="./crypto_tracker.db")

    @property
    def DATABASE_URL(self) -> str:
        if self.DB_URL:
            return self.DB_URL
        if not self.DB_HOST:
            return f"sqlite+aiosqlite:///{self.SQLITE_PATH}"
        auth = self.DB_USER
        if self.DB_PASSWORD:
            auth = f"{self.DB_USER}:{self.DB_PASSWORD}"
        return f"postgresql+asyncpg://{auth}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # ── Redis ─────────────────────────────────────────────
    REDIS_HOST: str = Field(default_factory=_default_redis_host)
    REDIS_PORT: int = Field(default=6379)
    REDIS_PASSWORD: str = Field(default="")
    REDIS_DB: int = Field(default=0)
    REDIS_ENABLED: bool = Field(default=True)
    REDIS_MAX_CONNECTIONS: int = Field(default=20)
    REDIS_RETRY_ATTEMPTS: int = Field(default=3)
    REDIS_RETRY_BASE: float = Field(default=0.1)          # seconds
    REDIS_RETRY_CAP: float = Field(default=3.0)           # seconds
    REDIS_RETRY_MAX_ELAPSED: float = Field(default=3600.0)

    @property
    def REDIS_URL(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # ── Market data provider ──────────────────────────────
    COINGECKO_API_URL: str = Field(default="https://api.coingecko.com/api/v3")
    COINGECKO_TIMEOUT: float = Field(default=10.0)
    VS_CURRENCY: str = Field(default="usd")
    TRACKED_CRYPTO_IDS: List[str] = Field(
        default_factory=lambda: ["bitcoin", "ethereum", "litecoin", "cardano", "solana"]
    )

    # ── Cache ─────────────────────────────────────────────
    CACHE_TTL: int = Field(default=60)             # asset list / single asset TTL (seconds)
    CHART_CACHE_TTL: int = Field(default=300)
    CHART_DEFAULT_DAYS: int = Field(default=7)

    # ── Background refresh ────────────────────────────────
    REFRESH_INTERVAL_SECONDS: int = Field(default=300)
    REFRESH_ON_STARTUP: bool = Field(default=True)

    # ── Logging ───────────────────────────────────────────
    LOG_LEVEL: str = Field(default="INFO")


@lru_cache
def get_settings() -> CryptoServiceSettings:
    """Return the process-wide settings (singleton)"""
    return CryptoServiceSettings()


settings = get_settings()
