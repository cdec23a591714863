"""
Cache layer
Redis cache-aside store for asset payloads. Every failure (not connected,
connection dropped mid-call, undecodable payload) degrades to a miss / no-op.
"""

import asyncio
import json
import logging
import time
from typing import Any, Optional

from redis.asyncio import ConnectionPool, Redis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError, RedisError, TimeoutError

logger = logging.getLogger(__name__)

LIST_KEY = "cryptos"


def crypto_key(crypto_id: str) -> str:
    return f"crypto:{crypto_id}"


def chart_key(crypto_id: str, days: int) -> str:
    return f"chart:{crypto_id}:{days}"


class CacheLayer:
    """Redis-backed cache; owns one long-lived connection pool"""

    def __init__(
        self,
        url: str,
        enabled: bool = True,
        max_connections: int = 20,
        retry_attempts: int = 3,
        retry_base: float = 0.1,
        retry_cap: float = 3.0,
        retry_max_elapsed: float = 3600.0,
        client: Optional[Redis] = None,
    ):
        self._url = url
        self._enabled = enabled
        self._max_connections = max_connections
        self._retry_attempts = max(1, retry_attempts)
        self._retry_max_elapsed = retry_max_elapsed
        self._backoff = ExponentialBackoff(cap=retry_cap, base=retry_base)
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[Redis] = client
        self._ready = False

    @property
    def is_ready(self) -> bool:
        return self._ready and self._client is not None

    def _build_client(self) -> Redis:
        self._pool = ConnectionPool.from_url(
            self._url,
            max_connections=self._max_connections,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=10,
            # per-command reconnect for connections that drop after startup
            retry=Retry(self._backoff, self._retry_attempts),
            retry_on_error=[ConnectionError, TimeoutError],
        )
        return Redis(connection_pool=self._pool)

    async def connect(self) -> bool:
        """
        Connect with capped exponential backoff.

        Gives up after `retry_attempts` pings or once `retry_max_elapsed`
        seconds would be exceeded; the cache then stays disabled.
        """
        if not self._enabled:
            logger.info("Redis disabled, skipping cache initialisation")
            return False
        if self._client is None:
            self._client = self._build_client()

        started = time.monotonic()
        for attempt in range(1, self._retry_attempts + 1):
            try:
                await self._client.ping()
                self._ready = True
                logger.info("✅ Redis client ready")
                return True
            except (RedisError, OSError) as exc:
                logger.warning(
                    f"⚠️ Redis connection attempt {attempt}/{self._retry_attempts} failed: {exc}"
                )
            if attempt == self._retry_attempts:
                logger.error("❌ Redis connection attempts exceeded")
                break
            delay = self._backoff.compute(attempt)
            if time.monotonic() - started + delay > self._retry_max_elapsed:
                logger.error("❌ Redis retry time exhausted")
                break
            logger.info(f"🔄 Redis client reconnecting in {delay:.2f}s...")
            await asyncio.sleep(delay)

        self._ready = False
        logger.warning("⚠️ Application will continue without Redis caching")
        return False

    async def get(self, key: str) -> Optional[Any]:
        if not self.is_ready:
            return None
        try:
            raw = await self._client.get(key)
        except (RedisError, OSError) as exc:
            logger.warning(f"⚠️ Redis error, proceeding without cache: {exc}")
            return None
        if raw is None:
            return None
        try:
            value = json.loads(raw)
        except ValueError as exc:
            logger.warning(f"⚠️ Discarding undecodable cache entry {key}: {exc}")
            return None
        logger.debug(f"Cache hit: {key}")
        return value

    async def set(self, key: str, value: Any, ttl: int) -> bool:
        """Store `value` as JSON for `ttl` seconds; False when skipped"""
        if not self.is_ready:
            return False
        serialized = json.dumps(value, ensure_ascii=False, default=str)
        try:
            await self._client.setex(key, int(ttl), serialized)
        except (RedisError, OSError) as exc:
            logger.warning(f"⚠️ Redis cache store error: {exc}")
            return False
        logger.debug(f"Cache write: {key} (ttl={ttl}s)")
        return True

    async def delete(self, key: str) -> None:
        if not self.is_ready:
            return
        try:
            await self._client.delete(key)
        except (RedisError, OSError) as exc:
            logger.warning(f"⚠️ Redis delete error: {exc}")

    async def check_health(self) -> dict:
        if not self._enabled:
            return {"status": "disabled"}
        if not self.is_ready:
            return {"status": "disconnected"}
        try:
            await self._client.ping()
            return {"status": "healthy", "keys": await self._client.dbsize()}
        except (RedisError, OSError) as exc:
            return {"status": "unhealthy", "error": str(exc)}

    async def close(self) -> None:
        self._ready = False
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None
        logger.info("🔚 Redis connection ended")
