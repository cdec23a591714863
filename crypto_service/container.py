"""
Service wiring
Builds the long-lived clients (database pool, Redis, CoinGecko HTTP client)
once per application and tears them down again on shutdown.
"""

from dataclasses import dataclass

from crypto_service.config import CryptoServiceSettings
from crypto_service.db import Database
from crypto_service.layers.acquisition import AcquisitionLayer
from crypto_service.layers.cache import CacheLayer
from crypto_service.layers.storage import StorageLayer
from crypto_service.services.crypto_service import CryptoService
from crypto_service.services.scheduler import RefreshScheduler


@dataclass
class Services:
    db: Database
    cache: CacheLayer
    acquisition: AcquisitionLayer
    storage: StorageLayer
    crypto: CryptoService
    scheduler: RefreshScheduler

    async def close(self) -> None:
        await self.scheduler.stop()
        await self.cache.close()
        await self.acquisition.close()
        await self.db.close()


def build_services(settings: CryptoServiceSettings) -> Services:
    db = Database(
        settings.DATABASE_URL,
        pool_size=settings.DB_POOL_SIZE,
        pool_timeout=settings.DB_POOL_TIMEOUT,
    )
    cache = CacheLayer(
        settings.REDIS_URL,
        enabled=settings.REDIS_ENABLED,
        max_connections=settings.REDIS_MAX_CONNECTIONS,
        retry_attempts=settings.REDIS_RETRY_ATTEMPTS,
        retry_base=settings.REDIS_RETRY_BASE,
        retry_cap=settings.REDIS_RETRY_CAP,
        retry_max_elapsed=settings.REDIS_RETRY_MAX_ELAPSED,
    )
    acquisition = AcquisitionLayer(
        api_url=settings.COINGECKO_API_URL,
        crypto_ids=settings.TRACKED_CRYPTO_IDS,
        vs_currency=settings.VS_CURRENCY,
        timeout=settings.COINGECKO_TIMEOUT,
    )
    storage = StorageLayer(db)
    crypto = CryptoService(
        acquisition,
        cache,
        storage,
        cache_ttl=settings.CACHE_TTL,
        chart_cache_ttl=settings.CHART_CACHE_TTL,
    )
    scheduler = RefreshScheduler(crypto.update_crypto_data, interval=settings.REFRESH_INTERVAL_SECONDS)
    return Services(
        db=db,
        cache=cache,
        acquisition=acquisition,
        storage=storage,
        crypto=crypto,
        scheduler=scheduler,
    )
