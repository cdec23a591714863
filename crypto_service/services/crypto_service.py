"""
Crypto data service
Combines acquisition, cache and storage into the operations the HTTP routes
and the background scheduler share.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from crypto_service.layers.acquisition import AcquisitionLayer, DataSource
from crypto_service.layers.cache import LIST_KEY, CacheLayer, chart_key, crypto_key
from crypto_service.layers.processing import ProcessingLayer
from crypto_service.layers.storage import StorageLayer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshReport:
    updated_count: int
    source: DataSource
    cached: bool


class CryptoService:
    """Cryptocurrency business operations"""

    def __init__(
        self,
        acquisition: AcquisitionLayer,
        cache: CacheLayer,
        storage: StorageLayer,
        cache_ttl: int = 60,
        chart_cache_ttl: int = 300,
    ):
        self._acq = acquisition
        self._cache = cache
        self._storage = storage
        self._proc = ProcessingLayer()
        self.cache_ttl = cache_ttl
        self.chart_cache_ttl = chart_cache_ttl

    # ── Asset list ────────────────────────────────────────

    async def list_cryptos(self) -> List[Dict[str, Any]]:
        """
        Tracked assets, cache first

        On a miss the provider (not the store) is the source of truth: the
        fresh list is cached and upserted before being returned.
        """
        cached = await self._cache.get(LIST_KEY)
        if cached is not None:
            logger.info("⚡ Returning data from Redis cache")
            return cached

        logger.info("🔥 No cache found, fetching from CoinGecko...")
        cryptos = await self._acq.fetch_assets()
        await self._cache.set(LIST_KEY, cryptos, self.cache_ttl)
        await self._storage.upsert_many(cryptos)
        return cryptos

    # ── Single asset ──────────────────────────────────────

    async def get_crypto(self, crypto_id: str) -> Optional[Dict[str, Any]]:
        """One asset, cache first then the store; None when unknown"""
        key = crypto_key(crypto_id)
        cached = await self._cache.get(key)
        if cached is not None:
            logger.info(f"⚡ Returning {crypto_id} from Redis cache")
            return cached

        crypto = await self._storage.get_by_id(crypto_id)
        if crypto is None:
            return None

        await self._cache.set(key, crypto, self.cache_ttl)
        return crypto

    # ── Refresh ───────────────────────────────────────────

    async def refresh(self) -> RefreshReport:
        """Fetch from the provider, rewrite the list cache and upsert every asset"""
        logger.info("🔄 Starting cryptocurrency data update...")
        result = await self._acq.fetch()
        cached = await self._cache.set(LIST_KEY, result.assets, self.cache_ttl)
        count = await self._storage.upsert_many(result.assets)
        logger.info(
            f"✅ Successfully updated {count} cryptocurrencies (source: {result.source.value})"
        )
        return RefreshReport(updated_count=count, source=result.source, cached=cached)

    async def update_crypto_data(self) -> int:
        """Run one refresh and return the number of assets updated"""
        return (await self.refresh()).updated_count

    # ── Chart data ────────────────────────────────────────

    async def get_chart(self, crypto_id: str, days: int = 7) -> List[Dict[str, Any]]:
        """Price history straight from the provider; the store is not consulted"""
        key = chart_key(crypto_id, days)
        cached = await self._cache.get(key)
        if cached is not None:
            return cached

        payload = await self._acq.fetch_market_chart(crypto_id, days=days)
        points = self._proc.normalize_chart(payload)
        if points:
            await self._cache.set(key, points, self.chart_cache_ttl)
        return points
