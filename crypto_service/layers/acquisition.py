"""
Acquisition layer
Pulls market data for the tracked coins from CoinGecko and normalizes it.
The markets call never fails outward: any error yields the fixed sample
dataset instead.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import httpx

from crypto_service.layers.processing import ProcessingLayer

logger = logging.getLogger(__name__)

DEFAULT_CRYPTO_IDS = ("bitcoin", "ethereum", "litecoin", "cardano", "solana")

FALLBACK_CRYPTOS: List[Dict[str, Any]] = [
    {
        "id": "bitcoin",
        "name": "Bitcoin",
        "symbol": "BTC",
        "current_price": 43250.50,
        "market_cap": 847250000000,
        "total_volume": 23450000000,
        "price_change_percentage_24h": 2.45,
        "image": "https://assets.coingecko.com/coins/images/1/large/bitcoin.png",
    },
    {
        "id": "ethereum",
        "name": "Ethereum",
        "symbol": "ETH",
        "current_price": 2650.75,
        "market_cap": 318750000000,
        "total_volume": 15230000000,
        "price_change_percentage_24h": -1.23,
        "image": "https://assets.coingecko.com/coins/images/279/large/ethereum.png",
    },
    {
        "id": "litecoin",
        "name": "Litecoin",
        "symbol": "LTC",
        "current_price": 72.30,
        "market_cap": 5350000000,
        "total_volume": 425000000,
        "price_change_percentage_24h": 0.87,
        "image": "https://assets.coingecko.com/coins/images/2/large/litecoin.png",
    },
    {
        "id": "cardano",
        "name": "Cardano",
        "symbol": "ADA",
        "current_price": 0.45,
        "market_cap": 15800000000,
        "total_volume": 320000000,
        "price_change_percentage_24h": 1.15,
        "image": "https://assets.coingecko.com/coins/images/975/large/cardano.png",
    },
    {
        "id": "solana",
        "name": "Solana",
        "symbol": "SOL",
        "current_price": 98.50,
        "market_cap": 42600000000,
        "total_volume": 1250000000,
        "price_change_percentage_24h": -0.75,
        "image": "https://assets.coingecko.com/coins/images/4128/large/solana.png",
    },
]


class ProviderError(Exception):
    """Raised when the market data provider cannot serve a request"""


class DataSource(str, Enum):
    LIVE = "live"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class FetchResult:
    """Markets fetch outcome, tagged with where the data came from"""
    assets: List[Dict[str, Any]]
    source: DataSource

    @property
    def is_fallback(self) -> bool:
        return self.source is DataSource.FALLBACK


class AcquisitionLayer:
    """CoinGecko client for the tracked coins"""

    def __init__(
        self,
        api_url: str = "https://api.coingecko.com/api/v3",
        crypto_ids: Sequence[str] = DEFAULT_CRYPTO_IDS,
        vs_currency: str = "usd",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.crypto_ids = list(crypto_ids)
        self.vs_currency = vs_currency
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.api_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self._proc = ProcessingLayer()

    # ── Markets ───────────────────────────────────────────

    async def fetch(self) -> FetchResult:
        """Fetch the tracked coins, falling back to sample data on any failure"""
        params = {
            "vs_currency": self.vs_currency,
            "ids": ",".join(self.crypto_ids),
            "order": "market_cap_desc",
            "per_page": 10,
            "page": 1,
            "sparkline": "false",
            "price_change_percentage": "24h",
        }
        logger.info("🔄 Fetching cryptocurrency data from CoinGecko...")
        try:
            response = await self._client.get("/coins/markets", params=params)
            if response.status_code != 200:
                raise ProviderError(f"CoinGecko API error: {response.status_code}")
            payload = response.json()
            if not isinstance(payload, list):
                raise ProviderError(f"Unexpected CoinGecko payload: {type(payload).__name__}")
            assets = self._proc.normalize_markets(payload)
        except httpx.TimeoutException as exc:
            logger.error(f"❌ CoinGecko request timed out after {self.timeout}s: {exc}")
            return self._fallback()
        except httpx.TransportError as exc:
            logger.error(f"🌐 Network connection issue reaching CoinGecko: {exc}")
            return self._fallback()
        except Exception as exc:
            logger.error(f"❌ Error fetching from CoinGecko: {exc}")
            return self._fallback()

        logger.info(f"✅ Successfully fetched {len(assets)} cryptocurrencies from CoinGecko")
        return FetchResult(assets=assets, source=DataSource.LIVE)

    async def fetch_assets(self) -> List[Dict[str, Any]]:
        """Asset records for the tracked coins; live or fallback, indistinguishably"""
        return (await self.fetch()).assets

    def _fallback(self) -> FetchResult:
        logger.warning("⚠️ Using fallback mock cryptocurrency data")
        return FetchResult(
            assets=[dict(c) for c in FALLBACK_CRYPTOS],
            source=DataSource.FALLBACK,
        )

    # ── Chart data ────────────────────────────────────────

    async def fetch_market_chart(self, crypto_id: str, days: int = 7) -> Dict[str, Any]:
        """Raw `/coins/{id}/market_chart` payload; raises ProviderError on failure"""
        params = {"vs_currency": self.vs_currency, "days": days}
        try:
            response = await self._client.get(f"/coins/{crypto_id}/market_chart", params=params)
        except httpx.HTTPError as exc:
            raise ProviderError(f"Failed to fetch chart data for {crypto_id}: {exc}") from exc
        if response.status_code != 200:
            raise ProviderError(
                f"Failed to fetch chart data for {crypto_id}: HTTP {response.status_code}"
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(f"Malformed chart payload for {crypto_id}") from exc

    # ── Connectivity ──────────────────────────────────────

    async def ping(self) -> bool:
        logger.info("🧪 Testing CoinGecko API connection...")
        try:
            response = await self._client.get("/ping", timeout=5.0)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning(f"⚠️ CoinGecko API connection failed, will use mock data as fallback: {exc}")
            return False
        logger.info("✅ CoinGecko API connection successful")
        return True

    async def close(self) -> None:
        await self._client.aclose()
