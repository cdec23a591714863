"""Shared fixtures: throwaway SQLite store, in-memory Redis double, mocked CoinGecko"""

import os
import sys

import httpx
import pytest
import pytest_asyncio
from redis.exceptions import ConnectionError as RedisConnectionError

# make `crypto_service` importable when running pytest from a source checkout
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from crypto_service.db import Database  # noqa: E402
from crypto_service.layers.cache import CacheLayer  # noqa: E402
from crypto_service.layers.storage import StorageLayer  # noqa: E402


# ─────────────────────────────────────────────────────────
# CoinGecko payloads
# ─────────────────────────────────────────────────────────

LIVE_MARKETS = [
    {
        "id": "bitcoin",
        "symbol": "btc",
        "name": "Bitcoin",
        "image": "https://assets.coingecko.com/coins/images/1/large/bitcoin.png",
        "current_price": 67012.0,
        "market_cap": 1320000000000,
        "total_volume": 35100000000,
        "price_change_percentage_24h": 1.8,
    },
    {
        "id": "ethereum",
        "symbol": "eth",
        "name": "Ethereum",
        "image": "https://assets.coingecko.com/coins/images/279/large/ethereum.png",
        "current_price": 3120.5,
        "market_cap": 375000000000,
        "total_volume": 17200000000,
        "price_change_percentage_24h": -0.6,
    },
    {
        "id": "solana",
        "symbol": "sol",
        "name": "Solana",
        "image": None,
        "current_price": 145.2,
        "market_cap": 65000000000,
        "total_volume": None,
        "price_change_percentage_24h": None,
    },
]

SAMPLE_CHART = {
    "prices": [
        [1700000000000, 36500.1],
        [1700086400000, 37020.4],
        [1699913600000, 36010.0],
    ],
    "market_caps": [],
    "total_volumes": [],
}


def make_transport(markets=None, status_code=200, chart=None, fail=False, calls=None):
    """httpx.MockTransport answering the CoinGecko endpoints we use"""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        if fail:
            raise httpx.ConnectError("Connection refused", request=request)
        path = request.url.path
        if path.endswith("/ping"):
            return httpx.Response(200, json={"gecko_says": "(V3) To the Moon!"})
        if path.endswith("/coins/markets"):
            body = LIVE_MARKETS if markets is None else markets
            return httpx.Response(status_code, json=body)
        if path.endswith("/market_chart"):
            return httpx.Response(status_code, json=SAMPLE_CHART if chart is None else chart)
        return httpx.Response(404, json={"error": "not found"})

    return httpx.MockTransport(handler)


# ─────────────────────────────────────────────────────────
# Redis double
# ─────────────────────────────────────────────────────────

class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRedis:
    """Just enough of redis.asyncio.Redis for CacheLayer, with expiring keys"""

    def __init__(self, clock=None, fail: bool = False):
        self.clock = clock or FakeClock()
        self.fail = fail
        self.ping_calls = 0
        self.setex_calls = []
        self.closed = False
        self._data = {}

    def _check(self):
        if self.fail:
            raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    async def ping(self):
        self.ping_calls += 1
        self._check()
        return True

    async def get(self, key):
        self._check()
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self.clock():
            del self._data[key]
            return None
        return value

    async def setex(self, key, ttl, value):
        self._check()
        self.setex_calls.append((key, ttl))
        self._data[key] = (value, self.clock() + ttl)
        return True

    async def delete(self, key):
        self._check()
        return 1 if self._data.pop(key, None) is not None else 0

    async def dbsize(self):
        return len(self._data)

    async def aclose(self):
        self.closed = True


# ─────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────

@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest_asyncio.fixture
async def cache(fake_redis):
    layer = CacheLayer("redis://fake:6379/0", client=fake_redis)
    assert await layer.connect()
    yield layer
    await layer.close()


@pytest_asyncio.fixture
async def disabled_cache():
    layer = CacheLayer("redis://fake:6379/0", enabled=False)
    await layer.connect()
    yield layer


@pytest_asyncio.fixture
async def db(tmp_path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'crypto_test.db'}")
    assert await database.connect()
    await database.init_schema()
    yield database
    await database.close()


@pytest.fixture
def storage(db):
    return StorageLayer(db)
