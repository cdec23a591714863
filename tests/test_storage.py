"""
Storage layer tests (SQLite file per test)

Covers:
  - upsert insert / update semantics and idempotency
  - created_at preserved across updates
  - numeric coercion on read
  - market-cap ordering
  - concurrent bulk upsert
"""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import text

from crypto_service.layers.acquisition import FALLBACK_CRYPTOS
from crypto_service.layers.storage import StorageLayer, as_number


def _btc(**overrides):
    record = dict(FALLBACK_CRYPTOS[0])
    record.update(overrides)
    return record


class TestAsNumber:
    def test_decimal(self):
        assert as_number(Decimal("43250.50000000")) == 43250.5

    def test_string_encoded(self):
        value = as_number("2650.75000000")
        assert isinstance(value, float) and value == 2650.75

    def test_int(self):
        assert as_number(847250000000) == 847250000000.0

    def test_none_and_garbage(self):
        assert as_number(None) == 0.0
        assert as_number("") == 0.0
        assert as_number("n/a") == 0.0

    def test_negative_kept(self):
        assert as_number("-1.2300") == -1.23


class TestUpsert:
    @pytest.mark.asyncio
    async def test_insert_then_read(self, storage):
        assert await storage.upsert(_btc()) is True
        row = await storage.get_by_id("bitcoin")
        assert row["name"] == "Bitcoin"
        assert row["symbol"] == "BTC"
        assert row["current_price"] == pytest.approx(43250.50)
        assert row["created_at"] is not None
        assert row["last_updated"] is not None

    @pytest.mark.asyncio
    async def test_numeric_fields_are_numbers(self, storage):
        await storage.upsert(_btc())
        row = await storage.get_by_id("bitcoin")
        for field in ("current_price", "market_cap", "total_volume", "price_change_percentage_24h"):
            assert isinstance(row[field], float), field

    @pytest.mark.asyncio
    async def test_idempotent_single_row(self, storage):
        await storage.upsert(_btc())
        await storage.upsert(_btc())
        assert await storage.count() == 1

    @pytest.mark.asyncio
    async def test_update_overwrites_and_keeps_created_at(self, storage):
        await storage.upsert(_btc())
        first = await storage.get_by_id("bitcoin")

        await asyncio.sleep(0.01)
        await storage.upsert(_btc(current_price=50000.0, price_change_percentage_24h=-3.5, name="Bitcoin Core"))
        second = await storage.get_by_id("bitcoin")

        assert await storage.count() == 1
        assert second["current_price"] == pytest.approx(50000.0)
        assert second["price_change_percentage_24h"] == pytest.approx(-3.5)
        assert second["name"] == "Bitcoin Core"
        assert second["created_at"] == first["created_at"]
        assert second["last_updated"] >= first["last_updated"]

    @pytest.mark.asyncio
    async def test_missing_numeric_defaults_to_zero(self, storage):
        await storage.upsert({"id": "dogecoin", "name": "Dogecoin", "symbol": "doge"})
        row = await storage.get_by_id("dogecoin")
        assert row["symbol"] == "DOGE"
        assert row["market_cap"] == 0.0
        assert row["current_price"] == 0.0

    @pytest.mark.asyncio
    async def test_string_encoded_columns_read_as_numbers(self, db, storage):
        # store text in the numeric columns, as some drivers hand back decimals as strings
        async with db.engine.begin() as conn:
            await conn.execute(text(
                "INSERT INTO cryptocurrencies "
                "(id, name, symbol, current_price, market_cap, total_volume, price_change_percentage_24h, image) "
                "VALUES ('cardano', 'Cardano', 'ADA', '0.45000000', '15800000000', '320000000', '1.1500', '')"
            ))
        row = await storage.get_by_id("cardano")
        assert row["current_price"] == pytest.approx(0.45)
        assert row["market_cap"] == pytest.approx(15800000000.0)
        assert isinstance(row["price_change_percentage_24h"], float)


class TestReads:
    @pytest.mark.asyncio
    async def test_get_by_id_missing(self, storage):
        assert await storage.get_by_id("does-not-exist") is None

    @pytest.mark.asyncio
    async def test_get_all_sorted_by_market_cap(self, storage):
        for crypto in FALLBACK_CRYPTOS:
            await storage.upsert(crypto)
        rows = await storage.get_all()
        caps = [r["market_cap"] for r in rows]
        assert caps == sorted(caps, reverse=True)
        assert rows[0]["id"] == "bitcoin"
        assert len(rows) == 5

    @pytest.mark.asyncio
    async def test_get_all_empty(self, storage):
        assert await storage.get_all() == []


class TestUpsertMany:
    @pytest.mark.asyncio
    async def test_returns_count(self, storage):
        assert await storage.upsert_many(FALLBACK_CRYPTOS) == 5
        assert await storage.count() == 5

    @pytest.mark.asyncio
    async def test_one_failure_does_not_roll_back_others(self, storage):
        bad = {"name": "Broken"}
        with pytest.raises(KeyError):
            await storage.upsert_many([FALLBACK_CRYPTOS[0], bad, FALLBACK_CRYPTOS[1]])
        # give the sibling upserts time to finish after the first error surfaced
        await asyncio.sleep(0.2)
        assert await storage.get_by_id("bitcoin") is not None
        assert await storage.get_by_id("ethereum") is not None


class TestDatabase:
    @pytest.mark.asyncio
    async def test_init_schema_idempotent(self, db):
        await db.init_schema()
        await db.init_schema()
        assert (await db.check_health())["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_connect_failure_returns_false(self, tmp_path):
        from crypto_service.db import Database
        missing = Database(f"sqlite+aiosqlite:///{tmp_path / 'no' / 'such' / 'dir.db'}")
        assert await missing.connect() is False
        await missing.close()

    def test_unsupported_dialect_rejected(self):
        class _FakeDb:
            dialect = "oracle"

        with pytest.raises(ValueError):
            StorageLayer(_FakeDb())
