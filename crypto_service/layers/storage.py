"""
Storage layer
Persists asset records into the relational `cryptocurrencies` table.
Writes are single-statement upserts keyed by id; reads coerce numeric columns
back to floats whatever the driver hands us (Decimal, str, int).
"""

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, select

from crypto_service.db import Cryptocurrency, Database

logger = logging.getLogger(__name__)

NUMERIC_FIELDS = (
    "current_price",
    "market_cap",
    "total_volume",
    "price_change_percentage_24h",
)

# columns overwritten when the id already exists; created_at is insert-only
_UPDATE_COLUMNS = (
    "name",
    "symbol",
    "current_price",
    "market_cap",
    "total_volume",
    "price_change_percentage_24h",
    "image",
    "last_updated",
)


def as_number(value: Any) -> float:
    """Coerce a stored numeric value (Decimal / str / int / None) to float"""
    if value is None or value == "":
        return 0.0
    if isinstance(value, float):
        return value
    try:
        return float(Decimal(str(value)))
    except (InvalidOperation, ValueError):
        return 0.0


def _as_bigint(value: Any) -> int:
    return int(round(as_number(value)))


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _insert_for(dialect: str):
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise ValueError(f"Unsupported database dialect for upsert: {dialect}")
    return insert


class StorageLayer:
    """Asset record repository on top of `Database`"""

    def __init__(self, db: Database):
        self._db = db
        self._insert = _insert_for(db.dialect)

    async def upsert(self, crypto: Dict[str, Any]) -> bool:
        """Insert the record, or overwrite every mutable field if the id exists"""
        now = datetime.now(tz=timezone.utc)
        values = {
            "id": crypto["id"],
            "name": crypto.get("name") or crypto["id"],
            "symbol": (crypto.get("symbol") or "").upper(),
            "current_price": as_number(crypto.get("current_price")),
            "market_cap": _as_bigint(crypto.get("market_cap")),
            "total_volume": _as_bigint(crypto.get("total_volume")),
            "price_change_percentage_24h": as_number(crypto.get("price_change_percentage_24h")),
            "image": crypto.get("image") or "",
            "last_updated": now,
            "created_at": now,
        }
        table = Cryptocurrency.__table__
        stmt = self._insert(table).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.id],
            set_={col: stmt.excluded[col] for col in _UPDATE_COLUMNS},
        )
        try:
            async with self._db.session() as session:
                await session.execute(stmt)
                await session.commit()
        except Exception as exc:
            logger.error(f"❌ Error upserting crypto data ({values['id']}): {exc}")
            raise
        return True

    async def upsert_many(self, cryptos: Iterable[Dict[str, Any]]) -> int:
        """
        Upsert every record concurrently, each in its own transaction.

        A failing record does not roll back the others; the first failure is
        re-raised once all upserts have been scheduled.
        """
        cryptos = list(cryptos)
        await asyncio.gather(*(self.upsert(c) for c in cryptos))
        return len(cryptos)

    async def get_all(self) -> List[Dict[str, Any]]:
        """All stored assets, largest market cap first"""
        query = select(Cryptocurrency).order_by(Cryptocurrency.market_cap.desc())
        try:
            async with self._db.session() as session:
                rows = (await session.execute(query)).scalars().all()
        except Exception as exc:
            logger.error(f"❌ Error fetching crypto data: {exc}")
            raise
        return [self._to_record(row) for row in rows]

    async def get_by_id(self, crypto_id: str) -> Optional[Dict[str, Any]]:
        try:
            async with self._db.session() as session:
                row = await session.get(Cryptocurrency, crypto_id)
        except Exception as exc:
            logger.error(f"❌ Error fetching crypto by id ({crypto_id}): {exc}")
            raise
        if row is None:
            return None
        return self._to_record(row)

    async def count(self) -> int:
        async with self._db.session() as session:
            result = await session.execute(select(func.count(Cryptocurrency.id)))
            return result.scalar_one()

    @staticmethod
    def _to_record(row: Cryptocurrency) -> Dict[str, Any]:
        record = {
            "id": row.id,
            "name": row.name,
            "symbol": row.symbol,
            "image": row.image,
            "last_updated": _iso(row.last_updated),
            "created_at": _iso(row.created_at),
        }
        for field in NUMERIC_FIELDS:
            record[field] = as_number(getattr(row, field))
        return record
