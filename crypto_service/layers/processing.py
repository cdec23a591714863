"""
Processing layer
Cleans raw provider payloads into the record shapes the service hands out.
"""

import logging
from typing import Any, Dict, List

import pandas as pd

logger = logging.getLogger(__name__)

MARKET_COLUMNS = [
    "id",
    "name",
    "symbol",
    "current_price",
    "market_cap",
    "total_volume",
    "price_change_percentage_24h",
    "image",
]
MARKET_NUMERIC_COLUMNS = [
    "current_price",
    "market_cap",
    "total_volume",
    "price_change_percentage_24h",
]


class ProcessingLayer:
    """Normalization of market lists and chart series"""

    def normalize_markets(self, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Map `/coins/markets` objects onto asset records

        Missing numeric fields become 0, symbols are upper-cased, a missing
        image becomes "". Entries without an id are dropped; duplicate ids
        keep the last occurrence. Provider order is preserved.
        """
        if not records:
            return []

        df = pd.DataFrame(records)
        for col in MARKET_COLUMNS:
            if col not in df.columns:
                df[col] = None

        df = df[MARKET_COLUMNS].copy()
        df = df.dropna(subset=["id"])
        df = df.drop_duplicates(subset=["id"], keep="last").copy()

        for col in MARKET_NUMERIC_COLUMNS:
            df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0).astype(float)

        df["id"] = df["id"].astype(str)
        df["symbol"] = df["symbol"].fillna("").astype(str).str.upper()
        df["name"] = df["name"].fillna(df["id"]).astype(str)
        df["image"] = df["image"].fillna("").astype(str)

        return self.to_records(df.reset_index(drop=True))

    def normalize_chart(self, payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Turn a `/market_chart` payload into sorted price points

        Input `prices` is a list of `[epoch_ms, price]` pairs. Output points
        carry `timestamp` (ms), a UTC `date` string, `price` and
        `percentage_change` against the previous point (0 for the first point
        and after a zero price).
        """
        prices = (payload or {}).get("prices") or []
        if not prices:
            return []

        df = pd.DataFrame(prices, columns=["timestamp", "price"])
        df["timestamp"] = pd.to_numeric(df["timestamp"], errors="coerce")
        df["price"] = pd.to_numeric(df["price"], errors="coerce")
        df = df.dropna(subset=["timestamp", "price"]).copy()
        if df.empty:
            return []

        df["timestamp"] = df["timestamp"].astype("int64")
        df = df.drop_duplicates(subset=["timestamp"], keep="last")
        df = df.sort_values("timestamp").reset_index(drop=True)
        df["date"] = pd.to_datetime(df["timestamp"], unit="ms", utc=True).dt.strftime("%Y-%m-%d %H:%M")
        df["price"] = df["price"].astype(float)

        prev = df["price"].shift(1)
        change = (df["price"] - prev) / prev * 100
        df["percentage_change"] = change.where(prev != 0, 0.0).fillna(0.0).astype(float)

        return self.to_records(df[["timestamp", "date", "price", "percentage_change"]])

    def to_records(self, df: pd.DataFrame) -> List[Dict[str, Any]]:
        """DataFrame to a list of plain dicts"""
        if df.empty:
            return []
        return df.to_dict(orient="records")
