"""Asset record models as served over HTTP"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CryptoAsset(BaseModel):
    """One tracked cryptocurrency"""
    id: str
    name: str
    symbol: str
    current_price: float = 0.0
    market_cap: float = 0.0
    total_volume: float = 0.0
    price_change_percentage_24h: float = 0.0
    image: Optional[str] = None
    last_updated: Optional[str] = None
    created_at: Optional[str] = None


class ChartPoint(BaseModel):
    """One price sample; `percentageChange` is relative to the previous sample"""
    model_config = ConfigDict(populate_by_name=True)

    timestamp: int
    date: str
    price: float
    percentage_change: float = Field(default=0.0, alias="percentageChange")
