"""Cryptocurrency table"""

from sqlalchemy import BigInteger, Column, DateTime, Numeric, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Cryptocurrency(Base):
    """One row per tracked asset, keyed by the provider's coin id."""
    __tablename__ = "cryptocurrencies"

    id = Column(String(50), primary_key=True)
    name = Column(String(100), nullable=False)
    symbol = Column(String(10), nullable=False)
    current_price = Column(Numeric(20, 8), nullable=False)
    market_cap = Column(BigInteger)
    total_volume = Column(BigInteger)
    price_change_percentage_24h = Column(Numeric(10, 4))
    image = Column(String(500))

    last_updated = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True))

    def __repr__(self):
        return f"<Cryptocurrency(id={self.id}, symbol={self.symbol})>"
