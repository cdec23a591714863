"""
Data flow layers
  Layer 1 – Acquisition  : CoinGecko market data (sample data fallback)
  Layer 2 – Processing   : payload cleaning and normalization
  Layer 3 – Cache        : Redis cache-aside
  Layer 4 – Storage      : relational asset table (upsert by id)
"""
