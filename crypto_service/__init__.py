"""
CryptoTracker market data service
Standalone microservice serving market data for a fixed set of cryptocurrencies.

Layers:
  Acquisition  → pull market data from CoinGecko (sample data on failure)
  Processing   → clean and normalize provider payloads
  Cache        → Redis cache-aside with expiring entries
  Storage      → relational table of asset records (upsert by id)
"""

__version__ = "1.0.0"
