# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Market data providers: Alpaca, Polygon, Finnhub, synthetic."""

from stockdash.market.providers.base import MarketDataProviderInterface
from stockdash.market.providers.alpaca_http import AlpacaProvider
from stockdash.market.providers.polygon_http import PolygonProvider
from stockdash.market.providers.finnhub_http import FinnhubProvider
from stockdash.market.providers.synthetic_provider import SyntheticProvider
from stockdash.market.providers.factory import get_market_data_provider

__all__ = [
    "MarketDataProviderInterface",
    "AlpacaProvider",
    "PolygonProvider",
    "FinnhubProvider",
    "SyntheticProvider",
    "get_market_data_provider",
]
