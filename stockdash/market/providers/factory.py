# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Market data provider factory.

The active adapter is chosen by explicit configuration (``provider`` in
config.yaml / STOCKDASH_PROVIDER), never by inspecting provider types.
"""

from __future__ import annotations

import logging
from typing import Optional

from stockdash.core.settings import StockDashConfig, load_config
from stockdash.market.providers.alpaca_http import AlpacaProvider
from stockdash.market.providers.base import MarketDataProviderInterface
from stockdash.market.providers.finnhub_http import FinnhubProvider
from stockdash.market.providers.polygon_http import PolygonProvider
from stockdash.market.providers.synthetic_provider import SyntheticProvider

logger = logging.getLogger(__name__)


def _auto_provider_name(config: StockDashConfig) -> str:
    """First provider with credentials: alpaca -> polygon -> finnhub -> synthetic."""
    if config.alpaca.configured:
        return "alpaca"
    if config.polygon.configured:
        return "polygon"
    if config.finnhub.configured:
        return "finnhub"
    return "synthetic"


def get_market_data_provider(config: Optional[StockDashConfig] = None) -> MarketDataProviderInterface:
    """Build the configured market data provider."""
    config = config or load_config()
    name = config.provider
    if name == "auto":
        name = _auto_provider_name(config)

    if name == "alpaca":
        provider: MarketDataProviderInterface = AlpacaProvider(config.alpaca, timeout=config.http_timeout)
    elif name == "polygon":
        provider = PolygonProvider(config.polygon, timeout=config.http_timeout)
    elif name == "finnhub":
        provider = FinnhubProvider(config.finnhub, timeout=config.http_timeout)
    elif name == "synthetic":
        provider = SyntheticProvider(seed=config.synthetic.seed)
    else:
        raise ValueError(f"Unknown market data provider: {name!r}")

    logger.info("MarketDataProvider: using %s", provider.name)
    return provider


__all__ = ["get_market_data_provider"]
