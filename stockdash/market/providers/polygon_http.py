# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Polygon.io market-data REST provider (aggregates, previous close, last trade)."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from stockdash.core.settings import PolygonConfig
from stockdash.market.errors import ProviderError
from stockdash.market.models import Quote, RangeSpec
from stockdash.market.normalizer import build_quote
from stockdash.market.providers.base import HttpProviderBase, clean_ticker, malformed, no_data

logger = logging.getLogger(__name__)

AGGS_LIMIT = 50000


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class PolygonProvider(HttpProviderBase):
    """Fetch OHLCV aggregates from Polygon.io. Bars come back with epoch-ms ``t``."""

    name = "polygon"

    def __init__(
        self,
        config: PolygonConfig,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            base_url=config.base_url,
            headers={"Authorization": f"Bearer {config.api_key}"},
            timeout=timeout,
            transport=transport,
        )

    async def check_connectivity(self) -> bool:
        """Reference tickers with limit=1; status OK => usable key."""
        resp = await self._ping(
            f"{self.base_url}/v3/reference/tickers",
            params={"market": "stocks", "limit": 1},
        )
        if resp is None:
            return False
        if resp.status_code != 200:
            logger.warning("Polygon connectivity check: HTTP %s", resp.status_code)
            return False
        try:
            return resp.json().get("status") == "OK"
        except (ValueError, AttributeError):
            return False

    def _results(self, payload: Any, symbol: str) -> List[Dict[str, Any]]:
        if not isinstance(payload, dict):
            raise malformed(self.name, symbol, "aggregates response is not an object", payload)
        status = payload.get("status")
        if status not in ("OK", "DELAYED"):
            message = payload.get("error") or payload.get("message") or f"unexpected status: {status}"
            raise malformed(self.name, symbol, f"Polygon error: {message}", payload)
        results = payload.get("results") or []
        if not isinstance(results, list):
            raise malformed(self.name, symbol, "results field is not a list", payload)
        return results

    async def fetch_bars(self, ticker: str, spec: RangeSpec) -> List[Dict[str, Any]]:
        symbol = clean_ticker(ticker, self.name)
        res = spec.resolution
        url = (
            f"{self.base_url}/v2/aggs/ticker/{symbol}/range/{res.multiple}/{res.unit.value}/"
            f"{_epoch_ms(spec.start)}/{_epoch_ms(spec.end)}"
        )
        params = {"adjusted": "true", "sort": "asc", "limit": AGGS_LIMIT}
        payload = await self._get_json(url, ticker=symbol, params=params)
        results = self._results(payload, symbol)
        if not results:
            raise no_data(self.name, symbol, f"no aggregates for {symbol} at {res.label()}")
        return results

    async def _previous_day(self, symbol: str) -> Dict[str, Any]:
        payload = await self._get_json(
            f"{self.base_url}/v2/aggs/ticker/{symbol}/prev",
            ticker=symbol,
            params={"adjusted": "true"},
        )
        results = self._results(payload, symbol)
        if not results:
            raise no_data(self.name, symbol, f"no previous close for {symbol}")
        return results[0]

    async def _last_trade(self, symbol: str) -> Optional[Dict[str, Any]]:
        try:
            payload = await self._get_json(f"{self.base_url}/v2/last/trade/{symbol}", ticker=symbol)
        except ProviderError as e:
            logger.warning("Polygon last trade unavailable for %s: %s", symbol, e.kind.value)
            return None
        trade = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(trade, dict) or trade.get("p") is None:
            return None
        return trade

    async def fetch_quote(self, ticker: str) -> Quote:
        symbol = clean_ticker(ticker, self.name)
        prev = await self._previous_day(symbol)
        trade = await self._last_trade(symbol)
        if trade is not None:
            # Trade timestamps are SIP nanoseconds
            raw_ts = trade.get("t")
            ts = raw_ts / 1_000_000 if isinstance(raw_ts, (int, float)) else raw_ts
            price = trade.get("p")
        else:
            price, ts = prev.get("c"), prev.get("t")
        return build_quote(
            symbol,
            price,
            ts,
            prev.get("c"),
            reference_bar=prev,
            provider=self.name,
        )


__all__ = ["PolygonProvider"]
