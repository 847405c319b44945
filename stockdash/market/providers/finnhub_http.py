# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Finnhub REST provider. Candles arrive as parallel arrays with epoch-second timestamps."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from stockdash.core.settings import FinnhubConfig
from stockdash.market.models import BarResolution, Quote, RangeSpec, ResolutionUnit
from stockdash.market.normalizer import build_quote
from stockdash.market.providers.base import HttpProviderBase, clean_ticker, malformed, no_data

logger = logging.getLogger(__name__)

_CANDLE_FIELDS = ("t", "o", "h", "l", "c")


def finnhub_resolution(resolution: BarResolution) -> str:
    """Finnhub accepts 1, 5, 15, 30, 60 (minutes), D, W, M."""
    if resolution.unit is ResolutionUnit.MINUTE:
        return str(resolution.multiple)
    if resolution.unit is ResolutionUnit.HOUR:
        return str(resolution.multiple * 60)
    return {ResolutionUnit.DAY: "D", ResolutionUnit.WEEK: "W", ResolutionUnit.MONTH: "M"}[resolution.unit]


class FinnhubProvider(HttpProviderBase):
    name = "finnhub"

    def __init__(
        self,
        config: FinnhubConfig,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            base_url=config.base_url,
            headers={"X-Finnhub-Token": config.api_key},
            timeout=timeout,
            transport=transport,
        )

    async def check_connectivity(self) -> bool:
        resp = await self._ping(f"{self.base_url}/stock/symbol", params={"exchange": "US"})
        if resp is None:
            return False
        if resp.status_code == 403:
            logger.warning("Finnhub authentication failed: check API key")
            return False
        return resp.status_code == 200

    async def fetch_bars(self, ticker: str, spec: RangeSpec) -> List[Dict[str, Any]]:
        symbol = clean_ticker(ticker, self.name)
        params = {
            "symbol": symbol,
            "resolution": finnhub_resolution(spec.resolution),
            "from": int(spec.start.timestamp()),
            "to": int(spec.end.timestamp()),
        }
        data = await self._get_json(f"{self.base_url}/stock/candle", ticker=symbol, params=params)
        if not isinstance(data, dict):
            raise malformed(self.name, symbol, "candle response is not an object", data)
        status = data.get("s")
        if status == "no_data":
            raise no_data(self.name, symbol, f"no candles for {symbol}")
        if status != "ok":
            raise malformed(self.name, symbol, f"candle status {status!r}", data)

        columns = {key: data.get(key) for key in _CANDLE_FIELDS}
        if any(not isinstance(col, list) for col in columns.values()):
            raise malformed(self.name, symbol, "candle arrays missing", data)
        length = len(columns["t"])
        if any(len(col) != length for col in columns.values()):
            raise malformed(self.name, symbol, "candle arrays have different lengths", data)
        if length == 0:
            raise no_data(self.name, symbol, f"no candles for {symbol}")
        volumes = data.get("v") if isinstance(data.get("v"), list) and len(data["v"]) == length else None

        return [
            {
                "t": columns["t"][i],
                "o": columns["o"][i],
                "h": columns["h"][i],
                "l": columns["l"][i],
                "c": columns["c"][i],
                "v": volumes[i] if volumes is not None else None,
            }
            for i in range(length)
        ]

    async def fetch_quote(self, ticker: str) -> Quote:
        symbol = clean_ticker(ticker, self.name)
        data = await self._get_json(f"{self.base_url}/quote", ticker=symbol, params={"symbol": symbol})
        if not isinstance(data, dict):
            raise malformed(self.name, symbol, "quote response is not an object", data)
        # Unknown symbols come back as all zeros
        if not data.get("c") and not data.get("t"):
            raise no_data(self.name, symbol, f"no quote for {symbol}")
        return build_quote(
            symbol,
            data.get("c"),
            data.get("t"),
            data.get("pc"),
            open=data.get("o") or None,
            high=data.get("h") or None,
            low=data.get("l") or None,
            provider=self.name,
        )


__all__ = ["FinnhubProvider", "finnhub_resolution"]
