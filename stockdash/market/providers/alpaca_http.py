# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Alpaca brokerage-style REST provider.

Trading API (account) is used for the connectivity check; the market data
API serves bars and latest trades. Credentials travel as the
APCA-API-KEY-ID / APCA-API-SECRET-KEY headers and are never logged.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx

from stockdash.core.settings import AlpacaConfig
from stockdash.market.errors import ProviderError
from stockdash.market.models import BarResolution, Quote, RangeSpec, ResolutionUnit
from stockdash.market.normalizer import build_quote, normalize
from stockdash.market.providers.base import HttpProviderBase, clean_ticker, malformed, no_data

logger = logging.getLogger(__name__)

PAGE_LIMIT = 1000
MAX_PAGES = 20
# Daily bars fetched for the previous-session reference; covers long weekends
QUOTE_LOOKBACK_DAYS = 10

_UNIT_SUFFIX = {
    ResolutionUnit.MINUTE: "Min",
    ResolutionUnit.HOUR: "Hour",
    ResolutionUnit.DAY: "Day",
    ResolutionUnit.WEEK: "Week",
    ResolutionUnit.MONTH: "Month",
}


def alpaca_timeframe(resolution: BarResolution) -> str:
    """BarResolution -> Alpaca timeframe (5Min, 1Hour, 1Day, 1Week, 1Month)."""
    return f"{resolution.multiple}{_UNIT_SUFFIX[resolution.unit]}"


def _rfc3339(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")


class AlpacaProvider(HttpProviderBase):
    """Alpaca v2 REST. Bars are requested sorted ascending; the normalizer sorts again anyway."""

    name = "alpaca"

    def __init__(
        self,
        config: AlpacaConfig,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            base_url=config.data_base_url,
            headers={
                "APCA-API-KEY-ID": config.api_key,
                "APCA-API-SECRET-KEY": config.api_secret,
            },
            timeout=timeout,
            transport=transport,
        )
        self.api_base_url = config.api_base_url.rstrip("/")
        self.feed = config.feed

    async def check_connectivity(self) -> bool:
        """GET /v2/account; 200 => ok."""
        resp = await self._ping(f"{self.api_base_url}/v2/account")
        if resp is None:
            return False
        if resp.status_code != 200:
            logger.warning("Alpaca connectivity check: HTTP %s", resp.status_code)
            return False
        return True

    async def _bars_page(
        self,
        symbol: str,
        timeframe: str,
        start: datetime,
        end: datetime,
        page_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "timeframe": timeframe,
            "start": _rfc3339(start),
            "end": _rfc3339(end),
            "limit": PAGE_LIMIT,
            "adjustment": "raw",
            "feed": self.feed,
            "sort": "asc",
        }
        if page_token:
            params["page_token"] = page_token
        payload = await self._get_json(f"{self.base_url}/v2/stocks/{symbol}/bars", ticker=symbol, params=params)
        if not isinstance(payload, dict):
            raise malformed(self.name, symbol, "bars response is not an object", payload)
        return payload

    async def _collect_bars(self, symbol: str, timeframe: str, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        bars: List[Dict[str, Any]] = []
        page_token: Optional[str] = None
        for _ in range(MAX_PAGES):
            payload = await self._bars_page(symbol, timeframe, start, end, page_token)
            page = payload.get("bars") or []
            if not isinstance(page, list):
                raise malformed(self.name, symbol, "bars field is not a list", payload)
            bars.extend(page)
            page_token = payload.get("next_page_token")
            if not page_token:
                break
        else:
            logger.warning("Alpaca bars for %s truncated after %d pages", symbol, MAX_PAGES)
        return bars

    async def fetch_bars(self, ticker: str, spec: RangeSpec) -> List[Dict[str, Any]]:
        symbol = clean_ticker(ticker, self.name)
        timeframe = alpaca_timeframe(spec.resolution)
        logger.debug("Alpaca bars %s %s %s..%s", symbol, timeframe, spec.start.isoformat(), spec.end.isoformat())
        bars = await self._collect_bars(symbol, timeframe, spec.start, spec.end)
        if not bars:
            raise no_data(self.name, symbol, f"no bars for {symbol} between {_rfc3339(spec.start)} and {_rfc3339(spec.end)}")
        return bars

    async def _latest_trade(self, symbol: str) -> Optional[Dict[str, Any]]:
        """Latest trade {p, t}; None when the trade feed is unavailable."""
        try:
            payload = await self._get_json(f"{self.base_url}/v2/stocks/{symbol}/trades/latest", ticker=symbol)
        except ProviderError as e:
            logger.warning("Alpaca latest trade unavailable for %s: %s", symbol, e.kind.value)
            return None
        trade = payload.get("trade") if isinstance(payload, dict) else None
        if not isinstance(trade, dict) or trade.get("p") is None:
            return None
        return trade

    async def fetch_quote(self, ticker: str) -> Quote:
        symbol = clean_ticker(ticker, self.name)
        end = datetime.now(timezone.utc)
        daily = normalize(
            await self._collect_bars(symbol, "1Day", end - timedelta(days=QUOTE_LOOKBACK_DAYS), end)
        )
        if not daily:
            raise no_data(self.name, symbol, f"no recent daily bars for {symbol}")
        latest = daily[-1]
        # Previous session: the bar before the latest one; with a single bar use its open
        previous_close = daily[-2].close if len(daily) > 1 else latest.open

        trade = await self._latest_trade(symbol)
        if trade is not None:
            price, ts = trade.get("p"), trade.get("t")
        else:
            price, ts = latest.close, latest.timestamp
        return build_quote(
            symbol,
            price,
            ts,
            previous_close,
            reference_bar=latest,
            provider=self.name,
        )


__all__ = ["AlpacaProvider", "alpaca_timeframe"]
