# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Request orchestration for one dashboard view.

MarketDataService is the stateless one-shot path: resolve the range, fetch
quote and bars concurrently, normalize. MarketView adds the view lifecycle:
- responses are keyed by their own (ticker, range); stale ones are dropped
- failures clear displayed data and leave a short message
- one quote poller per selected ticker, cancelled on change or close()
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple

from stockdash.core.settings import PollingConfig, get_polling_config
from stockdash.market.errors import ProviderError
from stockdash.market.models import CanonicalSeries, Quote, RangeSpec, SymbolicRange
from stockdash.market.normalizer import normalize
from stockdash.market.poller import PollerRegistry
from stockdash.market.providers.base import MarketDataProviderInterface
from stockdash.market.time_range import poll_interval_ms, resolve

logger = logging.getLogger(__name__)

SelectionKey = Tuple[str, SymbolicRange]


@dataclass(frozen=True)
class ChartSnapshot:
    """Everything the presentation layer needs for one (ticker, range)."""

    ticker: str
    range: SymbolicRange
    spec: RangeSpec
    series: CanonicalSeries
    quote: Quote

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticker": self.ticker,
            "range": self.range.value,
            "spec": self.spec.to_dict(),
            "series": [bar.to_dict() for bar in self.series],
            "quote": self.quote.to_dict(),
        }


class MarketDataService:
    def __init__(self, provider: MarketDataProviderInterface) -> None:
        self.provider = provider

    async def check_connectivity(self) -> bool:
        return await self.provider.check_connectivity()

    async def load_series(self, ticker: str, range_: Any, now: Optional[datetime] = None) -> Tuple[RangeSpec, CanonicalSeries]:
        symbol = ticker.strip().upper()
        symbolic = SymbolicRange.parse(range_)
        spec = resolve(symbolic, now)
        try:
            raw = await self.provider.fetch_bars(symbol, spec)
        except ProviderError as e:
            raise e.with_context(symbol, symbolic.value) from e
        return spec, normalize(raw)

    async def load_quote(self, ticker: str) -> Quote:
        symbol = ticker.strip().upper()
        try:
            return await self.provider.fetch_quote(symbol)
        except ProviderError as e:
            raise e.with_context(symbol) from e

    async def load(self, ticker: str, range_: Any, now: Optional[datetime] = None) -> ChartSnapshot:
        """Quote and bars are fetched concurrently; both must finish before a snapshot exists.

        If either call fails the other is cancelled rather than left running.
        """
        symbol = ticker.strip().upper()
        symbolic = SymbolicRange.parse(range_)
        spec = resolve(symbolic, now)
        quote_task = asyncio.ensure_future(self.provider.fetch_quote(symbol))
        bars_task = asyncio.ensure_future(self.provider.fetch_bars(symbol, spec))
        try:
            quote, raw = await asyncio.gather(quote_task, bars_task)
        except ProviderError as e:
            raise e.with_context(symbol, symbolic.value) from e
        finally:
            for task in (quote_task, bars_task):
                if not task.done():
                    task.cancel()
        series = normalize(raw)
        logger.info("loaded %s %s: %d bars from %s", symbol, symbolic.value, len(series), self.provider.name)
        return ChartSnapshot(ticker=symbol, range=symbolic, spec=spec, series=series, quote=quote)


class MarketView:
    """State of one dashboard view: current selection, snapshot, error, live price."""

    def __init__(
        self,
        service: MarketDataService,
        pollers: Optional[PollerRegistry] = None,
        polling: Optional[PollingConfig] = None,
        on_price: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.service = service
        self.pollers = pollers if pollers is not None else PollerRegistry()
        self.polling = polling or get_polling_config()
        self.on_price = on_price
        self.snapshot: Optional[ChartSnapshot] = None
        self.error: Optional[str] = None
        self.live_price: Optional[float] = None
        self.loading = False
        self._current: Optional[SelectionKey] = None
        self._polled: Optional[SelectionKey] = None

    @property
    def selection(self) -> Optional[SelectionKey]:
        return self._current

    def _is_current(self, key: SelectionKey) -> bool:
        return self._current == key

    def _stop_polling(self) -> None:
        if self._polled is not None:
            self.pollers.cancel(self._polled[0])
            self._polled = None

    def _start_polling(self, key: SelectionKey) -> None:
        if self._polled == key:
            return
        self._stop_polling()
        interval = poll_interval_ms(key[1], self.polling)
        self.pollers.start(self.service.provider, key[0], self._handle_price, interval)
        self._polled = key

    def _handle_price(self, price: float) -> None:
        self.live_price = price
        if self.on_price is not None:
            self.on_price(price)

    async def select(self, ticker: str, range_: Any = SymbolicRange.ONE_MONTH, now: Optional[datetime] = None) -> Optional[ChartSnapshot]:
        """Load (ticker, range). Returns the snapshot, or None if it failed or was superseded."""
        key: SelectionKey = (ticker.strip().upper(), SymbolicRange.parse(range_))
        if self._polled is not None and self._polled[0] != key[0]:
            self._stop_polling()
        self._current = key
        self.loading = True
        try:
            snapshot = await self.service.load(key[0], key[1], now)
        except ProviderError as e:
            if not self._is_current(key):
                logger.debug("discarding stale failure for %s %s", key[0], key[1].value)
                return None
            logger.warning("load %s %s failed: %s", key[0], key[1].value, e)
            self._stop_polling()
            self.snapshot = None
            self.live_price = None
            self.error = e.user_message()
            self.loading = False
            return None

        if not self._is_current(key):
            logger.debug("discarding stale response for %s %s", key[0], key[1].value)
            return None
        self.snapshot = snapshot
        self.live_price = snapshot.quote.price
        self.error = None
        self.loading = False
        self._start_polling(key)
        return snapshot

    def close(self) -> None:
        """Tear down: cancel the poller and forget the selection."""
        self._stop_polling()
        self._current = None


__all__ = ["ChartSnapshot", "MarketDataService", "MarketView"]
