# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Quote polling updater.

A cooperative repeating task, not a guaranteed-delivery subscription: every
``interval_ms`` it fetches a quote and hands the price to a callback. A failed
tick is logged and the next one still runs. Ticks never overlap: the next
sleep starts only after the current fetch completes.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, Optional

from stockdash.market.errors import ProviderError
from stockdash.market.providers.base import MarketDataProviderInterface

logger = logging.getLogger(__name__)

PriceCallback = Callable[[float], None]


class PollHandle:
    """Cancel handle returned to the owner of a poller. cancel() is idempotent."""

    def __init__(self, poller: "QuotePoller") -> None:
        self._poller = poller

    @property
    def ticker(self) -> str:
        return self._poller.ticker

    @property
    def cancelled(self) -> bool:
        return self._poller.cancelled

    def cancel(self) -> None:
        self._poller.cancel()

    def __call__(self) -> None:
        self.cancel()


class QuotePoller:
    def __init__(
        self,
        provider: MarketDataProviderInterface,
        ticker: str,
        callback: PriceCallback,
        interval_ms: float,
    ) -> None:
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        self.provider = provider
        self.ticker = ticker
        self.callback = callback
        self.interval_ms = interval_ms
        self.ticks = 0
        self.failures = 0
        self._cancelled = False
        self._task: Optional[asyncio.Task] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def start(self) -> PollHandle:
        """Schedule the loop on the running event loop."""
        if self._cancelled:
            raise RuntimeError(f"poller for {self.ticker} was cancelled")
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run(), name=f"quote-poller:{self.ticker}")
        return PollHandle(self)

    def cancel(self) -> None:
        """Stop future ticks. Safe to call repeatedly or after the loop already ended."""
        if self._cancelled:
            return
        self._cancelled = True
        task = self._task
        if task is not None and not task.done():
            task.cancel()
        logger.debug("poller for %s cancelled after %d ticks", self.ticker, self.ticks)

    async def tick(self) -> Optional[float]:
        """One fetch + callback. Returns the price, or None when the tick failed or was cancelled."""
        try:
            quote = await self.provider.fetch_quote(self.ticker)
        except ProviderError as e:
            self.failures += 1
            logger.warning("poll %s failed: %s", self.ticker, e)
            return None
        except Exception as e:
            self.failures += 1
            logger.exception("poll %s failed unexpectedly: %s", self.ticker, e)
            return None
        if self._cancelled:
            return None
        self.ticks += 1
        try:
            self.callback(quote.price)
        except Exception as e:
            logger.exception("poll %s callback raised: %s", self.ticker, e)
        return quote.price

    async def _run(self) -> None:
        interval = self.interval_ms / 1000.0
        try:
            while not self._cancelled:
                await asyncio.sleep(interval)
                if self._cancelled:
                    break
                await self.tick()
        except asyncio.CancelledError:
            self._cancelled = True
            raise


class PollerRegistry:
    """At most one active poller per ticker; starting a new one cancels the previous."""

    def __init__(self) -> None:
        self._pollers: Dict[str, QuotePoller] = {}

    def start(
        self,
        provider: MarketDataProviderInterface,
        ticker: str,
        callback: PriceCallback,
        interval_ms: float,
    ) -> PollHandle:
        key = ticker.strip().upper()
        self.cancel(key)
        poller = QuotePoller(provider, key, callback, interval_ms)
        self._pollers[key] = poller
        return poller.start()

    def cancel(self, ticker: str) -> None:
        poller = self._pollers.pop(ticker.strip().upper(), None)
        if poller is not None:
            poller.cancel()

    def cancel_all(self) -> None:
        for key in list(self._pollers):
            self.cancel(key)

    def is_active(self, ticker: str) -> bool:
        poller = self._pollers.get(ticker.strip().upper())
        return poller is not None and not poller.cancelled

    def __len__(self) -> int:
        return sum(1 for p in self._pollers.values() if not p.cancelled)


__all__ = ["PollHandle", "QuotePoller", "PollerRegistry", "PriceCallback"]
