# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Synthetic provider: seeded random walk keyed by ticker. No network.

Used when no live credentials are configured. Every symbol has one daily
path anchored at SERIES_EPOCH, so any two windows that cover the same
session report the same bar for it:
- daily bars come straight from the path
- weekly / monthly bars aggregate its days
- intraday bars bridge each day's open to its close
- quotes read the latest day of the path

Seeds use zlib.crc32 (not the randomized built-in hash()), so values are
stable across processes.
"""

from __future__ import annotations

import logging
import math
import random
import zlib
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple

from stockdash.market.market_hours import MARKET_CLOSE, MARKET_OPEN, US_EASTERN, as_utc
from stockdash.market.models import BarResolution, Quote, RangeSpec, ResolutionUnit
from stockdash.market.normalizer import build_quote, normalize
from stockdash.market.providers.base import MarketDataProviderInterface, clean_ticker, no_data

logger = logging.getLogger(__name__)

BASE_PRICES: Dict[str, float] = {
    "AAPL": 180.5,
    "MSFT": 340.2,
    "AMZN": 135.7,
    "GOOGL": 140.8,
    "META": 300.5,
    "TSLA": 220.3,
    "NVDA": 450.9,
    "AMD": 120.4,
    "INTC": 35.8,
    "IBM": 145.6,
    "JPM": 170.0,
    "DIS": 110.0,
}
DEFAULT_PRICE = 100.0
QUOTE_LOOKBACK_DAYS = 10

# First session of every daily path (a Monday); earlier days have no data
SERIES_EPOCH = date(2000, 1, 3)

_DAILY_VOLATILITY = 0.015
# Daily pull of log(close) back towards log(base price)
_MEAN_REVERSION = 0.02
# Per-step volatility for one bar of the unit
_INTRADAY_VOLATILITY = {
    ResolutionUnit.MINUTE: 0.0015,
    ResolutionUnit.HOUR: 0.004,
}

# (open, high, low, close, volume)
DailyBar = Tuple[float, float, float, float, int]


def _days(start_et: date, end_et: date) -> Iterator[date]:
    d = start_et
    while d <= end_et:
        yield d
        d += timedelta(days=1)


def _weekdays(spec: RangeSpec) -> List[date]:
    start_et = spec.start.astimezone(US_EASTERN).date()
    end_et = spec.end.astimezone(US_EASTERN).date()
    return [d for d in _days(max(start_et, SERIES_EPOCH), end_et) if d.weekday() < 5]


def _day_index(d: date) -> int:
    weeks, rem = divmod((d - SERIES_EPOCH).days, 7)
    return weeks * 5 + rem


def _midnight_utc(d: date) -> datetime:
    return datetime.combine(d, datetime.min.time(), tzinfo=US_EASTERN).astimezone(timezone.utc)


def _session_times(d: date, res: BarResolution) -> List[datetime]:
    """Bar start instants (UTC) of one full 09:30-16:00 ET session."""
    step = timedelta(minutes=res.multiple) if res.unit is ResolutionUnit.MINUTE else timedelta(hours=res.multiple)
    t = datetime.combine(d, MARKET_OPEN, tzinfo=US_EASTERN)
    close = datetime.combine(d, MARKET_CLOSE, tzinfo=US_EASTERN)
    times: List[datetime] = []
    while t < close:
        times.append(t.astimezone(timezone.utc))
        t += step
    return times


def _periods(spec: RangeSpec) -> List[List[date]]:
    """Trading days of a daily-or-coarser window, grouped into one list per bar."""
    unit = spec.resolution.unit
    groups: List[List[date]] = []
    last_key: Any = None
    for d in _weekdays(spec):
        # A session that has not opened by the window end has no bar yet
        if datetime.combine(d, MARKET_OPEN, tzinfo=US_EASTERN) > spec.end:
            continue
        if unit is ResolutionUnit.WEEK:
            key: Any = d.isocalendar()[:2]
        elif unit is ResolutionUnit.MONTH:
            key = (d.year, d.month)
        else:
            key = d
        if not groups or key != last_key:
            groups.append([])
            last_key = key
        groups[-1].append(d)
    return groups


def bar_times(spec: RangeSpec) -> List[datetime]:
    """Bar start instants (UTC) inside the window: weekdays only, intraday bars within 09:30-16:00 ET."""
    res = spec.resolution
    if res.is_intraday:
        return [
            t
            for d in _weekdays(spec)
            for t in _session_times(d, res)
            if spec.start <= t <= spec.end
        ]
    return [_midnight_utc(days[0]) for days in _periods(spec)]


def _record(t: datetime, open_: float, high: float, low: float, close: float, volume: int) -> Dict[str, Any]:
    return {
        "t": t.isoformat(),
        "o": round(open_, 4),
        "h": round(high, 4),
        "l": round(low, 4),
        "c": round(close, 4),
        "v": volume,
    }


class DailyPath:
    """Mean-reverting daily OHLCV path for one symbol, extended on demand from SERIES_EPOCH."""

    def __init__(self, rng: random.Random, base: float) -> None:
        self._rng = rng
        self._base = base
        self._bars: List[DailyBar] = []

    def bar(self, index: int) -> DailyBar:
        while len(self._bars) <= index:
            self._bars.append(self._step())
        return self._bars[index]

    def _step(self) -> DailyBar:
        rng = self._rng
        prev = self._bars[-1][3] if self._bars else self._base
        drift = -_MEAN_REVERSION * math.log(prev / self._base)
        close = prev * math.exp(drift + rng.gauss(0.0, _DAILY_VOLATILITY))
        open_ = prev * (1 + rng.gauss(0.0, _DAILY_VOLATILITY * 0.2))
        high = max(open_, close) * (1 + abs(rng.gauss(0.0, _DAILY_VOLATILITY * 0.5)))
        low = min(open_, close) * (1 - abs(rng.gauss(0.0, _DAILY_VOLATILITY * 0.5)))
        volume = int(1_000_000 + rng.random() * 9_000_000)
        return (round(open_, 4), round(high, 4), round(low, 4), round(close, 4), volume)


def _bridge(rng: random.Random, open_: float, close: float, steps: int, sigma: float, low: float, high: float) -> List[float]:
    """steps + 1 prices from open_ to close: a Brownian bridge in log space, clamped to [low, high]."""
    walk = [0.0]
    for _ in range(steps):
        walk.append(walk[-1] + rng.gauss(0.0, sigma))
    drift = math.log(close / open_)
    points = [open_]
    for k in range(1, steps):
        frac = k / steps
        price = open_ * math.exp(frac * drift + walk[k] - frac * walk[-1])
        points.append(min(max(price, low), high))
    points.append(close)
    return points


class SyntheticProvider(MarketDataProviderInterface):
    """Random-walk bars and quotes. Always reachable."""

    name = "synthetic"

    def __init__(self, seed: int = 42) -> None:
        self.seed = seed
        # Advances on every quote so polled prices move
        self._tick_rng = random.Random(seed)
        self._paths: Dict[str, DailyPath] = {}

    def _rng(self, symbol: str, salt: str = "") -> random.Random:
        return random.Random(zlib.crc32(f"{symbol}|{salt}".encode("utf-8")) ^ self.seed)

    def base_price(self, symbol: str) -> float:
        return BASE_PRICES.get(symbol, DEFAULT_PRICE)

    def daily_path(self, symbol: str) -> DailyPath:
        path = self._paths.get(symbol)
        if path is None:
            path = DailyPath(self._rng(symbol, "daily"), self.base_price(symbol))
            self._paths[symbol] = path
        return path

    def _validate(self, ticker: str) -> str:
        symbol = clean_ticker(ticker, self.name)
        if not symbol.replace(".", "").replace("-", "").isalnum():
            raise no_data(self.name, symbol, f"unknown ticker {symbol!r}")
        return symbol

    def _intraday(self, symbol: str, spec: RangeSpec) -> List[Dict[str, Any]]:
        res = spec.resolution
        path = self.daily_path(symbol)
        sigma = _INTRADAY_VOLATILITY[res.unit] * math.sqrt(res.multiple)
        records: List[Dict[str, Any]] = []
        for d in _weekdays(spec):
            times = _session_times(d, res)
            day_open, day_high, day_low, day_close, day_volume = path.bar(_day_index(d))
            # The whole session is generated so a bar is the same whichever window asks for it
            rng = self._rng(symbol, f"{res.label()}|{d.isoformat()}")
            prices = _bridge(rng, day_open, day_close, len(times), sigma, day_low, day_high)
            for k, t in enumerate(times):
                open_, close = prices[k], prices[k + 1]
                high = min(day_high, max(open_, close) * (1 + abs(rng.gauss(0.0, sigma * 0.5))))
                low = max(day_low, min(open_, close) * (1 - abs(rng.gauss(0.0, sigma * 0.5))))
                volume = int(day_volume / len(times) * (0.5 + rng.random()))
                if spec.start <= t <= spec.end:
                    records.append(_record(t, open_, high, low, close, volume))
        return records

    def generate(self, symbol: str, spec: RangeSpec) -> List[Dict[str, Any]]:
        """Provider-native records {t: ISO-8601, o, h, l, c, v} for the window."""
        if spec.resolution.is_intraday:
            return self._intraday(symbol, spec)
        path = self.daily_path(symbol)
        records: List[Dict[str, Any]] = []
        for days in _periods(spec):
            bars = [path.bar(_day_index(d)) for d in days]
            records.append(_record(
                _midnight_utc(days[0]),
                bars[0][0],
                max(b[1] for b in bars),
                min(b[2] for b in bars),
                bars[-1][3],
                sum(b[4] for b in bars),
            ))
        return records

    async def check_connectivity(self) -> bool:
        return True

    async def fetch_bars(self, ticker: str, spec: RangeSpec) -> List[Dict[str, Any]]:
        symbol = self._validate(ticker)
        records = self.generate(symbol, spec)
        if not records:
            raise no_data(self.name, symbol, f"no synthetic bars for {symbol} at {spec.resolution.label()}")
        return records

    async def fetch_quote(self, ticker: str, now: Optional[datetime] = None) -> Quote:
        symbol = self._validate(ticker)
        end = as_utc(now)
        spec = RangeSpec(BarResolution(ResolutionUnit.DAY), end - timedelta(days=QUOTE_LOOKBACK_DAYS), end)
        daily = normalize(self.generate(symbol, spec))
        if not daily:
            raise no_data(self.name, symbol, f"no synthetic session for {symbol}")
        latest = daily[-1]
        previous_close = daily[-2].close if len(daily) > 1 else latest.open
        # Small tick around the latest close (up to +/-0.5%)
        price = round(latest.close * (1 + (self._tick_rng.random() - 0.5) * 0.01), 4)
        return build_quote(
            symbol,
            price,
            end,
            previous_close,
            reference_bar=latest,
            provider=self.name,
        )


__all__ = ["SyntheticProvider", "DailyPath", "BASE_PRICES", "DEFAULT_PRICE", "SERIES_EPOCH", "bar_times"]
