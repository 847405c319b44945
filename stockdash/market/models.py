# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Canonical market data shapes shared by providers, normalizer and views.

Every provider response is reduced to these types before it leaves the core:
- Bar / CanonicalSeries for charting
- Quote for the stats panel
- RangeSpec for the provider query window
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class SymbolicRange(str, Enum):
    """Coarse UI time window selector."""

    ONE_DAY = "1D"
    ONE_WEEK = "1W"
    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    ONE_YEAR = "1Y"
    MAX = "MAX"

    @classmethod
    def parse(cls, value: Any) -> "SymbolicRange":
        """Total parse: unknown or empty values fall back to 1M."""
        if isinstance(value, SymbolicRange):
            return value
        text = str(value or "").strip().upper()
        for member in cls:
            if member.value == text:
                return member
        return cls.ONE_MONTH


class ResolutionUnit(str, Enum):
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


@dataclass(frozen=True)
class BarResolution:
    """Bar size, e.g. 5 x minute."""

    unit: ResolutionUnit
    multiple: int = 1

    def __post_init__(self) -> None:
        if self.multiple < 1:
            raise ValueError(f"resolution multiple must be >= 1, got {self.multiple}")

    @property
    def is_intraday(self) -> bool:
        return self.unit in (ResolutionUnit.MINUTE, ResolutionUnit.HOUR)

    def label(self) -> str:
        return f"{self.multiple}{self.unit.value}"


@dataclass(frozen=True)
class RangeSpec:
    """Provider query window derived from a symbolic range. Never persisted."""

    resolution: BarResolution
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if not self.start < self.end:
            raise ValueError(f"RangeSpec start {self.start.isoformat()} must precede end {self.end.isoformat()}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resolution": self.resolution.label(),
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
        }


@dataclass(frozen=True)
class Bar:
    """One OHLCV sample. timestamp is tz-aware UTC."""

    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


# Ascending by timestamp, no duplicate timestamps. Empty means "no data".
CanonicalSeries = Tuple[Bar, ...]


@dataclass(frozen=True)
class Quote:
    """Point-in-time price snapshot. A new instance is produced on every fetch."""

    ticker: str
    price: float
    timestamp: datetime
    change: float
    change_percent: float
    previous_close: float
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    volume: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticker": self.ticker,
            "price": self.price,
            "timestamp": self.timestamp.isoformat(),
            "change": self.change,
            "change_percent": self.change_percent,
            "previous_close": self.previous_close,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "volume": self.volume,
        }


__all__ = [
    "SymbolicRange",
    "ResolutionUnit",
    "BarResolution",
    "RangeSpec",
    "Bar",
    "CanonicalSeries",
    "Quote",
]
