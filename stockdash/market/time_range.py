# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Time-range resolver: symbolic range -> provider query window.

Rules (downstream caching and UI depend on them):
    1D  -> 5 minute bars from the most recent 09:30 ET session open
    1W  -> 1 hour bars, now - 7 days
    1M  -> 1 day bars, now - 1 month
    3M  -> 1 day bars, now - 3 months
    1Y  -> 1 day bars, now - 1 year
    MAX -> 1 week bars, now - 5 years
Anything else resolves like 1M.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import pandas as pd

from stockdash.core.settings import PollingConfig, get_polling_config
from stockdash.market.market_hours import as_utc, most_recent_session_open
from stockdash.market.models import BarResolution, RangeSpec, ResolutionUnit, SymbolicRange

_FIVE_MINUTE = BarResolution(ResolutionUnit.MINUTE, 5)
_ONE_HOUR = BarResolution(ResolutionUnit.HOUR, 1)
_ONE_DAY = BarResolution(ResolutionUnit.DAY, 1)
_ONE_WEEK = BarResolution(ResolutionUnit.WEEK, 1)

# range -> (resolution, calendar offset back from now); 1D is anchored to the session open instead
_RANGE_RULES: Dict[SymbolicRange, tuple[BarResolution, Optional[Dict[str, int]]]] = {
    SymbolicRange.ONE_DAY: (_FIVE_MINUTE, None),
    SymbolicRange.ONE_WEEK: (_ONE_HOUR, {"days": 7}),
    SymbolicRange.ONE_MONTH: (_ONE_DAY, {"months": 1}),
    SymbolicRange.THREE_MONTHS: (_ONE_DAY, {"months": 3}),
    SymbolicRange.ONE_YEAR: (_ONE_DAY, {"years": 1}),
    SymbolicRange.MAX: (_ONE_WEEK, {"years": 5}),
}


def _shift_back(now: datetime, offset: Dict[str, int]) -> datetime:
    """Calendar-aware subtraction; month ends clamp (Mar 31 - 1 month = Feb 28/29)."""
    if "days" in offset:
        return now - timedelta(days=offset["days"])
    shifted = pd.Timestamp(now) - pd.DateOffset(**offset)
    return shifted.to_pydatetime()


def resolve(range_: Any, now: Optional[datetime] = None) -> RangeSpec:
    """Map a symbolic range to {resolution, start, end}. Total: never raises for any range value."""
    now_utc = as_utc(now)
    symbolic = SymbolicRange.parse(range_)
    resolution, offset = _RANGE_RULES[symbolic]
    if offset is None:
        start = most_recent_session_open(now_utc)
    else:
        start = _shift_back(now_utc, offset)
    return RangeSpec(resolution=resolution, start=start, end=now_utc)


def is_intraday(range_: Any) -> bool:
    """Intraday views poll fast; only 1D qualifies."""
    return SymbolicRange.parse(range_) is SymbolicRange.ONE_DAY


def poll_interval_ms(range_: Any, polling: Optional[PollingConfig] = None) -> int:
    """Quote refresh interval for a view: 2000 ms intraday, 60000 ms otherwise (configurable)."""
    polling = polling or get_polling_config()
    if is_intraday(range_):
        return polling.intraday_interval_ms
    return polling.default_interval_ms


__all__ = ["resolve", "is_intraday", "poll_interval_ms"]
