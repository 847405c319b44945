# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Market-hours utility (US/Eastern). Pragmatic weekday 9:30–16:00 ET, no holiday calendar."""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

_UTC = timezone.utc
US_EASTERN = ZoneInfo("America/New_York")

MARKET_OPEN = time(9, 30)
MARKET_CLOSE = time(16, 0)


MarketPhase = str  # "PRE" | "OPEN" | "POST" | "CLOSED"


def as_utc(moment: datetime | None) -> datetime:
    """Return moment as an aware UTC datetime. None => now; naive => assumed UTC."""
    if moment is None:
        return datetime.now(_UTC)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=_UTC)
    return moment.astimezone(_UTC)


def get_market_phase(utc_now: datetime | None = None) -> MarketPhase:
    """Return PRE (before 9:30 ET), OPEN (9:30–16:00), POST (after 16:00), or CLOSED (weekend)."""
    et = as_utc(utc_now).astimezone(US_EASTERN)
    if et.weekday() >= 5:
        return "CLOSED"
    t = et.time()
    if t < MARKET_OPEN:
        return "PRE"
    if t < MARKET_CLOSE:
        return "OPEN"
    return "POST"


def is_market_open(utc_now: datetime | None = None) -> bool:
    """True if current US/Eastern time is weekday 9:30–16:00."""
    return get_market_phase(utc_now) == "OPEN"


def is_trading_day(day_et: datetime) -> bool:
    return day_et.weekday() < 5


def most_recent_session_open(utc_now: datetime | None = None) -> datetime:
    """Most recent 09:30 ET strictly before now, rolled back to Friday on weekends.

    Before the open (or exactly at it) the previous day's open is used. Returned as UTC.
    """
    now_utc = as_utc(utc_now)
    et = now_utc.astimezone(US_EASTERN)
    day = et.date()
    if et.time() <= MARKET_OPEN:
        day = day - timedelta(days=1)
    # Saturday -> Friday, Sunday -> Friday
    if day.weekday() == 5:
        day = day - timedelta(days=1)
    elif day.weekday() == 6:
        day = day - timedelta(days=2)
    open_et = datetime.combine(day, MARKET_OPEN, tzinfo=US_EASTERN)
    return open_et.astimezone(_UTC)


def session_bounds(day_et: datetime) -> tuple[datetime, datetime]:
    """(open, close) for the ET calendar date of day_et, as UTC datetimes."""
    d = day_et.astimezone(US_EASTERN).date()
    open_et = datetime.combine(d, MARKET_OPEN, tzinfo=US_EASTERN)
    close_et = datetime.combine(d, MARKET_CLOSE, tzinfo=US_EASTERN)
    return open_et.astimezone(_UTC), close_et.astimezone(_UTC)


__all__ = [
    "US_EASTERN",
    "MARKET_OPEN",
    "MARKET_CLOSE",
    "as_utc",
    "get_market_phase",
    "is_market_open",
    "is_trading_day",
    "most_recent_session_open",
    "session_bounds",
]
