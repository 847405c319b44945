# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Series normalizer: provider-native bar records -> CanonicalSeries.

Providers disagree on field names (t/o/h/l/c/v, timestamp/open/..., x/...),
time units (ISO-8601, epoch seconds, epoch milliseconds) and ordering. This
module is the only place those differences are resolved; it never looks at
which provider produced the records.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from stockdash.market.errors import ProviderError, ProviderErrorKind
from stockdash.market.models import Bar, CanonicalSeries, Quote

logger = logging.getLogger(__name__)

_TIMESTAMP_KEYS = ("timestamp", "t", "x", "time", "date", "datetime")
_FIELD_KEYS = {
    "open": ("open", "o"),
    "high": ("high", "h"),
    "low": ("low", "l"),
    "close": ("close", "c"),
    "volume": ("volume", "v"),
}

# Epoch values above this are milliseconds (1e11 seconds is the year 5138)
_EPOCH_MS_THRESHOLD = 1e11
# Digit strings this long are epoch values, shorter ones (e.g. "20231114") are compact dates
_EPOCH_STRING_RE = re.compile(r"-?\d{9,}(\.\d+)?")

RawBar = Union[Bar, Mapping[str, Any]]


def _first_present(record: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse datetime / ISO-8601 / epoch seconds / epoch ms (number or digit string) into aware UTC. None if unparseable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        unit = "ms" if abs(value) > _EPOCH_MS_THRESHOLD else "s"
        try:
            return pd.Timestamp(value, unit=unit, tz="UTC").to_pydatetime()
        except (ValueError, OverflowError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if _EPOCH_STRING_RE.fullmatch(text):
            return parse_timestamp(float(text))
        try:
            ts = pd.Timestamp(text)
        except (ValueError, TypeError):
            return None
        if ts is pd.NaT:
            return None
        if ts.tzinfo is None:
            ts = ts.tz_localize("UTC")
        else:
            ts = ts.tz_convert("UTC")
        return ts.to_pydatetime()
    return None


def _to_price(value: Any) -> Optional[float]:
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(price) or price <= 0:
        return None
    return price


def _to_volume(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        volume = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(volume) or volume < 0:
        return None
    return int(volume)


def _coerce_bar(record: RawBar, now: datetime) -> Optional[Bar]:
    """Map one provider record to a Bar. None => record dropped (already logged)."""
    if isinstance(record, Bar):
        return record
    if not isinstance(record, Mapping):
        logger.warning("data-quality: dropping non-mapping bar record %r", record)
        return None

    raw_ts = _first_present(record, _TIMESTAMP_KEYS)
    timestamp = parse_timestamp(raw_ts)
    if timestamp is None:
        logger.warning("data-quality: unparseable bar timestamp %r; substituting %s", raw_ts, now.isoformat())
        timestamp = now

    prices: Dict[str, Optional[float]] = {
        name: _to_price(_first_present(record, keys))
        for name, keys in _FIELD_KEYS.items()
        if name != "volume"
    }
    missing = [name for name, value in prices.items() if value is None]
    if missing:
        logger.warning("data-quality: dropping bar at %s with missing/invalid %s", timestamp.isoformat(), missing)
        return None

    o, h, l, c = prices["open"], prices["high"], prices["low"], prices["close"]
    high = max(o, h, l, c)
    low = min(o, h, l, c)
    if high != h or low != l:
        logger.warning(
            "data-quality: repaired high/low at %s (h=%s l=%s -> h=%s l=%s)",
            timestamp.isoformat(), h, l, high, low,
        )

    raw_volume = _first_present(record, _FIELD_KEYS["volume"])
    volume = _to_volume(raw_volume)
    if raw_volume is not None and volume is None:
        logger.warning("data-quality: invalid volume %r at %s; omitted", raw_volume, timestamp.isoformat())

    return Bar(timestamp=timestamp, open=o, high=high, low=low, close=c, volume=volume)


def normalize(provider_bars: Optional[Iterable[RawBar]], now: Optional[datetime] = None) -> CanonicalSeries:
    """Return bars sorted ascending by timestamp with unique timestamps.

    The stable sort always runs, even if the provider claims sorted output.
    On duplicate timestamps the record seen last wins.
    """
    if provider_bars is None:
        return ()
    now = now or datetime.now(timezone.utc)
    bars: List[Bar] = []
    for record in provider_bars:
        bar = _coerce_bar(record, now)
        if bar is not None:
            bars.append(bar)

    bars.sort(key=lambda b: b.timestamp)

    unique: List[Bar] = []
    for bar in bars:
        if unique and unique[-1].timestamp == bar.timestamp:
            logger.debug("duplicate bar timestamp %s; keeping later record", bar.timestamp.isoformat())
            unique[-1] = bar
        else:
            unique.append(bar)
    return tuple(unique)


def change_fields(price: float, previous_close: float) -> tuple[float, float]:
    """(change, change_percent). Percent is 0 when previous_close is 0 so it stays finite."""
    change = price - previous_close
    if not previous_close:
        return change, 0.0
    pct = change / previous_close * 100.0
    if not math.isfinite(pct):
        return change, 0.0
    return change, pct


def build_quote(
    ticker: str,
    price: Any,
    timestamp: Any,
    previous_close: Any,
    *,
    reference_bar: Optional[RawBar] = None,
    open: Optional[float] = None,
    high: Optional[float] = None,
    low: Optional[float] = None,
    volume: Optional[int] = None,
    provider: str = "",
) -> Quote:
    """Assemble a Quote, deriving missing open/high/low/volume from the most recent bar already fetched."""
    now = datetime.now(timezone.utc)
    last_price = _to_price(price)
    if last_price is None:
        raise ProviderError(
            ProviderErrorKind.MALFORMED_RESPONSE,
            f"no usable price for {ticker}: {price!r}",
            provider=provider,
            ticker=ticker,
        )
    try:
        prev = float(previous_close) if previous_close is not None else 0.0
    except (TypeError, ValueError):
        prev = 0.0
    if not math.isfinite(prev) or prev < 0:
        prev = 0.0

    ref: Optional[Bar] = None
    if reference_bar is not None:
        ref = _coerce_bar(reference_bar, now)
    if ref is not None:
        open = open if open is not None else ref.open
        high = high if high is not None else ref.high
        low = low if low is not None else ref.low
        volume = volume if volume is not None else ref.volume

    quote_ts = parse_timestamp(timestamp)
    if quote_ts is None:
        quote_ts = ref.timestamp if ref is not None else now

    change, change_percent = change_fields(last_price, prev)
    return Quote(
        ticker=ticker,
        price=last_price,
        timestamp=quote_ts,
        change=change,
        change_percent=change_percent,
        previous_close=prev,
        open=open,
        high=high,
        low=low,
        volume=volume,
    )


def series_to_frame(series: CanonicalSeries) -> pd.DataFrame:
    """Columns: timestamp, open, high, low, close, volume. Rows ascending (newest last)."""
    columns = ["timestamp", "open", "high", "low", "close", "volume"]
    if not series:
        return pd.DataFrame(columns=columns)
    df = pd.DataFrame([bar.to_dict() for bar in series], columns=columns)
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    return df


__all__ = [
    "normalize",
    "parse_timestamp",
    "change_fields",
    "build_quote",
    "series_to_frame",
]
