# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Symbolic range -> query window resolution."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from stockdash.core.settings import PollingConfig
from stockdash.market.models import ResolutionUnit, SymbolicRange
from stockdash.market.time_range import is_intraday, poll_interval_ms, resolve

UTC = timezone.utc
# Sunday 2026-03-15 18:00 UTC (EDT in effect)
SUNDAY = datetime(2026, 3, 15, 18, 0, tzinfo=UTC)
# Wednesday 2026-01-28 16:00 UTC = 11:00 EST
WEDNESDAY_MIDDAY = datetime(2026, 1, 28, 16, 0, tzinfo=UTC)


@pytest.mark.parametrize(
    "range_, expected_start",
    [
        ("1W", datetime(2026, 3, 8, 18, 0, tzinfo=UTC)),
        ("1M", datetime(2026, 2, 15, 18, 0, tzinfo=UTC)),
        ("3M", datetime(2025, 12, 15, 18, 0, tzinfo=UTC)),
        ("1Y", datetime(2025, 3, 15, 18, 0, tzinfo=UTC)),
        ("MAX", datetime(2021, 3, 15, 18, 0, tzinfo=UTC)),
    ],
)
def test_calendar_offsets(range_, expected_start) -> None:
    spec = resolve(range_, now=SUNDAY)
    assert spec.start == expected_start
    assert spec.end == SUNDAY


@pytest.mark.parametrize(
    "range_, unit, multiple",
    [
        ("1D", ResolutionUnit.MINUTE, 5),
        ("1W", ResolutionUnit.HOUR, 1),
        ("1M", ResolutionUnit.DAY, 1),
        ("3M", ResolutionUnit.DAY, 1),
        ("1Y", ResolutionUnit.DAY, 1),
        ("MAX", ResolutionUnit.WEEK, 1),
    ],
)
def test_resolution_per_range(range_, unit, multiple) -> None:
    spec = resolve(range_, now=WEDNESDAY_MIDDAY)
    assert spec.resolution.unit is unit
    assert spec.resolution.multiple == multiple


def test_one_month_clamps_month_end() -> None:
    spec = resolve("1M", now=datetime(2026, 3, 31, 12, 0, tzinfo=UTC))
    assert spec.start == datetime(2026, 2, 28, 12, 0, tzinfo=UTC)


def test_one_day_during_session_starts_at_today_open() -> None:
    spec = resolve("1D", now=WEDNESDAY_MIDDAY)
    # 09:30 EST = 14:30 UTC
    assert spec.start == datetime(2026, 1, 28, 14, 30, tzinfo=UTC)


def test_one_day_on_sunday_rolls_back_to_friday_open() -> None:
    spec = resolve("1D", now=SUNDAY)
    # Friday 2026-03-13 09:30 EDT = 13:30 UTC
    assert spec.start == datetime(2026, 3, 13, 13, 30, tzinfo=UTC)


def test_one_day_monday_pre_open_uses_friday() -> None:
    # Monday 2026-01-26 08:00 EST
    spec = resolve("1D", now=datetime(2026, 1, 26, 13, 0, tzinfo=UTC))
    assert spec.start == datetime(2026, 1, 23, 14, 30, tzinfo=UTC)


def test_one_day_exactly_at_open_uses_previous_session() -> None:
    at_open = datetime(2026, 1, 28, 14, 30, tzinfo=UTC)
    spec = resolve("1D", now=at_open)
    assert spec.start == datetime(2026, 1, 27, 14, 30, tzinfo=UTC)
    assert spec.start < spec.end


@pytest.mark.parametrize("raw", ["5Y", "", None, "bogus"])
def test_unknown_range_resolves_like_one_month(raw) -> None:
    assert resolve(raw, now=SUNDAY) == resolve("1M", now=SUNDAY)


def test_range_parse_is_case_insensitive() -> None:
    assert SymbolicRange.parse(" 1d ") is SymbolicRange.ONE_DAY
    assert SymbolicRange.parse("max") is SymbolicRange.MAX


@pytest.mark.parametrize("range_", [r.value for r in SymbolicRange])
def test_start_precedes_end_for_every_range(range_) -> None:
    for now in (SUNDAY, WEDNESDAY_MIDDAY, datetime(2026, 1, 26, 13, 0, tzinfo=UTC)):
        spec = resolve(range_, now=now)
        assert spec.start < spec.end


def test_naive_now_is_treated_as_utc() -> None:
    naive = datetime(2026, 3, 15, 18, 0)
    assert resolve("1M", now=naive) == resolve("1M", now=SUNDAY)


def test_poll_interval_intraday_only_for_one_day() -> None:
    polling = PollingConfig(intraday_interval_ms=2000, default_interval_ms=60000)
    assert poll_interval_ms("1D", polling) == 2000
    for range_ in ("1W", "1M", "3M", "1Y", "MAX"):
        assert poll_interval_ms(range_, polling) == 60000
    assert is_intraday("1D") is True
    assert is_intraday("1W") is False


def test_poll_interval_defaults_from_config() -> None:
    assert poll_interval_ms("1D") == 2000
    assert poll_interval_ms("1M") == 60000
