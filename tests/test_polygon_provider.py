# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Polygon.io adapter against an httpx.MockTransport."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from stockdash.core.settings import PolygonConfig
from stockdash.market.errors import ProviderError, ProviderErrorKind
from stockdash.market.normalizer import normalize
from stockdash.market.providers.polygon_http import PolygonProvider
from stockdash.market.time_range import resolve

NOW = datetime(2026, 1, 28, 16, 0, tzinfo=timezone.utc)
CONFIG = PolygonConfig(api_key="poly-key", base_url="https://api.polygon.test")

AGGS = {
    "ticker": "AAPL",
    "status": "OK",
    "resultsCount": 2,
    "results": [
        {"t": 1769490000000, "o": 100.5, "h": 101.0, "l": 100.0, "c": 100.8, "v": 500},
        {"t": 1769489700000, "o": 100.0, "h": 100.6, "l": 99.9, "c": 100.5, "v": 400},
    ],
}
PREV = {
    "ticker": "AAPL",
    "status": "OK",
    "results": [{"T": "AAPL", "o": 99.0, "h": 101.0, "l": 98.0, "c": 100.0, "v": 1000, "t": 1769461200000}],
}


def _run(handler, coro_fn):
    provider = PolygonProvider(CONFIG, timeout=5.0, transport=httpx.MockTransport(handler))

    async def scenario():
        try:
            return await coro_fn(provider)
        finally:
            await provider.aclose()

    return asyncio.run(scenario())


def test_fetch_bars_builds_aggregates_url() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        seen["sort"] = request.url.params.get("sort")
        return httpx.Response(200, json=AGGS)

    spec = resolve("1D", now=NOW)
    bars = _run(handler, lambda p: p.fetch_bars("AAPL", spec))
    series = normalize(bars)
    assert [bar.close for bar in series] == [100.5, 100.8]
    start_ms = int(spec.start.timestamp() * 1000)
    end_ms = int(spec.end.timestamp() * 1000)
    assert seen["path"] == f"/v2/aggs/ticker/AAPL/range/5/minute/{start_ms}/{end_ms}"
    assert seen["auth"] == "Bearer poly-key"
    assert seen["sort"] == "asc"


def test_empty_results_is_not_found() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"ticker": "ZZZZ", "status": "OK", "resultsCount": 0})

    with pytest.raises(ProviderError) as exc:
        _run(handler, lambda p: p.fetch_bars("ZZZZ", resolve("1M", now=NOW)))
    assert exc.value.kind is ProviderErrorKind.NOT_FOUND


def test_error_status_is_malformed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "ERROR", "error": "bad window"})

    with pytest.raises(ProviderError) as exc:
        _run(handler, lambda p: p.fetch_bars("AAPL", resolve("1M", now=NOW)))
    assert exc.value.kind is ProviderErrorKind.MALFORMED_RESPONSE
    assert "bad window" in exc.value.message


def test_rate_limit() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"status": "ERROR"})

    with pytest.raises(ProviderError) as exc:
        _run(handler, lambda p: p.fetch_bars("AAPL", resolve("1M", now=NOW)))
    assert exc.value.kind is ProviderErrorKind.RATE_LIMITED


def test_quote_from_last_trade() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/prev"):
            return httpx.Response(200, json=PREV)
        if request.url.path.startswith("/v2/last/trade/"):
            return httpx.Response(200, json={"status": "OK", "results": {"p": 102.0, "t": 1769540400000000000}})
        return httpx.Response(404)

    quote = _run(handler, lambda p: p.fetch_quote("AAPL"))
    assert quote.price == 102.0
    assert quote.previous_close == 100.0
    assert quote.change_percent == pytest.approx(2.0)
    assert quote.timestamp == datetime(2026, 1, 27, 19, 0, tzinfo=timezone.utc)
    assert quote.open == 99.0


def test_quote_falls_back_to_previous_bar_when_trade_forbidden() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/prev"):
            return httpx.Response(200, json=PREV)
        return httpx.Response(403, json={"status": "NOT_AUTHORIZED"})

    quote = _run(handler, lambda p: p.fetch_quote("AAPL"))
    assert quote.price == 100.0
    assert quote.change == 0.0


def test_connectivity() -> None:
    def ok(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "OK", "results": []})

    def unauthorized(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"status": "ERROR"})

    assert _run(ok, lambda p: p.check_connectivity()) is True
    assert _run(unauthorized, lambda p: p.check_connectivity()) is False
