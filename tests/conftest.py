# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Isolate every test from local credentials and config.yaml."""

from __future__ import annotations

import pytest

from stockdash.core import settings

_ENV_VARS = (
    "STOCKDASH_PROVIDER",
    "STOCKDASH_HTTP_TIMEOUT",
    "STOCKDASH_DEBUG",
    "ALPACA_API_KEY",
    "ALPACA_API_SECRET",
    "ALPACA_API_BASE_URL",
    "ALPACA_DATA_BASE_URL",
    "ALPACA_FEED",
    "POLYGON_API_KEY",
    "POLYGON_BASE_URL",
    "FINNHUB_API_KEY",
    "FINNHUB_BASE_URL",
    "FINNHUB_WS_URL",
    "SYNTHETIC_SEED",
    "POLL_INTERVAL_INTRADAY_MS",
    "POLL_INTERVAL_DEFAULT_MS",
)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("STOCKDASH_CONFIG", str(tmp_path / "absent-config.yaml"))
    monkeypatch.setattr(settings, "_CONFIG_CACHE", None)
    yield
