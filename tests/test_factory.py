# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Provider selection by configuration."""

from __future__ import annotations

import pytest

from stockdash.core.settings import load_config
from stockdash.market.providers import (
    AlpacaProvider,
    FinnhubProvider,
    PolygonProvider,
    SyntheticProvider,
    get_market_data_provider,
)


def test_auto_without_credentials_is_synthetic() -> None:
    provider = get_market_data_provider(load_config(reload=True))
    assert isinstance(provider, SyntheticProvider)
    assert provider.name == "synthetic"


@pytest.mark.parametrize(
    "env, expected",
    [
        ({"ALPACA_API_KEY": "k", "ALPACA_API_SECRET": "s", "POLYGON_API_KEY": "p"}, AlpacaProvider),
        ({"ALPACA_API_KEY": "k", "POLYGON_API_KEY": "p"}, PolygonProvider),
        ({"FINNHUB_API_KEY": "f"}, FinnhubProvider),
    ],
)
def test_auto_prefers_first_configured(monkeypatch, env, expected) -> None:
    for name, value in env.items():
        monkeypatch.setenv(name, value)
    assert isinstance(get_market_data_provider(load_config(reload=True)), expected)


def test_explicit_provider_wins_over_credentials(monkeypatch) -> None:
    monkeypatch.setenv("POLYGON_API_KEY", "p")
    monkeypatch.setenv("STOCKDASH_PROVIDER", "synthetic")
    monkeypatch.setenv("SYNTHETIC_SEED", "9")
    provider = get_market_data_provider(load_config(reload=True))
    assert isinstance(provider, SyntheticProvider)
    assert provider.seed == 9


def test_default_config_is_loaded_when_omitted(monkeypatch) -> None:
    monkeypatch.setenv("STOCKDASH_PROVIDER", "finnhub")
    assert isinstance(get_market_data_provider(), FinnhubProvider)
