# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Centralized configuration loader for StockDash.

Loads config.yaml from the repository root (or the path in STOCKDASH_CONFIG)
and provides typed access to settings. Falls back to sensible defaults if
config.yaml is missing or incomplete. Environment variables override
config.yaml values.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

_CONFIG_CACHE: Optional["StockDashConfig"] = None

PROVIDER_NAMES = ("auto", "alpaca", "polygon", "finnhub", "synthetic")


def _repo_root() -> Path:
    """Return the repository root."""
    # stockdash/core/settings.py -> repo root
    return Path(__file__).resolve().parents[2]


@dataclass(frozen=True)
class AlpacaConfig:
    """Brokerage-style REST provider."""
    api_key: str
    api_secret: str
    api_base_url: str
    data_base_url: str
    feed: str

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.api_secret)


@dataclass(frozen=True)
class PolygonConfig:
    api_key: str
    base_url: str

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class FinnhubConfig:
    api_key: str
    base_url: str
    ws_url: str

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class SyntheticConfig:
    """Local random-walk generator used when no live credentials exist."""
    seed: int


@dataclass(frozen=True)
class PollingConfig:
    """Quote refresh intervals (milliseconds)."""
    intraday_interval_ms: int
    default_interval_ms: int


@dataclass(frozen=True)
class StockDashConfig:
    """Root configuration object."""
    provider: str
    http_timeout: float
    alpaca: AlpacaConfig
    polygon: PolygonConfig
    finnhub: FinnhubConfig
    synthetic: SyntheticConfig
    polling: PollingConfig
    debug: bool


def _config_path() -> Path:
    override = os.getenv("STOCKDASH_CONFIG")
    if override:
        return Path(override)
    return _repo_root() / "config.yaml"


def _load_yaml_config() -> dict:
    """Load config.yaml. Returns empty dict if not found or unreadable."""
    config_path = _config_path()
    if not config_path.exists():
        return {}
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Could not read %s: %s", config_path, e)
        return {}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "")
    if raw.lower() in ("true", "1", "yes"):
        return True
    if raw.lower() in ("false", "0", "no"):
        return False
    return default


def load_config(*, reload: bool = False) -> StockDashConfig:
    """Load and return the StockDash configuration.

    Priority order (highest to lowest):
    1. Environment variables (STOCKDASH_PROVIDER, ALPACA_API_KEY, POLYGON_API_KEY, ...)
    2. config.yaml values
    3. Built-in defaults

    Parameters
    ----------
    reload : bool
        If True, force reload from disk. Otherwise use cached config.
    """
    global _CONFIG_CACHE

    if _CONFIG_CACHE is not None and not reload:
        return _CONFIG_CACHE

    raw = _load_yaml_config()

    provider = (os.getenv("STOCKDASH_PROVIDER") or str(raw.get("provider") or "auto")).strip().lower()
    if provider not in PROVIDER_NAMES:
        logger.warning("Unknown provider %r in configuration; using auto", provider)
        provider = "auto"
    http_timeout = float(os.getenv("STOCKDASH_HTTP_TIMEOUT", str(raw.get("http_timeout", 10.0))))

    alpaca_raw = raw.get("alpaca", {}) or {}
    alpaca_config = AlpacaConfig(
        api_key=os.getenv("ALPACA_API_KEY", alpaca_raw.get("api_key", "")) or "",
        api_secret=os.getenv("ALPACA_API_SECRET", alpaca_raw.get("api_secret", "")) or "",
        api_base_url=os.getenv(
            "ALPACA_API_BASE_URL",
            alpaca_raw.get("api_base_url") or "https://api.alpaca.markets",
        ).rstrip("/"),
        data_base_url=os.getenv(
            "ALPACA_DATA_BASE_URL",
            alpaca_raw.get("data_base_url") or "https://data.alpaca.markets",
        ).rstrip("/"),
        feed=os.getenv("ALPACA_FEED", alpaca_raw.get("feed") or "iex"),
    )

    polygon_raw = raw.get("polygon", {}) or {}
    polygon_config = PolygonConfig(
        api_key=os.getenv("POLYGON_API_KEY", polygon_raw.get("api_key", "")) or "",
        base_url=os.getenv("POLYGON_BASE_URL", polygon_raw.get("base_url") or "https://api.polygon.io").rstrip("/"),
    )

    finnhub_raw = raw.get("finnhub", {}) or {}
    finnhub_config = FinnhubConfig(
        api_key=os.getenv("FINNHUB_API_KEY", finnhub_raw.get("api_key", "")) or "",
        base_url=os.getenv(
            "FINNHUB_BASE_URL",
            finnhub_raw.get("base_url") or "https://finnhub.io/api/v1",
        ).rstrip("/"),
        ws_url=os.getenv("FINNHUB_WS_URL", finnhub_raw.get("ws_url") or "wss://ws.finnhub.io"),
    )

    synthetic_raw = raw.get("synthetic", {}) or {}
    synthetic_config = SyntheticConfig(
        seed=int(os.getenv("SYNTHETIC_SEED", str(synthetic_raw.get("seed", 42)))),
    )

    # Polling: 2s for intraday views, 60s otherwise
    polling_raw = raw.get("polling", {}) or {}
    polling_config = PollingConfig(
        intraday_interval_ms=int(os.getenv(
            "POLL_INTERVAL_INTRADAY_MS",
            str(polling_raw.get("intraday_interval_ms", 2000)),
        )),
        default_interval_ms=int(os.getenv(
            "POLL_INTERVAL_DEFAULT_MS",
            str(polling_raw.get("default_interval_ms", 60000)),
        )),
    )

    app_raw = raw.get("app", {}) or {}
    debug = _env_bool("STOCKDASH_DEBUG", bool(app_raw.get("debug", False)))

    config = StockDashConfig(
        provider=provider,
        http_timeout=http_timeout,
        alpaca=alpaca_config,
        polygon=polygon_config,
        finnhub=finnhub_config,
        synthetic=synthetic_config,
        polling=polling_config,
        debug=debug,
    )

    _CONFIG_CACHE = config
    return config


def get_http_timeout() -> float:
    """Convenience: return upstream HTTP timeout from config."""
    return load_config().http_timeout


def get_polling_config() -> PollingConfig:
    """Convenience: return polling intervals from config."""
    return load_config().polling


__all__ = [
    "AlpacaConfig",
    "PolygonConfig",
    "FinnhubConfig",
    "SyntheticConfig",
    "PollingConfig",
    "StockDashConfig",
    "PROVIDER_NAMES",
    "load_config",
    "get_http_timeout",
    "get_polling_config",
]
