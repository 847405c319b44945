# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Market data core: range resolution, providers, normalization, polling."""

from stockdash.market.errors import ProviderError, ProviderErrorKind
from stockdash.market.models import Bar, BarResolution, CanonicalSeries, Quote, RangeSpec, ResolutionUnit, SymbolicRange
from stockdash.market.normalizer import build_quote, normalize, series_to_frame
from stockdash.market.time_range import poll_interval_ms, resolve

__all__ = [
    "ProviderError",
    "ProviderErrorKind",
    "Bar",
    "BarResolution",
    "CanonicalSeries",
    "Quote",
    "RangeSpec",
    "ResolutionUnit",
    "SymbolicRange",
    "build_quote",
    "normalize",
    "series_to_frame",
    "poll_interval_ms",
    "resolve",
]
