# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""StockDash: market data core for the ticker dashboard."""

__version__ = "0.1.0"
