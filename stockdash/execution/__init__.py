# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
