# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Simulated (paper) order ticket.

Pure logic: no broker calls and no persistence. The ticket records what
would have been sent, priced at the quote the user was looking at.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from stockdash.market.models import Quote


class OrderSide(str, Enum):
    BUY = "buy"
    SELL = "sell"


class PaperOrderError(ValueError):
    """Order input rejected; message is safe to show to the user."""


@dataclass(frozen=True)
class PaperOrderTicket:
    ticker: str
    side: OrderSide
    quantity: int
    price: float
    notional: float
    placed_at: str  # ISO datetime string

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticker": self.ticker,
            "side": self.side.value,
            "quantity": self.quantity,
            "price": self.price,
            "notional": self.notional,
            "placed_at": self.placed_at,
            "simulated": True,
        }


def parse_quantity(raw: Any) -> int:
    """Positive whole number of shares; strings like "10" are accepted."""
    if isinstance(raw, bool):
        raise PaperOrderError("Please enter a valid quantity")
    try:
        quantity = int(str(raw).strip())
    except (TypeError, ValueError):
        raise PaperOrderError("Please enter a valid quantity") from None
    if quantity <= 0:
        raise PaperOrderError("Please enter a valid quantity")
    return quantity


def parse_side(raw: Any) -> OrderSide:
    try:
        return OrderSide(str(raw or "").strip().lower())
    except ValueError:
        raise PaperOrderError(f"Order side must be 'buy' or 'sell', got {raw!r}") from None


def build_paper_order(quote: Quote, side: Any, quantity: Any) -> PaperOrderTicket:
    """Validate input and price the order at quote.price."""
    qty = parse_quantity(quantity)
    order_side = parse_side(side)
    return PaperOrderTicket(
        ticker=quote.ticker,
        side=order_side,
        quantity=qty,
        price=quote.price,
        notional=round(quote.price * qty, 2),
        placed_at=datetime.now(timezone.utc).isoformat(),
    )


__all__ = ["OrderSide", "PaperOrderError", "PaperOrderTicket", "parse_quantity", "parse_side", "build_paper_order"]
