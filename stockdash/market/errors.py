# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Provider failure taxonomy. One typed failure per request."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ProviderErrorKind(str, Enum):
    NOT_FOUND = "NotFound"
    UNAUTHORIZED = "Unauthorized"
    RATE_LIMITED = "RateLimited"
    TRANSPORT = "Transport"
    MALFORMED_RESPONSE = "MalformedResponse"


class ProviderError(Exception):
    """Raised when an upstream call does not yield usable data. Do not put credentials in the message."""

    def __init__(
        self,
        kind: ProviderErrorKind,
        message: str,
        provider: str = "",
        ticker: str = "",
        http_status: Optional[int] = None,
        response_snippet: str = "",
        range_: Optional[str] = None,
    ) -> None:
        self.kind = kind
        self.provider = provider
        self.ticker = ticker
        self.http_status = http_status
        self.response_snippet = (response_snippet or "")[:500]
        self.range = range_
        self.message = message
        super().__init__(message)

    def with_context(self, ticker: str, range_: Optional[str] = None) -> "ProviderError":
        """Return a copy carrying the (ticker, range) of the request that failed."""
        return ProviderError(
            self.kind,
            self.message,
            provider=self.provider,
            ticker=ticker or self.ticker,
            http_status=self.http_status,
            response_snippet=self.response_snippet,
            range_=range_ if range_ is not None else self.range,
        )

    def user_message(self) -> str:
        """Short human-readable text for the UI."""
        subject = self.ticker or "request"
        if self.range:
            subject = f"{self.range} data for {subject}"
        if self.kind is ProviderErrorKind.NOT_FOUND:
            return f"Could not load {subject}: no data available."
        if self.kind is ProviderErrorKind.UNAUTHORIZED:
            return f"Could not load {subject}: check your API credentials."
        if self.kind is ProviderErrorKind.RATE_LIMITED:
            return f"Could not load {subject}: rate limited, try again shortly."
        if self.kind is ProviderErrorKind.TRANSPORT:
            return f"Could not load {subject}: data provider unreachable."
        return f"Could not load {subject}: unexpected response from data provider."

    def __str__(self) -> str:
        parts = [f"{self.kind.value}: {self.message}"]
        if self.provider:
            parts.append(f"provider={self.provider}")
        if self.ticker:
            parts.append(f"ticker={self.ticker}")
        if self.range:
            parts.append(f"range={self.range}")
        if self.http_status is not None:
            parts.append(f"http={self.http_status}")
        return " ".join(parts)


__all__ = ["ProviderError", "ProviderErrorKind"]
