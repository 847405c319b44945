# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Market data provider interface.

All adapters are interchangeable behind MarketDataProviderInterface; the
resolver, normalizer and views never special-case the active one.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

import httpx

from stockdash.market.errors import ProviderError, ProviderErrorKind
from stockdash.market.models import Quote, RangeSpec

logger = logging.getLogger(__name__)


class MarketDataProviderInterface(ABC):
    """Interface for market data providers. Connectivity check, quote and historical bars."""

    name: str = "provider"

    @abstractmethod
    async def check_connectivity(self) -> bool:
        """Lightweight authenticated call. Do not raise; False on any failure."""
        ...

    @abstractmethod
    async def fetch_quote(self, ticker: str) -> Quote:
        """Latest trade combined with the previous session close.

        Raises:
            ProviderError: when the upstream call does not yield a usable price.
        """
        ...

    @abstractmethod
    async def fetch_bars(self, ticker: str, spec: RangeSpec) -> List[Dict[str, Any]]:
        """Provider-native bar records for the window.

        Raises:
            ProviderError: NOT_FOUND when the window has zero records.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources. Default: nothing to release."""
        return None


class HttpProviderBase(MarketDataProviderInterface):
    """Shared httpx plumbing and status -> ProviderError mapping for REST adapters."""

    def __init__(
        self,
        base_url: str,
        headers: Mapping[str, str],
        timeout: float,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._headers = dict(headers)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _client_get(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"accept": "application/json", **self._headers},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get(self, url: str, ticker: str = "", params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        """GET url; any httpx request failure (not only transport errors) becomes ProviderError(TRANSPORT)."""
        try:
            return await self._client_get().get(url, params=params)
        except httpx.RequestError as e:
            raise ProviderError(
                ProviderErrorKind.TRANSPORT,
                f"request failed: {type(e).__name__}",
                provider=self.name,
                ticker=ticker,
                response_snippet=str(e)[:200],
            ) from e

    async def _get_json(self, url: str, ticker: str = "", params: Optional[Dict[str, Any]] = None) -> Any:
        resp = await self._get(url, ticker=ticker, params=params)
        raise_for_provider_status(resp, provider=self.name, ticker=ticker)
        return decode_json(resp, provider=self.name, ticker=ticker)

    async def _ping(self, url: str, params: Optional[Dict[str, Any]] = None) -> Optional[httpx.Response]:
        """GET for connectivity checks: None on transport failure, never raises."""
        try:
            return await self._client_get().get(url, params=params)
        except httpx.HTTPError as e:
            logger.warning("%s connectivity check failed: %s", self.name, type(e).__name__)
            return None


def status_to_kind(status_code: int) -> Optional[ProviderErrorKind]:
    """None for success statuses."""
    if 200 <= status_code < 300:
        return None
    if status_code in (401, 403):
        return ProviderErrorKind.UNAUTHORIZED
    if status_code in (404, 422):
        return ProviderErrorKind.NOT_FOUND
    if status_code == 429:
        return ProviderErrorKind.RATE_LIMITED
    return ProviderErrorKind.TRANSPORT


def raise_for_provider_status(resp: httpx.Response, provider: str, ticker: str = "") -> None:
    kind = status_to_kind(resp.status_code)
    if kind is None:
        return
    snippet = resp.text[:300] if resp.text else ""
    raise ProviderError(
        kind,
        f"{provider} returned HTTP {resp.status_code}",
        provider=provider,
        ticker=ticker,
        http_status=resp.status_code,
        response_snippet=snippet,
    )


def decode_json(resp: httpx.Response, provider: str, ticker: str = "") -> Any:
    try:
        return resp.json()
    except ValueError as e:
        raise ProviderError(
            ProviderErrorKind.MALFORMED_RESPONSE,
            f"invalid JSON from {provider}: {e}",
            provider=provider,
            ticker=ticker,
            http_status=resp.status_code,
            response_snippet=resp.text[:200] if resp.text else "",
        ) from e


def malformed(provider: str, ticker: str, detail: str, payload: Any = None) -> ProviderError:
    return ProviderError(
        ProviderErrorKind.MALFORMED_RESPONSE,
        detail,
        provider=provider,
        ticker=ticker,
        response_snippet=str(payload)[:200] if payload is not None else "",
    )


def no_data(provider: str, ticker: str, detail: str = "") -> ProviderError:
    return ProviderError(
        ProviderErrorKind.NOT_FOUND,
        detail or f"no data available for {ticker}",
        provider=provider,
        ticker=ticker,
    )


def clean_ticker(ticker: str, provider: str) -> str:
    """Upper-cased symbol; empty => NOT_FOUND."""
    symbol = str(ticker or "").strip().upper()
    if not symbol:
        raise no_data(provider, str(ticker or ""), "ticker is empty")
    return symbol


__all__ = [
    "MarketDataProviderInterface",
    "HttpProviderBase",
    "status_to_kind",
    "raise_for_provider_status",
    "decode_json",
    "malformed",
    "no_data",
    "clean_ticker",
]
