# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""FastAPI server for the dashboard frontend: session, chart data, quote, paper orders."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, Optional


# Load .env first so provider credentials are available (for uvicorn and the CLI)
def _load_env() -> None:
    from dotenv import load_dotenv

    repo_root = Path(__file__).resolve().parents[2]
    env_file = repo_root / ".env"
    if env_file.exists():
        load_dotenv(env_file, override=True)
    load_dotenv()


_load_env()

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from stockdash.core.session import SessionStore
from stockdash.core.settings import StockDashConfig, load_config
from stockdash.execution.paper_order import PaperOrderError, build_paper_order
from stockdash.market.errors import ProviderError, ProviderErrorKind
from stockdash.market.market_hours import get_market_phase
from stockdash.market.market_view import MarketDataService
from stockdash.market.models import SymbolicRange
from stockdash.market.providers.base import MarketDataProviderInterface
from stockdash.market.providers.factory import get_market_data_provider

logger = logging.getLogger(__name__)

_ERROR_STATUS = {
    ProviderErrorKind.NOT_FOUND: 404,
    ProviderErrorKind.UNAUTHORIZED: 401,
    ProviderErrorKind.RATE_LIMITED: 429,
    ProviderErrorKind.TRANSPORT: 503,
    ProviderErrorKind.MALFORMED_RESPONSE: 502,
}


def _http_error(e: ProviderError) -> HTTPException:
    return HTTPException(
        status_code=_ERROR_STATUS.get(e.kind, 502),
        detail={"kind": e.kind.value, "provider": e.provider, "message": e.user_message()},
    )


def _service(request: Request) -> MarketDataService:
    return request.app.state.market_service


def _require_session(request: Request) -> None:
    store: SessionStore = request.app.state.sessions
    if not store.is_authenticated:
        raise HTTPException(status_code=401, detail="Login required")


def create_app(
    provider: Optional[MarketDataProviderInterface] = None,
    config: Optional[StockDashConfig] = None,
) -> FastAPI:
    """Composition root: one provider, one service and one session store per app."""
    config = config or load_config()
    provider = provider or get_market_data_provider(config)

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        logger.info("[CONFIG] market data provider: %s", provider.name)
        try:
            yield
        finally:
            await provider.aclose()

    app = FastAPI(title="StockDash API", version="0.1.0", lifespan=_lifespan)
    app.state.market_service = MarketDataService(provider)
    app.state.sessions = SessionStore()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"ok": True, "status": "healthy", "provider": provider.name, "market_phase": get_market_phase()}

    @app.post("/api/session")
    async def api_session_login(request: Request) -> Dict[str, Any]:
        """Body: {"token": "..."}. Replaces any existing session."""
        try:
            body = await request.json()
        except Exception:
            body = {}
        token = body.get("token") if isinstance(body, dict) else None
        try:
            session = request.app.state.sessions.login(token)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return session.to_dict()

    @app.delete("/api/session")
    def api_session_logout(request: Request) -> Dict[str, Any]:
        request.app.state.sessions.logout()
        return {"authenticated": False}

    @app.get("/api/market/connectivity")
    async def api_connectivity(request: Request) -> Dict[str, Any]:
        _require_session(request)
        ok = await _service(request).check_connectivity()
        return {"ok": ok, "provider": provider.name}

    @app.get("/api/market/{ticker}/quote")
    async def api_quote(ticker: str, request: Request) -> Dict[str, Any]:
        _require_session(request)
        try:
            quote = await _service(request).load_quote(ticker)
        except ProviderError as e:
            logger.warning("quote %s failed: %s", ticker, e)
            raise _http_error(e)
        return quote.to_dict()

    @app.get("/api/market/{ticker}/bars")
    async def api_bars(ticker: str, request: Request, range: str = Query("1M")) -> Dict[str, Any]:
        _require_session(request)
        symbolic = SymbolicRange.parse(range)
        try:
            spec, series = await _service(request).load_series(ticker, symbolic)
        except ProviderError as e:
            logger.warning("bars %s %s failed: %s", ticker, symbolic.value, e)
            raise _http_error(e)
        return {
            "ticker": ticker.strip().upper(),
            "range": symbolic.value,
            "spec": spec.to_dict(),
            "series": [bar.to_dict() for bar in series],
        }

    @app.get("/api/market/{ticker}")
    async def api_market(ticker: str, request: Request, range: str = Query("1M")) -> Dict[str, Any]:
        """Series + quote for one (ticker, range)."""
        _require_session(request)
        try:
            snapshot = await _service(request).load(ticker, range)
        except ProviderError as e:
            logger.warning("market %s %s failed: %s", ticker, range, e)
            raise _http_error(e)
        return snapshot.to_dict()

    @app.post("/api/orders/paper")
    async def api_paper_order(request: Request) -> Dict[str, Any]:
        """Body: {"ticker", "side": "buy"|"sell", "quantity"}. Simulated; nothing is sent or stored."""
        _require_session(request)
        try:
            body = await request.json()
        except Exception:
            body = {}
        if not isinstance(body, dict) or not str(body.get("ticker") or "").strip():
            raise HTTPException(status_code=400, detail="ticker is required")
        try:
            quote = await _service(request).load_quote(str(body["ticker"]))
        except ProviderError as e:
            raise _http_error(e)
        try:
            ticket = build_paper_order(quote, body.get("side"), body.get("quantity"))
        except PaperOrderError as e:
            raise HTTPException(status_code=400, detail=str(e))
        logger.info("paper order %s %s x%d @ %.2f", ticket.side.value, ticket.ticker, ticket.quantity, ticket.price)
        return ticket.to_dict()

    return app


app = create_app()


__all__ = ["app", "create_app"]
