# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""API tests for /health, /api/session, /api/market/*, /api/orders/paper."""

from __future__ import annotations

import pytest

from stockdash.core.settings import load_config
from stockdash.market.providers.synthetic_provider import SyntheticProvider


@pytest.fixture
def client():
    pytest.importorskip("fastapi")
    from fastapi.testclient import TestClient
    from stockdash.api.server import create_app

    app = create_app(provider=SyntheticProvider(seed=1), config=load_config(reload=True))
    return TestClient(app)


def _login(client) -> None:
    r = client.post("/api/session", json={"token": "user-token"})
    assert r.status_code == 200


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["ok"] is True
    assert data["provider"] == "synthetic"
    assert data["market_phase"] in ("PRE", "OPEN", "POST", "CLOSED")


@pytest.mark.parametrize(
    "method, path",
    [
        ("get", "/api/market/AAPL"),
        ("get", "/api/market/AAPL/bars"),
        ("get", "/api/market/AAPL/quote"),
        ("get", "/api/market/connectivity"),
        ("post", "/api/orders/paper"),
    ],
)
def test_routes_require_session(client, method, path):
    r = getattr(client, method)(path)
    assert r.status_code == 401


def test_session_login_and_logout(client):
    r = client.post("/api/session", json={"token": "user-token"})
    assert r.status_code == 200
    assert r.json()["authenticated"] is True
    assert "user-token" not in r.text

    assert client.get("/api/market/connectivity").json()["ok"] is True

    r = client.delete("/api/session")
    assert r.json() == {"authenticated": False}
    assert client.get("/api/market/connectivity").status_code == 401


def test_blank_token_rejected(client):
    r = client.post("/api/session", json={"token": "  "})
    assert r.status_code == 400
    assert r.json()["detail"] == "API token is required"


def test_market_snapshot(client):
    _login(client)
    r = client.get("/api/market/aapl", params={"range": "1m"})
    assert r.status_code == 200
    data = r.json()
    assert data["ticker"] == "AAPL"
    assert data["range"] == "1M"
    assert data["spec"]["resolution"] == "1day"
    assert len(data["series"]) > 0
    stamps = [bar["timestamp"] for bar in data["series"]]
    assert stamps == sorted(stamps)
    assert data["quote"]["ticker"] == "AAPL"
    assert data["quote"]["price"] > 0


def test_unknown_range_falls_back_to_one_month(client):
    _login(client)
    r = client.get("/api/market/MSFT/bars", params={"range": "10Y"})
    assert r.status_code == 200
    assert r.json()["range"] == "1M"


def test_quote(client):
    _login(client)
    r = client.get("/api/market/MSFT/quote")
    assert r.status_code == 200
    quote = r.json()
    assert quote["ticker"] == "MSFT"
    assert quote["change"] == pytest.approx(quote["price"] - quote["previous_close"])


def test_unknown_ticker_is_404(client):
    _login(client)
    r = client.get("/api/market/ZZ!Z", params={"range": "3M"})
    assert r.status_code == 404
    detail = r.json()["detail"]
    assert detail["kind"] == "NotFound"
    assert detail["message"] == "Could not load 3M data for ZZ!Z: no data available."


def test_paper_order(client):
    _login(client)
    r = client.post("/api/orders/paper", json={"ticker": "AAPL", "side": "buy", "quantity": "3"})
    assert r.status_code == 200
    ticket = r.json()
    assert ticket["simulated"] is True
    assert ticket["quantity"] == 3
    assert ticket["notional"] == pytest.approx(ticket["price"] * 3, abs=0.01)


def test_paper_order_validation(client):
    _login(client)
    r = client.post("/api/orders/paper", json={"ticker": "AAPL", "side": "buy", "quantity": 0})
    assert r.status_code == 400
    assert r.json()["detail"] == "Please enter a valid quantity"
    r = client.post("/api/orders/paper", json={"side": "buy", "quantity": 1})
    assert r.status_code == 400
