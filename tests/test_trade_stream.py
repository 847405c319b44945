# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Trade stream manager: subscriptions, frame dispatch, (re)connect handling."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from typing import List

from stockdash.core.settings import FinnhubConfig
from stockdash.market.trade_stream import TradeStreamManager, TradeTick


class FakeSocket:
    """Async-iterable stand-in for a websockets connection."""

    def __init__(self, messages=()) -> None:
        self.sent: List[dict] = []
        self.closed = False
        self._messages = list(messages)

    async def send(self, data: str) -> None:
        self.sent.append(json.loads(data))

    async def close(self) -> None:
        self.closed = True

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._messages:
            raise StopAsyncIteration
        return self._messages.pop(0)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


def _trade_frame(*items) -> str:
    return json.dumps({"type": "trade", "data": list(items)})


def test_dispatch_routes_only_subscribed_symbols() -> None:
    manager = TradeStreamManager("wss://example.test")
    ticks: List[TradeTick] = []
    manager.subscribe("aapl", ticks.append)
    calls = manager.dispatch(
        _trade_frame(
            {"s": "AAPL", "p": 187.25, "t": 1700000000000, "v": 10},
            {"s": "MSFT", "p": 400.0, "t": 1700000000000, "v": 5},
        )
    )
    assert calls == 1
    assert ticks[0].symbol == "AAPL"
    assert ticks[0].price == 187.25
    assert ticks[0].timestamp == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
    assert manager.symbols == ["AAPL"]


def test_dispatch_ignores_pings_and_garbage() -> None:
    manager = TradeStreamManager("wss://example.test")
    manager.subscribe("AAPL", lambda tick: None)
    assert manager.dispatch(json.dumps({"type": "ping"})) == 0
    assert manager.dispatch("{not json") == 0
    assert manager.dispatch(_trade_frame({"s": "AAPL", "p": "n/a"})) == 0


def test_handler_error_does_not_block_other_handlers() -> None:
    manager = TradeStreamManager("wss://example.test")
    received = []

    def broken(tick: TradeTick) -> None:
        raise RuntimeError("handler bug")

    manager.subscribe("AAPL", broken)
    manager.subscribe("AAPL", received.append)
    assert manager.dispatch(_trade_frame({"s": "AAPL", "p": 1.0, "t": 1700000000})) == 2
    assert len(received) == 1


def test_cancel_closure_is_idempotent() -> None:
    manager = TradeStreamManager("wss://example.test")
    received = []
    cancel = manager.subscribe("AAPL", received.append)
    keep = manager.subscribe("AAPL", lambda tick: None)
    cancel()
    cancel()
    assert manager.symbols == ["AAPL"]
    keep()
    assert manager.symbols == []
    assert manager.dispatch(_trade_frame({"s": "AAPL", "p": 1.0})) == 0
    assert received == []


def test_session_resubscribes_and_dispatches() -> None:
    socket = FakeSocket([_trade_frame({"s": "AAPL", "p": 190.0, "t": 1700000000000})])
    manager = TradeStreamManager("wss://example.test", connect=lambda url: socket)
    ticks: List[TradeTick] = []
    manager.subscribe("AAPL", ticks.append)

    asyncio.run(manager._session())

    assert socket.sent == [{"type": "subscribe", "symbol": "AAPL"}]
    assert [t.price for t in ticks] == [190.0]


def test_frames_sent_while_connected() -> None:
    async def scenario():
        socket = FakeSocket()
        manager = TradeStreamManager("wss://example.test", connect=lambda url: socket)
        manager._ws = socket
        cancel = manager.subscribe("MSFT", lambda tick: None)
        await asyncio.sleep(0)
        cancel()
        await asyncio.sleep(0)
        await manager.stop()
        return socket, manager

    socket, manager = asyncio.run(scenario())
    assert socket.sent == [
        {"type": "subscribe", "symbol": "MSFT"},
        {"type": "unsubscribe", "symbol": "MSFT"},
    ]
    assert socket.closed is True
    assert manager.connected is False


def test_run_reconnects_after_disconnect() -> None:
    async def scenario():
        attempts = []
        manager = TradeStreamManager("wss://example.test", reconnect_delay=0)

        def connect(url):
            attempts.append(url)
            if len(attempts) == 1:
                raise OSError("connection refused")
            return FakeSocket([_trade_frame({"s": "AAPL", "p": 5.0})])

        manager._connect = connect

        def on_tick(tick: TradeTick) -> None:
            asyncio.get_running_loop().create_task(manager.stop())

        manager.subscribe("AAPL", on_tick)
        await asyncio.wait_for(manager.run(), timeout=5)
        return attempts

    attempts = asyncio.run(scenario())
    assert len(attempts) >= 2


def test_from_config_builds_token_url() -> None:
    config = FinnhubConfig(api_key="abc", base_url="https://finnhub.test", ws_url="wss://ws.finnhub.test")
    assert TradeStreamManager.from_config(config).url == "wss://ws.finnhub.test?token=abc"


def test_stop_before_run_is_honoured() -> None:
    async def scenario():
        attempts = []

        def connect(url):
            attempts.append(url)
            return FakeSocket([_trade_frame({"s": "AAPL", "p": 5.0})])

        manager = TradeStreamManager("wss://example.test", connect=connect, reconnect_delay=0)

        def on_tick(tick: TradeTick) -> None:
            asyncio.get_running_loop().create_task(manager.stop())

        manager.subscribe("AAPL", on_tick)
        await manager.stop()
        await asyncio.wait_for(manager.run(), timeout=5)
        before_restart = len(attempts)
        await asyncio.wait_for(manager.run(restart=True), timeout=5)
        return before_restart, len(attempts)

    before_restart, after_restart = asyncio.run(scenario())
    assert before_restart == 0
    assert after_restart >= 1
