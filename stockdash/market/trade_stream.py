# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""Push-style trade tick stream (Finnhub websocket frames).

One TradeStreamManager per process, created by the composition root and
passed to whoever needs it. It owns the socket, the symbol -> handlers map
and the subscription set; nothing here is module-level state.

Outgoing frames: {"type": "subscribe"|"unsubscribe", "symbol": S}
Incoming frames: {"type": "trade", "data": [{"s", "p", "t", "v"}, ...]}
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set

import websockets
from websockets.exceptions import WebSocketException

from stockdash.core.settings import FinnhubConfig
from stockdash.market.normalizer import parse_timestamp

logger = logging.getLogger(__name__)

RECONNECT_DELAY_SEC = 5.0


@dataclass(frozen=True)
class TradeTick:
    symbol: str
    price: float
    timestamp: Optional[datetime]
    volume: Optional[float] = None


TradeHandler = Callable[[TradeTick], None]


class TradeStreamManager:
    def __init__(
        self,
        url: str,
        connect: Optional[Callable[..., Any]] = None,
        reconnect_delay: float = RECONNECT_DELAY_SEC,
    ) -> None:
        self.url = url
        self.reconnect_delay = reconnect_delay
        self._connect = connect or websockets.connect
        self._handlers: Dict[str, List[TradeHandler]] = {}
        self._ws: Any = None
        self._stopped = False
        self._pending: Set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, config: FinnhubConfig, **kwargs: Any) -> "TradeStreamManager":
        return cls(f"{config.ws_url}?token={config.api_key}", **kwargs)

    @property
    def connected(self) -> bool:
        return self._ws is not None

    @property
    def symbols(self) -> List[str]:
        return sorted(self._handlers)

    def subscribe(self, symbol: str, handler: TradeHandler) -> Callable[[], None]:
        """Register handler for symbol. Returns an idempotent unsubscribe callable."""
        key = symbol.strip().upper()
        handlers = self._handlers.setdefault(key, [])
        first = not handlers
        handlers.append(handler)
        if first:
            self._schedule_frame("subscribe", key)

        done = False

        def _cancel() -> None:
            nonlocal done
            if done:
                return
            done = True
            self.unsubscribe(key, handler)

        return _cancel

    def unsubscribe(self, symbol: str, handler: Optional[TradeHandler] = None) -> None:
        """Drop one handler (or all for symbol). The socket unsubscribes when none remain."""
        key = symbol.strip().upper()
        handlers = self._handlers.get(key)
        if handlers is None:
            return
        if handler is not None:
            try:
                handlers.remove(handler)
            except ValueError:
                pass
            if handlers:
                return
        del self._handlers[key]
        self._schedule_frame("unsubscribe", key)

    def _schedule_frame(self, frame_type: str, symbol: str) -> None:
        if self._ws is None:
            # Sent on (re)connect
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self._send(frame_type, symbol))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send(self, frame_type: str, symbol: str) -> None:
        ws = self._ws
        if ws is None:
            return
        try:
            await ws.send(json.dumps({"type": frame_type, "symbol": symbol}))
        except WebSocketException as e:
            logger.warning("trade stream %s %s failed: %s", frame_type, symbol, e)

    def dispatch(self, message: Any) -> int:
        """Route one incoming frame to handlers. Returns the number of handler calls."""
        try:
            frame = json.loads(message) if isinstance(message, (str, bytes)) else message
        except ValueError:
            logger.warning("trade stream: undecodable frame %r", str(message)[:200])
            return 0
        if not isinstance(frame, dict) or frame.get("type") != "trade":
            return 0
        calls = 0
        for item in frame.get("data") or []:
            if not isinstance(item, dict):
                continue
            symbol = str(item.get("s") or "").upper()
            handlers = list(self._handlers.get(symbol, ()))
            if not handlers:
                continue
            try:
                price = float(item.get("p"))
            except (TypeError, ValueError):
                logger.warning("trade stream: bad price in %r", item)
                continue
            tick = TradeTick(
                symbol=symbol,
                price=price,
                timestamp=parse_timestamp(item.get("t")),
                volume=item.get("v"),
            )
            for handler in handlers:
                try:
                    handler(tick)
                except Exception as e:
                    logger.exception("trade handler for %s raised: %s", symbol, e)
                calls += 1
        return calls

    async def _session(self) -> None:
        async with self._connect(self.url) as ws:
            self._ws = ws
            logger.info("trade stream connected (%d symbols)", len(self._handlers))
            for symbol in list(self._handlers):
                await self._send("subscribe", symbol)
            async for message in ws:
                if self._stopped:
                    break
                self.dispatch(message)

    async def run(self, restart: bool = False) -> None:
        """Connect and stream until stop(); reconnect after reconnect_delay on disconnect.

        A stop() issued before run() is honoured: run() returns without connecting.
        Pass restart=True to stream again after an earlier stop().
        """
        if restart:
            self._stopped = False
        while not self._stopped:
            try:
                await self._session()
            except (OSError, WebSocketException) as e:
                logger.warning("trade stream disconnected: %s", e)
            finally:
                self._ws = None
            if not self._stopped:
                await asyncio.sleep(self.reconnect_delay)

    async def stop(self) -> None:
        self._stopped = True
        ws = self._ws
        self._ws = None
        if ws is not None:
            await ws.close()


__all__ = ["TradeStreamManager", "TradeTick", "TradeHandler", "RECONNECT_DELAY_SEC"]
