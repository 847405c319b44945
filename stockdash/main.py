#!/usr/bin/env python3
# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""
StockDash CLI.

Usage:
    python -m stockdash.main check
    python -m stockdash.main quote AAPL
    python -m stockdash.main chart AAPL --range 3M
    python -m stockdash.main watch AAPL --range 1D --ticks 5
    python -m stockdash.main stream AAPL --ticks 10
    python -m stockdash.main serve --host 127.0.0.1 --port 8000

Environment variables:
    STOCKDASH_PROVIDER      - auto | alpaca | polygon | finnhub | synthetic (default: auto)
    ALPACA_API_KEY / ALPACA_API_SECRET, POLYGON_API_KEY, FINNHUB_API_KEY
    POLL_INTERVAL_INTRADAY_MS, POLL_INTERVAL_DEFAULT_MS
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

from dotenv import load_dotenv

from stockdash.core.settings import load_config
from stockdash.market.errors import ProviderError
from stockdash.market.market_view import MarketDataService, MarketView
from stockdash.market.models import SymbolicRange
from stockdash.market.normalizer import series_to_frame
from stockdash.market.poller import PollerRegistry
from stockdash.market.providers.factory import get_market_data_provider
from stockdash.market.time_range import poll_interval_ms
from stockdash.market.trade_stream import TradeStreamManager, TradeTick


async def _check(service: MarketDataService) -> int:
    ok = await service.check_connectivity()
    print(f"{service.provider.name}: {'OK' if ok else 'UNREACHABLE'}")
    return 0 if ok else 1


async def _quote(service: MarketDataService, ticker: str) -> int:
    try:
        quote = await service.load_quote(ticker)
    except ProviderError as e:
        logger.error("%s", e)
        print(e.user_message())
        return 1
    print(
        f"{quote.ticker}  {quote.price:.2f}  {quote.change:+.2f} ({quote.change_percent:+.2f}%)  "
        f"prev close {quote.previous_close:.2f}"
    )
    return 0


async def _chart(service: MarketDataService, ticker: str, range_: str) -> int:
    try:
        snapshot = await service.load(ticker, range_)
    except ProviderError as e:
        logger.error("%s", e)
        print(e.user_message())
        return 1
    df = series_to_frame(snapshot.series)
    print(f"{snapshot.ticker} {snapshot.range.value} ({snapshot.spec.resolution.label()} bars, {len(df)} rows)")
    print(df.tail(20).to_string(index=False))
    q = snapshot.quote
    print(f"last {q.price:.2f}  {q.change:+.2f} ({q.change_percent:+.2f}%)")
    return 0


async def _watch(service: MarketDataService, ticker: str, range_: str, ticks: int) -> int:
    """Select (ticker, range) and print polled prices until `ticks` updates arrived."""
    done = asyncio.Event()
    seen = 0

    def _on_price(price: float) -> None:
        nonlocal seen
        seen += 1
        print(f"{ticker.upper()} {price:.2f}")
        if ticks and seen >= ticks:
            done.set()

    view = MarketView(service, PollerRegistry(), on_price=_on_price)
    snapshot = await view.select(ticker, range_)
    if snapshot is None:
        print(view.error or "load failed")
        return 1
    print(
        f"{snapshot.ticker} {snapshot.range.value}: {len(snapshot.series)} bars, "
        f"polling every {poll_interval_ms(snapshot.range, view.polling)} ms"
    )
    try:
        await done.wait()
    finally:
        view.close()
    return 0


async def _stream(ticker: str, ticks: int) -> int:
    """Print pushed trade ticks for ticker until `ticks` arrived."""
    config = load_config()
    if not config.finnhub.configured:
        print("stream requires FINNHUB_API_KEY")
        return 1
    stream = TradeStreamManager.from_config(config.finnhub)
    seen = 0

    def _on_trade(tick: TradeTick) -> None:
        nonlocal seen
        seen += 1
        when = tick.timestamp.isoformat() if tick.timestamp else "-"
        print(f"{tick.symbol} {tick.price:.2f} {when}")
        if ticks and seen >= ticks:
            asyncio.get_running_loop().create_task(stream.stop())

    cancel = stream.subscribe(ticker, _on_trade)
    try:
        await stream.run()
    finally:
        cancel()
        await stream.stop()
    return 0


async def _run(args: argparse.Namespace) -> int:
    if args.command == "stream":
        return await _stream(args.ticker, args.ticks)
    provider = get_market_data_provider(load_config())
    service = MarketDataService(provider)
    try:
        if args.command == "check":
            return await _check(service)
        if args.command == "quote":
            return await _quote(service, args.ticker)
        if args.command == "chart":
            return await _chart(service, args.ticker, args.range)
        return await _watch(service, args.ticker, args.range, args.ticks)
    finally:
        await provider.aclose()


def main() -> int:
    """Main CLI entry point."""
    load_dotenv(Path(__file__).resolve().parents[1] / ".env")
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="StockDash CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("check", help="Check provider connectivity")

    p_quote = sub.add_parser("quote", help="Print the latest quote")
    p_quote.add_argument("ticker")

    ranges = [r.value for r in SymbolicRange]
    p_chart = sub.add_parser("chart", help="Print bars for a range")
    p_chart.add_argument("ticker")
    p_chart.add_argument("--range", default="1M", help=f"One of {', '.join(ranges)} (default: 1M)")

    p_watch = sub.add_parser("watch", help="Load a range and poll the quote")
    p_watch.add_argument("ticker")
    p_watch.add_argument("--range", default="1D", help=f"One of {', '.join(ranges)} (default: 1D)")
    p_watch.add_argument("--ticks", type=int, default=0, help="Stop after N price updates (default: run until Ctrl+C)")

    p_stream = sub.add_parser("stream", help="Print pushed trade ticks (Finnhub websocket)")
    p_stream.add_argument("ticker")
    p_stream.add_argument("--ticks", type=int, default=0, help="Stop after N trades (default: run until Ctrl+C)")

    p_serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()

    if load_config().debug:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.command == "serve":
        import uvicorn

        logger.info("Starting API on %s:%d", args.host, args.port)
        uvicorn.run("stockdash.api.server:app", host=args.host, port=args.port)
        return 0

    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
