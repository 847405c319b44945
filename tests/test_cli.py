# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""CLI commands against the synthetic provider."""

from __future__ import annotations

import sys

import pytest

from stockdash import main as cli


def _invoke(monkeypatch, *argv) -> int:
    monkeypatch.setenv("STOCKDASH_PROVIDER", "synthetic")
    monkeypatch.setattr(sys, "argv", ["stockdash", *argv])
    return cli.main()


def test_check(monkeypatch, capsys):
    assert _invoke(monkeypatch, "check") == 0
    assert "synthetic: OK" in capsys.readouterr().out


def test_quote(monkeypatch, capsys):
    assert _invoke(monkeypatch, "quote", "aapl") == 0
    assert capsys.readouterr().out.startswith("AAPL")


def test_chart(monkeypatch, capsys):
    assert _invoke(monkeypatch, "chart", "MSFT", "--range", "3M") == 0
    out = capsys.readouterr().out
    assert "MSFT 3M (1day bars" in out
    assert "close" in out


def test_chart_unknown_ticker(monkeypatch, capsys):
    assert _invoke(monkeypatch, "chart", "ZZ!Z") == 1
    assert "no data available" in capsys.readouterr().out


def test_stream_without_key(monkeypatch, capsys):
    assert _invoke(monkeypatch, "stream", "AAPL") == 1
    assert "FINNHUB_API_KEY" in capsys.readouterr().out


def test_unknown_command(monkeypatch):
    with pytest.raises(SystemExit):
        _invoke(monkeypatch, "trade")
