"""Tests for the stderr monitor."""

from __future__ import annotations

import asyncio
import logging

import pytest

from mcplink.mcp.stderr import StderrMonitor, looks_auth_related


def _stream(*lines: str, eof: bool = True) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    for line in lines:
        reader.feed_data((line + "\n").encode())
    if eof:
        reader.feed_eof()
    return reader


class TestLooksAuthRelated:
    @pytest.mark.parametrize(
        "line",
        [
            "Opening BROWSER for SAML",
            "Authentication required",
            "please Login",
            "oauth token expired",
        ],
    )
    def test_keywords(self, line: str) -> None:
        assert looks_auth_related(line)

    def test_plain_line(self) -> None:
        assert not looks_auth_related("server listening on stdio")


class TestStderrMonitor:
    async def test_drains_and_keeps_tail(self) -> None:
        monitor = StderrMonitor(_stream("one", "", "two"))
        monitor.start()
        assert await monitor.drain() == "one\ntwo"
        assert not monitor.running

    async def test_tail_is_bounded(self) -> None:
        monitor = StderrMonitor(_stream(*(f"l{i}" for i in range(10))), max_lines=3)
        monitor.start()
        assert await monitor.drain() == "l7\nl8\nl9"

    async def test_auth_lines_logged_as_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO, logger="mcplink.mcp.stderr")
        monitor = StderrMonitor(_stream("starting", "Waiting for browser login"))
        monitor.start()
        await monitor.drain()

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "browser login" in warnings[0].getMessage()
        assert monitor.auth_hint_seen
        assert any("MCP stderr: starting" in r.getMessage() for r in caplog.records)

    async def test_stop_cancels_open_stream(self) -> None:
        monitor = StderrMonitor(_stream("partial", eof=False))
        monitor.start()
        await asyncio.sleep(0.01)
        assert monitor.running
        await monitor.stop()
        assert not monitor.running
        assert monitor.tail() == "partial"

    async def test_drain_returns_early_on_open_stream(self) -> None:
        monitor = StderrMonitor(_stream("still running", eof=False))
        monitor.start()
        assert await monitor.drain(timeout=0.05) == "still running"
        assert monitor.running
        await monitor.stop()

    async def test_read_error_is_swallowed(self) -> None:
        reader = asyncio.StreamReader()
        reader.set_exception(OSError("pipe closed"))
        monitor = StderrMonitor(reader)
        monitor.start()
        assert await monitor.drain() == ""

    async def test_start_twice_is_noop(self) -> None:
        monitor = StderrMonitor(_stream("x"))
        monitor.start()
        monitor.start()
        await monitor.drain()
        await monitor.stop()
        await monitor.stop()
