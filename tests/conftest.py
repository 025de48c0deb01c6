"""Shared fixtures: a scriptable stdio MCP server for end-to-end tests."""

from __future__ import annotations

import json
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

# The mock server reads its behaviour from a JSON file named on its command line.
_MOCK_SERVER = r'''
import json
import os
import sys
import time

with open(sys.argv[1]) as fh:
    cfg = json.load(fh)

def out(line):
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

def reply(msg, payload):
    rid = msg.get("id") if cfg.get("ids", "echo") == "echo" else 99
    body = {"jsonrpc": "2.0", "id": rid}
    body.update(payload)
    out(json.dumps(body))

for line in cfg.get("stderr", []):
    sys.stderr.write(line + "\n")
sys.stderr.flush()

if "exit_code" in cfg:
    sys.exit(cfg["exit_code"])

for raw in sys.stdin:
    if cfg.get("record"):
        with open(cfg["record"], "a") as fh:
            fh.write(raw if raw.endswith("\n") else raw + "\n")
    msg = json.loads(raw)
    method = msg.get("method")

    if method == "initialize":
        for noise in cfg.get("banner", []):
            out(noise)
        mode = cfg.get("init", "result")
        if mode == "result":
            reply(msg, {"result": {"protocolVersion": "2024-11-05", "capabilities": {},
                                   "serverInfo": {"name": "mock", "version": "1.0"}}})
        elif mode == "error":
            reply(msg, {"error": {"code": -32000, "message": cfg.get("init_error", "init failed")}})
        elif mode == "exit":
            sys.stderr.write(cfg.get("exit_stderr", "") + "\n")
            sys.stderr.flush()
            sys.exit(1)
    elif method == "notifications/initialized":
        pass
    elif method == "tools/list":
        for noise in cfg.get("noise", []):
            out(noise)
        if "tools_result" in cfg:
            reply(msg, {"result": cfg["tools_result"]})
        else:
            reply(msg, {"result": {"tools": cfg.get("tools", [])}})
    elif method == "tools/call":
        time.sleep(cfg.get("call_delay", 0))
        for noise in cfg.get("noise", []):
            out(noise)
        mode = cfg.get("call", "echo")
        params = msg.get("params", {})
        if mode == "echo":
            text = json.dumps({"name": params.get("name"), "arguments": params.get("arguments"),
                               "argv": sys.argv[2:], "cwd": os.getcwd()})
            reply(msg, {"result": {"content": [{"type": "text", "text": text}]}})
        elif mode == "fixed":
            reply(msg, {"result": cfg["call_result"]})
        elif mode == "error":
            reply(msg, {"error": {"code": -32602, "message": "bad arguments", "data": {"field": "x"}}})
'''

ServerFactory = Callable[..., tuple[str, str]]


@pytest.fixture
def mock_server(tmp_path: Path) -> ServerFactory:
    """Return a factory building ``(command, args)`` for a configured mock server.

    Extra positional ``server_args`` are appended after the config path and are
    echoed back by the ``echo`` tool-call mode.
    """
    script = tmp_path / "mock_mcp_server.py"
    script.write_text(_MOCK_SERVER)
    counter = {"n": 0}

    def _make(*server_args: str, **config: Any) -> tuple[str, str]:
        counter["n"] += 1
        cfg_path = tmp_path / f"server_{counter['n']}.json"
        cfg_path.write_text(json.dumps(config))
        return sys.executable, " ".join([str(script), str(cfg_path), *server_args])

    return _make


@pytest.fixture
def fake_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point ``HOME`` at an empty temp directory so no real profile is read."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home
