"""
Pytest configuration and fixtures for Arcade backend tests.

The Node toolchain is replaced with an in-process fake, and every test
gets a fresh PreviewHost patched into the modules that use the singleton.
"""

from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from backend import main as main_module
from backend.main import app
from backend.routes import editor as editor_routes
from backend.routes import sandbox as sandbox_routes
from backend.services.preview_host import PreviewHost
from engine.pipeline import toolchain as toolchain_module
from engine.pipeline.exceptions import ToolError
from engine.pipeline.normalizer import NormalizerConfig

# Markup containing this marker is rejected the way the real compiler
# rejects a stray "<": with a located diagnostic.
BROKEN = "<<<"


class FakeToolchain:
    """Echo compiler plus whitespace-only formatter."""

    def __init__(self):
        self.transform_calls: list[str] = []
        self.format_calls: list[str] = []
        self.closed = False

    def transform(self, source: str, config: Any) -> str | None:
        self.transform_calls.append(source)
        if BROKEN in source:
            raise ToolError("app.tsx: Unexpected token (2:5)", trace="SyntaxError: app.tsx: Unexpected token (2:5)")
        return '"use strict";\n\n' + source

    def format(self, source: str, options: dict[str, Any]) -> str:
        self.format_calls.append(source)
        if BROKEN in source:
            raise ToolError("SyntaxError: Unexpected token (3:5)")
        return "\n".join(line.rstrip() for line in source.split("\n")).rstrip() + "\n"

    def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def fake_toolchain():
    """Install the fake as the process toolchain for the duration of a test."""
    previous = toolchain_module._toolchain
    fake = FakeToolchain()
    toolchain_module._toolchain = fake
    yield fake
    toolchain_module._toolchain = previous


@pytest.fixture
def host(monkeypatch, fake_toolchain):
    """A fresh PreviewHost with a short quiet period, wired into the routes."""
    preview = PreviewHost(
        toolchain=lambda: fake_toolchain,
        debounce_seconds=0.01,
        normalizer_config=NormalizerConfig(),
    )
    for module in (main_module, sandbox_routes, editor_routes):
        monkeypatch.setattr(module, "preview_host", preview)
    return preview


@pytest.fixture
def client(host):
    """
    A TestClient sharing one event loop across connections, so the editor
    and sandbox sockets talk to the same PreviewHost tasks.
    """
    with TestClient(app) as client:
        yield client


def _receive_until(ws, event_type: str, limit: int = 10) -> dict[str, Any]:
    for _ in range(limit):
        event = ws.receive_json()
        if event["type"] == event_type:
            return event
    raise AssertionError(f"no {event_type!r} event within {limit} messages")


@pytest.fixture
def receive_until():
    """Read WebSocket events until one of the given type arrives."""
    return _receive_until



@pytest.fixture
def sandbox_url(host):
    """Socket path carrying a fresh connection token, as GET /sandbox embeds it."""
    return lambda: f"/ws/sandbox?token={host.issue_sandbox_token()}"
