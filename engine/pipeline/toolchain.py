"""
Process-wide owner of the external toolchain (compiler + formatter).

The Node bridge is started lazily on first use and at most once per
process; a failed start is retried on the next call. All access goes
through get_toolchain(). Tests swap in fakes with set_toolchain().
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

from engine.pipeline.compiler import CompilerConfig
from engine.pipeline.node_bridge import NodeBridge

logger = logging.getLogger(__name__)


class Toolchain:
    """Lazily started NodeBridge behind the compiler and formatter protocols."""

    def __init__(self, node_binary: str = "node", script: Path | str | None = None):
        self._bridge = NodeBridge(node_binary=node_binary, script=script)
        self._start_lock = threading.Lock()

    @property
    def started(self) -> bool:
        return self._bridge.running

    def ensure_started(self) -> NodeBridge:
        """
        Start the bridge if it is not running.

        Raises:
            BridgeError: Node or the bridge script is unavailable.
        """
        if self._bridge.running:
            return self._bridge
        with self._start_lock:
            if not self._bridge.running:
                logger.info("toolchain: starting node bridge")
                self._bridge.start()
        return self._bridge

    def transform(self, source: str, config: CompilerConfig) -> str | None:
        return self.ensure_started().transform(source, config)

    def format(self, source: str, options: dict[str, Any]) -> str:
        return self.ensure_started().format(source, options)

    def ping(self) -> str:
        return self.ensure_started().ping()

    @property
    def versions(self) -> dict[str, str]:
        return dict(self._bridge.versions)

    def close(self) -> None:
        self._bridge.stop()


_toolchain: Toolchain | None = None
_toolchain_lock = threading.Lock()


def init_toolchain(node_binary: str = "node", script: Path | str | None = None) -> Any:
    """
    Install a toolchain built from explicit settings, unless one is already
    installed. Called once at application startup; the bridge itself still
    starts on first use.
    """
    global _toolchain
    with _toolchain_lock:
        if _toolchain is None:
            _toolchain = Toolchain(node_binary=node_binary, script=script)
        return _toolchain


def get_toolchain() -> Toolchain:
    """Return the process toolchain, creating a default one on first use."""
    global _toolchain
    if _toolchain is None:
        with _toolchain_lock:
            if _toolchain is None:
                _toolchain = Toolchain()
    return _toolchain


def set_toolchain(toolchain: Any) -> Any:
    """
    Install `toolchain` as the process toolchain (anything implementing
    transform/format). The previous one is closed.
    """
    global _toolchain
    with _toolchain_lock:
        previous, _toolchain = _toolchain, toolchain
    if previous is not None and previous is not toolchain and hasattr(previous, "close"):
        previous.close()
    return toolchain


def shutdown() -> None:
    """Stop the bridge process. Called at application shutdown."""
    global _toolchain
    with _toolchain_lock:
        toolchain, _toolchain = _toolchain, None
    if toolchain is not None and hasattr(toolchain, "close"):
        toolchain.close()
