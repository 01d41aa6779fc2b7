"""Node bridge for running the markup compiler and code formatter from Python."""

from __future__ import annotations

import json
import logging
import subprocess
import threading
from collections import deque
from pathlib import Path
from typing import Any

from engine.pipeline.compiler import CompilerConfig
from engine.pipeline.exceptions import BridgeError, ToolError

logger = logging.getLogger(__name__)

DEFAULT_BRIDGE_SCRIPT = Path(__file__).parent / "node" / "bridge.mjs"
MIN_NODE_MAJOR = 18
STDERR_TAIL_LINES = 50


def check_node(node_binary: str = "node") -> str:
    """
    Return the Node.js version string.

    Raises:
        BridgeError: Node is missing or older than MIN_NODE_MAJOR.
    """
    try:
        result = subprocess.run(
            [node_binary, "--version"],
            capture_output=True,
            text=True,
            check=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.SubprocessError) as e:
        raise BridgeError("Node.js not found. Please install Node.js 18+ from https://nodejs.org") from e

    version = result.stdout.strip()
    try:
        major = int(version.lstrip("v").split(".")[0])
    except ValueError as e:
        raise BridgeError(f"Could not parse Node.js version: {version!r}") from e
    if major < MIN_NODE_MAJOR:
        raise BridgeError(f"Node.js {MIN_NODE_MAJOR}+ required. Current: {version}")
    return version


class NodeBridge:
    """
    Long-lived Node child process speaking line-delimited JSON-RPC.

    Implements both MarkupCompiler (`transform`) and CodeFormatter
    (`format`). One call is in flight at a time; the bridge only counts as
    running once its ready line has been read.
    """

    def __init__(self, node_binary: str = "node", script: Path | str | None = None):
        self.node_binary = node_binary
        self.script = Path(script) if script else DEFAULT_BRIDGE_SCRIPT
        self.process: subprocess.Popen | None = None
        self.versions: dict[str, str] = {}
        self._id = 0
        self._ready = False
        self._lock = threading.Lock()
        self._stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        self._stderr_thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._ready and self.process is not None and self.process.poll() is None

    def start(self) -> None:
        """Spawn the Node process and wait for its ready line."""
        with self._lock:
            if self.running:
                return
            if not self.script.exists():
                raise BridgeError(f"Bridge script not found. Expected at: {self.script}")

            node_version = check_node(self.node_binary)

            try:
                self.process = subprocess.Popen(
                    [self.node_binary, str(self.script)],
                    cwd=str(self.script.parent),
                    stdin=subprocess.PIPE,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                    bufsize=1,  # Line buffered
                )
                self._stderr_tail.clear()
                self._stderr_thread = threading.Thread(
                    target=self._pump_stderr, args=(self.process.stderr,), name="node-bridge-stderr", daemon=True
                )
                self._stderr_thread.start()

                line = self.process.stdout.readline()
                if not line:
                    raise BridgeError(f"Node bridge failed to start. stderr: {self._stderr_after_exit()}")

                msg = json.loads(line)
                if not msg.get("ready"):
                    raise BridgeError("Node bridge failed to send ready signal")
                self.versions = msg.get("versions", {})

            except (OSError, ValueError, BridgeError) as e:
                self.stop()
                if isinstance(e, BridgeError):
                    raise
                raise BridgeError(f"Failed to start Node bridge: {e}") from e

            self._ready = True

        logger.info("bridge: started node=%s tools=%s", node_version, self.versions)

    def call(self, method: str, params: dict[str, Any]) -> Any:
        """
        Send one JSON-RPC call and return its result.

        Raises:
            ToolError: the collaborator rejected its input.
            BridgeError: the process is not running or the exchange failed.
                A desynchronised pipe stops the process; the next start
                spawns a fresh one.
        """
        with self._lock:
            if not self.running:
                raise BridgeError("Node bridge not started")

            self._id += 1
            request_id = self._id
            request = json.dumps({"id": request_id, "method": method, "params": params})

            try:
                self.process.stdin.write(request + "\n")
                self.process.stdin.flush()
                line = self.process.stdout.readline()
            except (BrokenPipeError, OSError) as e:
                self.stop()
                raise BridgeError(f"Node bridge communication failed: {e}") from e

            if not line:
                stderr = self._stderr_after_exit()
                self.stop()
                raise BridgeError(f"Node bridge died. stderr: {stderr}")

            try:
                response = json.loads(line)
            except ValueError as e:
                self.stop()
                raise BridgeError(f"Node bridge sent invalid JSON: {line[:200]!r}") from e

            if not isinstance(response, dict) or response.get("id") != request_id:
                self.stop()
                answered = response.get("id") if isinstance(response, dict) else None
                raise BridgeError(f"Node bridge answered request {answered}, expected {request_id}")

        if "error" in response:
            error = response["error"] or {}
            if error.get("kind") == "tool":
                raise ToolError(error.get("message", "Unknown error"), error.get("trace"))
            raise BridgeError(f"Node bridge error: {error.get('message', error)}")

        return response.get("result")

    # -- collaborator protocols ---------------------------------------------

    def transform(self, source: str, config: CompilerConfig) -> str | None:
        """Compile markup to plain script."""
        return self.call("transform", {"source": source, "options": config.to_dict()})

    def format(self, source: str, options: dict[str, Any]) -> str:
        """Pretty-print source."""
        return self.call("format", {"source": source, "options": options})

    def ping(self) -> str:
        """Ping the bridge to check if it's alive."""
        return self.call("ping", {})

    # -- lifecycle ----------------------------------------------------------

    def stop(self) -> None:
        """Kill Node process."""
        self._ready = False
        if self.process:
            try:
                self.process.terminate()
                self.process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self.process.kill()
                self.process.wait()
            finally:
                self.process = None
                logger.info("bridge: stopped")

    @property
    def stderr_tail(self) -> str:
        """The last lines the process wrote to stderr."""
        return "\n".join(self._stderr_tail)

    def _pump_stderr(self, stream) -> None:
        # Keeps the pipe empty so a chatty child never blocks on write.
        try:
            for line in stream:
                line = line.rstrip("\n")
                self._stderr_tail.append(line)
                logger.debug("bridge: stderr %s", line)
        except (OSError, ValueError):
            logger.debug("bridge: stderr pipe closed")

    def _stderr_after_exit(self) -> str:
        if self.process is not None:
            try:
                self.process.kill()
                self.process.wait(timeout=5)
            except (OSError, subprocess.TimeoutExpired) as e:
                logger.debug("bridge: could not reap process: %s", e)
        if self._stderr_thread is not None:
            self._stderr_thread.join(timeout=1)
        return self.stderr_tail.strip()

    def __del__(self):
        """Cleanup on destruction."""
        self.stop()
