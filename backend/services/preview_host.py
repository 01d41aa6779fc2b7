"""
PreviewHost — the single host session between editors and the sandbox.

  editor edit ──debounce──▶ transpile ──▶ SandboxTransport ──▶ sandbox
  editor      ◀── status / error / console / inspection ◀── sandbox

One sandbox context is attached at a time; any number of editor
connections subscribe to events. All state lives on the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from collections import deque
from collections.abc import Callable
from typing import Any, Protocol

from pydantic import BaseModel

from backend.config import settings
from engine.pipeline.debounce import Debouncer
from engine.pipeline.errors import ErrorReport, ErrorTracker
from engine.pipeline.formatter import DEFAULT_FORMAT_OPTIONS, FormatOptions, format_markup, format_module
from engine.pipeline.messages import (
    CompileErrorMessage,
    ConsoleLog,
    InspectionDataMessage,
    RenderSuccess,
    RuntimeErrorMessage,
    dump_message,
)
from engine.pipeline.normalizer import NormalizerConfig
from engine.pipeline.toolchain import get_toolchain
from engine.pipeline.transpiler import Transpiler
from engine.pipeline.transport import SandboxChannel, SandboxTransport
from engine.pipeline.types import CompilationOutcome, Compiled, SourceDocument
from engine.pipeline.viewports import DEFAULT_VIEWPORT_WIDTH

logger = logging.getLogger(__name__)

# Sandbox pages served but not yet connected.
MAX_PENDING_SANDBOX_TOKENS = 8


class EditorChannel(Protocol):
    async def send(self, message: dict[str, Any]) -> None: ...


class PreviewHost:
    """Owns the document, the compile loop, the transport and the error state."""

    def __init__(
        self,
        toolchain: Callable[[], Any] = get_toolchain,
        debounce_seconds: float | None = None,
        normalizer_config: NormalizerConfig | None = None,
    ) -> None:
        self._toolchain = toolchain
        self.normalizer_config = normalizer_config or settings.normalizer_config
        self.transport = SandboxTransport()
        self.errors = ErrorTracker()
        self.document = SourceDocument()
        self.last_artifact: str | None = None

        # Host-side display state, replayed into every new sandbox context.
        self.viewport_width: float = DEFAULT_VIEWPORT_WIDTH
        self.theme: str = "light"
        self.inspect_enabled = False

        self._editors: set[EditorChannel] = set()
        self._sandbox_tokens: deque[str] = deque(maxlen=MAX_PENDING_SANDBOX_TOKENS)
        self._generation = 0
        delay = settings.PREVIEW_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        self._debouncer = Debouncer(self._compile, delay)

    # ── status ───────────────────────────────────────────────────────────────

    def status(self) -> dict[str, Any]:
        return {
            "type": "status",
            "sandbox_attached": self.transport.attached,
            "sandbox_ready": self.transport.ready,
            "compile_pending": self._debouncer.pending,
            "has_artifact": self.last_artifact is not None,
            "viewport_width": self.viewport_width,
            "theme": self.theme,
            "inspect": self.inspect_enabled,
        }

    # ── editors ──────────────────────────────────────────────────────────────

    async def subscribe(self, editor: EditorChannel) -> None:
        self._editors.add(editor)
        await editor.send(self.status())
        if self.errors.current is not None:
            await editor.send(_error_event(self.errors.current))

    def unsubscribe(self, editor: EditorChannel) -> None:
        self._editors.discard(editor)

    async def broadcast(self, event: dict[str, Any]) -> None:
        for editor in list(self._editors):
            try:
                await editor.send(event)
            except Exception:
                logger.debug("preview: dropping editor after failed send", exc_info=True)
                self._editors.discard(editor)

    # ── document ─────────────────────────────────────────────────────────────

    def edit(self, markup: str, logic: str) -> None:
        """Record a document change; compilation follows after the quiet period."""
        self.document = SourceDocument(markup=markup, logic=logic)
        self._generation += 1
        self._debouncer.trigger((self._generation, self.document))

    async def compile_now(self) -> CompilationOutcome:
        """Compile the current document immediately, skipping the quiet period."""
        self._debouncer.cancel()
        self._generation += 1
        return await self._run_compile(self._generation, self.document)

    async def flush(self) -> None:
        """Wait for a pending debounced compile to finish."""
        await self._debouncer.flush()

    async def _compile(self, job: tuple[int, SourceDocument]) -> None:
        generation, document = job
        await self._run_compile(generation, document)

    async def _run_compile(self, generation: int, document: SourceDocument) -> CompilationOutcome:
        transpiler = Transpiler(self._toolchain(), normalizer_config=self.normalizer_config)
        outcome = await asyncio.to_thread(transpiler.transpile, document)

        if generation != self._generation:
            logger.debug("preview: dropping superseded compile generation=%d", generation)
            return outcome

        if isinstance(outcome, Compiled):
            self.errors.compile_succeeded()
            self.last_artifact = outcome.code
            delivered = await self.transport.deliver(outcome.code)
            logger.info("preview: compiled bytes=%d delivered=%s", len(outcome.code), delivered)
            await self.broadcast({"type": "compile.ok", "delivered": delivered})
        else:
            report = self.errors.record_compile(outcome.diagnostic)
            await self.broadcast(_error_event(report))
        return outcome

    # ── display settings ─────────────────────────────────────────────────────

    async def set_viewport(self, width: float) -> None:
        self.viewport_width = width
        await self.transport.update_viewport(width)
        await self.broadcast(self.status())

    async def set_theme(self, theme: str) -> None:
        self.theme = theme
        await self.transport.update_theme(theme)
        await self.broadcast(self.status())

    async def set_inspect(self, enabled: bool) -> None:
        self.inspect_enabled = enabled
        await self.transport.toggle_inspect(enabled)
        await self.broadcast(self.status())

    async def inspect_at(self, x: float, y: float) -> None:
        await self.transport.request_inspection(x, y)

    # ── formatting ───────────────────────────────────────────────────────────

    async def format(self, code: str, target: str = "markup", options: FormatOptions = DEFAULT_FORMAT_OPTIONS) -> str:
        """
        Format editor text off the event loop.

        Raises:
            FormatError: the text could not be formatted; the caller keeps
                its original text.
        """
        run = format_module if target == "logic" else format_markup
        return await asyncio.to_thread(run, code, self._toolchain(), options)

    # ── sandbox ──────────────────────────────────────────────────────────────

    def issue_sandbox_token(self) -> str:
        """Mint the one-time token a freshly served sandbox page connects with."""
        token = secrets.token_hex(32)
        self._sandbox_tokens.append(token)
        return token

    def claim_sandbox_token(self, token: str | None) -> bool:
        """Consume a token. False when it was never issued or was already used."""
        if not token or token not in self._sandbox_tokens:
            return False
        self._sandbox_tokens.remove(token)
        return True

    async def attach_sandbox(self, channel: SandboxChannel, source: object) -> None:
        """
        A new isolated context connected. Its session starts NotReady; the
        last compiled artifact and display settings are staged for it.
        """
        self.transport.attach(channel, source)
        if self.last_artifact is not None:
            await self.transport.deliver(self.last_artifact)
        if self.viewport_width != DEFAULT_VIEWPORT_WIDTH:
            await self.transport.update_viewport(self.viewport_width)
        if self.theme != "light":
            await self.transport.update_theme(self.theme)
        if self.inspect_enabled:
            await self.transport.toggle_inspect(True)
        await self.broadcast(self.status())

    async def detach_sandbox(self, source: object) -> None:
        self.transport.detach(source)
        await self.broadcast(self.status())

    async def handle_sandbox_message(self, source: object, data: Any) -> BaseModel | None:
        was_ready = self.transport.ready
        message = await self.transport.receive(source, data)
        if self.transport.ready and not was_ready:
            await self.broadcast(self.status())
        if message is None:
            return None

        if isinstance(message, RenderSuccess):
            self.errors.clear()
            await self.broadcast({"type": "render.success"})
        elif isinstance(message, CompileErrorMessage):
            report = self.errors.record_compile(message.payload.to_diagnostic())
            await self.broadcast(_error_event(report))
        elif isinstance(message, RuntimeErrorMessage):
            report = self.errors.record_runtime(message.payload.to_failure())
            if report is not None:
                await self.broadcast(_error_event(report))
        elif isinstance(message, InspectionDataMessage):
            payload = dump_message(message)["payload"]
            await self.broadcast({"type": "inspection", "data": payload})
        elif isinstance(message, ConsoleLog):
            logger.debug("sandbox console.%s %r", message.payload.level, message.payload.args)
            await self.broadcast({"type": "console", "level": message.payload.level, "args": message.payload.args})
        return message

    async def close(self) -> None:
        self._debouncer.cancel()
        self._editors.clear()
        self.transport.detach()


def _error_event(report: ErrorReport) -> dict[str, Any]:
    return {"type": "error", "error": report.to_dict()}


# Singleton instance
preview_host = PreviewHost()
