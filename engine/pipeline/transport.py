"""
Arcade Pipeline — Sandbox Transport

Host side of the host ↔ isolated-context channel.

State per session:  NotReady ──SANDBOX_READY──▶ Ready   (one way)

  NotReady:  compiled artifacts are parked in `pending_artifact`
             (one slot, last write wins; stale artifacts are never sent)
  → Ready:   the parked artifact goes out first as EXECUTE_CODE, then any
             parked viewport / theme / inspect settings
  Ready:     every artifact goes out immediately

Inbound messages pass two gates before any field is read: the sender must
be the exact context object this session was attached to, and the body must
validate against the closed envelope set. Failures are dropped and logged.

Everything runs on the host's single event loop, one message at a time, so
the session state needs no locking.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from pydantic import BaseModel

from engine.pipeline.messages import (
    ExecuteCode,
    ExecuteCodePayload,
    GetInspectionData,
    InspectionRequestPayload,
    InspectTogglePayload,
    ThemePayload,
    ToggleInspect,
    UpdateTheme,
    UpdateViewport,
    ViewportPayload,
    dump_message,
    is_ready_announcement,
    parse_sandbox_message,
)

logger = logging.getLogger(__name__)


class SandboxChannel(Protocol):
    """Outbound half of the channel to the isolated context."""

    async def send(self, message: dict[str, Any]) -> None: ...


@dataclass
class SandboxSession:
    """Lives exactly as long as one isolated context."""

    ready: bool = False
    pending_artifact: str | None = None
    # Latest one-way settings requested before readiness.
    pending_settings: dict[str, BaseModel] = field(default_factory=dict)

    def stage(self, artifact: str) -> str | None:
        """Return the artifact if it can go out now, else park it."""
        if self.ready:
            return artifact
        if self.pending_artifact is not None:
            logger.debug("transport: overwriting pending artifact")
        self.pending_artifact = artifact
        return None

    def mark_ready(self) -> str | None:
        """Flip to Ready (idempotent) and hand back the parked artifact, if any."""
        self.ready = True
        artifact, self.pending_artifact = self.pending_artifact, None
        return artifact


class SandboxTransport:
    """Validate-then-dispatch boundary around one SandboxSession."""

    def __init__(self) -> None:
        self.session = SandboxSession()
        self._channel: SandboxChannel | None = None
        self._source: object | None = None

    # -- lifecycle ----------------------------------------------------------

    def attach(self, channel: SandboxChannel, source: object | None = None) -> None:
        """
        Bind to a freshly created isolated context. The session is reset:
        a new context starts NotReady with nothing pending.
        """
        self._channel = channel
        self._source = channel if source is None else source
        self.session = SandboxSession()
        logger.info("transport: attached new sandbox context")

    def detach(self, source: object | None = None) -> None:
        """Forget the context (only if `source` is still the attached one)."""
        if source is not None and source is not self._source:
            return
        self._channel = None
        self._source = None
        self.session = SandboxSession()
        logger.info("transport: sandbox context detached")

    @property
    def attached(self) -> bool:
        return self._channel is not None

    @property
    def ready(self) -> bool:
        return self.session.ready

    # -- outbound -----------------------------------------------------------

    async def deliver(self, artifact: str) -> bool:
        """
        Send a compiled artifact, or park it until the context is ready.

        Returns:
            True if an EXECUTE_CODE message went out now.
        """
        to_send = self.session.stage(artifact)
        if to_send is None:
            return False
        await self._send(ExecuteCode(payload=ExecuteCodePayload(markup_code=to_send, logic_code="")))
        return True

    async def update_viewport(self, width: float) -> None:
        await self._send_setting("viewport", UpdateViewport(payload=ViewportPayload(width=width)))

    async def update_theme(self, theme: str) -> None:
        await self._send_setting("theme", UpdateTheme(payload=ThemePayload(theme=theme)))

    async def toggle_inspect(self, enabled: bool) -> None:
        await self._send_setting("inspect", ToggleInspect(payload=InspectTogglePayload(enabled=enabled)))

    async def request_inspection(self, x: float, y: float) -> None:
        # Point queries are only meaningful against a rendered tree.
        if not self.session.ready:
            logger.debug("transport: inspection request before ready dropped")
            return
        await self._send(GetInspectionData(payload=InspectionRequestPayload(x=x, y=y)))

    # -- inbound ------------------------------------------------------------

    async def receive(self, source: object, data: Any) -> BaseModel | None:
        """
        Gate one inbound message.

        Returns:
            The validated envelope for the caller to dispatch, or None when
            the message was the readiness announcement or was dropped.
        """
        if self._source is None or source is not self._source:
            logger.debug("transport: dropped message from unknown source")
            return None

        if is_ready_announcement(data):
            await self._on_ready()
            return None

        message = parse_sandbox_message(data)
        if message is None:
            kind = data.get("type") if isinstance(data, dict) else type(data).__name__
            logger.warning("transport: dropped malformed sandbox message type=%r", kind)
            return None
        return message

    # -- internal -----------------------------------------------------------

    async def _on_ready(self) -> None:
        was_ready = self.session.ready
        artifact = self.session.mark_ready()
        if not was_ready:
            logger.info("transport: sandbox ready")
        if artifact is not None:
            await self._send(ExecuteCode(payload=ExecuteCodePayload(markup_code=artifact, logic_code="")))

        settings, self.session.pending_settings = self.session.pending_settings, {}
        for message in settings.values():
            await self._send(message)

    async def _send_setting(self, key: str, message: BaseModel) -> None:
        if not self.session.ready:
            self.session.pending_settings[key] = message
            return
        await self._send(message)

    async def _send(self, message: BaseModel) -> None:
        if self._channel is None:
            logger.debug("transport: no sandbox attached, dropping %s", type(message).__name__)
            return
        await self._channel.send(dump_message(message))
