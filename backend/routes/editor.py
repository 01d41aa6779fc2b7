"""
Editor WebSocket: the host UI's connection to the preview.

Client → Server:  {"type": "edit", "markup": "...", "logic": "..."}
                  {"type": "compile"}
                  {"type": "viewport", "id": "SM"} | {"type": "viewport", "width": 480}
                  {"type": "theme", "theme": "dark"}
                  {"type": "inspect", "enabled": true}
                  {"type": "inspect_at", "x": 10, "y": 20}
                  {"type": "format", "target": "markup" | "logic", "code": "..."}
Server → Client:  status | compile.ok | error | render.success | console |
                  inspection | format.result | format.error | protocol.error
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import TypeAdapter, ValidationError

from backend.models.preview import (
    CompileCommand,
    EditCommand,
    EditorCommand,
    FormatCommand,
    InspectAtCommand,
    InspectCommand,
    ThemeCommand,
    ViewportCommand,
)
from backend.services.preview_host import preview_host
from engine.pipeline.exceptions import FormatError
from engine.pipeline.viewports import viewport_width

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])

_COMMANDS: TypeAdapter[Any] = TypeAdapter(EditorCommand)


class _EditorSocket:
    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def send(self, message: dict[str, Any]) -> None:
        await self.websocket.send_text(json.dumps(message))


async def _dispatch(editor: _EditorSocket, command: Any) -> None:
    if isinstance(command, EditCommand):
        preview_host.edit(command.markup, command.logic)

    elif isinstance(command, CompileCommand):
        await preview_host.compile_now()

    elif isinstance(command, ViewportCommand):
        if command.width is not None:
            width = command.width
        elif command.id is not None:
            width = viewport_width(command.id)
        else:
            await editor.send({"type": "protocol.error", "error": "viewport needs an id or a width"})
            return
        await preview_host.set_viewport(width)

    elif isinstance(command, ThemeCommand):
        await preview_host.set_theme(command.theme)

    elif isinstance(command, InspectCommand):
        await preview_host.set_inspect(command.enabled)

    elif isinstance(command, InspectAtCommand):
        await preview_host.inspect_at(command.x, command.y)

    elif isinstance(command, FormatCommand):
        try:
            code = await preview_host.format(command.code, command.target)
        except FormatError as e:
            logger.info("ws: format failed target=%s: %s", command.target, e)
            await editor.send({"type": "format.error", "target": command.target, "error": str(e)})
            return
        await editor.send({"type": "format.result", "target": command.target, "code": code})


@router.websocket("/ws/editor")
async def editor_websocket(websocket: WebSocket) -> None:
    await websocket.accept()
    editor = _EditorSocket(websocket)
    await preview_host.subscribe(editor)
    logger.info("ws: editor connected")

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("ws: malformed message from editor: %r", raw[:200])
                continue

            try:
                command = _COMMANDS.validate_python(msg)
            except ValidationError as e:
                logger.warning("ws: invalid editor command type=%r", msg.get("type") if isinstance(msg, dict) else None)
                await editor.send({"type": "protocol.error", "error": e.errors(include_url=False)[0]["msg"]})
                continue

            await _dispatch(editor, command)
    except WebSocketDisconnect:
        logger.info("ws: editor disconnected")
    finally:
        preview_host.unsubscribe(editor)
