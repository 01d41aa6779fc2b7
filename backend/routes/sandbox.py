"""
Sandbox routes: the isolated context's page and its WebSocket.

GET /sandbox serves the runtime page with a one-time connection token;
the page connects back to /ws/sandbox with it. Connections without an
issued token, or from a foreign Origin, are closed before they attach.
Each accepted connection is a fresh context and replaces the previous
one. Messages from any other connection are dropped by the transport.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import urlsplit

from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect, status
from fastapi.responses import HTMLResponse

from backend.config import settings
from backend.services.preview_host import preview_host
from engine.pipeline.sandbox_page import render_sandbox_page

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sandbox"])


class _SocketChannel:
    """SandboxChannel over a Starlette WebSocket."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def send(self, message: dict[str, Any]) -> None:
        await self.websocket.send_text(json.dumps(message))


def _ws_url(request: Request, path: str) -> str:
    scheme = "wss" if request.url.scheme == "https" else "ws"
    return f"{scheme}://{request.url.netloc}{path}"


def _origin_allowed(websocket: WebSocket) -> bool:
    origin = websocket.headers.get("origin")
    if origin is None:
        return True
    if origin in settings.SANDBOX_ALLOWED_ORIGINS:
        return True
    return urlsplit(origin).netloc == websocket.headers.get("host")


@router.get("/sandbox", response_class=HTMLResponse)
async def sandbox_page(request: Request, theme: str = "light"):
    """Serve the isolated-context runtime page."""
    html = render_sandbox_page(
        _ws_url(request, "/ws/sandbox"),
        react_url=settings.REACT_CDN_URL,
        react_dom_url=settings.REACT_DOM_CDN_URL,
        bundle_url=settings.COMPONENT_BUNDLE_URL or None,
        theme="dark" if theme == "dark" else "light",
        token=preview_host.issue_sandbox_token(),
    )
    # The page runs arbitrary user code; keep it out of caches.
    return HTMLResponse(html, headers={"Cache-Control": "no-store"})


@router.websocket("/ws/sandbox")
async def sandbox_websocket(websocket: WebSocket) -> None:
    """
    Channel to the isolated context.

    Protocol:
      Sandbox → Server:  SANDBOX_READY | RENDER_SUCCESS | COMPILE_ERROR |
                         RUNTIME_ERROR | INSPECTION_DATA | CONSOLE_LOG
      Server → Sandbox:  EXECUTE_CODE | UPDATE_VIEWPORT | TOGGLE_INSPECT |
                         GET_INSPECTION_DATA | UPDATE_THEME
    """
    if not _origin_allowed(websocket) or not preview_host.claim_sandbox_token(websocket.query_params.get("token")):
        logger.warning("ws: rejected sandbox connection origin=%r", websocket.headers.get("origin"))
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    logger.info("ws: sandbox connected")
    await preview_host.attach_sandbox(_SocketChannel(websocket), websocket)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("ws: malformed message from sandbox: %r", raw[:200])
                continue
            await preview_host.handle_sandbox_message(websocket, data)
    except WebSocketDisconnect:
        logger.info("ws: sandbox disconnected")
    finally:
        await preview_host.detach_sandbox(websocket)
