"""
Arcade Pipeline — Sandbox Message Envelopes

The closed set of messages exchanged between the host and the isolated
context. One pydantic model per envelope, discriminated on `type`.

Host → sandbox:   EXECUTE_CODE, UPDATE_VIEWPORT, TOGGLE_INSPECT,
                  GET_INSPECTION_DATA, UPDATE_THEME
Sandbox → host:   RENDER_SUCCESS, COMPILE_ERROR, RUNTIME_ERROR,
                  INSPECTION_DATA, CONSOLE_LOG
Handshake only:   SANDBOX_READY (outside both unions)

Anything that does not validate against one of these shapes is dropped
whole: the parse helper returns None instead of raising. The page states
the PROTOCOL_VERSION it speaks in its SANDBOX_READY announcement.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from engine.pipeline.types import CompileDiagnostic, RuntimeFailure

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = 1

SANDBOX_READY = "SANDBOX_READY"

HOST_MESSAGE_TYPES: frozenset[str] = frozenset(
    {"EXECUTE_CODE", "UPDATE_VIEWPORT", "TOGGLE_INSPECT", "GET_INSPECTION_DATA", "UPDATE_THEME"}
)
SANDBOX_MESSAGE_TYPES: frozenset[str] = frozenset(
    {"RENDER_SUCCESS", "COMPILE_ERROR", "RUNTIME_ERROR", "INSPECTION_DATA", "CONSOLE_LOG"}
)

_MODEL_CONFIG = {"extra": "forbid", "populate_by_name": True}


class _Payload(BaseModel):
    model_config = _MODEL_CONFIG


# ---------------------------------------------------------------------------
# Host → sandbox
# ---------------------------------------------------------------------------


class ExecuteCodePayload(_Payload):
    markup_code: str = Field(alias="markupCode")
    logic_code: str = Field(default="", alias="logicCode")


class ViewportPayload(_Payload):
    width: float = Field(gt=0)


class InspectTogglePayload(_Payload):
    enabled: bool


class InspectionRequestPayload(_Payload):
    x: float
    y: float


class ThemePayload(_Payload):
    theme: Literal["light", "dark"]


class ExecuteCode(_Payload):
    type: Literal["EXECUTE_CODE"] = "EXECUTE_CODE"
    payload: ExecuteCodePayload


class UpdateViewport(_Payload):
    type: Literal["UPDATE_VIEWPORT"] = "UPDATE_VIEWPORT"
    payload: ViewportPayload


class ToggleInspect(_Payload):
    type: Literal["TOGGLE_INSPECT"] = "TOGGLE_INSPECT"
    payload: InspectTogglePayload


class GetInspectionData(_Payload):
    type: Literal["GET_INSPECTION_DATA"] = "GET_INSPECTION_DATA"
    payload: InspectionRequestPayload


class UpdateTheme(_Payload):
    type: Literal["UPDATE_THEME"] = "UPDATE_THEME"
    payload: ThemePayload


# ---------------------------------------------------------------------------
# Sandbox → host
# ---------------------------------------------------------------------------


class CompileDiagnosticPayload(_Payload):
    message: str
    line: int | None = None
    column: int | None = None
    raw_trace: str | None = Field(default=None, alias="rawTrace")

    def to_diagnostic(self) -> CompileDiagnostic:
        return CompileDiagnostic(message=self.message, line=self.line, column=self.column, raw_trace=self.raw_trace)


class RuntimeFailurePayload(_Payload):
    message: str
    component_stack: str | None = Field(default=None, alias="componentStack")
    raw_trace: str = Field(default="", alias="rawTrace")

    def to_failure(self) -> RuntimeFailure:
        return RuntimeFailure(message=self.message, component_stack=self.component_stack, raw_trace=self.raw_trace)


class BoundingRect(_Payload):
    model_config = {"extra": "ignore", "populate_by_name": True}

    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0
    top: float = 0
    right: float = 0
    bottom: float = 0
    left: float = 0


class InspectionRecord(_Payload):
    """What the sandbox reports about the element under the cursor."""

    component_name: str = Field(alias="componentName")
    tag_name: str = Field(alias="tagName")
    css_class: str = Field(default="", alias="cssClass")
    props: dict[str, Any] = Field(default_factory=dict)
    color: str = ""
    font_family: str = Field(default="", alias="fontFamily")
    font_size: str = Field(default="", alias="fontSize")
    margin: str = ""
    padding: str = ""
    bounding_rect: BoundingRect = Field(default_factory=BoundingRect, alias="boundingRect")
    cursor_x: float = Field(default=0, alias="cursorX")
    cursor_y: float = Field(default=0, alias="cursorY")


class ConsolePayload(_Payload):
    level: Literal["log", "warn", "error"]
    args: list[Any] = Field(default_factory=list)


class RenderSuccess(_Payload):
    type: Literal["RENDER_SUCCESS"] = "RENDER_SUCCESS"
    payload: dict[str, Any] = Field(default_factory=dict)


class CompileErrorMessage(_Payload):
    type: Literal["COMPILE_ERROR"] = "COMPILE_ERROR"
    payload: CompileDiagnosticPayload


class RuntimeErrorMessage(_Payload):
    type: Literal["RUNTIME_ERROR"] = "RUNTIME_ERROR"
    payload: RuntimeFailurePayload


class InspectionDataMessage(_Payload):
    type: Literal["INSPECTION_DATA"] = "INSPECTION_DATA"
    payload: InspectionRecord | None = None


class ConsoleLog(_Payload):
    type: Literal["CONSOLE_LOG"] = "CONSOLE_LOG"
    payload: ConsolePayload


SandboxMessage = Annotated[
    RenderSuccess | CompileErrorMessage | RuntimeErrorMessage | InspectionDataMessage | ConsoleLog,
    Field(discriminator="type"),
]

_SANDBOX_ADAPTER: TypeAdapter[Any] = TypeAdapter(SandboxMessage)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def is_ready_announcement(data: Any) -> bool:
    """
    True for a SANDBOX_READY handshake from a page speaking PROTOCOL_VERSION.
    Announcements that carry no version are accepted.
    """
    if not isinstance(data, dict) or data.get("type") != SANDBOX_READY:
        return False
    payload = data.get("payload")
    version = payload.get("protocolVersion") if isinstance(payload, dict) else None
    if version is not None and version != PROTOCOL_VERSION:
        logger.warning("messages: sandbox speaks protocol %r, expected %d", version, PROTOCOL_VERSION)
        return False
    return True


def parse_sandbox_message(
    data: Any,
) -> RenderSuccess | CompileErrorMessage | RuntimeErrorMessage | InspectionDataMessage | ConsoleLog | None:
    """Validate a sandbox → host envelope: known `type` and matching shape."""
    if not isinstance(data, dict) or data.get("type") not in SANDBOX_MESSAGE_TYPES:
        return None
    try:
        return _SANDBOX_ADAPTER.validate_python(data)
    except ValidationError as e:
        logger.debug("messages: invalid %s envelope: %s", data.get("type"), e.errors(include_url=False))
        return None


def dump_message(message: BaseModel) -> dict[str, Any]:
    """Wire form of an envelope (camelCase keys)."""
    return message.model_dump(by_alias=True, mode="json")

