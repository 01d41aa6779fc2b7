"""Preview models: REST toolchain endpoints and the editor WebSocket protocol."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

from engine.pipeline.formatter import FormatOptions

MAX_SOURCE_LENGTH = 500_000


# ---------------------------------------------------------------------------
# REST
# ---------------------------------------------------------------------------


class TranspileRequest(BaseModel):
    """What the client sends to POST /api/transpile."""

    model_config = {"extra": "forbid"}

    markup: str = Field(default="", max_length=MAX_SOURCE_LENGTH)
    logic: str = Field(default="", max_length=MAX_SOURCE_LENGTH)


class TranspileResponse(BaseModel):
    """Compiled script, or the classified compile error."""

    ok: bool
    code: str | None = None
    diagnostic: dict[str, Any] | None = None
    error: dict[str, Any] | None = None


class FormatOptionsModel(BaseModel):
    model_config = {"extra": "forbid"}

    parser: Literal["babel", "babel-ts", "typescript"] = "babel-ts"
    print_width: int = Field(default=100, ge=20, le=400)
    tab_width: int = Field(default=2, ge=1, le=8)
    single_quote: bool = True
    semi: bool = False
    trailing_comma: Literal["none", "es5", "all"] = "es5"

    def to_options(self) -> FormatOptions:
        return FormatOptions(**self.model_dump())


class FormatRequest(BaseModel):
    """What the client sends to POST /api/format."""

    model_config = {"extra": "forbid"}

    code: str = Field(max_length=MAX_SOURCE_LENGTH)
    kind: Literal["markup", "logic"] = "markup"
    options: FormatOptionsModel = Field(default_factory=FormatOptionsModel)


class FormatResponse(BaseModel):
    code: str
    changed: bool


# ---------------------------------------------------------------------------
# Editor WebSocket (client → server)
# ---------------------------------------------------------------------------


class _EditorCommand(BaseModel):
    model_config = {"extra": "forbid"}


class EditCommand(_EditorCommand):
    type: Literal["edit"]
    markup: str = Field(default="", max_length=MAX_SOURCE_LENGTH)
    logic: str = Field(default="", max_length=MAX_SOURCE_LENGTH)


class ViewportCommand(_EditorCommand):
    """Either a breakpoint id ("SM", "MD", ...) or an explicit pixel width."""

    type: Literal["viewport"]
    id: str | None = None
    width: float | None = Field(default=None, gt=0)


class ThemeCommand(_EditorCommand):
    type: Literal["theme"]
    theme: Literal["light", "dark"]


class InspectCommand(_EditorCommand):
    type: Literal["inspect"]
    enabled: bool


class InspectAtCommand(_EditorCommand):
    type: Literal["inspect_at"]
    x: float
    y: float


class CompileCommand(_EditorCommand):
    """Compile the current document now instead of after the quiet period."""

    type: Literal["compile"]


class FormatCommand(_EditorCommand):
    type: Literal["format"]
    target: Literal["markup", "logic"] = "markup"
    code: str = Field(max_length=MAX_SOURCE_LENGTH)


EditorCommand = Annotated[
    EditCommand
    | CompileCommand
    | ViewportCommand
    | ThemeCommand
    | InspectCommand
    | InspectAtCommand
    | FormatCommand,
    Field(discriminator="type"),
]
