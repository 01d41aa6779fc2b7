"""
Pydantic models for Arcade.

All request/command shapes defined here. No imports from routes or services.
"""

from backend.models.preview import (
    CompileCommand,
    EditCommand,
    EditorCommand,
    FormatCommand,
    FormatOptionsModel,
    FormatRequest,
    FormatResponse,
    InspectAtCommand,
    InspectCommand,
    ThemeCommand,
    TranspileRequest,
    TranspileResponse,
    ViewportCommand,
)

__all__ = [
    "CompileCommand",
    "EditCommand",
    "EditorCommand",
    "FormatCommand",
    "FormatOptionsModel",
    "FormatRequest",
    "FormatResponse",
    "InspectAtCommand",
    "InspectCommand",
    "ThemeCommand",
    "TranspileRequest",
    "TranspileResponse",
    "ViewportCommand",
]
