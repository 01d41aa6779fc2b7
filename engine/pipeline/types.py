"""
Arcade Pipeline — Shared Types

Data classes used across the normalizer, compiler adapter, sanitizer,
transport and error classifier. These are the contracts that bind the
pipeline together.

Wire shapes (what crosses the sandbox boundary) use camelCase keys:
  CompileDiagnostic → {"message", "line", "column", "rawTrace"}
  RuntimeFailure    → {"message", "componentStack", "rawTrace"}
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

# The single name the pipeline binds as the root renderable unit.
CANONICAL_SYMBOL = "App"


class AuthoringStyle(str, Enum):
    """How the user wrote the markup text."""

    FRAGMENT = "fragment"  # bare markup, wrapped by the pipeline
    FULLY_AUTHORED = "fully_authored"  # top-level exported component


# ---------------------------------------------------------------------------
# Source
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SourceDocument:
    """Immutable snapshot of the two editor buffers."""

    markup: str = ""
    logic: str = ""

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> SourceDocument:
        return cls(markup=str(d.get("markup") or ""), logic=str(d.get("logic") or ""))


@dataclass(frozen=True)
class NormalizedModule:
    """Logic + markup combined into one compilable text blob."""

    code: str
    style: AuthoringStyle
    wrapped: bool = False  # True when the grouping construct was applied


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CompileDiagnostic:
    """A compile failure. `line` is 0-indexed; `column` as reported."""

    message: str
    line: int | None = None
    column: int | None = None
    raw_trace: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "line": self.line,
            "column": self.column,
            "rawTrace": self.raw_trace,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> CompileDiagnostic:
        return cls(
            message=d.get("message", ""),
            line=d.get("line"),
            column=d.get("column"),
            raw_trace=d.get("rawTrace"),
        )


@dataclass(frozen=True)
class RuntimeFailure:
    """An execution failure reported by the isolated context."""

    message: str
    component_stack: str | None
    raw_trace: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "componentStack": self.component_stack,
            "rawTrace": self.raw_trace,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> RuntimeFailure:
        return cls(
            message=d.get("message", ""),
            component_stack=d.get("componentStack"),
            raw_trace=d.get("rawTrace", ""),
        )


# ---------------------------------------------------------------------------
# CompilationOutcome = Compiled | Failed
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Compiled:
    code: str

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failed:
    diagnostic: CompileDiagnostic

    @property
    def ok(self) -> bool:
        return False


CompilationOutcome = Compiled | Failed
