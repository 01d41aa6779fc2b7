"""
Arcade Pipeline — Error Classifier

Turns compile diagnostics and runtime failures into one user-facing shape.
Lines are 1-indexed here; diagnostics carry them 0-indexed.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Literal

from engine.pipeline.types import CompileDiagnostic, RuntimeFailure

logger = logging.getLogger(__name__)

ErrorKind = Literal["compile", "runtime"]

COMPILE_TITLE = "Compile Error"
RUNTIME_TITLE = "Runtime Error"

# "(3:14)" location suffix the compiler appends to its first line.
_LOCATION_SUFFIX_RE = re.compile(r"\s*\(\d+:\d+\)\s*$")
# First frame of a component stack: "    at Button (...)" / "in Button"
_STACK_FRAME_RE = re.compile(r"^\s*(?:at|in)\s+([A-Z][\w$.]*)", re.MULTILINE)


@dataclass(frozen=True)
class ErrorReport:
    kind: ErrorKind
    title: str
    message: str
    line: int | None = None
    trace: str | None = None
    # Innermost component named by a runtime failure's component stack.
    component: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "title": self.title,
            "message": self.message,
            "line": self.line,
            "trace": self.trace,
            "component": self.component,
        }


def classify_compile(diagnostic: CompileDiagnostic) -> ErrorReport:
    first_line = diagnostic.message.strip().split("\n", 1)[0]
    message = _LOCATION_SUFFIX_RE.sub("", first_line) or "Compilation failed"
    return ErrorReport(
        kind="compile",
        title=COMPILE_TITLE,
        message=message,
        line=diagnostic.line + 1 if diagnostic.line is not None else None,
        trace=diagnostic.raw_trace or diagnostic.message,
    )


def classify_runtime(failure: RuntimeFailure) -> ErrorReport:
    trace = failure.raw_trace
    if failure.component_stack:
        trace = f"{trace}\n\nComponent stack:{failure.component_stack}" if trace else failure.component_stack
    return ErrorReport(
        kind="runtime",
        title=RUNTIME_TITLE,
        message=failure.message or "Rendering failed",
        line=None,
        trace=trace or None,
        component=failing_component(failure),
    )


def failing_component(failure: RuntimeFailure) -> str | None:
    """Name of the innermost component in the failure's component stack."""
    if not failure.component_stack:
        return None
    match = _STACK_FRAME_RE.search(failure.component_stack)
    return match.group(1) if match else None


def format_report(report: ErrorReport, *, with_trace: bool = False) -> str:
    """Plain-text rendering, used by the CLI and the logs."""
    head = f"{report.title}: {report.message}"
    if report.line is not None:
        head += f" (line {report.line})"
    if report.component:
        head += f" (in {report.component})"
    if with_trace and report.trace and report.trace != report.message:
        return f"{head}\n\n{report.trace}"
    return head


class ErrorTracker:
    """
    The most recent error for the current document.

    A compile error replaces everything. A runtime error is only recorded
    while no compile error is showing (the stale render is what failed).
    A successful compile clears a compile error; a successful render clears
    the state.
    """

    def __init__(self) -> None:
        self.current: ErrorReport | None = None

    def compile_succeeded(self) -> None:
        if self.current is not None and self.current.kind == "compile":
            self.current = None

    def record_compile(self, diagnostic: CompileDiagnostic) -> ErrorReport:
        self.current = classify_compile(diagnostic)
        logger.info("error: compile line=%s %s", self.current.line, self.current.message)
        return self.current

    def record_runtime(self, failure: RuntimeFailure) -> ErrorReport | None:
        if self.current is not None and self.current.kind == "compile":
            logger.debug("error: runtime failure ignored while a compile error is showing")
            return None
        self.current = classify_runtime(failure)
        logger.info("error: runtime %s", self.current.message)
        return self.current

    def clear(self) -> None:
        self.current = None
