"""Exceptions raised across the pipeline."""

from __future__ import annotations


class BridgeError(RuntimeError):
    """The external toolchain process is missing, died, or spoke garbage."""


class ToolError(Exception):
    """A collaborator (compiler or formatter) rejected its input."""

    def __init__(self, message: str, trace: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.trace = trace


class SanitizeError(ValueError):
    """Compiled output has no unambiguous root component to bind."""


class FormatError(Exception):
    """The format action failed. The caller keeps its original text."""
