"""
Arcade Pipeline — Compilation Adapter

Hands a NormalizedModule to the external markup compiler and folds the
result into a CompilationOutcome. The compiler is treated as a pure
function: same text in, same text (or same diagnostic) out.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Protocol

from engine.pipeline.exceptions import BridgeError, ToolError
from engine.pipeline.types import CompilationOutcome, CompileDiagnostic, Compiled, Failed, NormalizedModule

logger = logging.getLogger(__name__)

# Collaborators report locations as "... (line:column)", line 1-indexed.
_LOCATION_RE = re.compile(r"\((\d+):(\d+)\)")

NO_OUTPUT_MESSAGE = "Transpilation failed: No output code generated"


@dataclass(frozen=True)
class CompilerConfig:
    """Fixed target configuration: structured markup + type erasure."""

    presets: tuple[str, ...] = ("react", "typescript")
    filename: str = "app.tsx"

    def to_dict(self) -> dict[str, Any]:
        return {"presets": list(self.presets), "filename": self.filename}


DEFAULT_COMPILER_CONFIG = CompilerConfig()


class MarkupCompiler(Protocol):
    """External markup-to-script compiler."""

    def transform(self, source: str, config: CompilerConfig) -> str | None:
        """Return compiled text, or raise ToolError with a diagnostic."""
        ...


def parse_diagnostic(message: str, trace: str | None = None) -> CompileDiagnostic:
    """
    Build a CompileDiagnostic from collaborator error text.

    The first `(line:column)` locator wins; line is converted to 0-indexed.
    Without a locator both are None.
    """
    match = _LOCATION_RE.search(message)
    if match is None:
        return CompileDiagnostic(message=message, line=None, column=None, raw_trace=trace)
    return CompileDiagnostic(
        message=message,
        line=max(0, int(match.group(1)) - 1),
        column=int(match.group(2)),
        raw_trace=trace,
    )


def compile_module(
    module: NormalizedModule,
    compiler: MarkupCompiler,
    config: CompilerConfig = DEFAULT_COMPILER_CONFIG,
) -> CompilationOutcome:
    """
    Compile one NormalizedModule.

    Returns:
        Compiled(code) on success, Failed(diagnostic) otherwise. Never raises
        for compiler or bridge failures.
    """
    try:
        code = compiler.transform(module.code, config)
    except ToolError as e:
        logger.debug("compile: collaborator rejected input: %s", e.message)
        return Failed(parse_diagnostic(e.message, e.trace))
    except BridgeError as e:
        logger.warning("compile: toolchain unavailable: %s", e)
        return Failed(CompileDiagnostic(message=str(e)))

    if not code:
        return Failed(CompileDiagnostic(message=NO_OUTPUT_MESSAGE))

    return Compiled(code)
