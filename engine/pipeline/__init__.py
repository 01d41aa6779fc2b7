"""
Arcade Pipeline — live preview for component markup.

  normalizer   — markup + logic text → one compilable module named `App`
  compiler     — module → plain script via the external markup compiler
  sanitizer    — strips module boilerplate, guarantees the `App` binding
  transpiler   — the three above, folded into one CompilationOutcome
  formatter    — on-demand layout through the external code formatter
  transport    — ready handshake + pending artifact for the isolated context
  errors       — compile/runtime failures → one user-facing ErrorReport
  toolchain    — the lazily started Node bridge behind compiler and formatter
"""

from engine.pipeline.compiler import CompilerConfig, MarkupCompiler, compile_module
from engine.pipeline.debounce import Debouncer
from engine.pipeline.errors import ErrorReport, ErrorTracker, classify_compile, classify_runtime, format_report
from engine.pipeline.exceptions import BridgeError, FormatError, SanitizeError, ToolError
from engine.pipeline.formatter import CodeFormatter, FormatOptions, format_markup, format_module
from engine.pipeline.normalizer import NormalizerConfig, detect_authoring_style, normalize
from engine.pipeline.sanitizer import sanitize
from engine.pipeline.toolchain import Toolchain, get_toolchain, set_toolchain
from engine.pipeline.transpiler import Transpiler, transpile
from engine.pipeline.transport import SandboxSession, SandboxTransport
from engine.pipeline.types import (
    CANONICAL_SYMBOL,
    AuthoringStyle,
    CompilationOutcome,
    CompileDiagnostic,
    Compiled,
    Failed,
    NormalizedModule,
    RuntimeFailure,
    SourceDocument,
)

__all__ = [
    "CANONICAL_SYMBOL",
    "AuthoringStyle",
    "SourceDocument",
    "NormalizedModule",
    "CompileDiagnostic",
    "RuntimeFailure",
    "Compiled",
    "Failed",
    "CompilationOutcome",
    "NormalizerConfig",
    "normalize",
    "detect_authoring_style",
    "CompilerConfig",
    "MarkupCompiler",
    "compile_module",
    "sanitize",
    "Transpiler",
    "transpile",
    "CodeFormatter",
    "FormatOptions",
    "format_markup",
    "format_module",
    "SandboxSession",
    "SandboxTransport",
    "ErrorReport",
    "ErrorTracker",
    "classify_compile",
    "classify_runtime",
    "format_report",
    "Debouncer",
    "Toolchain",
    "get_toolchain",
    "set_toolchain",
    "BridgeError",
    "ToolError",
    "SanitizeError",
    "FormatError",
]
