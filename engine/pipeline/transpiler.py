"""
Arcade Pipeline — Transpiler

normalize → compile → sanitize, folded into one CompilationOutcome.
"""

from __future__ import annotations

import logging

from engine.pipeline.compiler import DEFAULT_COMPILER_CONFIG, CompilerConfig, MarkupCompiler, compile_module
from engine.pipeline.exceptions import SanitizeError
from engine.pipeline.normalizer import DEFAULT_CONFIG, NormalizerConfig, normalize
from engine.pipeline.sanitizer import sanitize
from engine.pipeline.types import CompilationOutcome, CompileDiagnostic, Compiled, Failed, SourceDocument

logger = logging.getLogger(__name__)


class Transpiler:
    """Runs the full source → runnable script pipeline for one document."""

    def __init__(
        self,
        compiler: MarkupCompiler,
        normalizer_config: NormalizerConfig = DEFAULT_CONFIG,
        compiler_config: CompilerConfig = DEFAULT_COMPILER_CONFIG,
    ) -> None:
        self.compiler = compiler
        self.normalizer_config = normalizer_config
        self.compiler_config = compiler_config

    def transpile(self, document: SourceDocument) -> CompilationOutcome:
        module = normalize(document.markup, document.logic, self.normalizer_config)
        outcome = compile_module(module, self.compiler, self.compiler_config)
        if isinstance(outcome, Failed):
            return outcome

        try:
            code = sanitize(outcome.code, self.normalizer_config.canonical_symbol)
        except SanitizeError as e:
            logger.info("transpile: %s", e)
            return Failed(CompileDiagnostic(message=str(e)))

        logger.debug("transpile: ok style=%s wrapped=%s bytes=%d", module.style.value, module.wrapped, len(code))
        return Compiled(code)


def transpile(markup: str, logic: str, compiler: MarkupCompiler) -> CompilationOutcome:
    """One-shot helper with default configuration."""
    return Transpiler(compiler).transpile(SourceDocument(markup=markup, logic=logic))
