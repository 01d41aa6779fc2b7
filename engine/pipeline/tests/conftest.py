"""
Pipeline test configuration.

Fake collaborators stand in for the Node toolchain so the pure pipeline
can be exercised without Node installed. The real bridge is covered by
test_node_bridge.py, which skips when Node or its packages are missing.
"""

from __future__ import annotations

from typing import Any

import pytest

from engine.pipeline.compiler import CompilerConfig
from engine.pipeline.exceptions import ToolError


class FakeCompiler:
    """
    Echo compiler: returns the source behind a "use strict" prologue, the
    way the real compiler's CommonJS output starts. Configure `error` to
    reject every input, or `output` to return fixed text.
    """

    def __init__(self, output: str | None = None, error: ToolError | Exception | None = None):
        self.output = output
        self.error = error
        self.calls: list[tuple[str, CompilerConfig]] = []

    def transform(self, source: str, config: CompilerConfig) -> str | None:
        self.calls.append((source, config))
        if self.error is not None:
            raise self.error
        if self.output is not None:
            return self.output
        return '"use strict";\n\n' + source


class FakeFormatter:
    """
    Layout-only formatter: rounds leading whitespace down to an even width
    and strips trailing whitespace. Configure `error` to reject every
    input, or `transform` to return custom text.
    """

    def __init__(self, error: Exception | None = None, transform=None):
        self.error = error
        self.transform = transform
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def format(self, source: str, options: dict[str, Any]) -> str:
        self.calls.append((source, options))
        if self.error is not None:
            raise self.error
        if self.transform is not None:
            return self.transform(source)
        lines = []
        for line in source.split("\n"):
            stripped = line.rstrip()
            indent = len(stripped) - len(stripped.lstrip())
            lines.append(" " * (indent - indent % 2) + stripped.lstrip())
        return "\n".join(lines).rstrip() + "\n"


@pytest.fixture
def compiler():
    return FakeCompiler()


@pytest.fixture
def formatter():
    return FakeFormatter()
