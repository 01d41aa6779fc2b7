"""
Arcade Pipeline -- Compilation Adapter Tests

The adapter never raises for collaborator failures: every path ends in a
Compiled or Failed outcome.
"""

from engine.pipeline.compiler import (
    NO_OUTPUT_MESSAGE,
    CompilerConfig,
    compile_module,
    parse_diagnostic,
)
from engine.pipeline.exceptions import BridgeError, ToolError
from engine.pipeline.types import AuthoringStyle, Compiled, Failed, NormalizedModule

MODULE = NormalizedModule(code="function App() { return <div />; }", style=AuthoringStyle.FRAGMENT)


class TestParseDiagnostic:
    def test_location_is_converted_to_zero_indexed_line(self):
        diagnostic = parse_diagnostic("app.tsx: Unexpected token (3:14)")
        assert diagnostic.line == 2
        assert diagnostic.column == 14

    def test_first_line_maps_to_zero(self):
        assert parse_diagnostic("Unexpected token (1:0)").line == 0

    def test_no_location(self):
        diagnostic = parse_diagnostic("Something broke", trace="at foo")
        assert diagnostic.line is None
        assert diagnostic.column is None
        assert diagnostic.raw_trace == "at foo"

    def test_first_locator_wins(self):
        diagnostic = parse_diagnostic("Unexpected token (5:2)\n> 5 | foo(1:1)")
        assert (diagnostic.line, diagnostic.column) == (4, 2)


class TestCompileModule:
    def test_success(self, compiler):
        compiler.output = "var x = 1;"
        outcome = compile_module(MODULE, compiler)
        assert outcome == Compiled("var x = 1;")
        assert outcome.ok

    def test_passes_fixed_configuration(self, compiler):
        compiler.output = "x"
        compile_module(MODULE, compiler)
        source, config = compiler.calls[0]
        assert source == MODULE.code
        assert config.to_dict() == {"presets": ["react", "typescript"], "filename": "app.tsx"}

    def test_custom_configuration(self, compiler):
        compiler.output = "x"
        compile_module(MODULE, compiler, CompilerConfig(presets=("react",), filename="a.jsx"))
        assert compiler.calls[0][1].filename == "a.jsx"

    def test_tool_error_becomes_failed_with_location(self, compiler):
        compiler.error = ToolError("app.tsx: Unexpected token (4:9)", trace="SyntaxError...")
        outcome = compile_module(MODULE, compiler)
        assert isinstance(outcome, Failed)
        assert not outcome.ok
        assert outcome.diagnostic.line == 3
        assert outcome.diagnostic.column == 9
        assert outcome.diagnostic.raw_trace == "SyntaxError..."

    def test_bridge_error_becomes_failed(self, compiler):
        compiler.error = BridgeError("Node bridge died")
        outcome = compile_module(MODULE, compiler)
        assert isinstance(outcome, Failed)
        assert outcome.diagnostic.message == "Node bridge died"
        assert outcome.diagnostic.line is None

    def test_empty_output_is_failed(self, compiler):
        compiler.output = ""
        outcome = compile_module(MODULE, compiler)
        assert isinstance(outcome, Failed)
        assert outcome.diagnostic.message == NO_OUTPUT_MESSAGE
