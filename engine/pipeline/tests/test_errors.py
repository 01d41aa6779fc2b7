"""
Arcade Pipeline -- Error Classifier Tests
"""

from engine.pipeline.errors import (
    COMPILE_TITLE,
    RUNTIME_TITLE,
    ErrorReport,
    ErrorTracker,
    classify_compile,
    classify_runtime,
    failing_component,
    format_report,
)
from engine.pipeline.types import CompileDiagnostic, RuntimeFailure

STACK = "\n    at Broken (app.js:3:9)\n    at ErrorBoundary"


class TestClassify:
    def test_compile_line_is_one_indexed(self):
        report = classify_compile(CompileDiagnostic(message="app.tsx: Unexpected token (3:4)", line=2, column=4))
        assert report.kind == "compile"
        assert report.title == "Compile Error"
        assert report.line == 3
        assert report.message == "app.tsx: Unexpected token"

    def test_compile_without_location(self):
        report = classify_compile(CompileDiagnostic(message="Node bridge died"))
        assert report.line is None
        assert report.trace == "Node bridge died"

    def test_compile_message_keeps_first_line_only(self):
        report = classify_compile(CompileDiagnostic(message="Bad thing (1:1)\n> 1 | <div\n    | ^", line=0, raw_trace="full"))
        assert report.message == "Bad thing"
        assert report.line == 1
        assert report.trace == "full"

    def test_runtime_has_no_line(self):
        report = classify_runtime(RuntimeFailure(message="boom", component_stack=STACK, raw_trace="Error: boom"))
        assert report.kind == "runtime"
        assert report.title == "Runtime Error"
        assert report.line is None
        assert "Error: boom" in report.trace
        assert "at Broken" in report.trace
        assert report.component == "Broken"

    def test_runtime_without_stack(self):
        report = classify_runtime(RuntimeFailure(message="", component_stack=None, raw_trace=""))
        assert report.message == "Rendering failed"
        assert report.trace is None
        assert report.component is None

    def test_failing_component(self):
        assert failing_component(RuntimeFailure("boom", STACK, "")) == "Broken"
        assert failing_component(RuntimeFailure("boom", None, "")) is None


def test_format_report():
    report = ErrorReport(kind="compile", title=COMPILE_TITLE, message="Unexpected token", line=3, trace="trace")
    assert format_report(report) == "Compile Error: Unexpected token (line 3)"
    assert format_report(report, with_trace=True).endswith("\n\ntrace")


def test_format_report_names_failing_component():
    report = classify_runtime(RuntimeFailure(message="boom", component_stack=STACK, raw_trace=""))
    assert format_report(report) == "Runtime Error: boom (in Broken)"


def test_to_dict():
    report = ErrorReport(kind="runtime", title=RUNTIME_TITLE, message="boom")
    assert report.to_dict() == {
        "kind": "runtime",
        "title": RUNTIME_TITLE,
        "message": "boom",
        "line": None,
        "trace": None,
        "component": None,
    }


class TestTracker:
    def test_compile_replaces_runtime(self):
        tracker = ErrorTracker()
        tracker.record_runtime(RuntimeFailure("boom", None, ""))
        tracker.record_compile(CompileDiagnostic("bad"))
        assert tracker.current.kind == "compile"

    def test_runtime_ignored_while_compile_error_shows(self):
        tracker = ErrorTracker()
        tracker.record_compile(CompileDiagnostic("bad"))
        assert tracker.record_runtime(RuntimeFailure("boom", None, "")) is None
        assert tracker.current.kind == "compile"

    def test_successful_compile_clears_only_compile_errors(self):
        tracker = ErrorTracker()
        tracker.record_compile(CompileDiagnostic("bad"))
        tracker.compile_succeeded()
        assert tracker.current is None

        tracker.record_runtime(RuntimeFailure("boom", None, ""))
        tracker.compile_succeeded()
        assert tracker.current.kind == "runtime"

    def test_clear(self):
        tracker = ErrorTracker()
        tracker.record_runtime(RuntimeFailure("boom", None, ""))
        tracker.clear()
        assert tracker.current is None
