"""
Arcade Pipeline -- Formatter Heuristic Tests

The fake formatter only normalises whitespace; `transform` stands in for
real formatter output where the unwrapping logic is under test.
"""

import pytest

from engine.pipeline.exceptions import BridgeError, FormatError, ToolError
from engine.pipeline.formatter import (
    FormatOptions,
    collapse_blank_lines,
    dedent_lines,
    extract_return_body,
    format_markup,
    format_module,
    is_formatted,
    strip_grouping,
)

# ============================================================================
# format_markup
# ============================================================================


class TestFormatMarkup:
    def test_single_root(self, formatter):
        assert format_markup("<Button>Hi</Button>", formatter) == "<Button>Hi</Button>"
        sent = formatter.calls[0][0]
        assert sent.startswith("function Component() {\n  return (\n")

    def test_multiple_roots_lose_the_grouping_construct(self, formatter):
        formatter.transform = lambda _: (
            "function Component() {\n  return (\n    <>\n      <A />\n\n\n\n      <B />\n    </>\n  )\n}\n"
        )
        assert format_markup("<A />\n<B />", formatter) == "<A />\n\n<B />"
        assert "<>" in formatter.calls[0][0]

    def test_single_line_return(self, formatter):
        formatter.transform = lambda _: "function Component() {\n  return <Button>Hi</Button>\n}\n"
        assert format_markup("<Button>Hi</Button>", formatter) == "<Button>Hi</Button>"

    def test_nested_indentation_is_kept_relative(self, formatter):
        formatter.transform = lambda _: (
            "function Component() {\n  return (\n    <Box>\n      <Button />\n    </Box>\n  )\n}\n"
        )
        assert format_markup("<Box><Button /></Box>", formatter) == "<Box>\n  <Button />\n</Box>"

    def test_blank_input_skips_formatter(self, formatter):
        assert format_markup("  \n", formatter) == ""
        assert formatter.calls == []

    def test_fully_authored_is_formatted_as_module(self, formatter):
        code = "export default function App() {\n  return <div />\n}"
        assert format_markup(code, formatter) == code
        assert formatter.calls[0][0] == code

    def test_default_options(self, formatter):
        format_markup("<div />", formatter)
        options = formatter.calls[0][1]
        assert options["parser"] == "babel-ts"
        assert options["printWidth"] == 100
        assert options["singleQuote"] is True
        assert options["semi"] is False
        assert options["trailingComma"] == "es5"

    def test_custom_options(self, formatter):
        format_markup("<div />", formatter, FormatOptions(print_width=80, semi=True))
        assert formatter.calls[0][1]["printWidth"] == 80
        assert formatter.calls[0][1]["semi"] is True


class TestFormatErrors:
    def test_tool_error(self, formatter):
        formatter.error = ToolError("Unexpected token (2:5)")
        with pytest.raises(FormatError, match="Unexpected token"):
            format_markup("<Button", formatter)

    def test_bridge_error(self, formatter):
        formatter.error = BridgeError("Node bridge not started")
        with pytest.raises(FormatError):
            format_markup("<Button />", formatter)

    def test_unrecognised_output(self, formatter):
        formatter.transform = lambda _: "<Button />\n"
        with pytest.raises(FormatError):
            format_markup("<Button />", formatter)


# ============================================================================
# Modules and checks
# ============================================================================


def test_format_module_collapses_blank_runs(formatter):
    assert format_module("const a = 1;\n\n\n\nconst b = 2;\n", formatter) == "const a = 1;\n\nconst b = 2;"


def test_is_formatted(formatter):
    assert is_formatted("<Button>Hi</Button>", formatter)
    assert not is_formatted("<Button>Hi</Button>   ", formatter)


def test_is_formatted_false_when_unparseable(formatter):
    formatter.error = ToolError("Unexpected token")
    assert not is_formatted("<Button", formatter)


STABLE_LAYOUTS = {
    "single-root": "<Button>Hi</Button>",
    "multi-root": "<Button>A</Button>\n<Button>B</Button>",
    "nested": "<Card>\n   <Stack>\n      <Button>Go</Button>\n   </Stack>\n</Card>",
    "blank-line-separated": "<Header />\n\n\n<Card>\n  <Body />\n</Card>\n\n<Footer />",
}


def _min_indent(code: str) -> int:
    return min(len(line) - len(line.lstrip()) for line in code.split("\n") if line.strip())


@pytest.mark.parametrize("markup", list(STABLE_LAYOUTS.values()), ids=list(STABLE_LAYOUTS))
def test_formatting_is_stable(formatter, markup):
    once = format_markup(markup, formatter)
    twice = format_markup(once, formatter)
    assert twice == once
    assert is_formatted(once, formatter)
    for marker in ("<>", "</>"):
        assert marker not in once
    assert _min_indent(once) == 0
    assert _min_indent(twice) == _min_indent(once)


# ============================================================================
# Unwrapping helpers
# ============================================================================


class TestHelpers:
    def test_extract_return_body_with_semicolon(self):
        formatted = "function Component() {\n  return (\n    <div />\n  );\n}"
        assert extract_return_body(formatted) == "<div />"

    def test_extract_return_body_rejects_missing_return(self):
        assert extract_return_body("function Component() {\n}") is None

    def test_strip_grouping_multiline(self):
        assert strip_grouping("<>\n  <A />\n  <B />\n</>") == "<A />\n<B />"

    def test_strip_grouping_single_line(self):
        assert strip_grouping("<><A /></>") == "<A />"

    def test_strip_grouping_leaves_other_text(self):
        assert strip_grouping("<A />") == "<A />"

    def test_dedent_lines(self):
        assert dedent_lines(["    <A>", "      <B />", "", "    </A>"]) == ["<A>", "  <B />", "", "</A>"]

    def test_collapse_blank_lines(self):
        assert collapse_blank_lines("a\n  \n\n\nb") == "a\n\nb"
