"""
Arcade Pipeline — Formatter Heuristic

On-demand layout normalisation through the external code formatter.

The formatter needs a single syntactic root, so bare markup takes a round
trip through two throwaway wrappers:

  function Component() {        ← keeps the formatter from adding `;`
    return (
      <>                        ← grouping construct, only for sibling roots
        ...markup...
      </>
    )
  }

After formatting, both wrappers are peeled off again: the return expression
is cut out, the grouping markers dropped, the common indentation removed and
blank-line runs collapsed. Nothing of either wrapper reaches the user.

Fully-authored markup and logic text are real modules and are formatted
as-is.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Literal, Protocol

from engine.pipeline.exceptions import BridgeError, FormatError, ToolError
from engine.pipeline.normalizer import detect_authoring_style, has_multiple_roots, wrap_in_group
from engine.pipeline.types import AuthoringStyle

logger = logging.getLogger(__name__)

GROUP_OPEN = "<>"
GROUP_CLOSE = "</>"

_BLANK_RUN_RE = re.compile(r"\n{3,}")


@dataclass(frozen=True)
class FormatOptions:
    parser: Literal["babel", "babel-ts", "typescript"] = "babel-ts"
    print_width: int = 100
    tab_width: int = 2
    single_quote: bool = True
    semi: bool = False
    trailing_comma: Literal["none", "es5", "all"] = "es5"

    def to_dict(self) -> dict[str, Any]:
        return {
            "parser": self.parser,
            "printWidth": self.print_width,
            "tabWidth": self.tab_width,
            "singleQuote": self.single_quote,
            "semi": self.semi,
            "trailingComma": self.trailing_comma,
            "arrowParens": "always",
            "jsxSingleQuote": False,
            "bracketSpacing": True,
            "bracketSameLine": False,
        }


DEFAULT_FORMAT_OPTIONS = FormatOptions()


class CodeFormatter(Protocol):
    """External code formatter."""

    def format(self, source: str, options: dict[str, Any]) -> str:
        """Return formatted text, or raise ToolError."""
        ...


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def format_markup(
    code: str,
    formatter: CodeFormatter,
    options: FormatOptions = DEFAULT_FORMAT_OPTIONS,
) -> str:
    """
    Format markup text.

    Raises:
        FormatError: the formatter rejected the text or its output could not
            be unwrapped. No partially formatted text is ever returned.
    """
    if not code.strip():
        return ""
    if detect_authoring_style(code) is AuthoringStyle.FULLY_AUTHORED:
        return format_module(code, formatter, options)

    grouped = has_multiple_roots(code)
    inner = wrap_in_group(code) if grouped else code
    wrapped = f"function Component() {{\n  return (\n    {inner}\n  )\n}}"

    formatted = _run(formatter, wrapped, options)
    body = extract_return_body(formatted)
    if body is None:
        raise FormatError("Formatter output did not contain the component body")

    if grouped:
        body = strip_grouping(body)
    return collapse_blank_lines(body).strip()


def format_module(
    code: str,
    formatter: CodeFormatter,
    options: FormatOptions = DEFAULT_FORMAT_OPTIONS,
) -> str:
    """Format a complete module (logic text or fully-authored markup)."""
    if not code.strip():
        return ""
    return collapse_blank_lines(_run(formatter, code, options)).rstrip()


def is_formatted(
    code: str,
    formatter: CodeFormatter,
    options: FormatOptions = DEFAULT_FORMAT_OPTIONS,
    *,
    module: bool = False,
) -> bool:
    """True when formatting `code` would not change it. Unparseable text is not formatted."""
    try:
        if module:
            return format_module(code, formatter, options) == code
        return format_markup(code, formatter, options) == code
    except FormatError:
        return False


# ---------------------------------------------------------------------------
# Unwrapping helpers
# ---------------------------------------------------------------------------


def extract_return_body(formatted: str) -> str | None:
    """
    Cut the returned expression out of the formatted synthetic component,
    keeping its lines' relative indentation. Handles both
    `return (\\n ...\\n )` and a single `return <X />` line.
    """
    lines = formatted.rstrip().split("\n")
    if not lines or lines[-1].strip() != "}":
        return None

    start = next((i for i, line in enumerate(lines) if line.strip().startswith("return")), None)
    if start is None:
        return None

    head = lines[start].strip()
    if head == "return (":
        close = len(lines) - 2
        if close <= start or lines[close].strip() not in (")", ");"):
            return None
        body = lines[start + 1 : close]
    else:
        indent = _indent_of(lines[start])
        first = head[len("return") :].strip()
        body = [" " * indent + first, *lines[start + 1 : -1]]
        if body[-1].rstrip().endswith(";"):
            body[-1] = body[-1].rstrip()[:-1]

    return "\n".join(dedent_lines(body))


def strip_grouping(code: str) -> str:
    """
    Remove the grouping construct's open/close markers and re-dedent what
    was inside. Text not wrapped in the construct is returned unchanged.
    """
    trimmed = code.strip()
    if not (trimmed.startswith(GROUP_OPEN) and trimmed.endswith(GROUP_CLOSE)):
        return code

    lines = trimmed.split("\n")
    if len(lines) == 1:
        return trimmed[len(GROUP_OPEN) : -len(GROUP_CLOSE)].strip()
    if lines[0].strip() != GROUP_OPEN or lines[-1].strip() != GROUP_CLOSE:
        return code

    return "\n".join(dedent_lines(lines[1:-1])).strip()


def dedent_lines(lines: list[str]) -> list[str]:
    """
    Strip the minimum leading-whitespace count of the non-blank lines from
    every line. Blank lines come back empty.
    """
    non_blank = [line for line in lines if line.strip()]
    if not non_blank:
        return ["" for _ in lines]
    margin = min(_indent_of(line) for line in non_blank)
    return [line[margin:].rstrip() if line.strip() else "" for line in lines]


def collapse_blank_lines(code: str) -> str:
    """Squash runs of blank lines down to a single blank line."""
    code = "\n".join(line if line.strip() else "" for line in code.split("\n"))
    return _BLANK_RUN_RE.sub("\n\n", code)


# ---------------------------------------------------------------------------
# Internal
# ---------------------------------------------------------------------------


def _run(formatter: CodeFormatter, source: str, options: FormatOptions) -> str:
    try:
        return formatter.format(source, options.to_dict())
    except ToolError as e:
        logger.debug("format: collaborator rejected input: %s", e.message)
        raise FormatError(e.message) from e
    except BridgeError as e:
        logger.warning("format: toolchain unavailable: %s", e)
        raise FormatError(str(e)) from e


def _indent_of(line: str) -> int:
    return len(line) - len(line.lstrip())
