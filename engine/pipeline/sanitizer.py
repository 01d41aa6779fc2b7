"""
Arcade Pipeline — Post-Compile Sanitizer

Makes compiled text runnable as a plain (non-module) script and guarantees
a binding named CANONICAL_SYMBOL.

Removes the module boilerplate a compiler emits around export semantics:
  "use strict";
  Object.defineProperty(exports, "__esModule", { value: true });
  exports.__esModule = true;
  exports.default = X;   /   var _default = exports.default = X;

Idempotent: sanitize(sanitize(x)) == sanitize(x).
"""

from __future__ import annotations

import re

from engine.pipeline.exceptions import SanitizeError
from engine.pipeline.types import CANONICAL_SYMBOL

_BOILERPLATE: tuple[re.Pattern[str], ...] = (
    re.compile(r"\A\s*[\"']use strict[\"'];?[ \t]*(?:\r?\n)?"),
    re.compile(r"^[ \t]*Object\.defineProperty\(\s*exports\b[^;]*\);?[ \t]*(?:\r?\n)?", re.MULTILINE),
    re.compile(r"^[ \t]*exports\.__esModule\s*=\s*true;?[ \t]*(?:\r?\n)?", re.MULTILINE),
    re.compile(
        r"^[ \t]*(?:(?:var|let|const)\s+[\w$]+\s*=\s*)?exports\.default\s*=\s*(?:void 0|[\w$.]+);?[ \t]*(?:\r?\n)?",
        re.MULTILINE,
    ),
)

# Top-level = column 0; compilers print top-level statements unindented.
_TOP_LEVEL_FUNCTION_RE = re.compile(r"^(?:async\s+)?function\s*\*?\s*([A-Za-z_$][\w$]*)\s*\(", re.MULTILINE)


def strip_module_boilerplate(code: str) -> str:
    for pattern in _BOILERPLATE:
        code = pattern.sub("", code)
    return code


def has_binding(code: str, symbol: str = CANONICAL_SYMBOL) -> bool:
    """True when `symbol` is declared at the top level of `code`."""
    name = re.escape(symbol)
    pattern = re.compile(
        rf"^(?:(?:var|let|const)\s+{name}\b|(?:async\s+)?function\s*\*?\s*{name}\s*\(|class\s+{name}\b)",
        re.MULTILINE,
    )
    return pattern.search(code) is not None


def top_level_functions(code: str) -> list[str]:
    return [m.group(1) for m in _TOP_LEVEL_FUNCTION_RE.finditer(code)]


def sanitize(code: str, symbol: str = CANONICAL_SYMBOL) -> str:
    """
    Strip module boilerplate and make sure `symbol` is bound.

    If `symbol` is missing but exactly one top-level function exists,
    `var <symbol> = <function>;` is inserted right after its declaration.

    Raises:
        SanitizeError: `symbol` is missing and there are zero or several
            top-level functions to choose from.
    """
    code = strip_module_boilerplate(code)
    if has_binding(code, symbol):
        return code

    candidates = list(_TOP_LEVEL_FUNCTION_RE.finditer(code))
    if len(candidates) != 1:
        names = ", ".join(m.group(1) for m in candidates) or "none"
        raise SanitizeError(
            f"Could not find a root component: define `{symbol}` or a single top-level component function "
            f"(found: {names})"
        )

    match = candidates[0]
    end = _declaration_end(code, match.end())
    binding = f"var {symbol} = {match.group(1)};"
    if end is None:
        return code.rstrip() + "\n" + binding + "\n"
    return code[:end] + "\n" + binding + code[end:]


def _declaration_end(code: str, start: int) -> int | None:
    """
    Index just past the `}` closing the function body that opens after
    `start`. Skips strings, template literals and comments. None when the
    braces never balance.
    """
    params_end = _balanced_end(code, start - 1, "(", ")")
    if params_end is None:
        return None
    open_at = code.find("{", params_end)
    if open_at == -1:
        return None
    return _balanced_end(code, open_at, "{", "}")


def _balanced_end(code: str, open_at: int, opener: str, closer: str) -> int | None:
    depth = 0
    quote: str | None = None
    i = open_at
    n = len(code)
    while i < n:
        ch = code[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in "\"'`":
            quote = ch
        elif code.startswith("//", i):
            newline = code.find("\n", i)
            if newline == -1:
                return None
            i = newline
            continue
        elif code.startswith("/*", i):
            close = code.find("*/", i + 2)
            if close == -1:
                return None
            i = close + 2
            continue
        elif ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return None
