"""
Arcade Pipeline — Input Normalizer

Turns the two editor buffers (markup text + logic text) into one
NormalizedModule the compiler can swallow:

  1. strip imports of modules the sandbox already provides as globals
  2. detect the authoring style (bare fragment vs. exported component)
  3. rewrite / wrap the markup so it always binds CANONICAL_SYMBOL
  4. concatenate logic + markup

Everything here is line-level pattern matching. A miss leaves a redundant
import or export behind for the compiler to reject; it never rewrites text
it does not recognise. Same input → same output, always.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from engine.pipeline.types import CANONICAL_SYMBOL, AuthoringStyle, NormalizedModule

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NormalizerConfig:
    """Which import sources are provided by the sandbox and must be stripped."""

    component_modules: tuple[str, ...] = ("@navikt/ds-react", "@navikt/aksel-icons")
    runtime_module: str = "react"
    logic_modules: tuple[str, ...] = ("./hooks", ".")
    canonical_symbol: str = CANONICAL_SYMBOL

    # derived, filled in __post_init__
    markup_sources: frozenset[str] = field(init=False, repr=False)
    logic_sources: frozenset[str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        shared = {*self.component_modules, self.runtime_module}
        object.__setattr__(self, "markup_sources", frozenset(shared | set(self.logic_modules)))
        object.__setattr__(self, "logic_sources", frozenset(shared))


DEFAULT_CONFIG = NormalizerConfig()

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

# One import statement. The clause may span lines (multi-line named imports)
# but can only contain identifier characters, braces, commas, `*` and
# whitespace, and never the word `import`, so a match can't run on into a
# neighbouring statement.
_IMPORT_RE = re.compile(
    r"^[ \t]*import\s+(?:type\s+)?"
    r"(?P<clause>(?:(?!\bimport\b)[\w$*{},\s])+?)"
    r"\s*\bfrom\s*(?P<q>['\"])(?P<source>[^'\"\n]+)(?P=q)[ \t]*;?[ \t]*(?:\r?\n|$)",
    re.MULTILINE,
)

# `export default <something>` starting at column 0.
_EXPORT_DEFAULT_RE = re.compile(r"^export\s+default\s+", re.MULTILINE)

_EXPORT_DEFAULT_FUNCTION_RE = re.compile(
    r"^export\s+default\s+(?P<prefix>(?:async\s+)?function\b\s*\*?)\s*(?P<name>[A-Za-z_$][\w$]*)?\s*(?=[(<])",
    re.MULTILINE,
)
_EXPORT_DEFAULT_CLASS_RE = re.compile(
    r"^export\s+default\s+class\b\s*(?P<name>(?!extends\b)[A-Za-z_$][\w$]*)?",
    re.MULTILINE,
)
_EXPORT_DEFAULT_IDENT_RE = re.compile(
    r"^export\s+default\s+(?P<name>[A-Za-z_$][\w$]*)\s*;?[ \t]*$",
    re.MULTILINE,
)
# Leading `const|let|var` after `export default` is not valid JS but shows up
# in hand-typed code; treat it as the value that follows.
_EXPORT_DEFAULT_VALUE_RE = re.compile(r"^export\s+default\s+(?:(?:const|let|var)\s+)?", re.MULTILINE)

_NAMED_EXPORT_RE = re.compile(
    r"^([ \t]*)export\s+(?=(?:declare\s+)?(?:async\s+function|const|let|var|function|class|interface|type|enum)\b)",
    re.MULTILINE,
)
_EXPORT_LIST_RE = re.compile(r"^[ \t]*export\s*\{[^}]*\}\s*(?:from\s*['\"][^'\"]*['\"])?[ \t]*;?[ \t]*(?:\r?\n|$)", re.MULTILINE)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def strip_imports(text: str, sources: Iterable[str]) -> str:
    """Remove import statements whose source is in `sources`. Others are kept."""
    allowed = frozenset(sources)

    def _replace(match: re.Match[str]) -> str:
        return "" if match.group("source") in allowed else match.group(0)

    return _IMPORT_RE.sub(_replace, text)


def strip_named_exports(text: str) -> str:
    """Drop `export` from named declarations and remove `export { ... }` lists."""
    text = _NAMED_EXPORT_RE.sub(r"\1", text)
    return _EXPORT_LIST_RE.sub("", text)


def detect_authoring_style(markup: str) -> AuthoringStyle:
    """
    FULLY_AUTHORED when the markup has an `export default` at the top level:
    column 0 and outside any brace block. Anything else, including an
    export nested in a block, is FRAGMENT.
    """
    for match in _EXPORT_DEFAULT_RE.finditer(markup):
        if _brace_depth(markup, match.start()) == 0:
            return AuthoringStyle.FULLY_AUTHORED
    return AuthoringStyle.FRAGMENT


def count_root_elements(markup: str) -> int:
    """
    Count lines whose trimmed content begins with `<` and which start at
    nesting depth 0 (sibling roots). Closing tags are not roots; a
    multi-line single element counts once.
    """
    return _RootScanner(markup.strip()).count()


def has_multiple_roots(markup: str) -> bool:
    return count_root_elements(markup) > 1


def wrap_in_group(markup: str) -> str:
    """Wrap markup in the zero-footprint grouping construct."""
    return f"<>\n{markup}\n</>"


def normalize(markup: str, logic: str, config: NormalizerConfig = DEFAULT_CONFIG) -> NormalizedModule:
    """
    Produce the NormalizedModule for one (markup, logic) snapshot.

    Returns:
        NormalizedModule with the combined code, the detected style and
        whether the grouping construct was applied.
    """
    clean_markup = strip_imports(markup, config.markup_sources)
    clean_logic = strip_named_exports(strip_imports(logic, config.logic_sources))

    style = detect_authoring_style(clean_markup)
    wrapped = False
    symbol = config.canonical_symbol

    if style is AuthoringStyle.FULLY_AUTHORED:
        processed = _rewrite_default_export(strip_named_exports(clean_markup), symbol)
    elif not clean_markup.strip():
        processed = f"function {symbol}() {{\n  return null;\n}}"
    elif has_multiple_roots(clean_markup):
        wrapped = True
        processed = f"function {symbol}() {{\n  return (\n    <>\n{clean_markup}\n    </>\n  );\n}}"
    else:
        processed = f"function {symbol}() {{\n  return (\n    {clean_markup}\n  );\n}}"

    code = f"\n{clean_logic}\n\n{processed}\n"
    return NormalizedModule(code=code, style=style, wrapped=wrapped)


# ---------------------------------------------------------------------------
# Export rewriting
# ---------------------------------------------------------------------------


def _rewrite_default_export(markup: str, symbol: str) -> str:
    """
    Rewrite the top-level `export default` into a plain local binding named
    `symbol`, aliasing it when the declaration has another name.
    """
    alias: str | None = None

    match = _first_top_level(_EXPORT_DEFAULT_FUNCTION_RE, markup)
    if match:
        name = match.group("name")
        prefix = re.sub(r"\s+", " ", match.group("prefix")).strip()
        if name is None:
            replacement = f"{prefix} {symbol}"
        else:
            replacement = f"{prefix} {name}"
            alias = name if name != symbol else None
        return _splice(markup, match, replacement, alias, symbol)

    match = _first_top_level(_EXPORT_DEFAULT_CLASS_RE, markup)
    if match:
        name = match.group("name")
        if name is None:
            return _splice(markup, match, f"class {symbol} ", None, symbol)
        return _splice(markup, match, f"class {name}", name if name != symbol else None, symbol)

    match = _first_top_level(_EXPORT_DEFAULT_IDENT_RE, markup)
    if match:
        name = match.group("name")
        if name == symbol:
            # `export default App;`: App is already bound.
            return markup[: match.start()] + markup[match.end() :]
        return markup[: match.start()] + f"const {symbol} = {name};" + markup[match.end() :]

    match = _first_top_level(_EXPORT_DEFAULT_VALUE_RE, markup)
    if match:
        return markup[: match.start()] + f"const {symbol} = " + markup[match.end() :]

    return markup


def _splice(markup: str, match: re.Match[str], replacement: str, alias: str | None, symbol: str) -> str:
    rewritten = markup[: match.start()] + replacement + markup[match.end() :]
    if alias:
        rewritten = rewritten.rstrip() + f"\nconst {symbol} = {alias};"
    return rewritten


def _first_top_level(pattern: re.Pattern[str], text: str) -> re.Match[str] | None:
    for match in pattern.finditer(text):
        if _brace_depth(text, match.start()) == 0:
            return match
    return None


def _brace_depth(text: str, end: int) -> int:
    """Net `{` minus `}` before `end`, skipping string literals and comments."""
    depth = 0
    i = 0
    quote: str | None = None
    while i < end:
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in "\"'`":
            quote = ch
        elif text.startswith("//", i):
            newline = text.find("\n", i)
            i = end if newline == -1 else newline
            continue
        elif text.startswith("/*", i):
            close = text.find("*/", i + 2)
            i = end if close == -1 else close + 2
            continue
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        i += 1
    return depth


# ---------------------------------------------------------------------------
# Root scanning
# ---------------------------------------------------------------------------


class _RootScanner:
    """
    Minimal JSX nesting tracker. Walks the text once, keeping element depth,
    whether we are inside a tag, expression-container depth, and open quote.
    At every line start in plain child context at depth 0, a line beginning
    with `<` (but not `</`) is a root.
    """

    def __init__(self, text: str) -> None:
        self.text = text

    def count(self) -> int:
        text = self.text
        depth = 0  # open elements
        brace = 0  # {...} expression containers
        in_tag = False
        closing = False
        quote: str | None = None
        roots = 0
        line_start = True
        i = 0
        n = len(text)

        while i < n:
            ch = text[i]

            if line_start:
                line_start = False
                if depth == 0 and brace == 0 and not in_tag and quote is None:
                    stripped = text[i:].lstrip(" \t")
                    if stripped.startswith("<") and not stripped.startswith("</"):
                        roots += 1

            if ch == "\n":
                line_start = True
                i += 1
                continue

            if quote is not None:
                if ch == "\\":
                    i += 2
                    continue
                if ch == quote:
                    quote = None
            elif brace > 0:
                if text.startswith("/*", i):
                    close = text.find("*/", i + 2)
                    i = n if close == -1 else close + 2
                    continue
                if ch in "\"'`":
                    quote = ch
                elif ch == "{":
                    brace += 1
                elif ch == "}":
                    brace -= 1
            elif in_tag:
                if ch in "\"'":
                    quote = ch
                elif ch == "{":
                    brace += 1
                elif text.startswith("/>", i):
                    in_tag = False
                    i += 2
                    continue
                elif ch == ">":
                    in_tag = False
                    depth = max(0, depth - 1) if closing else depth + 1
            elif ch == "<":
                nxt = text[i + 1] if i + 1 < n else ""
                if nxt == "/":
                    in_tag, closing = True, True
                    i += 2
                    continue
                if nxt == ">" or nxt.isalpha():
                    in_tag, closing = True, False
            elif ch == "{":
                brace += 1

            i += 1

        return roots
