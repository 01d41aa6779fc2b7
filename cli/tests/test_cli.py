"""
Tests for the arcade command-line tool.

The Node toolchain is replaced by an echo compiler and a whitespace-only
formatter installed as the process toolchain.
"""

from __future__ import annotations

import sys

import pytest

from arcade_cli import __version__
from arcade_cli.main import DEFAULT_PORT, main, parse_args
from engine.pipeline import toolchain as toolchain_module
from engine.pipeline.exceptions import ToolError


class EchoToolchain:
    def transform(self, source, config):
        if "<<<" in source:
            raise ToolError("app.tsx: Unexpected token (1:1)", trace="SyntaxError: app.tsx: Unexpected token (1:1)")
        return '"use strict";\n\n' + source

    def format(self, source, options):
        if "<<<" in source:
            raise ToolError("Unexpected token (1:1)")
        return "\n".join(line.rstrip() for line in source.split("\n")).rstrip() + "\n"

    def close(self):
        pass


@pytest.fixture(autouse=True)
def echo_toolchain():
    previous = toolchain_module._toolchain
    toolchain_module._toolchain = EchoToolchain()
    yield
    toolchain_module._toolchain = previous


def run(monkeypatch, *argv: str) -> int:
    monkeypatch.setattr(sys, "argv", ["arcade", *argv])
    with pytest.raises(SystemExit) as exc:
        main()
    return exc.value.code


# ============================================================================
# parse_args
# ============================================================================


class TestParseArgs:
    def test_compile_with_logic(self):
        args = parse_args(["compile", "Card.tsx", "--logic", "hooks.ts", "--trace"])
        assert args["command"] == "compile"
        assert args["file"] == "Card.tsx"
        assert args["logic_file"] == "hooks.ts"
        assert args["trace"] is True

    def test_format_logic_flag(self):
        args = parse_args(["format", "hooks.ts", "--logic", "--check"])
        assert args["logic"] is True
        assert args["logic_file"] is None
        assert args["check"] is True

    def test_serve_defaults(self):
        args = parse_args(["serve"])
        assert args["host"] == "127.0.0.1"
        assert args["port"] == DEFAULT_PORT

    def test_serve_port(self):
        assert parse_args(["serve", "--port", "9000"])["port"] == 9000

    def test_unknown_option_exits(self, capsys):
        with pytest.raises(SystemExit):
            parse_args(["--nope"])
        assert "Unknown option: --nope" in capsys.readouterr().out

    def test_missing_port_value_exits(self):
        with pytest.raises(SystemExit):
            parse_args(["serve", "--port"])


# ============================================================================
# Commands
# ============================================================================


class TestVersionAndHelp:
    def test_version(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["arcade", "--version"])
        main()
        assert capsys.readouterr().out.strip() == f"arcade-cli {__version__}"

    def test_no_command_prints_help(self, monkeypatch, capsys):
        assert run(monkeypatch) == 1
        assert "Usage:" in capsys.readouterr().out


class TestCompile:
    def test_prints_script(self, monkeypatch, capsys, tmp_path):
        markup = tmp_path / "Card.tsx"
        markup.write_text("<Button>Hi</Button>\n")

        assert run(monkeypatch, "compile", str(markup)) == 0
        out = capsys.readouterr().out
        assert "function App()" in out
        assert "use strict" not in out

    def test_compile_error(self, monkeypatch, capsys, tmp_path):
        markup = tmp_path / "Card.tsx"
        markup.write_text("<<<")

        assert run(monkeypatch, "compile", str(markup)) == 1
        err = capsys.readouterr().err
        assert err.strip() == "Compile Error: app.tsx: Unexpected token (line 1)"

    def test_compile_error_with_trace(self, monkeypatch, capsys, tmp_path):
        markup = tmp_path / "Card.tsx"
        markup.write_text("<<<")

        run(monkeypatch, "compile", str(markup), "--trace")
        assert "SyntaxError: app.tsx" in capsys.readouterr().err

    def test_missing_file(self, monkeypatch, capsys, tmp_path):
        assert run(monkeypatch, "compile", str(tmp_path / "missing.tsx")) == 1
        assert "cannot read" in capsys.readouterr().out


class TestFormat:
    def test_prints_formatted(self, monkeypatch, capsys, tmp_path):
        source = tmp_path / "Card.tsx"
        source.write_text("<Button>Hi</Button>   \n")

        assert run(monkeypatch, "format", str(source)) == 0
        assert capsys.readouterr().out == "<Button>Hi</Button>\n"

    def test_check_reports_unformatted(self, monkeypatch, capsys, tmp_path):
        source = tmp_path / "hooks.ts"
        source.write_text("export const a = 1;   \n")

        assert run(monkeypatch, "format", str(source), "--logic", "--check") == 1
        assert "would reformat" in capsys.readouterr().out
        assert source.read_text() == "export const a = 1;   \n"

    def test_check_passes_formatted(self, monkeypatch, tmp_path):
        source = tmp_path / "hooks.ts"
        source.write_text("export const a = 1;\n")

        assert run(monkeypatch, "format", str(source), "--logic", "--check") == 0

    def test_check_markup(self, monkeypatch, tmp_path):
        source = tmp_path / "Card.tsx"
        source.write_text("<Button>A</Button>\n<Button>B</Button>\n")

        assert run(monkeypatch, "format", str(source), "--check") == 0

    def test_check_needs_trailing_newline(self, monkeypatch, tmp_path):
        source = tmp_path / "Card.tsx"
        source.write_text("<Button>Hi</Button>")

        assert run(monkeypatch, "format", str(source), "--check") == 1

    def test_check_flags_unparseable_file(self, monkeypatch, capsys, tmp_path):
        source = tmp_path / "Card.tsx"
        source.write_text("<<<\n")

        assert run(monkeypatch, "format", str(source), "--check") == 1
        assert "would reformat" in capsys.readouterr().out
        assert source.read_text() == "<<<\n"

    def test_write(self, monkeypatch, tmp_path):
        source = tmp_path / "Card.tsx"
        source.write_text("<Button>Hi</Button>   \n")

        assert run(monkeypatch, "format", str(source), "--write") == 0
        assert source.read_text() == "<Button>Hi</Button>\n"

    def test_failure_leaves_file_alone(self, monkeypatch, capsys, tmp_path):
        source = tmp_path / "Card.tsx"
        source.write_text("<<<\n")

        assert run(monkeypatch, "format", str(source), "--write") == 1
        assert source.read_text() == "<<<\n"
        assert "cannot format" in capsys.readouterr().err
