"""Main entry point for Arcade CLI."""
from __future__ import annotations

import os
import sys
from pathlib import Path

from arcade_cli import __version__
from engine.pipeline import toolchain
from engine.pipeline.errors import classify_compile, format_report
from engine.pipeline.exceptions import BridgeError, FormatError
from engine.pipeline.formatter import format_markup, format_module, is_formatted
from engine.pipeline.node_bridge import check_node
from engine.pipeline.transpiler import Transpiler
from engine.pipeline.types import Compiled, SourceDocument

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


def print_help():
    """Print help message."""
    print(f"""
Arcade CLI v{__version__}

Usage:
  arcade <command> [options]

Commands:
  compile MARKUP    Compile a markup file and print the runnable script
  format FILE       Format a markup (or --logic) file
  serve             Run the live preview server

Options:
  --logic FILE      compile: logic file compiled together with the markup
  --logic           format: treat FILE as logic text
  --trace           compile: include the raw trace with errors
  --check           format: exit 1 if FILE is not formatted, change nothing
  --write           format: rewrite FILE in place
  --host HOST       serve: bind address (default: {DEFAULT_HOST})
  --port PORT       serve: port (default: {DEFAULT_PORT})
  -h, --help        Show this help
  -v, --version     Show version

Environment:
  NODE_BINARY         Node.js executable (default: node)
  NODE_BRIDGE_SCRIPT  Override the bundled bridge script

Examples:
  arcade compile Card.tsx --logic hooks.ts
  arcade format Card.tsx --write
  arcade format hooks.ts --logic --check
  arcade serve --port 8080
""")


def parse_args(args: list[str]) -> dict:
    """
    Parse command line arguments.

    Returns dict with:
        command: str | None (compile, format, serve)
        file: str | None
        logic_file: str | None
        logic: bool
        trace: bool
        check: bool
        write: bool
        host: str
        port: int
        show_help: bool
        show_version: bool
    """
    result = {
        "command": None,
        "file": None,
        "logic_file": None,
        "logic": False,
        "trace": False,
        "check": False,
        "write": False,
        "host": DEFAULT_HOST,
        "port": DEFAULT_PORT,
        "show_help": False,
        "show_version": False,
    }

    i = 0
    while i < len(args):
        arg = args[i]

        if arg in ("compile", "format", "serve") and result["command"] is None:
            result["command"] = arg
        elif arg == "--logic":
            # compile takes a file; format takes a flag
            if result["command"] == "compile":
                if i + 1 < len(args):
                    result["logic_file"] = args[i + 1]
                    i += 1
                else:
                    print("Error: --logic requires a file")
                    sys.exit(1)
            else:
                result["logic"] = True
        elif arg == "--trace":
            result["trace"] = True
        elif arg == "--check":
            result["check"] = True
        elif arg == "--write":
            result["write"] = True
        elif arg == "--host":
            if i + 1 < len(args):
                result["host"] = args[i + 1]
                i += 1
            else:
                print("Error: --host requires an address")
                sys.exit(1)
        elif arg == "--port":
            if i + 1 < len(args) and args[i + 1].isdigit():
                result["port"] = int(args[i + 1])
                i += 1
            else:
                print("Error: --port requires a number")
                sys.exit(1)
        elif arg in ("--help", "-h"):
            result["show_help"] = True
        elif arg in ("--version", "-v"):
            result["show_version"] = True
        elif arg.startswith("-"):
            print(f"Unknown option: {arg}")
            print("Run 'arcade --help' for usage.")
            sys.exit(1)
        elif result["command"] in ("compile", "format") and result["file"] is None:
            result["file"] = arg
        else:
            print(f"Unknown command: {arg}")
            print("Run 'arcade --help' for usage.")
            sys.exit(1)

        i += 1

    return result


def read_text(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        print(f"Error: cannot read {path}: {e.strerror}")
        sys.exit(1)


def init_toolchain():
    """Install the process toolchain from the environment."""
    return toolchain.init_toolchain(
        os.environ.get("NODE_BINARY", "node"),
        os.environ.get("NODE_BRIDGE_SCRIPT") or None,
    )


def run_compile(args: dict) -> int:
    markup = read_text(args["file"])
    logic = read_text(args["logic_file"]) if args["logic_file"] else ""

    outcome = Transpiler(init_toolchain()).transpile(SourceDocument(markup=markup, logic=logic))
    if isinstance(outcome, Compiled):
        print(outcome.code)
        return 0

    print(format_report(classify_compile(outcome.diagnostic), with_trace=args["trace"]), file=sys.stderr)
    return 1


def run_format(args: dict) -> int:
    path = args["file"]
    original = read_text(path)
    formatter = init_toolchain()

    if args["check"]:
        # Clean means the formatted text plus one trailing newline.
        clean = (not original or original.endswith("\n")) and is_formatted(
            original[:-1], formatter, module=args["logic"]
        )
        if not clean:
            print(f"would reformat {path}")
            return 1
        return 0

    run = format_module if args["logic"] else format_markup
    try:
        formatted = run(original, formatter)
    except FormatError as e:
        print(f"Error: cannot format {path}: {e}", file=sys.stderr)
        return 1

    # Files end with a newline; the heuristic returns bare text.
    if formatted and not formatted.endswith("\n"):
        formatted += "\n"

    if args["write"]:
        if formatted != original:
            Path(path).write_text(formatted, encoding="utf-8")
            print(f"reformatted {path}")
        return 0

    sys.stdout.write(formatted)
    return 0


def run_serve(args: dict) -> int:
    import uvicorn

    try:
        version = check_node(os.environ.get("NODE_BINARY", "node"))
        print(f"Using Node.js {version}")
    except BridgeError as e:
        print(f"Warning: {e}")
        print("Compilation and formatting will fail until Node.js is available.")

    uvicorn.run("backend.main:app", host=args["host"], port=args["port"])
    return 0


def main():
    """Main entry point."""
    args = parse_args(sys.argv[1:])

    # Handle help and version first
    if args["show_help"]:
        print_help()
        return

    if args["show_version"]:
        print(f"arcade-cli {__version__}")
        return

    if args["command"] is None:
        print_help()
        sys.exit(1)

    if args["command"] in ("compile", "format") and args["file"] is None:
        print(f"Error: {args['command']} requires a file")
        sys.exit(1)

    if args["command"] == "serve":
        sys.exit(run_serve(args))

    try:
        code = run_compile(args) if args["command"] == "compile" else run_format(args)
    finally:
        toolchain.shutdown()
    sys.exit(code)


if __name__ == "__main__":
    main()
