#!/usr/bin/env python3
"""puffs/main.py — CLI entry-point for the puffs front-end tools.

Usage examples
--------------
    # Format standard input to standard output
    puffs fmt < decode.puffs

    # List files whose formatting differs, or rewrite them in place
    puffs fmt -l std/
    puffs fmt -w std/gif/decode.puffs

    # Tokenize and parse, reporting the first error in each file and
    # struct definitions that depend on each other in a cycle
    puffs check std/gif/*.puffs

    # Print the AST of a file as an S-expression
    puffs dump-sexp std/gif/decode.puffs

    # Print the token stream
    puffs tokens std/gif/decode.puffs

    # Encode / decode a packageid
    puffs base38 encode gif
    puffs base38 decode 1017222

Exit codes
----------
    0   Success.
    1   A lex, parse or render error, or a usage error.
    2   Infrastructure failure (unreadable file, internal error).

The module doubles as ``python -m puffs`` via ``puffs/__main__.py``.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import tempfile
import textwrap
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, TextIO, Tuple

import sexpdata
from termcolor import colored

from . import __version__, base38
from .ast import File, sort_structs, to_sexp
from .errors import ParseError, PuffsError
from .parser import parse
from .render import render_to_string
from .token import InternTable, Token, tokenize

_log = logging.getLogger("puffs")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2

SOURCE_SUFFIX = ".puffs"
STDIN_NAME = "<standard input>"


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``puffs`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    root = logging.getLogger("puffs")
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
                datefmt="%H:%M:%S",
            )
        )
        root.addHandler(handler)


def _report(exc: PuffsError, stream: Optional[TextIO] = None) -> None:
    """Print a front-end error, in colour when *stream* is a terminal."""
    if stream is None:
        stream = sys.stderr
    text = str(exc)
    if hasattr(stream, "isatty") and stream.isatty():
        phase, _, rest = text.partition(": ")
        text = f"{colored(phase, 'red', attrs=['bold'])}: {rest}"
    print(text, file=stream)


def _usage_error(message: str) -> int:
    print(f"puffs: {message}", file=sys.stderr)
    return EXIT_ERROR


def _load(tm: InternTable, filename: str, src: bytes) -> Tuple[List[Token], List[str], File]:
    """Tokenize and parse one source buffer."""
    tokens, comments = tokenize(tm, filename, src)
    tree = parse(tm, filename, tokens)
    return tokens, comments, tree


def _write_stdout(text: str) -> None:
    """Write *text* to stdout, restoring any non-UTF-8 source bytes."""
    sys.stdout.flush()
    sys.stdout.buffer.write(text.encode("utf-8", errors="surrogateescape"))
    sys.stdout.buffer.flush()


def _iter_source_files(root: Path) -> Iterator[Path]:
    """Yield ``*.puffs`` files under *root*, skipping dot-files."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted(filenames):
            if name.startswith(".") or not name.endswith(SOURCE_SUFFIX):
                continue
            yield Path(dirpath) / name


def _write_file(path: Path, data: bytes) -> None:
    """Replace *path* atomically, keeping its permission bits."""
    mode = path.stat().st_mode & 0o777
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=path.name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.chmod(tmp, mode)
        os.replace(tmp, path)
    except BaseException:
        os.unlink(tmp)
        raise


# ===========================================================================
# Sub-commands
# ===========================================================================

# ---------------------------------------------------------------------------
# fmt
# ---------------------------------------------------------------------------

def _format_one(path: Path, list_diff: bool, write: bool) -> None:
    src = path.read_bytes()
    tm = InternTable()
    tokens, comments, _ = _load(tm, str(path), src)
    dst = render_to_string(tm, tokens, comments).encode("utf-8", errors="surrogateescape")
    if dst == src:
        _log.debug("%s: already formatted", path)
        return
    if list_diff:
        print(path)
    if write:
        _log.info("rewriting %s", path)
        _write_file(path, dst)


def cmd_fmt(args: argparse.Namespace) -> int:
    """Re-render source files in canonical form."""
    if not args.paths:
        if args.list:
            return _usage_error("cannot use -l with standard input")
        if args.write:
            return _usage_error("cannot use -w with standard input")
        src = sys.stdin.buffer.read()
        tm = InternTable()
        try:
            tokens, comments, _ = _load(tm, STDIN_NAME, src)
            _write_stdout(render_to_string(tm, tokens, comments))
        except PuffsError as exc:
            _report(exc)
            return EXIT_ERROR
        return EXIT_OK

    if not args.list and not args.write:
        return _usage_error("must use -l or -w if paths are given")

    for raw in args.paths:
        root = Path(raw)
        if not root.exists():
            _log.error("path not found: %s", root)
            return EXIT_INFRA
        files = _iter_source_files(root) if root.is_dir() else iter([root])
        for path in files:
            try:
                _format_one(path, args.list, args.write)
            except PuffsError as exc:
                _report(exc)
                return EXIT_ERROR
            except FileNotFoundError:
                # Deleted while walking.
                continue
    return EXIT_OK


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------

def cmd_check(args: argparse.Namespace) -> int:
    """Tokenize and parse each file, reporting the first error per file."""
    tm = InternTable()
    failures = 0
    for raw in args.files:
        path = Path(raw)
        try:
            src = path.read_bytes()
        except OSError as exc:
            _log.error("cannot read %s: %s", path, exc)
            return EXIT_INFRA
        try:
            _, _, tree = _load(tm, str(path), src)
        except PuffsError as exc:
            _report(exc)
            failures += 1
            continue
        structs, ok = sort_structs(tree.structs())
        if not ok:
            _report(ParseError("cyclical struct definitions", tree.structs()[0].loc))
            failures += 1
            continue
        _log.debug("%s: struct order %s", path, [s.name for s in structs])
        _log.info("%s: ok (%d declarations)", path, len(tree.decls))
    return EXIT_ERROR if failures else EXIT_OK


# ---------------------------------------------------------------------------
# dump-sexp / tokens
# ---------------------------------------------------------------------------

def cmd_dump_sexp(args: argparse.Namespace) -> int:
    """Print the AST of a file as an S-expression."""
    path = Path(args.file)
    try:
        src = path.read_bytes()
    except OSError as exc:
        _log.error("cannot read %s: %s", path, exc)
        return EXIT_INFRA
    tm = InternTable()
    try:
        _, _, tree = _load(tm, str(path), src)
    except PuffsError as exc:
        _report(exc)
        return EXIT_ERROR
    for decl in tree.decls:
        print(sexpdata.dumps(to_sexp(decl)))
    return EXIT_OK


def cmd_tokens(args: argparse.Namespace) -> int:
    """Print one ``line key spelling`` row per token."""
    path = Path(args.file)
    try:
        src = path.read_bytes()
    except OSError as exc:
        _log.error("cannot read %s: %s", path, exc)
        return EXIT_INFRA
    tm = InternTable()
    try:
        tokens, _ = tokenize(tm, str(path), src)
    except PuffsError as exc:
        _report(exc)
        return EXIT_ERROR
    _write_stdout("".join(f"{tok.line}\t{tok.key.name}\t{tm.by_id(tok.id)}\n" for tok in tokens))
    return EXIT_OK


# ---------------------------------------------------------------------------
# base38
# ---------------------------------------------------------------------------

def cmd_base38(args: argparse.Namespace) -> int:
    """Encode or decode a four-character packageid."""
    if args.action == "encode":
        s = args.value.ljust(4)
        u, ok = base38.encode(s)
        if not ok:
            return _usage_error(f"cannot base38-encode {args.value!r}")
        print(u)
        return EXIT_OK

    try:
        u = int(args.value, 0)
    except ValueError:
        return _usage_error(f"not an integer: {args.value!r}")
    s, ok = base38.decode(u)
    if not ok:
        return _usage_error(f"out of range for base38: {u}")
    print(repr(s))
    return EXIT_OK


# ===========================================================================
# Argument parser
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser with subcommands."""

    parser = argparse.ArgumentParser(
        prog="puffs",
        description=(
            "puffs — front-end tools for the puffs language.\n\n"
            "Tokenizes, parses and canonically formats puffs source files."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              puffs fmt < decode.puffs
              puffs fmt -l std/
              puffs check std/gif/decode.puffs
              puffs dump-sexp std/gif/decode.puffs
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    # --- fmt ---------------------------------------------------------------
    p_fmt = subparsers.add_parser(
        "fmt",
        help="Format source files.",
        description="Format puffs source; with no paths, stdin to stdout.",
    )
    p_fmt.add_argument(
        "-l", "--list",
        action="store_true",
        help="List files whose formatting differs.",
    )
    p_fmt.add_argument(
        "-w", "--write",
        action="store_true",
        help="Write the result back to the source file.",
    )
    p_fmt.add_argument(
        "paths",
        nargs="*",
        metavar="PATH",
        help="Files, or directories searched for *.puffs files.",
    )
    p_fmt.set_defaults(func=cmd_fmt)

    # --- check -------------------------------------------------------------
    p_check = subparsers.add_parser(
        "check",
        help="Tokenize and parse source files.",
    )
    p_check.add_argument("files", nargs="+", metavar="FILE")
    p_check.set_defaults(func=cmd_check)

    # --- dump-sexp ---------------------------------------------------------
    p_dump = subparsers.add_parser(
        "dump-sexp",
        help="Print a file's AST as S-expressions.",
    )
    p_dump.add_argument("file", metavar="FILE")
    p_dump.set_defaults(func=cmd_dump_sexp)

    # --- tokens ------------------------------------------------------------
    p_tokens = subparsers.add_parser(
        "tokens",
        help="Print a file's tokens.",
    )
    p_tokens.add_argument("file", metavar="FILE")
    p_tokens.set_defaults(func=cmd_tokens)

    # --- base38 ------------------------------------------------------------
    p_b38 = subparsers.add_parser(
        "base38",
        help="Encode or decode a packageid.",
    )
    p_b38.add_argument("action", choices=("encode", "decode"))
    p_b38.add_argument("value", metavar="VALUE")
    p_b38.set_defaults(func=cmd_base38)

    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the puffs CLI.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` → ``sys.argv[1:]``.

    Returns
    -------
    int
        Exit code (see module docstring for semantics).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA
    except Exception as exc:
        _log.error("Unhandled exception: %s", exc, exc_info=True)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
