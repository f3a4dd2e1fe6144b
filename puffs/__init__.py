"""puffs — front end of the puffs language compiler.

puffs is a language for writing memory-safe, bounds-checked parsers and
codecs.  This package holds the parts every tool shares: the lexer, the
parser, the canonical formatter and the interval arithmetic used to prove
that indexes and arithmetic stay in range.

Submodules
----------
token
    ``Key`` lexical classes, ``InternTable``, ``tokenize`` and ``unescape``.

ast
    Frozen dataclass AST, ``walk`` and ``to_sexp``.

parser
    ``parse`` / ``parse_expr`` with ``ParseOptions``.

render
    ``render`` / ``render_to_string``: idempotent token-stream formatter.

interval
    ``Interval`` with sound add, sub, mul, quo, lsh, rsh, and, or.

base38
    Four-character packageid encoding.

main
    CLI entry-point with subcommands: ``fmt``, ``check``, ``dump-sexp``,
    ``tokens``, ``base38``.

Usage
-----
Command-line::

    puffs fmt -l std/
    python -m puffs check decode.puffs

Programmatic::

    from puffs import InternTable, tokenize, parse, render_to_string

    tm = InternTable()
    tokens, comments = tokenize(tm, "a.puffs", source_bytes)
    tree = parse(tm, "a.puffs", tokens)
    text = render_to_string(tm, tokens, comments)
"""

from __future__ import annotations

__version__: str = "0.1.0"
__all__: list[str] = [
    "__version__",
    "Interval",
    "InternTable",
    "Key",
    "LexError",
    "ParseError",
    "ParseOptions",
    "PuffsError",
    "RenderError",
    "Token",
    "parse",
    "parse_expr",
    "render",
    "render_to_string",
    "tokenize",
]

from .errors import LexError, ParseError, PuffsError, RenderError
from .interval import Interval
from .parser import ParseOptions, parse, parse_expr
from .render import render, render_to_string
from .token import InternTable, Key, Token, tokenize
