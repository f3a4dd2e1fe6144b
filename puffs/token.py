"""puffs/token.py – Lexical structure of the puffs language.

A token is an ``(key, id, line)`` triple:

* ``key`` is a :class:`Key`, the closed set of lexical classes.  Every
  operator, punctuation mark and keyword has its own key; everything else
  is :attr:`Key.IDENT`, :attr:`Key.NUM_LITERAL` or :attr:`Key.STR_LITERAL`.
* ``id`` is an opaque handle into an :class:`InternTable`.  Identical
  spellings always share one handle within a table.
* ``line`` is the 1-based source line.

The static metadata the parser and renderer need (open/close brackets,
tight spacing, implicit semicolons, unary/binary/associative operator
forms) is attached to :class:`Key`.

Public API
----------
``tokenize(tm, filename, src) -> (tokens, comments)``
    Lex a source buffer.  ``comments[line]`` holds the ``//`` comment found
    on that line, or ``""``.

``unescape(spelling) -> str | None``
    Decode a quoted string literal's spelling.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from enum import auto
from typing import Dict, Final, FrozenSet, List, Optional, Sequence, Tuple, Union

from .errors import LexError, SourceLoc

logger = logging.getLogger(__name__)

MAX_ID: Final[int] = 1048575
MAX_LINE: Final[int] = 1048575
MAX_TOKEN_SIZE: Final[int] = 1023


# ═══════════════════════════════════════════════════════════════════════
#  PART 1 — KEYS
# ═══════════════════════════════════════════════════════════════════════

class Key(enum.Enum):
    """Lexical class of a token."""

    INVALID = auto()

    # Squiggles
    OPEN_PAREN = auto()
    CLOSE_PAREN = auto()
    OPEN_BRACKET = auto()
    CLOSE_BRACKET = auto()
    OPEN_CURLY = auto()
    CLOSE_CURLY = auto()
    DOT = auto()
    DOT_DOT = auto()
    COMMA = auto()
    EXCLAM = auto()
    QUESTION = auto()
    COLON = auto()
    SEMICOLON = auto()
    DOLLAR = auto()

    # Assignments
    EQ = auto()
    PLUS_EQ = auto()
    MINUS_EQ = auto()
    STAR_EQ = auto()
    SLASH_EQ = auto()
    SHIFT_L_EQ = auto()
    SHIFT_R_EQ = auto()
    AMP_EQ = auto()
    AMP_HAT_EQ = auto()
    PIPE_EQ = auto()
    HAT_EQ = auto()
    PERCENT_EQ = auto()
    TILDE_PLUS_EQ = auto()

    # Operators
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    SHIFT_L = auto()
    SHIFT_R = auto()
    AMP = auto()
    AMP_HAT = auto()
    PIPE = auto()
    HAT = auto()
    PERCENT = auto()
    TILDE_PLUS = auto()
    NOT_EQ = auto()
    LESS_THAN = auto()
    LESS_EQ = auto()
    EQ_EQ = auto()
    GREATER_EQ = auto()
    GREATER_THAN = auto()
    AND = auto()
    OR = auto()
    NOT = auto()
    AS = auto()
    REF = auto()
    DEREF = auto()

    # Keywords
    FUNC = auto()
    ASSERT = auto()
    WHILE = auto()
    IF = auto()
    ELSE = auto()
    RETURN = auto()
    BREAK = auto()
    CONTINUE = auto()
    STRUCT = auto()
    USE = auto()
    VAR = auto()
    PRE = auto()
    INV = auto()
    POST = auto()
    VIA = auto()
    PUB = auto()
    PRI = auto()
    ERROR = auto()
    SUSPENSION = auto()
    PACKAGEID = auto()
    CONST = auto()
    TRY = auto()
    ITERATE = auto()
    YIELD = auto()

    # Type modifiers
    PTR = auto()
    NPTR = auto()

    # Literal keywords
    FALSE = auto()
    TRUE = auto()

    # Open classes
    IDENT = auto()
    NUM_LITERAL = auto()
    STR_LITERAL = auto()

    # ---- Classification ----------------------------------------------

    def is_literal(self) -> bool:
        return self in _LITERALS

    def is_num_literal(self) -> bool:
        return self is Key.NUM_LITERAL

    def is_str_literal(self) -> bool:
        return self is Key.STR_LITERAL

    def is_ident(self) -> bool:
        return self is Key.IDENT

    def is_assign(self) -> bool:
        return self in _ASSIGN_BINARY_FORMS

    def is_open(self) -> bool:
        return self in _OPEN

    def is_close(self) -> bool:
        return self in _CLOSE

    def is_tight_left(self) -> bool:
        return self in _TIGHT_LEFT

    def is_tight_right(self) -> bool:
        return self in _TIGHT_RIGHT

    def is_implicit_semicolon(self) -> bool:
        return self in _IMPLICIT_SEMICOLON or self.is_literal() or self.is_ident()

    # ---- Operator forms ----------------------------------------------

    def unary_form(self) -> Optional[Operator]:
        return _UNARY_FORMS.get(self)

    def binary_form(self) -> Optional[Operator]:
        """The binary operator for an operator key, or for ``op=`` keys."""
        if self in _ASSIGN_BINARY_FORMS:
            return _ASSIGN_BINARY_FORMS[self]
        return _BINARY_FORMS.get(self)

    def associative_form(self) -> Optional[Operator]:
        return _ASSOCIATIVE_FORMS.get(self)

    def is_unary_op(self) -> bool:
        return self in _UNARY_FORMS

    def is_binary_op(self) -> bool:
        return self in _BINARY_FORMS

    def is_associative_op(self) -> bool:
        return self in _ASSOCIATIVE_FORMS

    @property
    def spelling(self) -> str:
        """Fixed source spelling; empty for the open classes."""
        return _SPELLINGS.get(self, "")


class Form(enum.Enum):
    UNARY = "unary"
    BINARY = "binary"
    ASSOCIATIVE = "associative"


class Operator(enum.Enum):
    """An operator in a specific form.

    ``+`` as a prefix and ``+`` as an infix share a spelling but are
    distinct operators.
    """

    UNARY_PLUS = (Form.UNARY, "+")
    UNARY_MINUS = (Form.UNARY, "-")
    UNARY_NOT = (Form.UNARY, "not")
    UNARY_REF = (Form.UNARY, "ref")
    UNARY_DEREF = (Form.UNARY, "deref")

    BINARY_PLUS = (Form.BINARY, "+")
    BINARY_MINUS = (Form.BINARY, "-")
    BINARY_STAR = (Form.BINARY, "*")
    BINARY_SLASH = (Form.BINARY, "/")
    BINARY_SHIFT_L = (Form.BINARY, "<<")
    BINARY_SHIFT_R = (Form.BINARY, ">>")
    BINARY_AMP = (Form.BINARY, "&")
    BINARY_AMP_HAT = (Form.BINARY, "&^")
    BINARY_PIPE = (Form.BINARY, "|")
    BINARY_HAT = (Form.BINARY, "^")
    BINARY_PERCENT = (Form.BINARY, "%")
    BINARY_TILDE_PLUS = (Form.BINARY, "~+")
    BINARY_NOT_EQ = (Form.BINARY, "!=")
    BINARY_LESS_THAN = (Form.BINARY, "<")
    BINARY_LESS_EQ = (Form.BINARY, "<=")
    BINARY_EQ_EQ = (Form.BINARY, "==")
    BINARY_GREATER_EQ = (Form.BINARY, ">=")
    BINARY_GREATER_THAN = (Form.BINARY, ">")
    BINARY_AND = (Form.BINARY, "and")
    BINARY_OR = (Form.BINARY, "or")
    BINARY_AS = (Form.BINARY, "as")

    ASSOCIATIVE_PLUS = (Form.ASSOCIATIVE, "+")
    ASSOCIATIVE_STAR = (Form.ASSOCIATIVE, "*")
    ASSOCIATIVE_AMP = (Form.ASSOCIATIVE, "&")
    ASSOCIATIVE_PIPE = (Form.ASSOCIATIVE, "|")
    ASSOCIATIVE_HAT = (Form.ASSOCIATIVE, "^")
    ASSOCIATIVE_AND = (Form.ASSOCIATIVE, "and")
    ASSOCIATIVE_OR = (Form.ASSOCIATIVE, "or")

    @property
    def form(self) -> Form:
        return self.value[0]

    @property
    def spelling(self) -> str:
        return self.value[1]


# ---- Static tables ----------------------------------------------------

_SPELLINGS: Final[Dict[Key, str]] = {
    Key.OPEN_PAREN: "(",
    Key.CLOSE_PAREN: ")",
    Key.OPEN_BRACKET: "[",
    Key.CLOSE_BRACKET: "]",
    Key.OPEN_CURLY: "{",
    Key.CLOSE_CURLY: "}",
    Key.DOT: ".",
    Key.DOT_DOT: "..",
    Key.COMMA: ",",
    Key.EXCLAM: "!",
    Key.QUESTION: "?",
    Key.COLON: ":",
    Key.SEMICOLON: ";",
    Key.DOLLAR: "$",

    Key.EQ: "=",
    Key.PLUS_EQ: "+=",
    Key.MINUS_EQ: "-=",
    Key.STAR_EQ: "*=",
    Key.SLASH_EQ: "/=",
    Key.SHIFT_L_EQ: "<<=",
    Key.SHIFT_R_EQ: ">>=",
    Key.AMP_EQ: "&=",
    Key.AMP_HAT_EQ: "&^=",
    Key.PIPE_EQ: "|=",
    Key.HAT_EQ: "^=",
    Key.PERCENT_EQ: "%=",
    Key.TILDE_PLUS_EQ: "~+=",

    Key.PLUS: "+",
    Key.MINUS: "-",
    Key.STAR: "*",
    Key.SLASH: "/",
    Key.SHIFT_L: "<<",
    Key.SHIFT_R: ">>",
    Key.AMP: "&",
    Key.AMP_HAT: "&^",
    Key.PIPE: "|",
    Key.HAT: "^",
    Key.PERCENT: "%",
    Key.TILDE_PLUS: "~+",
    Key.NOT_EQ: "!=",
    Key.LESS_THAN: "<",
    Key.LESS_EQ: "<=",
    Key.EQ_EQ: "==",
    Key.GREATER_EQ: ">=",
    Key.GREATER_THAN: ">",
    Key.AND: "and",
    Key.OR: "or",
    Key.NOT: "not",
    Key.AS: "as",
    Key.REF: "ref",
    Key.DEREF: "deref",

    Key.FUNC: "func",
    Key.ASSERT: "assert",
    Key.WHILE: "while",
    Key.IF: "if",
    Key.ELSE: "else",
    Key.RETURN: "return",
    Key.BREAK: "break",
    Key.CONTINUE: "continue",
    Key.STRUCT: "struct",
    Key.USE: "use",
    Key.VAR: "var",
    Key.PRE: "pre",
    Key.INV: "inv",
    Key.POST: "post",
    Key.VIA: "via",
    Key.PUB: "pub",
    Key.PRI: "pri",
    Key.ERROR: "error",
    Key.SUSPENSION: "suspension",
    Key.PACKAGEID: "packageid",
    Key.CONST: "const",
    Key.TRY: "try",
    Key.ITERATE: "iterate",
    Key.YIELD: "yield",

    Key.PTR: "ptr",
    Key.NPTR: "nptr",

    Key.FALSE: "false",
    Key.TRUE: "true",
}

#: Identifiers with reserved meaning.  They lex as :attr:`Key.IDENT` but
#: cannot name user declarations unless the parser is told otherwise.
BUILTIN_IDENTS: Final[Tuple[str, ...]] = (
    "_", "this", "in", "out", "base",
    "i8", "i16", "i32", "i64",
    "u8", "u16", "u32", "u64",
    "usize", "bool", "status",
    "buf1", "buf2", "reader1", "writer1",
)

_LITERALS: Final[FrozenSet[Key]] = frozenset({
    Key.FALSE, Key.TRUE, Key.NUM_LITERAL, Key.STR_LITERAL,
})

_OPEN: Final[FrozenSet[Key]] = frozenset({
    Key.OPEN_PAREN, Key.OPEN_BRACKET, Key.OPEN_CURLY,
})

_CLOSE: Final[FrozenSet[Key]] = frozenset({
    Key.CLOSE_PAREN, Key.CLOSE_BRACKET, Key.CLOSE_CURLY,
})

_TIGHT_LEFT: Final[FrozenSet[Key]] = frozenset({
    Key.CLOSE_PAREN, Key.OPEN_BRACKET, Key.CLOSE_BRACKET,
    Key.DOT, Key.DOT_DOT, Key.COMMA, Key.EXCLAM, Key.QUESTION,
    Key.COLON, Key.SEMICOLON,
})

_TIGHT_RIGHT: Final[FrozenSet[Key]] = frozenset({
    Key.OPEN_PAREN, Key.OPEN_BRACKET,
    Key.DOT, Key.DOT_DOT, Key.EXCLAM, Key.QUESTION, Key.COLON, Key.DOLLAR,
})

_IMPLICIT_SEMICOLON: Final[FrozenSet[Key]] = frozenset({
    Key.CLOSE_PAREN, Key.CLOSE_BRACKET, Key.CLOSE_CURLY,
    Key.RETURN, Key.BREAK, Key.CONTINUE,
})

_UNARY_FORMS: Final[Dict[Key, Operator]] = {
    Key.PLUS: Operator.UNARY_PLUS,
    Key.MINUS: Operator.UNARY_MINUS,
    Key.NOT: Operator.UNARY_NOT,
    Key.REF: Operator.UNARY_REF,
    Key.DEREF: Operator.UNARY_DEREF,
}

_BINARY_FORMS: Final[Dict[Key, Operator]] = {
    Key.PLUS: Operator.BINARY_PLUS,
    Key.MINUS: Operator.BINARY_MINUS,
    Key.STAR: Operator.BINARY_STAR,
    Key.SLASH: Operator.BINARY_SLASH,
    Key.SHIFT_L: Operator.BINARY_SHIFT_L,
    Key.SHIFT_R: Operator.BINARY_SHIFT_R,
    Key.AMP: Operator.BINARY_AMP,
    Key.AMP_HAT: Operator.BINARY_AMP_HAT,
    Key.PIPE: Operator.BINARY_PIPE,
    Key.HAT: Operator.BINARY_HAT,
    Key.PERCENT: Operator.BINARY_PERCENT,
    Key.TILDE_PLUS: Operator.BINARY_TILDE_PLUS,
    Key.NOT_EQ: Operator.BINARY_NOT_EQ,
    Key.LESS_THAN: Operator.BINARY_LESS_THAN,
    Key.LESS_EQ: Operator.BINARY_LESS_EQ,
    Key.EQ_EQ: Operator.BINARY_EQ_EQ,
    Key.GREATER_EQ: Operator.BINARY_GREATER_EQ,
    Key.GREATER_THAN: Operator.BINARY_GREATER_THAN,
    Key.AND: Operator.BINARY_AND,
    Key.OR: Operator.BINARY_OR,
    Key.AS: Operator.BINARY_AS,
}

# Plain "=" has no binary form.
_ASSIGN_BINARY_FORMS: Final[Dict[Key, Optional[Operator]]] = {
    Key.EQ: None,
    Key.PLUS_EQ: Operator.BINARY_PLUS,
    Key.MINUS_EQ: Operator.BINARY_MINUS,
    Key.STAR_EQ: Operator.BINARY_STAR,
    Key.SLASH_EQ: Operator.BINARY_SLASH,
    Key.SHIFT_L_EQ: Operator.BINARY_SHIFT_L,
    Key.SHIFT_R_EQ: Operator.BINARY_SHIFT_R,
    Key.AMP_EQ: Operator.BINARY_AMP,
    Key.AMP_HAT_EQ: Operator.BINARY_AMP_HAT,
    Key.PIPE_EQ: Operator.BINARY_PIPE,
    Key.HAT_EQ: Operator.BINARY_HAT,
    Key.PERCENT_EQ: Operator.BINARY_PERCENT,
    Key.TILDE_PLUS_EQ: Operator.BINARY_TILDE_PLUS,
}

_ASSOCIATIVE_FORMS: Final[Dict[Key, Operator]] = {
    Key.PLUS: Operator.ASSOCIATIVE_PLUS,
    Key.STAR: Operator.ASSOCIATIVE_STAR,
    Key.AMP: Operator.ASSOCIATIVE_AMP,
    Key.PIPE: Operator.ASSOCIATIVE_PIPE,
    Key.HAT: Operator.ASSOCIATIVE_HAT,
    Key.AND: Operator.ASSOCIATIVE_AND,
    Key.OR: Operator.ASSOCIATIVE_OR,
}


# ═══════════════════════════════════════════════════════════════════════
#  PART 2 — INTERN TABLE AND TOKENS
# ═══════════════════════════════════════════════════════════════════════

def _classify(spelling: str) -> Key:
    c = spelling[0]
    if c == '"' or c == "'":
        return Key.STR_LITERAL
    if "0" <= c <= "9":
        return Key.NUM_LITERAL
    return Key.IDENT


class InternTable:
    """Maps spellings to small integer handles and back.

    Handle 0 is reserved for "no token".  Keywords, operators and the
    built-in identifiers are pre-interned, so their handles are the same in
    every table.  A table only grows; share one across all files compiled
    together, from a single thread.
    """

    def __init__(self) -> None:
        self._by_name: Dict[str, int] = {}
        self._by_id: List[str] = [""]
        self._keys: List[Key] = [Key.INVALID]
        for key, spelling in _SPELLINGS.items():
            self._add(spelling, key)
        for name in BUILTIN_IDENTS:
            self._add(name, Key.IDENT)
        self._n_builtins = len(self._by_id)

    def _add(self, name: str, key: Key) -> int:
        handle = len(self._by_id)
        self._by_name[name] = handle
        self._by_id.append(name)
        self._keys.append(key)
        return handle

    def __len__(self) -> int:
        return len(self._by_id) - 1

    def insert(self, name: str) -> int:
        """Intern *name*, returning its handle.  ``""`` maps to 0."""
        if name == "":
            return 0
        handle = self._by_name.get(name)
        if handle is not None:
            return handle
        if len(self._by_id) > MAX_ID:
            raise LexError("too many distinct tokens")
        return self._add(name, _classify(name))

    def by_name(self, name: str) -> int:
        """Handle for *name*, or 0 if it was never interned."""
        return self._by_name.get(name, 0)

    def by_id(self, handle: int) -> str:
        if 0 <= handle < len(self._by_id):
            return self._by_id[handle]
        return ""

    def key(self, handle: int) -> Key:
        if 0 <= handle < len(self._keys):
            return self._keys[handle]
        return Key.INVALID

    def is_builtin(self, handle: int) -> bool:
        return 0 < handle < self._n_builtins

    def is_builtin_ident(self, handle: int) -> bool:
        return self.is_builtin(handle) and self._keys[handle] is Key.IDENT


@dataclass(frozen=True, slots=True)
class Token:
    """A lexical class, an intern handle and the line it was seen on."""

    key: Key
    id: int
    line: int


def make_token(tm: InternTable, spelling: str, line: int) -> Token:
    handle = tm.insert(spelling)
    return Token(tm.key(handle), handle, line)


# ═══════════════════════════════════════════════════════════════════════
#  PART 3 — STRING LITERALS
# ═══════════════════════════════════════════════════════════════════════

_BACKSLASHES: Final[Dict[str, str]] = {
    '"': '"', "'": "'", "/": "/", "0": "\x00", "?": "?", "\\": "\\",
    "a": "\x07", "b": "\x08", "e": "\x1b", "f": "\x0c",
    "n": "\n", "r": "\r", "t": "\t", "v": "\x0b",
}

_HEX_ESCAPES: Final[Dict[str, int]] = {"x": 2, "u": 4, "U": 8}


def _decode(s: str) -> Optional[Tuple[str, int]]:
    """Decode a literal spelling into ``(text, size_in_bytes)``.

    ``\\xHH`` contributes one byte; every other character contributes its
    UTF-8 length.
    """
    if len(s) < 2:
        return None
    if s[0] == '"':
        if s[-1] != '"':
            return None
        body = s[1:-1]
        return body, len(body.encode("utf-8", errors="surrogateescape"))
    if s[0] != "'":
        return None
    if s[-1] == "'":
        body = s[1:-1]
    elif len(s) >= 4 and s[-3] == "'" and s[-2:] in ("be", "le"):
        body = s[1:-3]
    else:
        return None

    out: List[str] = []
    size = 0
    i = 0
    while i < len(body):
        c = body[i]
        if c != "\\":
            out.append(c)
            size += len(c.encode("utf-8", errors="surrogateescape"))
            i += 1
            continue
        if i + 1 >= len(body):
            return None
        e = body[i + 1]
        if e in _BACKSLASHES:
            out.append(_BACKSLASHES[e])
            size += 1
            i += 2
            continue
        n = _HEX_ESCAPES.get(e)
        if n is None or i + 2 + n > len(body):
            return None
        digits = body[i + 2:i + 2 + n]
        if not all(d in "0123456789abcdefABCDEF" for d in digits):
            return None
        code = int(digits, 16)
        if e == "x":
            size += 1
        elif code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
            return None
        else:
            size += len(chr(code).encode("utf-8"))
        out.append(chr(code))
        i += 2 + n
    return "".join(out), size


def unescape(s: str) -> Optional[str]:
    """Strip the quotes from a string literal spelling and decode escapes.

    ``"..."`` literals are returned verbatim (they cannot hold a
    backslash).  ``'...'`` literals may end in a ``be`` or ``le`` suffix and
    may contain ``\\n``-style, ``\\xHH``, ``\\uHHHH`` and ``\\UHHHHHHHH``
    escapes.  Returns None if *s* is not a well-formed literal.
    """
    decoded = _decode(s)
    return None if decoded is None else decoded[0]


# ═══════════════════════════════════════════════════════════════════════
#  PART 4 — TOKENIZER
# ═══════════════════════════════════════════════════════════════════════

_SQUIGGLES: Final[Dict[int, Key]] = {
    ord("("): Key.OPEN_PAREN,
    ord(")"): Key.CLOSE_PAREN,
    ord("["): Key.OPEN_BRACKET,
    ord("]"): Key.CLOSE_BRACKET,
    ord("{"): Key.OPEN_CURLY,
    ord("}"): Key.CLOSE_CURLY,
    ord(","): Key.COMMA,
    ord("?"): Key.QUESTION,
    ord(":"): Key.COLON,
    ord(";"): Key.SEMICOLON,
    ord("$"): Key.DOLLAR,
}

# For each leading byte, the possible suffixes, longest match first.
_LEXERS: Final[Dict[int, Tuple[Tuple[bytes, Key], ...]]] = {
    ord("."): ((b".", Key.DOT_DOT), (b"", Key.DOT)),
    ord("!"): ((b"=", Key.NOT_EQ), (b"", Key.EXCLAM)),
    ord("&"): ((b"^=", Key.AMP_HAT_EQ), (b"^", Key.AMP_HAT), (b"=", Key.AMP_EQ), (b"", Key.AMP)),
    ord("|"): ((b"=", Key.PIPE_EQ), (b"", Key.PIPE)),
    ord("^"): ((b"=", Key.HAT_EQ), (b"", Key.HAT)),
    ord("+"): ((b"=", Key.PLUS_EQ), (b"", Key.PLUS)),
    ord("-"): ((b"=", Key.MINUS_EQ), (b"", Key.MINUS)),
    ord("*"): ((b"=", Key.STAR_EQ), (b"", Key.STAR)),
    ord("/"): ((b"=", Key.SLASH_EQ), (b"", Key.SLASH)),
    ord("%"): ((b"=", Key.PERCENT_EQ), (b"", Key.PERCENT)),
    ord("="): ((b"=", Key.EQ_EQ), (b"", Key.EQ)),
    ord("<"): ((b"<=", Key.SHIFT_L_EQ), (b"<", Key.SHIFT_L), (b"=", Key.LESS_EQ), (b"", Key.LESS_THAN)),
    ord(">"): ((b">=", Key.SHIFT_R_EQ), (b">", Key.SHIFT_R), (b"=", Key.GREATER_EQ), (b"", Key.GREATER_THAN)),
    ord("~"): ((b"+=", Key.TILDE_PLUS_EQ), (b"+", Key.TILDE_PLUS)),
}

_NEWLINE: Final[int] = ord("\n")
_SPACE: Final[int] = ord(" ")
_UNDERSCORE: Final[int] = ord("_")
_SLASH: Final[int] = ord("/")
_DQUOTE: Final[int] = ord('"')
_SQUOTE: Final[int] = ord("'")
_BACKSLASH: Final[int] = ord("\\")


def _alpha(c: int) -> bool:
    return (65 <= c <= 90) or (97 <= c <= 122) or c == _UNDERSCORE


def _alpha_numeric(c: int) -> bool:
    return _alpha(c) or (48 <= c <= 57)


def _numeric(c: int) -> bool:
    return 48 <= c <= 57


def _numeric_underscore(c: int) -> bool:
    return _numeric(c) or c == _UNDERSCORE


def _hex_numeric_underscore(c: int) -> bool:
    return _numeric_underscore(c) or (65 <= c <= 70) or (97 <= c <= 102)


def _check_numeric_underscores(a: bytes) -> bool:
    """Reject consecutive or trailing underscores."""
    return b"__" not in a and not a.endswith(b"_")


def _spelling(raw: bytes) -> str:
    return raw.decode("utf-8", errors="surrogateescape")


def tokenize(
    tm: InternTable,
    filename: str,
    src: Union[bytes, str],
) -> Tuple[List[Token], List[str]]:
    """Split *src* into tokens.

    Returns ``(tokens, comments)``.  ``comments`` is indexed by line number
    and holds ``""`` for lines without a comment; it is only as long as the
    last commented line requires.

    Raises
    ------
    LexError
        On malformed literals, unterminated strings or invalid bytes.
    """
    if isinstance(src, str):
        src = src.encode("utf-8")

    tokens: List[Token] = []
    comments: List[str] = []
    line = 1
    n = len(src)
    i = 0

    def loc() -> SourceLoc:
        return SourceLoc(filename, line)

    def emit(key_or_spelling: Union[Key, str]) -> None:
        if isinstance(key_or_spelling, Key):
            tokens.append(Token(key_or_spelling, tm.by_name(key_or_spelling.spelling), line))
        else:
            tokens.append(make_token(tm, key_or_spelling, line))

    while i < n:
        c = src[i]

        if c <= _SPACE:
            if c == _NEWLINE:
                if tokens and tokens[-1].key.is_implicit_semicolon():
                    emit(Key.SEMICOLON)
                if line == MAX_LINE:
                    raise LexError(f"too many lines in {filename!r}")
                line += 1
            i += 1
            continue

        if c == _DQUOTE or c == _SQUOTE:
            quote = c
            j = i + 1
            closed = False
            while j < n:
                c = src[j]
                j += 1
                if c == quote:
                    closed = True
                    break
                if c == _BACKSLASH:
                    if quote == _DQUOTE:
                        raise LexError('backslash in "-string', loc())
                    if j < n and src[j] != _NEWLINE:
                        # Skip the escaped byte so that \' does not close.
                        j += 1
                elif c == _NEWLINE:
                    raise LexError(f"expected final {chr(quote)} in string", loc())
                elif c < _SPACE:
                    raise LexError("control character in string", loc())
            if not closed:
                raise LexError(f"expected final {chr(quote)} in string", loc())

            has_endian = (quote == _SQUOTE and j + 1 < n
                          and src[j:j + 2] in (b"be", b"le"))
            if has_endian:
                j += 2

            if j - i > MAX_TOKEN_SIZE:
                raise LexError("string too long", loc())
            s = _spelling(src[i:j])
            if quote == _SQUOTE:
                decoded = _decode(s)
                if decoded is None:
                    raise LexError("invalid '-string", loc())
                if decoded[1] > 1 and not has_endian:
                    raise LexError("multi-byte '-string needs be or le suffix", loc())
            emit(s)
            i = j
            continue

        if _alpha(c):
            j = i + 1
            while j < n and _alpha_numeric(src[j]):
                j += 1
                if j - i > MAX_TOKEN_SIZE:
                    raise LexError("identifier too long", loc())
            emit(_spelling(src[i:j]))
            i = j
            continue

        if _numeric(c):
            j = i + 1
            is_digit = _numeric_underscore
            if c == ord("0") and j < n:
                nxt = src[j]
                if nxt in (ord("x"), ord("X")):
                    j += 1
                    is_digit = _hex_numeric_underscore
                elif _numeric(nxt):
                    raise LexError("legacy octal syntax", loc())
            while j < n and is_digit(src[j]):
                j += 1
                if j - i > MAX_TOKEN_SIZE:
                    raise LexError("constant too long", loc())
            raw = src[i:j]
            if not _check_numeric_underscores(raw) or raw.lower() == b"0x":
                raise LexError("invalid numeric literal", loc())
            emit(_spelling(raw))
            i = j
            continue

        if c == _SLASH and i + 1 < n and src[i + 1] == _SLASH:
            h = i
            i += 2
            while i < n and src[i] != _NEWLINE:
                i += 1
            while len(comments) < line:
                comments.append("")
            comments.append(_spelling(src[h:i]))
            continue

        key = _SQUIGGLES.get(c)
        if key is not None:
            emit(key)
            i += 1
            continue

        for suffix, key in _LEXERS.get(c, ()):
            if src.startswith(suffix, i + 1):
                emit(key)
                i += 1 + len(suffix)
                break
        else:
            if c <= 0x7F:
                msg = f"byte '\\x{c:02X}' ({chr(c)!r})"
            else:
                msg = f"non-ASCII byte '\\x{c:02X}'"
            raise LexError(f"unrecognized {msg}", loc())

    logger.debug("tokenized %s: %d tokens, %d lines", filename, len(tokens), line)
    return tokens, comments


def spellings(tm: InternTable, tokens: Sequence[Token]) -> List[str]:
    """Spell out a token sequence, mostly for diagnostics and tests."""
    return [tm.by_id(t.id) for t in tokens]
