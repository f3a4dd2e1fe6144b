"""puffs/render.py – Canonical formatting of a puffs token stream.

The renderer works on tokens, not on the AST, so comments survive
formatting: :func:`~puffs.token.tokenize` records them per line and the
renderer re-emits them around the code lines.

Output rules
------------
* One output line per input line that holds code; runs of blank lines
  collapse to one.
* Indentation is one tab per open ``{``.  A line starting with a close
  token is outdented by one; a line continuing a statement (the previous
  line did not end in an implicit ``;``) is indented by one.
* Consecutive ``var NAME type``, ``pub const NAME type`` and struct field
  ``NAME type`` lines pad NAME so that the types line up.
* Tokens are separated by one space unless the left token is tight-right
  or the right token is tight-left.  ``+`` and ``-`` are treated as unary
  (tight-right) unless the previous token ends a value.
* Numbers are rewritten with ``_`` every 6 decimal or 4 hex digits, hex
  digits upper-cased.

Rendering is idempotent: lexing and rendering the output again gives the
same bytes.
"""

from __future__ import annotations

import io
import logging
from typing import List, Optional, Sequence, TextIO

from .errors import RenderError
from .token import InternTable, Key, Token

logger = logging.getLogger(__name__)

MAX_INDENT = 0xFFFF


def render(
    w: TextIO,
    tm: InternTable,
    src: Sequence[Token],
    comments: Sequence[str],
) -> None:
    """Write the canonical form of *src* to *w*.

    Raises
    ------
    RenderError
        On unbalanced ``{`` / ``}``.  Output written before the error is
        left in *w*.
    """
    indent = 0
    comment_line = 0
    in_struct = False
    name_length = 0

    prev_line = src[0].line - 1 if src else 0
    prev_line_hanging = False

    pos = 0
    n = len(src)
    while pos < n:
        # Find the tokens in this line.
        line = src[pos].line
        end = pos + 1
        while end < n and src[end].line == line:
            end += 1
        line_tokens = list(src[pos:end])
        pos = end

        # Print any previous comments.
        comment_indent = indent + 1 if prev_line_hanging else indent
        while comment_line < line:
            text = _comment(comments, comment_line, comment_indent, True)
            if text:
                if comment_line > prev_line + 1:
                    w.write("\n")
                w.write(text + "\n")
                name_length = 0
                prev_line = comment_line
            comment_line += 1

        # Strip any trailing semicolons.
        hanging = prev_line_hanging
        prev_line_hanging = True
        while line_tokens and line_tokens[-1].key is Key.SEMICOLON:
            prev_line_hanging = False
            line_tokens.pop()
        if not line_tokens:
            continue

        # Collapse one or more blank lines to just one.
        if prev_line < line - 1:
            w.write("\n")
            name_length = 0

        # Outdent a line starting with a close token so that it lines up
        # with the line holding the matching open token.
        buf: List[str] = []
        first = line_tokens[0].key
        adjust = 0
        if first.is_close():
            adjust = -1
        elif hanging and first is not Key.OPEN_CURLY:
            adjust = 1
        buf.append("\t" * max(0, indent + adjust))

        # Apply or update name_length.
        if first is Key.PRI or first is Key.PUB:
            second = line_tokens[1].key if len(line_tokens) > 1 else Key.INVALID
            in_struct = second is Key.STRUCT
            if second is not Key.CONST:
                name_length = 0
        shape = _name_index(line_tokens, in_struct)
        if shape < 0:
            name_length = 0
        else:
            if name_length == 0:
                name_length = _measure_name_length(tm, line_tokens, src[pos:], shape, in_struct)
            for tok in line_tokens[:shape + 1]:
                buf.append(tm.by_id(tok.id))
                buf.append(" ")
            name = tm.by_id(line_tokens[shape].id)
            buf.append(" " * (name_length - len(name)))
            line_tokens = line_tokens[shape + 1:]

        # Render the line's tokens.
        prev: Optional[Key] = None
        prev_is_tight_right = False
        for tok in line_tokens:
            k = tok.key
            if prev is Key.EQ or (prev is not None and not prev_is_tight_right and not k.is_tight_left()):
                # "(" is tight-left in "f(x)" but not in "a * (b + c)".
                if k is not Key.OPEN_PAREN or not _is_close_ident_str_literal_question(prev):
                    buf.append(" ")

            s = tm.by_id(tok.id)
            if k is Key.NUM_LITERAL:
                buf.append(append_num(s))
            else:
                buf.append(s)

            if k is Key.OPEN_CURLY:
                if indent == MAX_INDENT:
                    raise RenderError('too many "{" tokens')
                indent += 1
            elif k is Key.CLOSE_CURLY:
                if indent == 0:
                    raise RenderError('too many "}" tokens')
                indent -= 1

            prev_is_tight_right = k.is_tight_right()
            # Token-based guess: "+" and "-" are unary, and so tight-right,
            # unless the previous token ends a value.
            if prev is not None and k.is_unary_op() and k.is_binary_op():
                prev_is_tight_right = not _is_close_ident_literal(prev)
            prev = k

        buf.append(_comment(comments, line, 0, False))
        buf.append("\n")
        w.write("".join(buf))

        comment_line = line + 1
        prev_line = line
        prev_line_hanging = prev_line_hanging and line_tokens[-1].key is not Key.OPEN_CURLY

    # Print any trailing comments.
    while comment_line < len(comments):
        text = _comment(comments, comment_line, indent, True)
        if text:
            if comment_line > prev_line + 1:
                w.write("\n")
            w.write(text + "\n")
            prev_line = comment_line
        comment_line += 1

    logger.debug("rendered %d tokens", n)


def render_to_string(tm: InternTable, src: Sequence[Token], comments: Sequence[str]) -> str:
    out = io.StringIO()
    render(out, tm, src, comments)
    return out.getvalue()


# ═══════════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════════

def _comment(comments: Sequence[str], line: int, indent: int, otherwise_empty: bool) -> str:
    if line >= len(comments) or not comments[line]:
        return ""
    com = comments[line].rstrip(" ")
    if otherwise_empty:
        return "\t" * indent + com
    return "  " + com


def append_num(s: str) -> str:
    """Regroup a numeric literal: ``0x1234_5678`` or ``1_000000``."""
    prefix = ""
    group = 6
    if len(s) >= 2 and s[0] == "0" and s[1] in "xX":
        prefix = "0x"
        s = s[2:]
        group = 4

    digits = s.replace("_", "").upper()
    head = len(digits) % group or group
    parts = [digits[:head]]
    parts.extend(digits[i:i + group] for i in range(head, len(digits), group))
    return prefix + "_".join(parts)


def _is_close_ident_literal(k: Key) -> bool:
    return k.is_close() or k.is_ident() or k.is_literal()


def _is_close_ident_str_literal_question(k: Optional[Key]) -> bool:
    if k is None:
        return False
    return k.is_close() or k.is_ident() or k.is_str_literal() or k is Key.QUESTION


def _name_index(line_tokens: Sequence[Token], in_struct: bool) -> int:
    """Index of the aligned name in a ``var`` / ``const`` / field line, or -1."""
    if not line_tokens:
        return -1
    first = line_tokens[0].key
    if first is Key.VAR:
        i = 1
    elif (first is Key.PRI or first is Key.PUB) and len(line_tokens) > 1 \
            and line_tokens[1].key is Key.CONST:
        i = 2
    elif in_struct and first is Key.IDENT:
        i = 0
    else:
        return -1
    if i + 1 >= len(line_tokens) or line_tokens[i].key is not Key.IDENT:
        return -1
    if line_tokens[i + 1].key is Key.SEMICOLON:
        return -1
    return i


def _measure_name_length(
    tm: InternTable,
    line_tokens: Sequence[Token],
    remaining: Sequence[Token],
    shape: int,
    in_struct: bool,
) -> int:
    """Longest name over this line and the directly following lines of the
    same shape."""
    line = line_tokens[0].line
    length = len(tm.by_id(line_tokens[shape].id))
    pos = 0
    while pos < len(remaining) and remaining[pos].line == line + 1:
        line += 1
        end = pos
        while end < len(remaining) and remaining[end].line == line:
            end += 1
        next_tokens = remaining[pos:end]
        if _name_index(next_tokens, in_struct) != shape:
            break
        length = max(length, len(tm.by_id(next_tokens[shape].id)))
        pos = end
    return length
