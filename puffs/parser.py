"""puffs/parser.py – Recursive-descent parser from tokens to :mod:`puffs.ast`.

The parser reads the token list left to right with one token of lookahead
and never backtracks.  The first grammar violation raises
:class:`~puffs.errors.ParseError`; there is no recovery.

Grammar (informative)::

    file      → decl*
    decl      → 'use' STR ';' | 'packageid' STR ';'
              | ('pub'|'pri') ( 'const' IDENT type '=' expr
                              | 'func' qident effect '(' fields ')' '(' fields ')' asserts block
                              | ('error'|'suspension') STR
                              | 'struct' IDENT '?'? '(' fields ')' ) ';'
    fields    → (IDENT type (',' IDENT type)* ','?)?
    asserts   → (',' assert (',' assert)* ','?)?      pre* inv* post*
    assert    → ('assert'|'pre'|'inv'|'post') expr ('via' STR '(' args ')')?
    block     → '{' (stmt ';')* '}'
    stmt      → 'var' IDENT type ('=' expr)?            top of a func only
              | assert | ('break'|'continue') (':' IDENT)?
              | 'if' expr block ('else' (if | block))?
              | 'return' (expr | ('error'|'suspension') STR)?
              | 'while' (':' IDENT)? expr asserts block
              | expr (assign_op expr)?
    type      → ('ptr'|'nptr') type | '[' expr? ']' type
              | qident ('[' expr? '..' expr? ']')?
    expr      → operand (binop operand (same_assoc_op operand)*)?
    operand   → unop operand | literal | '(' expr ')'
              | IDENT ( effect? '(' args ')' | '[' bracket ']' | '.' IDENT )*
    bracket   → expr | expr? ':' expr?
    args      → (IDENT ':' expr (',' IDENT ':' expr)* ','?)?

Public API
----------
``parse(tm, filename, tokens, opts=None) -> ast.File``
``parse_expr(tm, filename, tokens, opts=None) -> ast.Expr``
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from . import ast as A
from . import base38
from .errors import ParseError, SourceLoc
from .token import InternTable, Key, Token, unescape

logger = logging.getLogger(__name__)

N = TypeVar("N")


@dataclass(frozen=True, slots=True)
class ParseOptions:
    """Relaxations used when parsing the compiler's own built-in sources."""

    allow_builtin_names: bool = False
    allow_double_underscore_names: bool = False


def _is_double_underscore(s: str) -> bool:
    return s.startswith("__")


def _q(s: object) -> str:
    return f'"{s}"'


# ═══════════════════════════════════════════════════════════════════════
#  Public entry points
# ═══════════════════════════════════════════════════════════════════════

def parse(
    tm: InternTable,
    filename: str,
    tokens: Sequence[Token],
    opts: Optional[ParseOptions] = None,
) -> A.File:
    """Parse a whole file's tokens into an :class:`ast.File`."""
    p = _Parser(tm, filename, tokens, opts)
    f = p.parse_file()
    logger.debug("parsed %s: %d top-level declarations", filename, len(f.decls))
    return f


def parse_expr(
    tm: InternTable,
    filename: str,
    tokens: Sequence[Token],
    opts: Optional[ParseOptions] = None,
) -> A.Expr:
    """Parse a single expression.  A trailing implicit ``;`` is allowed."""
    p = _Parser(tm, filename, tokens, opts)
    e = p.parse_expr()
    if p.at(Key.SEMICOLON):
        p.advance()
    if not p.at_end():
        raise ParseError.expected("end of expression", p.got(), p.loc())
    return e


# ═══════════════════════════════════════════════════════════════════════
#  Parser
# ═══════════════════════════════════════════════════════════════════════

class _Parser:
    """Single-use parser over one token list."""

    def __init__(
        self,
        tm: InternTable,
        filename: str,
        tokens: Sequence[Token],
        opts: Optional[ParseOptions],
    ):
        self._tm = tm
        self._filename = filename
        self._tokens = tokens
        self._pos = 0
        self._opts = opts or ParseOptions()
        self._last_line = tokens[-1].line if tokens else 0
        self._func_effect = A.Effect.PURE
        self._allow_var = False

    # ---- Token access ------------------------------------------------

    def peek1(self) -> Key:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos].key
        return Key.INVALID

    def at(self, *keys: Key) -> bool:
        return self.peek1() in keys

    def at_end(self) -> bool:
        return self._pos >= len(self._tokens)

    def advance(self) -> Token:
        tok = self._tokens[self._pos]
        self._pos += 1
        return tok

    def line(self) -> int:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos].line
        return self._last_line

    def loc(self) -> SourceLoc:
        return SourceLoc(self._filename, self.line())

    def got(self) -> str:
        if self._pos < len(self._tokens):
            return self._tm.by_id(self._tokens[self._pos].id)
        return ""

    def error(self, message: str) -> ParseError:
        return ParseError(message, self.loc())

    def expect(self, key: Key, what: Optional[str] = None) -> Token:
        if self.peek1() is not key:
            raise ParseError.expected(what or _q(key.spelling), self.got(), self.loc())
        return self.advance()

    def expect_semicolon(self) -> None:
        self.expect(Key.SEMICOLON, '(implicit) ";"')

    def expect_str_literal(self) -> str:
        tok = self.expect(Key.STR_LITERAL, "string literal")
        return self._tm.by_id(tok.id)

    def parse_ident(self) -> str:
        if self.at_end():
            raise self.error("expected identifier")
        tok = self.expect(Key.IDENT, "identifier")
        return self._tm.by_id(tok.id)

    def check_name(self, name: str, what: str) -> None:
        if not self._opts.allow_double_underscore_names and _is_double_underscore(name):
            raise self.error(f"double-underscore {_q(name)} used for {what} name")
        if not self._opts.allow_builtin_names and self._tm.is_builtin_ident(self._tm.by_name(name)):
            raise self.error(f"built-in {_q(name)} used for {what} name")

    # ---- Top level ---------------------------------------------------

    def parse_file(self) -> A.File:
        decls: List[A.Node] = []
        while not self.at_end():
            decls.append(self.parse_top_level_decl())
        return A.File(self._filename, tuple(decls))

    def parse_top_level_decl(self) -> A.Node:
        loc = self.loc()
        k = self.peek1()

        if k is Key.USE:
            self.advance()
            path = self.expect_str_literal()
            self.expect_semicolon()
            return A.Use(path, loc)

        if k is Key.PACKAGEID:
            self.advance()
            pkg_id = self.expect_str_literal()
            s = unescape(pkg_id)
            if s is None or not base38.encode(s)[1]:
                raise self.error(f"invalid package ID {pkg_id}")
            self.expect_semicolon()
            return A.PackageID(pkg_id, loc)

        if k is Key.PUB or k is Key.PRI:
            self.advance()
            flags = A.Flags.PUBLIC if k is Key.PUB else A.Flags.NONE
            k = self.peek1()

            if k is Key.CONST:
                self.advance()
                name = self.parse_ident()
                self.check_name(name, "const")
                xtype = self.parse_type_expr()
                if not self.at(Key.EQ):
                    raise self.error(f"const {_q(name)} has no value")
                self.advance()
                value = self.parse_expr()
                self.expect_semicolon()
                return A.Const(name, xtype, value, flags, loc)

            if k is Key.FUNC:
                self.advance()
                return self.parse_func(flags, loc)

            if k is Key.ERROR or k is Key.SUSPENSION:
                self.advance()
                message = self.expect_str_literal()
                self.expect_semicolon()
                return A.Status(k, message, flags, loc)

            if k is Key.STRUCT:
                self.advance()
                name = self.parse_ident()
                self.check_name(name, "struct")
                if self.at(Key.QUESTION):
                    self.advance()
                    flags |= A.Flags.SUSPENDIBLE
                fields = self.parse_list(Key.CLOSE_PAREN, _Parser.parse_field)
                self.expect_semicolon()
                return A.Struct(name, tuple(fields), flags, loc)

        raise ParseError("unrecognized top level declaration", loc)

    def parse_func(self, flags: A.Flags, loc: SourceLoc) -> A.Func:
        receiver, name = self.parse_qualified_ident()
        self.check_name(name, "func")
        self._func_effect = self.parse_effect()
        flags |= self._func_effect.func_flags()

        in_fields = self.parse_list(Key.CLOSE_PAREN, _Parser.parse_field)
        out_fields = self.parse_list(Key.CLOSE_PAREN, _Parser.parse_field)
        asserts = self.parse_asserts()

        self._allow_var = True
        body = self.parse_block()
        self._allow_var = False

        self.expect_semicolon()
        self._func_effect = A.Effect.PURE
        return A.Func(
            name=name,
            receiver=receiver,
            in_fields=tuple(in_fields),
            out_fields=tuple(out_fields),
            asserts=tuple(asserts),
            body=tuple(body),
            flags=flags,
            loc=loc,
        )

    def parse_qualified_ident(self) -> Tuple[str, str]:
        """``foo.bar`` gives ``("foo", "bar")``; ``bar`` gives ``("", "bar")``."""
        x = self.parse_ident()
        if not self.at(Key.DOT):
            return "", x
        self.advance()
        return x, self.parse_ident()

    def parse_effect(self) -> A.Effect:
        if self.at(Key.EXCLAM):
            self.advance()
            return A.Effect.IMPURE
        if self.at(Key.QUESTION):
            self.advance()
            return A.Effect.SUSPENDIBLE
        return A.Effect.PURE

    def parse_list(self, stop: Key, parse_elem: Callable[[_Parser], N]) -> List[N]:
        """Parse comma separated elements up to *stop*.

        A ``)`` stop is preceded by a ``(`` and is consumed; any other stop
        token is left for the caller.
        """
        if stop is Key.CLOSE_PAREN:
            self.expect(Key.OPEN_PAREN)

        ret: List[N] = []
        while not self.at_end():
            if self.at(stop):
                if stop is Key.CLOSE_PAREN:
                    self.advance()
                return ret

            ret.append(parse_elem(self))

            if self.at(stop):
                if stop is Key.CLOSE_PAREN:
                    self.advance()
                return ret
            if not self.at(Key.COMMA):
                raise ParseError.expected(_q(stop.spelling), self.got(), self.loc())
            self.advance()
        raise self.error(f"expected {_q(stop.spelling)}")

    def parse_field(self) -> A.Field:
        name = self.parse_ident()
        self.check_name(name, "field")
        return A.Field(name, self.parse_type_expr())

    # ---- Types -------------------------------------------------------

    def parse_type_expr(self) -> A.TypeExpr:
        k = self.peek1()
        if k is Key.PTR or k is Key.NPTR:
            self.advance()
            inner = self.parse_type_expr()
            dec = A.Decorator.PTR if k is Key.PTR else A.Decorator.NPTR
            return A.TypeExpr(decorator=dec, inner=inner)

        if k is Key.OPEN_BRACKET:
            self.advance()
            if self.at(Key.CLOSE_BRACKET):
                self.advance()
                return A.TypeExpr(decorator=A.Decorator.SLICE, inner=self.parse_type_expr())
            length = self.parse_expr()
            self.expect(Key.CLOSE_BRACKET)
            return A.TypeExpr(
                decorator=A.Decorator.ARRAY,
                array_length=length,
                inner=self.parse_type_expr(),
            )

        pkg, name = self.parse_qualified_ident()
        lo = hi = None
        if self.at(Key.OPEN_BRACKET):
            lo, hi = self.parse_range()
        return A.TypeExpr(name=name, package=pkg, lo=lo, hi=hi)

    def parse_range(self) -> Tuple[Optional[A.Expr], Optional[A.Expr]]:
        """Parse a refinement ``[lo..hi]``; either bound may be absent."""
        self.expect(Key.OPEN_BRACKET)
        lo = hi = None
        if not self.at(Key.DOT_DOT):
            lo = self.parse_expr()
        self.expect(Key.DOT_DOT)
        if not self.at(Key.CLOSE_BRACKET):
            hi = self.parse_expr()
        self.expect(Key.CLOSE_BRACKET)
        return lo, hi

    def parse_index_or_slice(self, base: A.Expr) -> A.Expr:
        """Parse ``[i]``, ``[i:j]``, ``[i:]``, ``[:j]`` or ``[:]`` after *base*."""
        self.expect(Key.OPEN_BRACKET)
        lo = hi = None
        if not self.at(Key.COLON):
            lo = self.parse_expr()
            if self.at(Key.CLOSE_BRACKET):
                self.advance()
                return A.Index(base, lo)
            if not self.at(Key.COLON):
                raise ParseError.expected('":" or "]"', self.got(), self.loc())
        self.advance()
        if not self.at(Key.CLOSE_BRACKET):
            hi = self.parse_expr()
        self.expect(Key.CLOSE_BRACKET)
        return A.Slice(base, lo, hi)

    # ---- Statements --------------------------------------------------

    def parse_block(self) -> List[A.Node]:
        self.expect(Key.OPEN_CURLY)
        block: List[A.Node] = []
        while not self.at_end():
            if self.at(Key.CLOSE_CURLY):
                self.advance()
                return block
            block.append(self.parse_statement())
            self.expect_semicolon()
        raise self.error('expected "}"')

    def parse_asserts(self) -> List[A.Assert]:
        if not self.at(Key.COMMA):
            return []
        self.advance()
        asserts = self.parse_list(Key.OPEN_CURLY, _Parser.parse_assert)
        self.asserts_sorted(asserts)
        return asserts

    def asserts_sorted(self, asserts: Sequence[A.Assert]) -> None:
        seen_inv = seen_post = False
        for a in asserts:
            k = a.keyword
            if k is Key.ASSERT:
                raise self.error('assertion chain cannot contain "assert", '
                                 'only "pre", "inv" and "post"')
            if k is Key.PRE:
                ok = not (seen_post or seen_inv)
            elif k is Key.INV:
                ok = not seen_post
                seen_inv = True
            else:
                ok = True
                seen_post = True
            if not ok:
                raise self.error('assertion chain not in "pre", "inv", "post" order')

    def parse_assert(self) -> A.Assert:
        loc = self.loc()
        k = self.peek1()
        if k not in (Key.ASSERT, Key.PRE, Key.INV, Key.POST):
            raise ParseError.expected('"assert", "pre", "inv" or "post"', self.got(), loc)
        self.advance()
        condition = self.parse_expr()
        if condition.effect:
            raise self.error(f"assert-condition {_q(condition)} is not effect-free")
        reason = ""
        args: List[A.Arg] = []
        if self.at(Key.VIA):
            self.advance()
            reason = self.expect_str_literal()
            args = self.parse_list(Key.CLOSE_PAREN, _Parser.parse_arg)
        return A.Assert(k, condition, reason, tuple(args), loc)

    def parse_label(self) -> str:
        if self.at(Key.COLON):
            self.advance()
            return self.parse_ident()
        return ""

    def parse_statement(self) -> A.Node:
        loc = self.loc()
        k = self.peek1()

        if k is Key.VAR:
            if not self._allow_var:
                raise self.error("var statement not at the top of a function")
            self.advance()
            return self.parse_var(loc)
        self._allow_var = False

        if k in (Key.ASSERT, Key.PRE, Key.POST):
            return self.parse_assert()

        if k is Key.BREAK or k is Key.CONTINUE:
            self.advance()
            return A.Jump(k, self.parse_label(), loc)

        if k is Key.IF:
            return self.parse_if()

        if k is Key.RETURN:
            self.advance()
            return self.parse_return(loc)

        if k is Key.WHILE:
            self.advance()
            label = self.parse_label()
            condition = self.parse_expr()
            if condition.effect:
                raise self.error(f"while-condition {_q(condition)} is not effect-free")
            asserts = self.parse_asserts()
            body = self.parse_block()
            return A.While(condition, label, tuple(asserts), tuple(body), loc)

        if k in (Key.TRY, Key.ITERATE, Key.YIELD):
            raise self.error(f"reserved keyword {_q(k.spelling)} is not supported")

        return self.parse_assign(loc)

    def parse_var(self, loc: SourceLoc) -> A.Var:
        name = self.parse_ident()
        self.check_name(name, "var")
        xtype = self.parse_type_expr()
        value = None
        if self.at(Key.EQ):
            self.advance()
            value = self.parse_expr()
            self.check_effect(value)
        return A.Var(name, xtype, value, loc)

    def parse_return(self, loc: SourceLoc) -> A.Return:
        k = self.peek1()
        if k is Key.ERROR or k is Key.SUSPENSION:
            self.advance()
            return A.Return(k, self.expect_str_literal(), None, loc)
        if self.at(Key.SEMICOLON, Key.CLOSE_CURLY) or self.at_end():
            return A.Return(loc=loc)
        value = self.parse_expr()
        self.check_effect(value)
        return A.Return(value=value, loc=loc)

    def parse_if(self) -> A.If:
        loc = self.loc()
        self.expect(Key.IF)
        condition = self.parse_expr()
        if condition.effect:
            raise self.error(f"if-condition {_q(condition)} is not effect-free")
        body_if_true = self.parse_block()
        else_if: Optional[A.If] = None
        body_if_false: List[A.Node] = []
        if self.at(Key.ELSE):
            self.advance()
            if self.at(Key.IF):
                else_if = self.parse_if()
            else:
                body_if_false = self.parse_block()
        return A.If(condition, tuple(body_if_true), else_if, tuple(body_if_false), loc)

    def parse_assign(self, loc: SourceLoc) -> A.Assign:
        rhs = self.parse_expr()
        k = self.peek1()
        if not k.is_assign():
            self.check_effect(rhs)
            return A.Assign(rhs, loc=loc)

        self.advance()
        lhs = rhs
        if lhs.effect:
            raise self.error(f"assignment LHS {_q(lhs)} is not effect-free")
        node: Optional[A.Expr] = lhs
        while node is not None:
            if isinstance(node, A.Ident):
                node = None
            elif isinstance(node, (A.Selector, A.Index)):
                node = node.base
            elif isinstance(node, A.Literal):
                raise self.error(f"assignment LHS {_q(lhs)} is a literal")
            else:
                raise self.error(f"invalid assignment LHS {_q(lhs)}")

        rhs = self.parse_expr()
        self.check_effect(rhs)
        return A.Assign(rhs, k, lhs, loc)

    def check_effect(self, value: A.Expr) -> None:
        """Reject a value whose effect is stronger than the enclosing func's."""
        if self._func_effect.weaker_than(value.effect):
            raise self.error(
                f"value {_q(value)}'s effect {_q(value.effect.name.lower())} is stronger "
                f"than the func's effect {_q(self._func_effect.name.lower())}")

    def parse_arg(self) -> A.Arg:
        name = self.parse_ident()
        self.expect(Key.COLON)
        value = self.parse_expr()
        if value.effect:
            raise self.error(f"arg-value {_q(value)} is not effect-free")
        return A.Arg(name, value)

    # ---- Expressions -------------------------------------------------

    def parse_expr(self) -> A.Expr:
        e = self.parse_expr1()
        if e.sub_expr_has_effect():
            raise self.error(f"expression {_q(e)} has an effect-ful sub-expression")
        return e

    def parse_expr1(self) -> A.Expr:
        lhs = self.parse_operand()
        x = self.peek1()
        if not x.is_binary_op():
            return lhs
        self.advance()

        if x is Key.AS:
            return A.Cast(lhs, self.parse_type_expr())

        rhs = self.parse_operand()
        if not x.is_associative_op() or self.peek1() is not x:
            op = x.binary_form()
            if op is None:
                raise self.error(f"internal error: no binary form for {_q(x.spelling)}")
            return A.Binary(op, lhs, rhs)

        args = [lhs, rhs]
        while self.peek1() is x:
            self.advance()
            args.append(self.parse_operand())
        op = x.associative_form()
        if op is None:
            raise self.error(f"internal error: no associative form for {_q(x.spelling)}")
        return A.Associative(op, tuple(args))

    def parse_operand(self) -> A.Expr:
        x = self.peek1()

        if x.is_unary_op():
            self.advance()
            operand = self.parse_operand()
            op = x.unary_form()
            if op is None:
                raise self.error(f"internal error: no unary form for {_q(x.spelling)}")
            return A.Unary(op, operand)

        if x.is_literal():
            tok = self.advance()
            return A.Literal(self._tm.by_id(tok.id))

        if x is Key.OPEN_PAREN:
            self.advance()
            e = self.parse_expr()
            self.expect(Key.CLOSE_PAREN)
            return e

        lhs: A.Expr = A.Ident(self.parse_ident())
        while True:
            x = self.peek1()
            if x is Key.EXCLAM or x is Key.QUESTION or x is Key.OPEN_PAREN:
                effect = self.parse_effect()
                args = self.parse_list(Key.CLOSE_PAREN, _Parser.parse_arg)
                lhs = A.Call(lhs, tuple(args), effect)

            elif x is Key.OPEN_BRACKET:
                lhs = self.parse_index_or_slice(lhs)

            elif x is Key.DOT:
                self.advance()
                if self.peek1().is_num_literal():
                    raise self.error("dot followed by numeric literal")
                lhs = A.Selector(lhs, self.parse_ident())

            else:
                return lhs
