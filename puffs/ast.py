"""puffs/ast.py – Abstract syntax tree for puffs source files.

The parser produces a tree of frozen dataclasses; the checker and the code
generators consume it.  There is one class per declaration, statement and
expression kind, so consumers can dispatch with ``isinstance`` or
``match`` instead of inspecting a tag.

Design invariants
-----------------
* Every node is a ``@dataclass(frozen=True, slots=True)``.
* Children are held in tuples, never lists.
* Declarations and statements record a :class:`~puffs.errors.SourceLoc`.
* Names are plain ``str`` values.  Literals keep their source spelling
  (``"0x10"``, ``"'\\n'"``) so that no information is lost before checking.
* Operators are :class:`~puffs.token.Operator` values, i.e. already
  disambiguated into unary, binary or associative form.
* A repeated associative operator (``a + b + c``) is a single
  :class:`Associative` node with N arguments.

Effects
-------
A call is pure ``f(x)``, impure ``f!(x)`` or suspendible ``f?(x)``.  The
``flags`` of an expression combine the effect of its own call (if any)
with the ``IMPURE`` / ``SUSPENDIBLE`` bits of every sub-expression.

Module layout
-------------
§1  Flags and effects
§2  Expressions
§3  Types
§4  Statements
§5  Declarations
§6  Traversal, struct ordering and S-expression export
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, fields
from enum import auto
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

try:
    from sexpdata import Symbol
except ImportError:  # pragma: no cover
    raise ImportError(
        "The 'sexpdata' package is required for AST export. "
        "Install it with:  pip install sexpdata"
    )

from .errors import NO_LOC, SourceLoc
from .token import Form, Key, Operator, unescape

logger = logging.getLogger(__name__)

MAX_EXPR_DEPTH = 255
MAX_TYPE_EXPR_DEPTH = 63


# ════════════════════════════════════════════════════════════════════════
# §1  Flags and effects
# ════════════════════════════════════════════════════════════════════════

class Flags(enum.Flag):
    NONE = 0
    IMPURE = auto()
    SUSPENDIBLE = auto()
    CALL_IMPURE = auto()
    CALL_SUSPENDIBLE = auto()
    PUBLIC = auto()


_EFFECT_BITS = Flags.IMPURE | Flags.SUSPENDIBLE


class Effect(enum.IntEnum):
    """How much a function or call may do.  Ordered weakest first."""

    PURE = 0
    IMPURE = 1
    SUSPENDIBLE = 2

    def weaker_than(self, other: Effect) -> bool:
        return self < other

    def marker(self) -> str:
        """Source suffix: ``""``, ``"!"`` or ``"?"``."""
        return ("", "!", "?")[self]

    def func_flags(self) -> Flags:
        if self is Effect.SUSPENDIBLE:
            return Flags.IMPURE | Flags.SUSPENDIBLE
        if self is Effect.IMPURE:
            return Flags.IMPURE
        return Flags.NONE

    def call_flags(self) -> Flags:
        if self is Effect.SUSPENDIBLE:
            return self.func_flags() | Flags.CALL_IMPURE | Flags.CALL_SUSPENDIBLE
        if self is Effect.IMPURE:
            return self.func_flags() | Flags.CALL_IMPURE
        return Flags.NONE

    @classmethod
    def from_flags(cls, flags: Flags) -> Effect:
        if flags & Flags.SUSPENDIBLE:
            return cls.SUSPENDIBLE
        if flags & Flags.IMPURE:
            return cls.IMPURE
        return cls.PURE


class Node:
    """Common base of every AST node."""

    __slots__ = ()


# ════════════════════════════════════════════════════════════════════════
# §2  Expressions
# ════════════════════════════════════════════════════════════════════════

class Expr(Node):
    """Base of the expression nodes."""

    __slots__ = ()

    def sub_exprs(self) -> Tuple[Expr, ...]:
        return ()

    @property
    def own_flags(self) -> Flags:
        return Flags.NONE

    @property
    def flags(self) -> Flags:
        f = self.own_flags
        for sub in self.sub_exprs():
            f |= sub.flags & _EFFECT_BITS
        return f

    @property
    def effect(self) -> Effect:
        return Effect.from_flags(self.flags)

    def sub_expr_has_effect(self) -> bool:
        return any(sub.flags & _EFFECT_BITS for sub in self.sub_exprs())

    def __str__(self) -> str:
        return "".join(_append_expr([], self, False, 0))


@dataclass(frozen=True, slots=True)
class Ident(Expr):
    name: str


@dataclass(frozen=True, slots=True)
class Literal(Expr):
    """A number, string, ``true`` or ``false``, as spelled in the source."""

    spelling: str

    @property
    def is_num(self) -> bool:
        return self.spelling[:1].isdigit()

    @property
    def is_str(self) -> bool:
        return self.spelling[:1] in ('"', "'")

    def value(self) -> Union[int, str, bool, None]:
        """The literal's Python value (``None`` for malformed strings)."""
        if self.spelling == "true":
            return True
        if self.spelling == "false":
            return False
        if self.is_num:
            return int(self.spelling, 0)
        return unescape(self.spelling)


@dataclass(frozen=True, slots=True)
class Unary(Expr):
    op: Operator
    operand: Expr

    def sub_exprs(self) -> Tuple[Expr, ...]:
        return (self.operand,)


@dataclass(frozen=True, slots=True)
class Binary(Expr):
    op: Operator
    lhs: Expr
    rhs: Expr

    def sub_exprs(self) -> Tuple[Expr, ...]:
        return (self.lhs, self.rhs)


@dataclass(frozen=True, slots=True)
class Cast(Expr):
    """``value as xtype``."""

    value: Expr
    xtype: TypeExpr

    def sub_exprs(self) -> Tuple[Expr, ...]:
        return (self.value,)


@dataclass(frozen=True, slots=True)
class Associative(Expr):
    op: Operator
    args: Tuple[Expr, ...]

    def sub_exprs(self) -> Tuple[Expr, ...]:
        return self.args


@dataclass(frozen=True, slots=True)
class Arg(Node):
    """A ``name:value`` call or ``via`` argument."""

    name: str
    value: Expr


@dataclass(frozen=True, slots=True)
class Call(Expr):
    callee: Expr
    args: Tuple[Arg, ...] = ()
    call_effect: Effect = Effect.PURE

    def sub_exprs(self) -> Tuple[Expr, ...]:
        return (self.callee,) + tuple(a.value for a in self.args)

    @property
    def own_flags(self) -> Flags:
        return self.call_effect.call_flags()


@dataclass(frozen=True, slots=True)
class Index(Expr):
    """``base[index]``."""

    base: Expr
    index: Expr

    def sub_exprs(self) -> Tuple[Expr, ...]:
        return (self.base, self.index)


@dataclass(frozen=True, slots=True)
class Slice(Expr):
    """``base[lo:hi]``; either bound may be absent."""

    base: Expr
    lo: Optional[Expr] = None
    hi: Optional[Expr] = None

    def sub_exprs(self) -> Tuple[Expr, ...]:
        return tuple(e for e in (self.base, self.lo, self.hi) if e is not None)


@dataclass(frozen=True, slots=True)
class Selector(Expr):
    """``base.name``."""

    base: Expr
    name: str

    def sub_exprs(self) -> Tuple[Expr, ...]:
        return (self.base,)


def _op_string(op: Operator) -> str:
    if op.form is not Form.UNARY:
        return f" {op.spelling} "
    if op.spelling.isalpha():
        return op.spelling + " "
    return op.spelling


def _append_expr(buf: List[str], n: Expr, parenthesize: bool, depth: int) -> List[str]:
    if depth > MAX_EXPR_DEPTH:
        buf.append("!expr_recursion_depth_too_large!")
        return buf
    depth += 1

    if isinstance(n, Ident):
        buf.append(n.name)
    elif isinstance(n, Literal):
        buf.append(n.spelling)
    elif isinstance(n, Unary):
        buf.append(_op_string(n.op))
        _append_expr(buf, n.operand, True, depth)
    elif isinstance(n, (Binary, Cast, Associative)):
        if parenthesize:
            buf.append("(")
        if isinstance(n, Binary):
            _append_expr(buf, n.lhs, True, depth)
            buf.append(_op_string(n.op))
            _append_expr(buf, n.rhs, True, depth)
        elif isinstance(n, Cast):
            _append_expr(buf, n.value, True, depth)
            buf.append(" as ")
            buf.append(str(n.xtype))
        else:
            op = _op_string(n.op)
            for i, arg in enumerate(n.args):
                if i:
                    buf.append(op)
                _append_expr(buf, arg, True, depth)
        if parenthesize:
            buf.append(")")
    elif isinstance(n, Call):
        _append_expr(buf, n.callee, True, depth)
        buf.append(n.call_effect.marker())
        buf.append("(")
        for i, arg in enumerate(n.args):
            if i:
                buf.append(", ")
            buf.append(arg.name)
            buf.append(":")
            _append_expr(buf, arg.value, False, depth)
        buf.append(")")
    elif isinstance(n, Index):
        _append_expr(buf, n.base, True, depth)
        buf.append("[")
        _append_expr(buf, n.index, False, depth)
        buf.append("]")
    elif isinstance(n, Slice):
        _append_expr(buf, n.base, True, depth)
        buf.append("[")
        if n.lo is not None:
            _append_expr(buf, n.lo, False, depth)
        buf.append(":")
        if n.hi is not None:
            _append_expr(buf, n.hi, False, depth)
        buf.append("]")
    elif isinstance(n, Selector):
        _append_expr(buf, n.base, True, depth)
        buf.append(".")
        buf.append(n.name)
    return buf


# ════════════════════════════════════════════════════════════════════════
# §3  Types
# ════════════════════════════════════════════════════════════════════════

class Decorator(enum.Enum):
    PTR = "ptr"
    NPTR = "nptr"
    ARRAY = "array"
    SLICE = "slice"


@dataclass(frozen=True, slots=True)
class TypeExpr(Node):
    """A type such as ``u32``, ``u32[..4095]``, ``pkg.T``, ``ptr T``,
    ``[8] T`` or ``[] T``.

    A decorated type (``decorator`` set) wraps ``inner``; an array also has
    an ``array_length``.  An undecorated type is a possibly package
    qualified ``name``, optionally refined to ``[lo..hi]``.
    """

    name: str = ""
    package: str = ""
    lo: Optional[Expr] = None
    hi: Optional[Expr] = None
    decorator: Optional[Decorator] = None
    array_length: Optional[Expr] = None
    inner: Optional[TypeExpr] = None

    @property
    def qualified_name(self) -> str:
        return f"{self.package}.{self.name}" if self.package else self.name

    @property
    def is_refined(self) -> bool:
        return self.decorator is None and (self.lo is not None or self.hi is not None)

    def innermost(self) -> TypeExpr:
        t = self
        while t.inner is not None:
            t = t.inner
        return t

    def unrefined(self) -> TypeExpr:
        if not self.is_refined:
            return self
        return TypeExpr(name=self.name, package=self.package)

    def __str__(self) -> str:
        return "".join(_append_type([], self, 0))


def _append_type(buf: List[str], n: TypeExpr, depth: int) -> List[str]:
    if depth > MAX_TYPE_EXPR_DEPTH:
        buf.append("!type_expr_recursion_depth_too_large!")
        return buf
    depth += 1

    if n.decorator is Decorator.PTR or n.decorator is Decorator.NPTR:
        buf.append(n.decorator.value + " ")
    elif n.decorator is Decorator.ARRAY:
        buf.append("[")
        if n.array_length is not None:
            _append_expr(buf, n.array_length, False, 0)
        buf.append("] ")
    elif n.decorator is Decorator.SLICE:
        buf.append("[] ")
    else:
        buf.append(n.qualified_name)
        if n.is_refined:
            buf.append("[")
            if n.lo is not None:
                _append_expr(buf, n.lo, False, 0)
            buf.append("..")
            if n.hi is not None:
                _append_expr(buf, n.hi, False, 0)
            buf.append("]")
        return buf

    if n.inner is None:
        buf.append("!invalid_type!")
        return buf
    return _append_type(buf, n.inner, depth)


# ════════════════════════════════════════════════════════════════════════
# §4  Statements
# ════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class Assert(Node):
    """``assert|pre|inv|post condition [via "reason"(args)]``."""

    keyword: Key
    condition: Expr
    reason: str = ""
    args: Tuple[Arg, ...] = ()
    loc: SourceLoc = NO_LOC


@dataclass(frozen=True, slots=True)
class Assign(Node):
    """``lhs op rhs``.  An expression statement has no ``lhs`` and no ``op``."""

    rhs: Expr
    op: Optional[Key] = None
    lhs: Optional[Expr] = None
    loc: SourceLoc = NO_LOC


@dataclass(frozen=True, slots=True)
class Var(Node):
    name: str
    xtype: TypeExpr
    value: Optional[Expr] = None
    loc: SourceLoc = NO_LOC


@dataclass(frozen=True, slots=True)
class If(Node):
    condition: Expr
    body_if_true: Tuple[Node, ...] = ()
    else_if: Optional[If] = None
    body_if_false: Tuple[Node, ...] = ()
    loc: SourceLoc = NO_LOC


@dataclass(frozen=True, slots=True)
class While(Node):
    condition: Expr
    label: str = ""
    asserts: Tuple[Assert, ...] = ()
    body: Tuple[Node, ...] = ()
    loc: SourceLoc = NO_LOC


@dataclass(frozen=True, slots=True)
class Jump(Node):
    """``break`` or ``continue``, with an optional ``:label``."""

    keyword: Key
    label: str = ""
    loc: SourceLoc = NO_LOC


@dataclass(frozen=True, slots=True)
class Return(Node):
    """``return [value]`` or ``return error|suspension "message"``."""

    keyword: Optional[Key] = None
    message: str = ""
    value: Optional[Expr] = None
    loc: SourceLoc = NO_LOC


Statement = Union[Assert, Assign, If, Jump, Return, Var, While]


# ════════════════════════════════════════════════════════════════════════
# §5  Declarations
# ════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class Field(Node):
    name: str
    xtype: TypeExpr


@dataclass(frozen=True, slots=True)
class Use(Node):
    path: str
    loc: SourceLoc = NO_LOC


@dataclass(frozen=True, slots=True)
class PackageID(Node):
    id: str
    loc: SourceLoc = NO_LOC


@dataclass(frozen=True, slots=True)
class Const(Node):
    name: str
    xtype: TypeExpr
    value: Expr
    flags: Flags = Flags.NONE
    loc: SourceLoc = NO_LOC

    @property
    def public(self) -> bool:
        return bool(self.flags & Flags.PUBLIC)


@dataclass(frozen=True, slots=True)
class Func(Node):
    """``func [receiver.]name[!|?](in)(out)[, asserts] { body }``."""

    name: str
    receiver: str = ""
    in_fields: Tuple[Field, ...] = ()
    out_fields: Tuple[Field, ...] = ()
    asserts: Tuple[Assert, ...] = ()
    body: Tuple[Node, ...] = ()
    flags: Flags = Flags.NONE
    loc: SourceLoc = NO_LOC

    @property
    def public(self) -> bool:
        return bool(self.flags & Flags.PUBLIC)

    @property
    def effect(self) -> Effect:
        return Effect.from_flags(self.flags)

    @property
    def qualified_name(self) -> str:
        return f"{self.receiver}.{self.name}" if self.receiver else self.name


@dataclass(frozen=True, slots=True)
class Status(Node):
    """``error "message"`` or ``suspension "message"``."""

    keyword: Key
    message: str
    flags: Flags = Flags.NONE
    loc: SourceLoc = NO_LOC

    @property
    def public(self) -> bool:
        return bool(self.flags & Flags.PUBLIC)


@dataclass(frozen=True, slots=True)
class Struct(Node):
    name: str
    fields: Tuple[Field, ...] = ()
    flags: Flags = Flags.NONE
    loc: SourceLoc = NO_LOC

    @property
    def public(self) -> bool:
        return bool(self.flags & Flags.PUBLIC)

    @property
    def suspendible(self) -> bool:
        return bool(self.flags & Flags.SUSPENDIBLE)


Decl = Union[Const, Func, PackageID, Status, Struct, Use]


@dataclass(frozen=True, slots=True)
class File(Node):
    filename: str
    decls: Tuple[Node, ...] = ()

    def structs(self) -> List[Struct]:
        return [d for d in self.decls if isinstance(d, Struct)]


# ════════════════════════════════════════════════════════════════════════
# §6  Traversal, struct ordering and S-expression export
# ════════════════════════════════════════════════════════════════════════

_UNMARKED, _TEMPORARY, _PERMANENT = 0, 1, 2


def sort_structs(structs: Sequence[Struct]) -> Tuple[List[Struct], bool]:
    """Order *structs* so that each one follows the structs its fields name.

    A field's dependency is the innermost type of its ``xtype``, so
    ``ptr foo`` and ``[4] foo`` both depend on ``foo``.  Names that are not
    among *structs* are ignored.  Returns ``([], False)`` when the
    dependencies form a cycle.
    """
    by_name: Dict[str, Struct] = {s.name: s for s in structs}
    marks: Dict[int, int] = {}
    out: List[Struct] = []

    def visit(s: Struct) -> bool:
        mark = marks.get(id(s), _UNMARKED)
        if mark == _TEMPORARY:
            logger.debug("struct %r is part of a dependency cycle", s.name)
            return False
        if mark == _PERMANENT:
            return True
        marks[id(s)] = _TEMPORARY
        for f in s.fields:
            dep = by_name.get(f.xtype.innermost().qualified_name)
            if dep is not None and not visit(dep):
                return False
        marks[id(s)] = _PERMANENT
        out.append(s)
        return True

    for s in structs:
        if id(s) not in marks and not visit(s):
            return [], False
    return out, True


def walk(node: Node) -> Iterator[Node]:
    """Yield *node* and every node beneath it, in pre-order."""
    stack: List[Node] = [node]
    while stack:
        n = stack.pop()
        yield n
        children: List[Node] = []
        for f in fields(n):  # type: ignore[arg-type]
            v = getattr(n, f.name)
            if isinstance(v, Node):
                children.append(v)
            elif isinstance(v, tuple):
                children.extend(c for c in v if isinstance(c, Node))
        stack.extend(reversed(children))


def _flag_syms(flags: Flags) -> List[Any]:
    return [Symbol(f.name.lower()) for f in Flags if f and f in flags]


def _body(tag: str, stmts: Tuple[Node, ...]) -> List[Any]:
    return [Symbol(tag)] + [to_sexp(s) for s in stmts]


def to_sexp(node: Any) -> Any:
    """Convert an AST node into nested lists of :class:`sexpdata.Symbol`,
    ``str`` and ``int`` values, ready for ``sexpdata.dumps``.

    Absent optional parts are omitted rather than written as ``nil``.
    """
    if node is None:
        return Symbol("nil")

    if isinstance(node, File):
        return [Symbol("file"), node.filename] + [to_sexp(d) for d in node.decls]

    if isinstance(node, Use):
        return [Symbol("use"), unescape(node.path)]

    if isinstance(node, PackageID):
        return [Symbol("packageid"), unescape(node.id)]

    if isinstance(node, Const):
        return ([Symbol("const"), Symbol(node.name)] + _flag_syms(node.flags)
                + [to_sexp(node.xtype), to_sexp(node.value)])

    if isinstance(node, Func):
        parts = [Symbol("func"), Symbol(node.qualified_name)] + _flag_syms(node.flags)
        parts.append([Symbol("in")] + [to_sexp(f) for f in node.in_fields])
        parts.append([Symbol("out")] + [to_sexp(f) for f in node.out_fields])
        if node.asserts:
            parts.append(_body("asserts", node.asserts))
        parts.append(_body("body", node.body))
        return parts

    if isinstance(node, Status):
        return ([Symbol(node.keyword.spelling)] + _flag_syms(node.flags)
                + [unescape(node.message)])

    if isinstance(node, Struct):
        return ([Symbol("struct"), Symbol(node.name)] + _flag_syms(node.flags)
                + [to_sexp(f) for f in node.fields])

    if isinstance(node, Field):
        return [Symbol(node.name), to_sexp(node.xtype)]

    if isinstance(node, TypeExpr):
        if node.decorator is Decorator.ARRAY:
            return [Symbol("array"), to_sexp(node.array_length), to_sexp(node.inner)]
        if node.decorator is not None:
            return [Symbol(node.decorator.value), to_sexp(node.inner)]
        if node.is_refined:
            parts = [Symbol("refine"), Symbol(node.qualified_name)]
            parts.append(to_sexp(node.lo) if node.lo is not None else Symbol("_"))
            parts.append(to_sexp(node.hi) if node.hi is not None else Symbol("_"))
            return parts
        return Symbol(node.qualified_name)

    # Statements

    if isinstance(node, Assert):
        parts = [Symbol(node.keyword.spelling), to_sexp(node.condition)]
        if node.reason:
            parts.append([Symbol("via"), unescape(node.reason)] + [to_sexp(a) for a in node.args])
        return parts

    if isinstance(node, Assign):
        if node.lhs is None:
            return to_sexp(node.rhs)
        op = node.op.spelling if node.op is not None else "="
        return [Symbol(op), to_sexp(node.lhs), to_sexp(node.rhs)]

    if isinstance(node, Var):
        parts = [Symbol("var"), Symbol(node.name), to_sexp(node.xtype)]
        if node.value is not None:
            parts.append(to_sexp(node.value))
        return parts

    if isinstance(node, If):
        parts = [Symbol("if"), to_sexp(node.condition), _body("then", node.body_if_true)]
        if node.else_if is not None:
            parts.append([Symbol("else"), to_sexp(node.else_if)])
        elif node.body_if_false:
            parts.append(_body("else", node.body_if_false))
        return parts

    if isinstance(node, While):
        parts = [Symbol("while")]
        if node.label:
            parts.append([Symbol("label"), Symbol(node.label)])
        parts.append(to_sexp(node.condition))
        if node.asserts:
            parts.append(_body("asserts", node.asserts))
        parts.append(_body("body", node.body))
        return parts

    if isinstance(node, Jump):
        parts = [Symbol(node.keyword.spelling)]
        if node.label:
            parts.append(Symbol(node.label))
        return parts

    if isinstance(node, Return):
        if node.keyword is not None:
            return [Symbol("return"), [Symbol(node.keyword.spelling), unescape(node.message)]]
        if node.value is None:
            return [Symbol("return")]
        return [Symbol("return"), to_sexp(node.value)]

    # Expressions

    if isinstance(node, Ident):
        return Symbol(node.name)

    if isinstance(node, Literal):
        v = node.value()
        if isinstance(v, bool):
            return Symbol(node.spelling)
        return v

    if isinstance(node, Unary):
        return [Symbol(node.op.spelling), to_sexp(node.operand)]

    if isinstance(node, Binary):
        return [Symbol(node.op.spelling), to_sexp(node.lhs), to_sexp(node.rhs)]

    if isinstance(node, Cast):
        return [Symbol("as"), to_sexp(node.value), to_sexp(node.xtype)]

    if isinstance(node, Associative):
        return [Symbol(node.op.spelling)] + [to_sexp(a) for a in node.args]

    if isinstance(node, Arg):
        return [Symbol(node.name), to_sexp(node.value)]

    if isinstance(node, Call):
        tag = "call" + node.call_effect.marker()
        return [Symbol(tag), to_sexp(node.callee)] + [to_sexp(a) for a in node.args]

    if isinstance(node, Index):
        return [Symbol("index"), to_sexp(node.base), to_sexp(node.index)]

    if isinstance(node, Slice):
        return [
            Symbol("slice"),
            to_sexp(node.base),
            to_sexp(node.lo) if node.lo is not None else Symbol("_"),
            to_sexp(node.hi) if node.hi is not None else Symbol("_"),
        ]

    if isinstance(node, Selector):
        return [Symbol("."), to_sexp(node.base), Symbol(node.name)]

    raise TypeError(f"to_sexp: unsupported node {type(node).__name__}")
