"""
puffs/interval.py
=================

Interval arithmetic on arbitrary-precision integers.

If ``x`` is in ``[3, 6]`` and ``y`` is in ``[10, 15]`` then ``x + y`` is in
``[13, 21]``.  Bounds may be infinite: if ``x`` is in ``[3, +∞)`` and ``y``
is in ``[-4, -2]`` then ``x * y`` is in ``(-∞, -6]``.

The checker uses these intervals to prove that array indexes and arithmetic
cannot overflow.  If the integer variables ``i`` and ``j`` are in ``[0, 255]``
and ``[0, 3]``, and ``a`` has 1024 elements, then ``a[4*i + j]`` is safe
without a run-time bounds check.

Representation
--------------
``Interval(lo, hi)`` holds two *bounds*.  A bound is either a Python ``int``
or an :class:`Inf` tag: ``lo`` may be ``Inf.NEG`` and ``hi`` may be
``Inf.POS``.  An interval with finite ``lo > hi`` is empty; there is more
than one empty representation, so always ask :meth:`Interval.is_empty`.

A value known to lie in ``[3, +∞)`` is arbitrarily large but never
infinite, so ``0 * i`` is exactly ``0`` for any such ``i``.

Results only ever over-approximate.  Every integer reachable by applying an
operation to members of the inputs lies in the result.

Failure semantics
-----------------
``lsh``, ``rsh`` and ``quo`` return ``(Interval, ok)``.  ``ok`` is False
when shifting by a possibly-negative amount or dividing by an interval that
contains zero; the accompanying interval is then unbounded on both ends.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Final, NamedTuple, Tuple, Union

__all__ = [
    "Inf",
    "Bound",
    "Interval",
    "Split",
    "Split2",
    "bit_fill_right",
]


class Inf(enum.Enum):
    """An infinite interval bound."""

    NEG = -1
    POS = +1

    def __repr__(self) -> str:
        return "-∞" if self is Inf.NEG else "+∞"

    __str__ = __repr__


Bound = Union[int, Inf]

# Shift amounts up to this use native shifts; larger ones use 2**n.
_MAX_NATIVE_SHIFT: Final[int] = 0xFFFFFFFF


# ═══════════════════════════════════════════════════════════════════════
#  PART 1 — BIG INTEGER PRIMITIVES
# ═══════════════════════════════════════════════════════════════════════

def _is_inf(b: Bound) -> bool:
    return isinstance(b, Inf)


def _quo(i: int, j: int) -> int:
    """Division truncating towards zero (not Python's floor division)."""
    q = abs(i) // abs(j)
    return -q if (i < 0) != (j < 0) else q


def _lsh(i: int, j: int) -> int:
    if i == 0:
        return 0
    if j <= _MAX_NATIVE_SHIFT:
        return i << j
    return i * (2 ** j)


def _rsh(i: int, j: int) -> int:
    # An arithmetic shift floors, unlike _quo.
    if j <= _MAX_NATIVE_SHIFT:
        return i >> j
    if j >= i.bit_length():
        return -1 if i < 0 else 0
    return i // (2 ** j)


def _not(b: Bound) -> Bound:
    """Bitwise not, mapping -∞ and +∞ onto each other."""
    if b is Inf.NEG:
        return Inf.POS
    if b is Inf.POS:
        return Inf.NEG
    return ~b


def bit_fill_right(i: int) -> int:
    """Round a non-negative *i* up to the next power of 2, minus 1.

    0 → 0, 1 → 1, 2 → 3, 3 → 3, 4 → 7, ..., 8 → 15.
    """
    if i < 0:
        raise ValueError("bit_fill_right: negative input")
    if i == 0:
        return 0
    return (1 << i.bit_length()) - 1


def _bit_mask(n0: int, n1: int) -> int:
    return (1 << max(n0, n1)) - 1


class _Hull:
    """Running [min, max] accumulator over extended integers.

    Starts out as (+∞, -∞), i.e. containing nothing, and widens as
    candidate bounds are folded in.
    """

    __slots__ = ("lo", "hi")

    def __init__(self) -> None:
        self.lo: Bound = Inf.POS
        self.hi: Bound = Inf.NEG

    def lower_min(self, y: Bound) -> None:
        if (self.lo is Inf.POS or y is Inf.NEG
                or (not _is_inf(self.lo) and not _is_inf(y) and self.lo > y)):
            self.lo = y

    def raise_max(self, y: Bound) -> None:
        if (self.hi is Inf.NEG or y is Inf.POS
                or (not _is_inf(self.hi) and not _is_inf(y) and self.hi < y)):
            self.hi = y

    def set_zero(self) -> None:
        self.lo = 0
        self.hi = 0

    def set_interval(self, x: Interval) -> None:
        self.lo = x.lo
        self.hi = x.hi

    def to_interval(self) -> Interval:
        if self.lo is Inf.POS or self.hi is Inf.NEG:
            return Interval.empty()
        return Interval(self.lo, self.hi)


class Split(NamedTuple):
    """Three-way partition of an interval around zero."""

    neg: Interval
    pos: Interval
    has_neg: bool
    has_zero: bool
    has_pos: bool


class Split2(NamedTuple):
    """Two-way partition: negative and non-negative parts."""

    neg: Interval
    non_neg: Interval
    has_neg: bool
    has_non_neg: bool


# ═══════════════════════════════════════════════════════════════════════
#  PART 2 — THE INTERVAL TYPE
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True, eq=False)
class Interval:
    """A closed integer interval ``[lo, hi]`` with possibly infinite ends.

    The default value is unbounded on both ends.
    """

    lo: Bound = Inf.NEG
    hi: Bound = Inf.POS

    def __post_init__(self) -> None:
        if self.lo is Inf.POS:
            raise ValueError("Interval: lower bound cannot be +∞")
        if self.hi is Inf.NEG:
            raise ValueError("Interval: upper bound cannot be -∞")
        for b in (self.lo, self.hi):
            if not _is_inf(b) and not isinstance(b, int):
                raise TypeError(f"Interval: bound must be int or Inf, got {type(b).__name__}")

    # ---- Constructors ----------------------------------------------------

    @classmethod
    def of(cls, lo: int | None = None, hi: int | None = None) -> Interval:
        """Build an interval where ``None`` means unbounded on that side."""
        return cls(Inf.NEG if lo is None else lo, Inf.POS if hi is None else hi)

    @classmethod
    def point(cls, n: int) -> Interval:
        return cls(n, n)

    @classmethod
    def empty(cls) -> Interval:
        """The canonical empty interval, ``[+1, -1]``."""
        return cls(+1, -1)

    @classmethod
    def unbounded(cls) -> Interval:
        return cls(Inf.NEG, Inf.POS)

    # ---- Presentation ----------------------------------------------------

    def __str__(self) -> str:
        if self.is_empty():
            return "<empty>"
        lo = "(-∞" if self.lo is Inf.NEG else f"[{self.lo}"
        hi = "+∞)" if self.hi is Inf.POS else f"{self.hi}]"
        return f"{lo}, {hi}"

    def __repr__(self) -> str:
        return f"Interval({self})"

    # ---- Predicates ------------------------------------------------------

    def is_empty(self) -> bool:
        return not _is_inf(self.lo) and not _is_inf(self.hi) and self.lo > self.hi

    def _just_zero(self) -> bool:
        return self.lo == 0 and self.hi == 0

    def contains_negative(self) -> bool:
        if self.lo is Inf.NEG:
            return True
        if self.lo >= 0:
            return False
        return self.hi is Inf.POS or self.lo <= self.hi

    def contains_non_negative(self) -> bool:
        if self.hi is Inf.POS:
            return True
        if self.hi < 0:
            return False
        return self.lo is Inf.NEG or self.lo <= self.hi

    def contains_positive(self) -> bool:
        if self.hi is Inf.POS:
            return True
        if self.hi <= 0:
            return False
        return self.lo is Inf.NEG or self.lo <= self.hi

    def contains_zero(self) -> bool:
        return ((self.lo is Inf.NEG or self.lo <= 0)
                and (self.hi is Inf.POS or self.hi >= 0))

    def contains_int(self, i: int) -> bool:
        return ((self.lo is Inf.NEG or self.lo <= i)
                and (self.hi is Inf.POS or self.hi >= i))

    __contains__ = contains_int

    def contains_interval(self, other: Interval) -> bool:
        """Whether every element of *other* is in self.  True if *other* is empty."""
        if other.is_empty():
            return True
        if not _is_inf(self.lo) and (other.lo is Inf.NEG or self.lo > other.lo):
            return False
        if not _is_inf(self.hi) and (other.hi is Inf.POS or self.hi < other.hi):
            return False
        return True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Interval):
            return NotImplemented
        se, oe = self.is_empty(), other.is_empty()
        if se or oe:
            return se == oe
        return self.lo == other.lo and self.hi == other.hi

    def __hash__(self) -> int:
        if self.is_empty():
            return hash(("Interval", "empty"))
        return hash(("Interval", self.lo, self.hi))

    # ---- Partitioning ----------------------------------------------------

    def split(self) -> Split:
        """Split into strictly negative and strictly positive parts.

        ``has_zero`` reports whether zero itself is a member.  Pieces that
        the interval does not reach are returned as empty intervals.
        """
        if self.is_empty():
            return Split(Interval.empty(), Interval.empty(), False, False, False)
        if not _is_inf(self.lo) and self.lo > 0:
            return Split(Interval.empty(), self, False, False, True)
        if not _is_inf(self.hi) and self.hi < 0:
            return Split(self, Interval.empty(), True, False, False)

        neg_hi = -1 if _is_inf(self.hi) else min(self.hi, -1)
        pos_lo = +1 if _is_inf(self.lo) else max(self.lo, +1)
        neg = Interval(self.lo, neg_hi)
        pos = Interval(pos_lo, self.hi)
        return Split(neg, pos, not neg.is_empty(), self.contains_zero(), not pos.is_empty())

    def split2(self) -> Split2:
        """Split into negative and non-negative parts."""
        if self.is_empty():
            return Split2(Interval.empty(), Interval.empty(), False, False)
        if not _is_inf(self.lo) and self.lo >= 0:
            return Split2(Interval.empty(), self, False, True)
        if not _is_inf(self.hi) and self.hi < 0:
            return Split2(self, Interval.empty(), True, False)

        neg_hi = -1 if _is_inf(self.hi) else min(self.hi, -1)
        non_lo = 0 if _is_inf(self.lo) else max(self.lo, 0)
        return Split2(Interval(self.lo, neg_hi), Interval(non_lo, self.hi), True, True)

    # ---- Lattice operations ----------------------------------------------

    def unite(self, other: Interval) -> Interval:
        """Smallest interval containing both (the convex hull)."""
        if self.is_empty():
            return other
        if other.is_empty():
            return self
        lo: Bound = Inf.NEG
        if not _is_inf(self.lo) and not _is_inf(other.lo):
            lo = min(self.lo, other.lo)
        hi: Bound = Inf.POS
        if not _is_inf(self.hi) and not _is_inf(other.hi):
            hi = max(self.hi, other.hi)
        return Interval(lo, hi)

    def intersect(self, other: Interval) -> Interval:
        if self.is_empty() or other.is_empty():
            return Interval.empty()
        if self.lo is Inf.NEG:
            lo = other.lo
        elif other.lo is Inf.NEG:
            lo = self.lo
        else:
            lo = max(self.lo, other.lo)
        if self.hi is Inf.POS:
            hi = other.hi
        elif other.hi is Inf.POS:
            hi = self.hi
        else:
            hi = min(self.hi, other.hi)
        return Interval(lo, hi)

    # ---- Arithmetic ------------------------------------------------------

    def add(self, other: Interval) -> Interval:
        """``self + other``."""
        if self.is_empty() or other.is_empty():
            return Interval.empty()
        lo: Bound = Inf.NEG
        if not _is_inf(self.lo) and not _is_inf(other.lo):
            lo = self.lo + other.lo
        hi: Bound = Inf.POS
        if not _is_inf(self.hi) and not _is_inf(other.hi):
            hi = self.hi + other.hi
        return Interval(lo, hi)

    def sub(self, other: Interval) -> Interval:
        """``self - other``."""
        if self.is_empty() or other.is_empty():
            return Interval.empty()
        lo: Bound = Inf.NEG
        if not _is_inf(self.lo) and not _is_inf(other.hi):
            lo = self.lo - other.hi
        hi: Bound = Inf.POS
        if not _is_inf(self.hi) and not _is_inf(other.lo):
            hi = self.hi - other.lo
        return Interval(lo, hi)

    def mul(self, other: Interval) -> Interval:
        """``self * other``."""
        return self._mul_lsh(other, shift=False)

    def lsh(self, other: Interval) -> Tuple[Interval, bool]:
        """``self << other``.

        Not ok if self is non-empty and *other* contains a negative value.
        """
        if not self.is_empty() and other.contains_negative():
            return Interval.unbounded(), False
        return self._mul_lsh(other, shift=True), True

    def _mul_lsh(self, other: Interval, *, shift: bool) -> Interval:
        x, y = self, other
        if x.is_empty() or y.is_empty():
            return Interval.empty()
        if x._just_zero() or (not shift and y._just_zero()):
            return Interval(0, 0)

        combine = _lsh if shift else (lambda i, j: i * j)
        ret = _Hull()

        sx = x.split()
        sy = y.split()
        neg_x, pos_x = sx.neg, sx.pos
        neg_y, pos_y = sy.neg, sy.pos

        if sy.has_zero and shift:
            ret.set_interval(x)
        elif sy.has_zero or sx.has_zero:
            ret.set_zero()

        if sx.has_neg:
            if sy.has_neg:
                # neg * neg is positive.  Unreachable for shifts, as a
                # negative shift amount was rejected above.
                ret.lower_min(combine(neg_x.hi, neg_y.hi))
                if neg_x.lo is Inf.NEG or neg_y.lo is Inf.NEG:
                    ret.raise_max(Inf.POS)
                else:
                    ret.raise_max(combine(neg_x.lo, neg_y.lo))

            if sy.has_pos:
                # neg * pos is negative.
                if neg_x.lo is Inf.NEG or pos_y.hi is Inf.POS:
                    ret.lower_min(Inf.NEG)
                else:
                    ret.lower_min(combine(neg_x.lo, pos_y.hi))
                ret.raise_max(combine(neg_x.hi, pos_y.lo))

        if sx.has_pos:
            if sy.has_neg:
                # pos * neg is negative.
                if pos_x.hi is Inf.POS or neg_y.lo is Inf.NEG:
                    ret.lower_min(Inf.NEG)
                else:
                    ret.lower_min(combine(pos_x.hi, neg_y.lo))
                ret.raise_max(combine(pos_x.lo, neg_y.hi))

            if sy.has_pos:
                # pos * pos is positive.
                ret.lower_min(combine(pos_x.lo, pos_y.lo))
                if pos_x.hi is Inf.POS or pos_y.hi is Inf.POS:
                    ret.raise_max(Inf.POS)
                else:
                    ret.raise_max(combine(pos_x.hi, pos_y.hi))

        return ret.to_interval()

    def quo(self, other: Interval) -> Tuple[Interval, bool]:
        """``self / other``, truncating towards zero.

        Not ok if *other* contains zero.
        """
        x, y = self, other
        if x.is_empty() or y.is_empty():
            return Interval.empty(), True
        if y.contains_zero():
            return Interval.unbounded(), False
        if x._just_zero():
            return Interval(0, 0), True

        ret = _Hull()
        sx = x.split()
        sy = y.split()
        neg_x, pos_x = sx.neg, sx.pos
        neg_y, pos_y = sy.neg, sy.pos

        if sx.has_zero:
            ret.set_zero()

        if sx.has_neg:
            if sy.has_neg:
                # neg / neg is non-negative.
                if neg_x.lo is Inf.NEG:
                    ret.raise_max(Inf.POS)
                else:
                    ret.raise_max(_quo(neg_x.lo, neg_y.hi))
                if neg_y.lo is Inf.NEG:
                    ret.lower_min(0)
                else:
                    ret.lower_min(_quo(neg_x.hi, neg_y.lo))

            if sy.has_pos:
                # neg / pos is non-positive.
                if neg_x.lo is Inf.NEG:
                    ret.lower_min(Inf.NEG)
                else:
                    ret.lower_min(_quo(neg_x.lo, pos_y.lo))
                if pos_y.hi is Inf.POS:
                    ret.raise_max(0)
                else:
                    ret.raise_max(_quo(neg_x.hi, pos_y.hi))

        if sx.has_pos:
            if sy.has_neg:
                # pos / neg is non-positive.
                if pos_x.hi is Inf.POS:
                    ret.lower_min(Inf.NEG)
                else:
                    ret.lower_min(_quo(pos_x.hi, neg_y.hi))
                if neg_y.lo is Inf.NEG:
                    ret.raise_max(0)
                else:
                    ret.raise_max(_quo(pos_x.lo, neg_y.lo))

            if sy.has_pos:
                # pos / pos is non-negative.
                if pos_x.hi is Inf.POS:
                    ret.raise_max(Inf.POS)
                else:
                    ret.raise_max(_quo(pos_x.hi, pos_y.lo))
                if pos_y.hi is Inf.POS:
                    ret.lower_min(0)
                else:
                    ret.lower_min(_quo(pos_x.lo, pos_y.hi))

        return ret.to_interval(), True

    def rsh(self, other: Interval) -> Tuple[Interval, bool]:
        """``self >> other``, an arithmetic (flooring) shift.

        Not ok if *other* contains a negative value.
        """
        x, y = self, other
        if x.is_empty() or y.is_empty():
            return Interval.empty(), True
        if y.contains_negative():
            return Interval.unbounded(), False
        if x._just_zero():
            return Interval(0, 0), True

        # y has no negative members, so y.lo is finite.
        ret = _Hull()
        sx = x.split()
        neg_x, pos_x = sx.neg, sx.pos

        if sx.has_zero:
            ret.set_zero()

        if sx.has_neg:
            # neg >> y is negative.
            if neg_x.lo is Inf.NEG:
                ret.lower_min(Inf.NEG)
            else:
                ret.lower_min(_rsh(neg_x.lo, y.lo))
            if y.hi is Inf.POS:
                ret.raise_max(-1)
            else:
                ret.raise_max(_rsh(neg_x.hi, y.hi))

        if sx.has_pos:
            # pos >> y is non-negative.
            if y.hi is Inf.POS:
                ret.lower_min(0)
            else:
                ret.lower_min(_rsh(pos_x.lo, y.hi))
            if pos_x.hi is Inf.POS:
                ret.raise_max(Inf.POS)
            else:
                ret.raise_max(_rsh(pos_x.hi, y.lo))

        return ret.to_interval(), True

    # ---- Bitwise ---------------------------------------------------------

    def and_(self, other: Interval) -> Tuple[Interval, bool]:
        """``self & other`` with two's complement semantics.  Always ok."""
        x, y = self, other
        if x.is_empty() or y.is_empty():
            return Interval.empty(), True
        if not x.contains_negative() and not y.contains_negative():
            return _and_both_non_neg(x, y), True

        sx = x.split2()
        sy = y.split2()

        z = Interval.empty()
        if sx.has_neg:
            if sy.has_neg:
                # a & b is ~(~a | ~b).
                w = _or_both_non_neg(_invert(sx.neg), _invert(sy.neg))
                z = z.unite(_invert(w))
            if sy.has_non_neg:
                z = z.unite(_and_one_neg_one_non_neg(sx.neg, sy.non_neg))
        if sx.has_non_neg:
            if sy.has_neg:
                z = z.unite(_and_one_neg_one_non_neg(sy.neg, sx.non_neg))
            if sy.has_non_neg:
                z = z.unite(_and_both_non_neg(sx.non_neg, sy.non_neg))
        return z, True

    def or_(self, other: Interval) -> Tuple[Interval, bool]:
        """``self | other`` with two's complement semantics.  Always ok."""
        x, y = self, other
        if x.is_empty() or y.is_empty():
            return Interval.empty(), True
        if not x.contains_negative() and not y.contains_negative():
            return _or_both_non_neg(x, y), True

        sx = x.split2()
        sy = y.split2()

        z = Interval.empty()
        if sx.has_neg:
            if sy.has_neg:
                # a | b is ~(~a & ~b).
                w = _and_both_non_neg(_invert(sx.neg), _invert(sy.neg))
                z = z.unite(_invert(w))
            if sy.has_non_neg:
                z = z.unite(_or_one_neg_one_non_neg(sx.neg, sy.non_neg))
        if sx.has_non_neg:
            if sy.has_neg:
                z = z.unite(_or_one_neg_one_non_neg(sy.neg, sx.non_neg))
            if sy.has_non_neg:
                z = z.unite(_or_both_non_neg(sx.non_neg, sy.non_neg))
        return z, True


# ═══════════════════════════════════════════════════════════════════════
#  PART 3 — BITWISE HELPERS
# ═══════════════════════════════════════════════════════════════════════
#
# and_max / or_max only ever look at the "maximal" members of each range:
# those for which no 0 bit can be flipped to 1 while staying in range.
# For r = [rMin, rMax], these are rMax plus, for each set bit of rMax that
# lies in bit_fill_right(rMax & ~rMin), rMax with that bit cleared and all
# lower bits set.
#
# or_max starts from xMax | yMax and then trades the highest bit set in
# both maxima (and droppable from one of them) for all ones below it.
#
# and_max pairs yMax with the best maximal member of x, and vice versa,
# flipping the highest droppable bit of xMax that yMax lacks.

def _invert(x: Interval) -> Interval:
    """Map ``[a, b]`` to ``[~b, ~a]``."""
    return Interval(_not(x.hi), _not(x.lo))


def _and_max(x_lo: int, x_hi: int, y_lo: int, y_hi: int) -> int:
    """Exact maximum of ``xx & yy`` for xx in [x_lo, x_hi], yy in [y_lo, y_hi]."""
    if y_hi >= x_lo and x_hi >= y_lo:
        return min(x_hi, y_hi)

    # e.g. x = [7, 7], y = [12, 14] gives 6.
    x_flip = bit_fill_right(bit_fill_right(x_hi & ~x_lo) & x_hi & ~y_hi)
    x_result = y_hi & ((x_hi & ~x_flip) | (x_flip >> 1))

    y_flip = bit_fill_right(bit_fill_right(y_hi & ~y_lo) & y_hi & ~x_hi)
    y_result = x_hi & ((y_hi & ~y_flip) | (y_flip >> 1))

    return max(x_result, y_result)


def _or_max(x_lo: int, x_hi: int, y_lo: int, y_hi: int) -> int:
    """Exact maximum of ``xx | yy`` for xx in [x_lo, x_hi], yy in [y_lo, y_hi]."""
    if x_lo == 0 and y_lo == 0:
        available = x_hi & y_hi
    else:
        droppable = bit_fill_right((x_hi & ~x_lo) | (y_hi & ~y_lo))
        available = x_hi & y_hi & droppable
    return x_hi | y_hi | (bit_fill_right(available) >> 1)


def _and_both_non_neg(x: Interval, y: Interval) -> Interval:
    if x.hi is Inf.POS:
        return Interval(0, y.hi)
    if y.hi is Inf.POS:
        return Interval(0, x.hi)

    z_max = _and_max(x.lo, x.hi, y.lo, y.hi)
    # and_min(x, y) is ~or_max(~x, ~y).
    z_min = ~_or_max(~x.hi, ~x.lo, ~y.hi, ~y.lo)
    return Interval(z_min, z_max)


def _and_one_neg_one_non_neg(neg: Interval, non: Interval) -> Interval:
    if neg.lo is Inf.NEG:
        return Interval(0, non.hi)
    if non.hi is Inf.POS:
        mask = _bit_mask(neg.lo.bit_length(), non.lo.bit_length())
        biased = Interval(mask & neg.lo, mask & neg.hi)
        w = _and_both_non_neg(biased, Interval(non.lo, mask))
        return Interval(w.lo, Inf.POS)
    mask = _bit_mask(neg.lo.bit_length(), non.hi.bit_length())
    biased = Interval(mask & neg.lo, mask & neg.hi)
    return _and_both_non_neg(biased, non)


def _or_both_non_neg(x: Interval, y: Interval) -> Interval:
    z_max: Bound
    if not _is_inf(x.hi) and not _is_inf(y.hi):
        z_max = _or_max(x.lo, x.hi, y.lo, y.hi)
    else:
        # xx | yy >= max(xx, yy), and the smaller lower bound is attained
        # when it also lies in the other interval.
        z_max = Inf.POS
        if x.contains_int(y.lo):
            return Interval(y.lo, Inf.POS)
        if y.contains_int(x.lo):
            return Interval(x.lo, Inf.POS)

        # Disjoint, with exactly one infinite upper bound.  Make that y and
        # cap it at y.lo with all lower bits set.
        if x.hi is Inf.POS:
            x, y = y, x
        y = Interval(y.lo, bit_fill_right(y.lo))

    # or_min(x, y) is ~and_max(~x, ~y).
    z_min = ~_and_max(~x.hi, ~x.lo, ~y.hi, ~y.lo)
    return Interval(z_min, z_max)


def _or_one_neg_one_non_neg(neg: Interval, non: Interval) -> Interval:
    w = _and_one_neg_one_non_neg(_invert(non), _invert(neg))
    return _invert(w)
