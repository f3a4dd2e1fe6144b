# tests/test_interval.py
"""
Tests for puffs.interval: construction, predicates, lattice operations and
sound arithmetic over possibly-unbounded integer intervals.
"""

import random

import pytest

from puffs.interval import Inf, Interval, bit_fill_right

NEG = Inf.NEG
POS = Inf.POS


def _members(x: Interval):
    return range(x.lo, x.hi + 1)


def _random_interval(rng: random.Random) -> Interval:
    a = rng.randint(-12, 12)
    b = rng.randint(-12, 12)
    return Interval(min(a, b), max(a, b))


class TestConstruction:

    def test_default_is_unbounded(self):
        x = Interval()
        assert x.lo is NEG
        assert x.hi is POS
        assert x == Interval.unbounded()

    def test_of_with_none(self):
        assert Interval.of(3, None) == Interval(3, POS)
        assert Interval.of(None, 6) == Interval(NEG, 6)

    def test_point(self):
        assert Interval.point(7) == Interval(7, 7)

    def test_invalid_infinite_bounds(self):
        with pytest.raises(ValueError):
            Interval(POS, 3)
        with pytest.raises(ValueError):
            Interval(3, NEG)

    def test_non_int_bound(self):
        with pytest.raises(TypeError):
            Interval(1.5, 2)


class TestPresentation:

    def test_finite(self):
        assert str(Interval(3, 6)) == "[3, 6]"

    def test_infinite(self):
        assert str(Interval(NEG, 6)) == "(-∞, 6]"
        assert str(Interval(3, POS)) == "[3, +∞)"
        assert str(Interval()) == "(-∞, +∞)"

    def test_empty(self):
        assert str(Interval(5, 2)) == "<empty>"


class TestPredicates:

    def test_empty_representations_are_equal(self):
        assert Interval(5, 2) == Interval(1, -1)
        assert Interval(5, 2) == Interval.empty()
        assert hash(Interval(5, 2)) == hash(Interval.empty())
        assert Interval(5, 2) != Interval(2, 5)

    def test_infinite_bounds_only_equal_themselves(self):
        assert Interval(NEG, 3) != Interval(-100, 3)
        assert Interval(0, POS) == Interval.of(0, None)

    def test_contains_zero(self):
        assert Interval(-1, 1).contains_zero()
        assert Interval(NEG, 0).contains_zero()
        assert not Interval(1, POS).contains_zero()
        assert not Interval.empty().contains_zero()

    def test_contains_negative_positive(self):
        assert Interval(-3, -1).contains_negative()
        assert not Interval(-3, -1).contains_positive()
        assert Interval(NEG, POS).contains_negative()
        assert Interval(NEG, POS).contains_positive()
        assert not Interval(0, 0).contains_negative()
        assert not Interval(0, 0).contains_positive()
        assert not Interval(-1, -5).contains_negative()

    def test_contains_non_negative(self):
        assert Interval(0, 0).contains_non_negative()
        assert Interval(-3, POS).contains_non_negative()
        assert not Interval(NEG, -1).contains_non_negative()
        assert not Interval.empty().contains_non_negative()

    def test_contains_int(self):
        x = Interval(3, 6)
        assert 3 in x
        assert 6 in x
        assert 7 not in x
        assert 10 ** 100 in Interval(0, POS)

    def test_contains_interval(self):
        assert Interval(0, 10).contains_interval(Interval(2, 3))
        assert not Interval(0, 10).contains_interval(Interval(2, POS))
        assert Interval().contains_interval(Interval(NEG, 3))
        assert Interval(0, 1).contains_interval(Interval.empty())


class TestSplit:

    def test_straddling_zero(self):
        s = Interval(-3, 5).split()
        assert s.neg == Interval(-3, -1)
        assert s.pos == Interval(1, 5)
        assert s.has_neg and s.has_zero and s.has_pos

    def test_all_positive(self):
        s = Interval(2, 5).split()
        assert not s.has_neg
        assert not s.has_zero
        assert s.pos == Interval(2, 5)

    def test_zero_only(self):
        s = Interval(0, 0).split()
        assert not s.has_neg
        assert s.has_zero
        assert not s.has_pos

    def test_unbounded(self):
        s = Interval().split()
        assert s.neg == Interval(NEG, -1)
        assert s.pos == Interval(1, POS)

    def test_pieces_cover_every_member(self):
        rng = random.Random(38)
        for _ in range(200):
            x = _random_interval(rng)
            s = x.split()
            got = set()
            if s.has_neg:
                got |= set(_members(s.neg))
            if s.has_zero:
                got.add(0)
            if s.has_pos:
                got |= set(_members(s.pos))
            assert got == set(_members(x))

    def test_split2(self):
        s = Interval(-3, 5).split2()
        assert s.neg == Interval(-3, -1)
        assert s.non_neg == Interval(0, 5)
        assert s.has_neg and s.has_non_neg


class TestLattice:

    def test_unite(self):
        assert Interval(0, 2).unite(Interval(5, 7)) == Interval(0, 7)
        assert Interval(0, 2).unite(Interval(NEG, 1)) == Interval(NEG, 2)
        assert Interval.empty().unite(Interval(1, 2)) == Interval(1, 2)

    def test_intersect(self):
        assert Interval(0, 5).intersect(Interval(3, 9)) == Interval(3, 5)
        assert Interval(NEG, 5).intersect(Interval(3, POS)) == Interval(3, 5)
        assert Interval(0, 1).intersect(Interval(3, 9)).is_empty()


class TestArithmetic:

    def test_add(self):
        assert Interval(3, 6).add(Interval(10, 15)) == Interval(13, 21)

    def test_add_infinite(self):
        assert Interval(3, POS).add(Interval(NEG, 2)) == Interval()

    def test_sub(self):
        assert Interval(3, 6).sub(Interval(10, 15)) == Interval(-12, -4)
        assert Interval(0, POS).sub(Interval(1, 1)) == Interval(-1, POS)

    def test_mul_infinite(self):
        got = Interval(3, POS).mul(Interval(-4, -2))
        assert got == Interval(NEG, -6)

    def test_mul_zero_absorbs_infinity(self):
        assert Interval(0, 0).mul(Interval(3, POS)) == Interval(0, 0)
        assert Interval(3, POS).mul(Interval(0, 0)) == Interval(0, 0)

    def test_mul_mixed_signs(self):
        assert Interval(-2, 3).mul(Interval(-5, 4)) == Interval(-15, 12)

    def test_empty_operand(self):
        e = Interval.empty()
        assert Interval(1, 2).add(e).is_empty()
        assert e.mul(Interval(1, 2)).is_empty()
        assert Interval(1, 2).quo(e)[0].is_empty()

    def test_big_integers_are_exact(self):
        big = 10 ** 40
        assert Interval(big, big).mul(Interval(big, big)) == Interval.point(10 ** 80)


class TestQuo:

    def test_positive(self):
        assert Interval(10, 20).quo(Interval(2, 5)) == (Interval(2, 10), True)

    def test_truncates_towards_zero(self):
        assert Interval(-7, -7).quo(Interval(2, 2)) == (Interval(-3, -3), True)
        assert Interval(7, 7).quo(Interval(-2, -2)) == (Interval(-3, -3), True)

    def test_divisor_containing_zero(self):
        got, ok = Interval(1, 2).quo(Interval(-1, 1))
        assert not ok
        assert got == Interval()

    def test_unbounded_dividend(self):
        got, ok = Interval(0, POS).quo(Interval(2, 4))
        assert ok
        assert got == Interval(0, POS)


class TestShifts:

    def test_lsh(self):
        assert Interval(1, 3).lsh(Interval(0, 2)) == (Interval(1, 12), True)

    def test_lsh_negative_amount(self):
        got, ok = Interval(1, 3).lsh(Interval(-1, 2))
        assert not ok
        assert got == Interval()

    def test_lsh_huge_amount(self):
        got, ok = Interval(1, 1).lsh(Interval(200, 200))
        assert ok
        assert got == Interval.point(2 ** 200)

    def test_rsh_floors(self):
        assert Interval(-8, 8).rsh(Interval(1, 2)) == (Interval(-4, 4), True)
        assert Interval(-1, -1).rsh(Interval(5, 5)) == (Interval(-1, -1), True)

    def test_rsh_negative_amount(self):
        _, ok = Interval(1, 3).rsh(Interval(-2, 0))
        assert not ok

    def test_rsh_unbounded_amount(self):
        got, ok = Interval(5, 9).rsh(Interval(0, POS))
        assert ok
        assert got == Interval(0, 9)


class TestBitwise:

    def test_bit_fill_right(self):
        assert [bit_fill_right(i) for i in range(9)] == [0, 1, 3, 3, 7, 7, 7, 7, 15]

    def test_bit_fill_right_negative(self):
        with pytest.raises(ValueError):
            bit_fill_right(-1)

    def test_and_exact(self):
        assert Interval(7, 7).and_(Interval(12, 14)) == (Interval(4, 6), True)

    def test_and_unbounded(self):
        got, ok = Interval(0, POS).and_(Interval(0, 255))
        assert ok
        assert got == Interval(0, 255)

    def test_or_with_unbounded(self):
        got, ok = Interval(4, POS).or_(Interval(4, 6))
        assert ok
        assert got == Interval(4, POS)


class TestSoundness:
    """Every exact result of an operation must lie in the computed interval."""

    CASES = 300

    def _check(self, op, exact, *, skip=None):
        rng = random.Random(1)
        for _ in range(self.CASES):
            x = _random_interval(rng)
            y = _random_interval(rng)
            got = getattr(x, op)(y)
            if isinstance(got, tuple):
                got, ok = got
                if not ok:
                    continue
            for a in _members(x):
                for b in _members(y):
                    if skip is not None and skip(a, b):
                        continue
                    v = exact(a, b)
                    assert v in got, f"{x} {op} {y} = {got} misses {v}"

    def test_add(self):
        self._check("add", lambda a, b: a + b)

    def test_sub(self):
        self._check("sub", lambda a, b: a - b)

    def test_mul(self):
        self._check("mul", lambda a, b: a * b)

    def test_quo(self):
        def trunc(a, b):
            q = abs(a) // abs(b)
            return -q if (a < 0) != (b < 0) else q
        self._check("quo", trunc, skip=lambda a, b: b == 0)

    def test_lsh(self):
        self._check("lsh", lambda a, b: a << b, skip=lambda a, b: b < 0)

    def test_rsh(self):
        self._check("rsh", lambda a, b: a >> b, skip=lambda a, b: b < 0)

    def test_and(self):
        self._check("and_", lambda a, b: a & b)

    def test_or(self):
        self._check("or_", lambda a, b: a | b)
