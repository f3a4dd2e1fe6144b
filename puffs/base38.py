"""
puffs/base38.py
===============

Base-38 encoding of four-character package identifiers.

Each character must be ``' '``, ``'0'``-``'9'``, ``'?'`` or ``'a'``-``'z'``,
which take the digit values 0 through 37 in that order.  The string is read
as a big-endian base-38 number, so ``"    "`` encodes to zero and
``"zzzz"`` encodes to :data:`MAX`.
"""

from __future__ import annotations

from typing import Dict, Final, Tuple

#: The largest encoded value, 38**4 - 1.
MAX: Final[int] = 38 ** 4 - 1

_ALPHABET: Final[str] = " 0123456789?abcdefghijklmnopqrstuvwxyz"
_DIGITS: Final[Dict[str, int]] = {c: i for i, c in enumerate(_ALPHABET)}


def encode(s: str) -> Tuple[int, bool]:
    """Encode a 4-character string as an int in ``[0, MAX]``.

    Returns ``(0, False)`` if *s* has the wrong length or any character
    outside the alphabet.
    """
    if len(s) != 4:
        return 0, False
    u = 0
    for c in s:
        d = _DIGITS.get(c)
        if d is None:
            return 0, False
        u = u * 38 + d
    return u, True


def decode(u: int) -> Tuple[str, bool]:
    """Inverse of :func:`encode`.  Returns ``("", False)`` if out of range."""
    if not 0 <= u <= MAX:
        return "", False
    chars = []
    for _ in range(4):
        u, d = divmod(u, 38)
        chars.append(_ALPHABET[d])
    return "".join(reversed(chars)), True
