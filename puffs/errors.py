# puffs/errors.py
"""
Error types for the puffs compiler front end.

Hierarchy
─────────
┌──────────────────────────────────────────────────────────────┐
│  PuffsError (base)                                           │
│  ├── LexError      - malformed tokens, bad bytes, limits     │
│  ├── ParseError    - grammar violations and ordering rules   │
│  └── RenderError   - unbalanced or too deeply nested braces  │
└──────────────────────────────────────────────────────────────┘

Every error renders as ``<phase>: <message> at <file>:<line>`` so that
diagnostics from each stage of the pipeline read the same way on the
command line.  There is no recovery: the first error aborts the file.

Interval arithmetic failures (shift by a negative amount, division by an
interval containing zero) are *not* exceptions.  Those operations return
an ``(Interval, ok)`` pair and the caller decides how to report them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional


# ═══════════════════════════════════════════════════════════════════════
#  Source locations
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class SourceLoc:
    """A filename and 1-based line number."""

    file: str = "<unknown>"
    line: int = 0

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"


#: Sentinel for nodes synthesised by the parser (no source position).
NO_LOC = SourceLoc()


# ═══════════════════════════════════════════════════════════════════════
#  Exceptions
# ═══════════════════════════════════════════════════════════════════════

class PuffsError(Exception):
    """Base exception for all puffs front-end errors."""

    phase: ClassVar[str] = "puffs"

    def __init__(self, message: str, loc: Optional[SourceLoc] = None):
        self.message = message
        self.loc = loc
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.loc is not None:
            return f"{self.phase}: {self.message} at {self.loc}"
        return f"{self.phase}: {self.message}"


class LexError(PuffsError):
    """Raised by the tokenizer on malformed input bytes."""

    phase = "token"


class ParseError(PuffsError):
    """Raised by the parser on the first grammar violation."""

    phase = "parse"

    @classmethod
    def expected(cls, what: str, got: str, loc: SourceLoc) -> ParseError:
        """Build the canonical ``expected X, got "Y"`` error."""
        return cls(f'expected {what}, got "{got}"', loc)


class RenderError(PuffsError):
    """Raised by the renderer on unbalanced braces."""

    phase = "render"
