# tests/conftest.py
"""
Shared sources and helpers for the puffs test-suite.
"""

from typing import List, Tuple

import pytest

from puffs import ast as A
from puffs.parser import ParseOptions, parse, parse_expr
from puffs.render import render_to_string
from puffs.token import InternTable, Key, Token, tokenize

FILENAME = "test.puffs"


# ═══════════════════════════════════════════════════════════════════════
#  Sources
# ═══════════════════════════════════════════════════════════════════════

DECODER_PUFFS = '''\
packageid "gif "

use "std/lzw"

pub error "bad header"
pri suspension "short read"

pub const max_width u32 = 0x1000

// The decoder state.
pub struct decoder?(
	width  u32[..max_width],
	height u32,
	buf    [256] u8,
	src    ptr reader1,
)

pub func decoder.decode?(dst ptr writer1, src ptr reader1)(n u32), pre this.width > 0, post n >= 0 {
	var i u32
	var c u8 = 0
	while:outer i < 10, inv i <= 10 {
		c = this.src.read_u8?()
		if c == 0 {
			break:outer
		} else if c == 1 {
			continue
		} else {
			i += 1
		}
	}
	assert i <= 10 via "a <= b: a <= c; c <= b"(c:10)
	return error "bad header"
}
'''

STRUCT_PUFFS = '''\
pub struct foo(
	a   u32,
	bcd u8,
)
'''

UNFORMATTED_STRUCT_PUFFS = '''\
pub struct foo(
a u32,
   bcd    u8,
)
'''

FUNC_PUFFS = '''\
pri func foo()() {
	var x   u32
	var abc u8
	x = 1
}
'''


# ═══════════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════════

def lex(src: str) -> Tuple[InternTable, List[Token], List[str]]:
    tm = InternTable()
    tokens, comments = tokenize(tm, FILENAME, src)
    return tm, tokens, comments


def keys(src: str) -> List[Key]:
    _, tokens, _ = lex(src)
    return [t.key for t in tokens]


def parse_source(src: str, opts: ParseOptions = None) -> A.File:
    tm, tokens, _ = lex(src)
    return parse(tm, FILENAME, tokens, opts)


def expr(src: str) -> A.Expr:
    tm, tokens, _ = lex(src)
    return parse_expr(tm, FILENAME, tokens)


def fmt(src: str) -> str:
    tm, tokens, comments = lex(src)
    return render_to_string(tm, tokens, comments)


@pytest.fixture
def tm() -> InternTable:
    return InternTable()
