# tests/test_token.py
"""
Tests for puffs.token: keys, the intern table, string literal decoding and
the tokenizer.
"""

import pytest

from puffs.errors import LexError
from puffs.token import (
    BUILTIN_IDENTS, Form, InternTable, Key, Operator, make_token, spellings,
    tokenize, unescape,
)
from tests.conftest import FILENAME, keys, lex


class TestKeys:

    def test_operator_forms(self):
        assert Key.PLUS.unary_form() is Operator.UNARY_PLUS
        assert Key.PLUS.binary_form() is Operator.BINARY_PLUS
        assert Key.PLUS.associative_form() is Operator.ASSOCIATIVE_PLUS
        assert Key.MINUS.associative_form() is None
        assert Key.STAR.unary_form() is None

    def test_assign_binary_form(self):
        assert Key.PLUS_EQ.is_assign()
        assert Key.PLUS_EQ.binary_form() is Operator.BINARY_PLUS
        assert Key.EQ.is_assign()
        assert Key.EQ.binary_form() is None
        assert not Key.EQ_EQ.is_assign()

    def test_operator_metadata(self):
        assert Operator.BINARY_AS.form is Form.BINARY
        assert Operator.BINARY_AS.spelling == "as"
        assert Operator.UNARY_NOT.form is Form.UNARY

    def test_spacing(self):
        assert Key.COMMA.is_tight_left()
        assert not Key.COMMA.is_tight_right()
        assert Key.DOT.is_tight_left() and Key.DOT.is_tight_right()
        assert Key.OPEN_PAREN.is_tight_right()
        assert not Key.OPEN_PAREN.is_tight_left()

    def test_implicit_semicolon(self):
        for k in (Key.IDENT, Key.NUM_LITERAL, Key.STR_LITERAL, Key.TRUE,
                  Key.CLOSE_PAREN, Key.CLOSE_CURLY, Key.RETURN, Key.BREAK):
            assert k.is_implicit_semicolon(), k
        for k in (Key.OPEN_CURLY, Key.COMMA, Key.PLUS, Key.FUNC):
            assert not k.is_implicit_semicolon(), k

    def test_spelling(self):
        assert Key.SHIFT_L_EQ.spelling == "<<="
        assert Key.IDENT.spelling == ""


class TestInternTable:

    def test_same_spelling_same_handle(self, tm):
        a = tm.insert("foo")
        assert tm.insert("foo") == a
        assert tm.by_name("foo") == a
        assert tm.by_id(a) == "foo"

    def test_empty_and_missing(self, tm):
        assert tm.insert("") == 0
        assert tm.by_name("never_seen") == 0
        assert tm.by_id(0) == ""
        assert tm.by_id(10 ** 9) == ""
        assert tm.key(10 ** 9) is Key.INVALID

    def test_keywords_are_pre_interned(self, tm):
        h = tm.by_name("func")
        assert h != 0
        assert tm.key(h) is Key.FUNC
        assert tm.is_builtin(h)
        assert not tm.is_builtin_ident(h)

    def test_builtin_idents(self, tm):
        for name in BUILTIN_IDENTS:
            h = tm.by_name(name)
            assert tm.is_builtin_ident(h), name
        assert not tm.is_builtin_ident(tm.insert("decoder"))

    def test_handles_agree_across_tables(self):
        a, b = InternTable(), InternTable()
        assert a.by_name("while") == b.by_name("while")
        assert a.by_name("u32") == b.by_name("u32")

    def test_classification(self, tm):
        assert make_token(tm, '"x"', 1).key is Key.STR_LITERAL
        assert make_token(tm, "'x'", 1).key is Key.STR_LITERAL
        assert make_token(tm, "0x10", 1).key is Key.NUM_LITERAL
        assert make_token(tm, "foo", 1).key is Key.IDENT
        assert make_token(tm, "+=", 3) == make_token(tm, "+=", 3)

    def test_len_grows(self, tm):
        n = len(tm)
        tm.insert("brand_new")
        assert len(tm) == n + 1


class TestUnescape:

    def test_double_quoted_verbatim(self):
        assert unescape('"abc"') == "abc"

    def test_single_quoted_escapes(self):
        assert unescape(r"'\n'") == "\n"
        assert unescape(r"'\x41\x42'be") == "AB"
        assert unescape(r"'\u00e9'") == "é"
        assert unescape(r"'\''") == "'"

    def test_endian_suffix(self):
        assert unescape("'ab'le") == "ab"

    @pytest.mark.parametrize("s", ["abc", "'", "'abc", r"'\q'", r"'\x4'", r"'\uD800'"])
    def test_malformed(self, s):
        assert unescape(s) is None


class TestTokenize:

    def test_simple_statement(self):
        assert keys("x = y + 1\n") == [
            Key.IDENT, Key.EQ, Key.IDENT, Key.PLUS, Key.NUM_LITERAL, Key.SEMICOLON,
        ]

    def test_accepts_bytes(self, tm):
        tokens, _ = tokenize(tm, FILENAME, b"return\n")
        assert [t.key for t in tokens] == [Key.RETURN, Key.SEMICOLON]

    def test_no_semicolon_after_open(self):
        assert keys("f(\nx)\n") == [
            Key.IDENT, Key.OPEN_PAREN, Key.IDENT, Key.CLOSE_PAREN, Key.SEMICOLON,
        ]

    def test_no_semicolon_at_eof(self):
        assert keys("x") == [Key.IDENT]

    def test_explicit_semicolon(self):
        assert keys("x;\n") == [Key.IDENT, Key.SEMICOLON]

    def test_longest_match(self):
        assert keys("a &^= b <<= c ~+ d .. e != f\n") == [
            Key.IDENT, Key.AMP_HAT_EQ, Key.IDENT, Key.SHIFT_L_EQ, Key.IDENT,
            Key.TILDE_PLUS, Key.IDENT, Key.DOT_DOT, Key.IDENT, Key.NOT_EQ,
            Key.IDENT, Key.SEMICOLON,
        ]

    def test_keywords(self):
        assert keys("pub func pri struct while:x\n") == [
            Key.PUB, Key.FUNC, Key.PRI, Key.STRUCT, Key.WHILE, Key.COLON,
            Key.IDENT, Key.SEMICOLON,
        ]

    def test_line_numbers(self):
        _, tokens, _ = lex("a\n\nb\n")
        assert [t.line for t in tokens] == [1, 1, 3, 3]

    def test_comments_by_line(self):
        tm, tokens, comments = lex("x\n// hi\ny  // trailing\n")
        assert comments == ["", "", "// hi", "// trailing"]
        assert spellings(tm, tokens) == ["x", ";", "y", ";"]

    def test_numbers(self):
        tm, tokens, _ = lex("0 12 1_000 0x1F 0XaB_cd\n")
        assert spellings(tm, tokens)[:-1] == ["0", "12", "1_000", "0x1F", "0XaB_cd"]
        assert all(t.key is Key.NUM_LITERAL for t in tokens[:-1])

    def test_strings(self):
        tm, tokens, _ = lex("\"a b\" 'c' 'de'be '\\''\n")
        assert spellings(tm, tokens)[:-1] == ['"a b"', "'c'", "'de'be", "'\\''"]

    def test_identifiers_share_handles(self):
        _, tokens, _ = lex("foo bar foo\n")
        assert tokens[0].id == tokens[2].id
        assert tokens[0].id != tokens[1].id


class TestTokenizeErrors:

    @pytest.mark.parametrize("src, message", [
        ('"a\\b"\n', 'backslash in "-string'),
        ('"abc\n', 'expected final " in string'),
        ("'abc", "expected final ' in string"),
        ('"a\tb"\n', "control character in string"),
        ("'ab'\n", "multi-byte '-string needs be or le suffix"),
        ("'\\q'\n", "invalid '-string"),
        ("0123\n", "legacy octal syntax"),
        ("1__2\n", "invalid numeric literal"),
        ("12_\n", "invalid numeric literal"),
        ("0x\n", "invalid numeric literal"),
        ("x @ y\n", "unrecognized byte"),
        ("x ~ y\n", "unrecognized byte"),
        ("é\n", "unrecognized non-ASCII byte"),
    ])
    def test_error(self, src, message):
        with pytest.raises(LexError) as exc:
            lex(src)
        assert message in str(exc.value)

    def test_error_format(self):
        with pytest.raises(LexError) as exc:
            lex("x\ny\n@\n")
        assert str(exc.value) == "token: unrecognized byte '\\x40' ('@') at test.puffs:3"
        assert exc.value.loc.line == 3

    def test_string_too_long(self):
        with pytest.raises(LexError, match="string too long"):
            lex('"' + "a" * 1100 + '"\n')

    def test_identifier_too_long(self):
        with pytest.raises(LexError, match="identifier too long"):
            lex("a" * 1100 + "\n")
