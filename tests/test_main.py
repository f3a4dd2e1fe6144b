# tests/test_main.py
"""
Tests for the puffs command-line entry-point.
"""

import io
import sys

import pytest

from puffs import __version__
from puffs.main import EXIT_ERROR, EXIT_INFRA, EXIT_OK, main
from tests.conftest import STRUCT_PUFFS, UNFORMATTED_STRUCT_PUFFS


@pytest.fixture
def stdin(monkeypatch):
    def _set(text) -> None:
        raw = text if isinstance(text, bytes) else text.encode("utf-8")
        monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(raw)))
    return _set


@pytest.fixture
def tree(tmp_path):
    """A directory with one formatted and one unformatted source file."""
    (tmp_path / "good.puffs").write_text(STRUCT_PUFFS)
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "bad.puffs").write_text(UNFORMATTED_STRUCT_PUFFS)
    (tmp_path / "notes.txt").write_text("not puffs\n")
    return tmp_path


class TestFmt:

    def test_stdin_to_stdout(self, stdin, capsys):
        stdin(UNFORMATTED_STRUCT_PUFFS)
        assert main(["fmt"]) == EXIT_OK
        assert capsys.readouterr().out == STRUCT_PUFFS

    def test_stdin_keeps_non_utf8_bytes(self, stdin, capsysbinary):
        src = b"// caf\xff\nuse \"a\"\n"
        stdin(src)
        assert main(["fmt"]) == EXIT_OK
        assert capsysbinary.readouterr().out == src

    def test_stdin_error(self, stdin, capsys):
        stdin("}\n")
        assert main(["fmt"]) == EXIT_ERROR
        assert "parse: unrecognized top level declaration" in capsys.readouterr().err

    def test_list(self, tree, capsys):
        assert main(["fmt", "-l", str(tree)]) == EXIT_OK
        out = capsys.readouterr().out.splitlines()
        assert out == [str(tree / "sub" / "bad.puffs")]

    def test_write(self, tree):
        assert main(["fmt", "-w", str(tree)]) == EXIT_OK
        assert (tree / "sub" / "bad.puffs").read_text() == STRUCT_PUFFS
        assert (tree / "notes.txt").read_text() == "not puffs\n"

    def test_single_file(self, tree, capsys):
        bad = tree / "sub" / "bad.puffs"
        assert main(["fmt", "-l", str(bad)]) == EXIT_OK
        assert capsys.readouterr().out.strip() == str(bad)

    def test_paths_need_flag(self, tree, capsys):
        assert main(["fmt", str(tree)]) == EXIT_ERROR
        assert "must use -l or -w if paths are given" in capsys.readouterr().err

    @pytest.mark.parametrize("flag", ["-l", "-w"])
    def test_flag_with_stdin(self, flag, capsys):
        assert main(["fmt", flag]) == EXIT_ERROR
        assert "with standard input" in capsys.readouterr().err

    def test_missing_path(self, tmp_path):
        assert main(["fmt", "-l", str(tmp_path / "nope")]) == EXIT_INFRA

    def test_parse_error_stops(self, tmp_path, capsys):
        (tmp_path / "broken.puffs").write_text("pri const x u32\n")
        assert main(["fmt", "-l", str(tmp_path)]) == EXIT_ERROR
        assert "has no value" in capsys.readouterr().err


class TestCheck:

    def test_ok(self, tree):
        assert main(["check", str(tree / "good.puffs")]) == EXIT_OK

    def test_reports_each_failure(self, tmp_path, capsys):
        a = tmp_path / "a.puffs"
        b = tmp_path / "b.puffs"
        a.write_text("foo\n")
        b.write_text("x @\n")
        assert main(["check", str(a), str(b)]) == EXIT_ERROR
        err = capsys.readouterr().err
        assert f"parse: unrecognized top level declaration at {a}:1" in err
        assert "token: unrecognized byte" in err

    def test_struct_cycle(self, tmp_path, capsys):
        src = tmp_path / "cycle.puffs"
        src.write_text("pri struct a(x b)\npri struct b(y ptr a)\n")
        assert main(["check", str(src)]) == EXIT_ERROR
        assert f"parse: cyclical struct definitions at {src}:1" in capsys.readouterr().err

    def test_unreadable(self, tmp_path):
        assert main(["check", str(tmp_path / "missing.puffs")]) == EXIT_INFRA


class TestDump:

    def test_dump_sexp(self, tmp_path, capsys):
        src = tmp_path / "c.puffs"
        src.write_text('pri const x u32 = 1\npub error "oops"\n')
        assert main(["dump-sexp", str(src)]) == EXIT_OK
        out = capsys.readouterr().out.splitlines()
        assert out == ["(const x u32 1)", '(error public "oops")']

    def test_tokens(self, tmp_path, capsys):
        src = tmp_path / "t.puffs"
        src.write_text("x = 1\n")
        assert main(["tokens", str(src)]) == EXIT_OK
        assert capsys.readouterr().out.splitlines() == [
            "1\tIDENT\tx",
            "1\tEQ\t=",
            "1\tNUM_LITERAL\t1",
            "1\tSEMICOLON\t;",
        ]

    def test_tokens_keep_non_utf8_bytes(self, tmp_path, capsysbinary):
        src = tmp_path / "u.puffs"
        src.write_bytes(b"use \"caf\xff\"\n")
        assert main(["tokens", str(src)]) == EXIT_OK
        assert capsysbinary.readouterr().out.splitlines() == [
            b"1\tUSE\tuse",
            b"1\tSTR_LITERAL\t\"caf\xff\"",
            b"1\tSEMICOLON\t;",
        ]


class TestBase38:

    def test_encode_pads(self, capsys):
        assert main(["base38", "encode", "gif"]) == EXIT_OK
        assert capsys.readouterr().out.strip() == "1017222"

    def test_decode(self, capsys):
        assert main(["base38", "decode", "1017222"]) == EXIT_OK
        assert capsys.readouterr().out.strip() == "'gif '"

    def test_decode_hex(self, capsys):
        assert main(["base38", "decode", "0x0"]) == EXIT_OK
        assert capsys.readouterr().out.strip() == "'    '"

    @pytest.mark.parametrize("args", [
        ["encode", "GIF"],
        ["encode", "toolong"],
        ["decode", "abc"],
        ["decode", "99999999"],
    ])
    def test_invalid(self, args, capsys):
        assert main(["base38", *args]) == EXIT_ERROR
        assert capsys.readouterr().err.startswith("puffs: ")


class TestCLI:

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--version"])
        assert exc.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_no_command(self, capsys):
        assert main([]) == EXIT_INFRA
        assert "usage" in capsys.readouterr().err
