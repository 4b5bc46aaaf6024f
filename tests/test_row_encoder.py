"""Tests for row serialization."""

import codecs
import errno
import io
import shutil
import subprocess

import pytest

from sqpipe.errors import OutputWriteError, UsageError
from sqpipe.models.output_mode import OutputMode
from sqpipe.service.encoder.row_encoder import RowEncoder, escape_value, is_simple, quote_name


def render(mode, rows, columns=None):
    out = io.BytesIO()
    encoder = RowEncoder(mode, out)
    for i, row in enumerate(rows, start=1):
        encoder.render_row(columns or [b"c%d" % n for n in range(len(row))], row, i)
    return out.getvalue()


class TestVerbose:

    def test_simple_values(self):
        assert render(OutputMode(), [(b"1", b"x y")], [b"a", b"b"]) == b"1 a t 1\n1 b t x y\n"

    def test_null_and_empty(self):
        assert render(OutputMode(), [(None, b"")], [b"n", b"e"]) == b"1 n 0\n1 e t \n"

    def test_row_numbers(self):
        out = render(OutputMode(), [(b"a",), (b"b",)], [b"v"])
        assert out == b"1 v t a\n2 v t b\n"

    def test_leading_whitespace_escaped(self):
        assert render(OutputMode(), [(b" lead",)], [b"v"]) == b"1 v e \\040lead\n"

    def test_control_and_c1_bytes_escaped(self):
        assert render(OutputMode(), [(b"tab\there",)], [b"v"]) == b"1 v e tab\\011here\n"
        assert render(OutputMode(), [(b"x\x85",)], [b"v"]) == b"1 v e x\\205\n"

    def test_backslash_doubled_only_when_escaped(self):
        assert render(OutputMode(), [(b"a\\b",)], [b"v"]) == b"1 v t a\\b\n"
        assert render(OutputMode(), [(b"a\\b\n",)], [b"v"]) == b"1 v e a\\\\b\\012\n"

    def test_utf8_is_simple(self):
        assert render(OutputMode(), [("café".encode(),)], [b"v"]) == "1 v t café\n".encode()

    def test_column_name_quoting(self):
        assert render(OutputMode(), [(b"1",)], [b"my col"]) == b"1 my\\ col t 1\n"
        assert quote_name(b"a\\b\tc") == b"a\\\\b\\\tc"

    def test_ansi_escaping(self):
        mode = OutputMode(ansi=True)
        assert render(mode, [(b"it's",)], [b"v"]) == b"1 v t it's\n"
        assert render(mode, [(b"it's\n",)], [b"v"]) == b"1 v e it\\'s\\012\n"
        assert render(mode, [("é ".encode(),)], [b"v"]) == b"1 v e \\303\\251\\040\n"

    def test_begin_and_end_markers(self):
        mode = OutputMode(row_begin="BEGIN\n", row_end="")
        assert render(mode, [(b"1",)], [b"a"]) == b"BEGIN\n1 a t 1\n\0"


class TestSeparated:

    def test_single_separator(self):
        assert render(OutputMode(separators=(",",)), [(b"1", b"2", b"3")]) == b"1,2,3\n"

    def test_separators_cycle(self):
        mode = OutputMode(separators=(",", ";"))
        assert render(mode, [(b"a", b"b", b"c", b"d")]) == b"a,b;c,d\n"

    def test_null_is_empty(self):
        assert render(OutputMode(separators=(",",)), [(b"1", None, b"3")]) == b"1,,3\n"

    def test_values_always_escaped(self):
        mode = OutputMode(separators=(",",))
        assert render(mode, [(b"x y", b"a,b")]) == b"x\\040y,a\\054b\n"

    def test_nul_terminator(self):
        mode = OutputMode(separators=("\t",), nul=True)
        assert render(mode, [(b"1", b"2"), (b"3", b"4")]) == b"1\t2\x003\t4\x00"

    def test_begin_and_end_markers(self):
        mode = OutputMode(separators=(",",), row_begin="[", row_end="]")
        assert render(mode, [(b"1", b"2")]) == b"[1,2]\n"


class TestRaw:

    def test_newline_between_values(self):
        mode = OutputMode(raw=True)
        assert render(mode, [(b"a", b"b"), (b"c", None)]) == b"a\nb\nc\n"

    def test_values_not_escaped(self):
        assert render(OutputMode(raw=True), [(b" x\ty ",)]) == b" x\ty "

    def test_nul_terminated(self):
        mode = OutputMode(nul=True)
        assert render(mode, [(b"a", b"b"), (b"c", None)]) == b"a\0b\0c\0\0"


class TestStream:

    def test_unbuffered_flushes_every_row(self):
        class Counting(io.BytesIO):
            flushes = 0

            def flush(self):
                self.flushes += 1
                super().flush()

        out = Counting()
        encoder = RowEncoder(OutputMode(unbuffered=True), out)
        encoder.render_row([b"a"], (b"1",), 1)
        encoder.render_row([b"a"], (b"2",), 2)
        assert out.flushes == 2

    def test_write_failure(self):
        class Broken(io.BytesIO):
            def write(self, data):
                raise OSError(errno.EPIPE, "Broken pipe")

        encoder = RowEncoder(OutputMode(), Broken())
        with pytest.raises(OutputWriteError, match="Broken pipe"):
            encoder.render_row([b"a"], (b"1",), 1)


class TestOutputMode:

    def test_kinds(self):
        assert OutputMode().kind.name == "VERBOSE"
        assert OutputMode(nul=True).kind.name == "RAW"
        assert OutputMode(separators=(",",), nul=True).kind.name == "SEPARATED"

    @pytest.mark.parametrize("mode", [
        OutputMode(raw=True, separators=(",",)),
        OutputMode(raw=True, ansi=True),
        OutputMode(nul=True, ansi=True),
    ])
    def test_conflicts(self, mode):
        with pytest.raises(UsageError):
            mode.validate()

    def test_ansi_with_separators_allowed(self):
        mode = OutputMode(ansi=True, separators=(",",))
        assert mode.validate() is mode


def test_is_simple():
    assert is_simple(b"")
    assert is_simple(b"x y")
    assert not is_simple(b"x ")
    assert not is_simple(b"\x00")
    assert not is_simple(b"a\x7fb")


@pytest.mark.parametrize("value", [b" spaced out\n", b"back\\slash\x00nul", bytes(range(256))])
def test_escape_decodes_back(value):
    assert codecs.escape_decode(escape_value(value))[0] == value
    assert codecs.escape_decode(escape_value(value, ansi=True))[0] == value


@pytest.mark.skipif(shutil.which("bash") is None, reason="needs bash")
def test_printf_decodes_high_bytes():
    value = b"a" + bytes(range(0x7F, 0x100)) + b"z"
    result = subprocess.run(
        ["bash", "-c", 'printf "%b" "$1"', "bash", escape_value(value)],
        stdout=subprocess.PIPE,
        check=True,
    )
    assert result.stdout == value
