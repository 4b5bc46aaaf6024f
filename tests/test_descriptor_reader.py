"""Tests for the descriptor stream reader."""

import os
from types import SimpleNamespace

import pytest

from sqpipe.errors import BufferLimitError, StreamReadError
from sqpipe.models.stream_spec import DescriptorStreamSpec
from sqpipe.service.reader import descriptor_reader
from sqpipe.service.reader.descriptor_reader import DescriptorReader, FieldRead


def spec(name):
    return DescriptorStreamSpec.parse(name)


def read_all(reader, fd, name):
    """Read fields until the stream reports exhaustion; returns the data list."""
    s = spec(name)
    fields = []
    while True:
        result = reader.read_field(fd, s)
        if result.exhausted:
            return fields
        fields.append(result.data)


class TestTerminators:

    def test_byte_terminator(self, make_fd):
        fd = make_fd(b"a\nb\n")
        reader = DescriptorReader()
        s = spec(":fd0__10")
        assert reader.read_field(fd, s) == FieldRead(b"a", False, True)
        assert reader.read_field(fd, s) == FieldRead(b"b", False, True)
        assert reader.read_field(fd, s) == FieldRead(b"", True, False)

    def test_last_field_without_terminator(self, make_fd):
        fd = make_fd(b"a\nb")
        reader = DescriptorReader()
        s = spec(":fd0__10")
        assert reader.read_field(fd, s).data == b"a"
        assert reader.read_field(fd, s) == FieldRead(b"b", False, False)
        assert reader.read_field(fd, s).exhausted

    def test_empty_fields(self, make_fd):
        fd = make_fd(b"\n\nx")
        assert read_all(DescriptorReader(), fd, ":fd0__10") == [b"", b"", b"x"]

    def test_nul_terminator(self, make_fd):
        fd = make_fd(b"one\0two words\0")
        assert read_all(DescriptorReader(), fd, ":fd0__0") == [b"one", b"two words"]

    def test_whitespace_terminator(self, make_fd):
        fd = make_fd(b"foo bar\tbaz")
        assert read_all(DescriptorReader(), fd, ":fd0__s") == [b"foo", b"bar", b"baz"]

    def test_trim(self, make_fd):
        fd = make_fd(b" a , b ")
        assert read_all(DescriptorReader(), fd, ":fd0_t_44") == [b"a", b"b"]


class TestLengths:

    def test_whole_stream(self, make_fd):
        fd = make_fd(b"line one\nline two\n")
        reader = DescriptorReader()
        assert reader.read_field(fd, spec(":fd0")) == FieldRead(b"line one\nline two\n", False, False)
        assert reader.read_field(fd, spec(":fd0")) == FieldRead(b"", True, False)

    def test_max_bytes(self, make_fd):
        fd = make_fd(b"abcdefg")
        assert read_all(DescriptorReader(), fd, ":fd0_3") == [b"abc", b"def", b"g"]

    def test_max_bytes_exact_multiple(self, make_fd):
        fd = make_fd(b"abcdef")
        reader = DescriptorReader()
        s = spec(":fd0_3")
        assert reader.read_field(fd, s).data == b"abc"
        assert reader.read_field(fd, s).data == b"def"
        last = reader.read_field(fd, s)
        assert last.exhausted
        assert not last.pending

    def test_max_before_terminator(self, make_fd):
        fd = make_fd(b"ab,cdefgh")
        assert read_all(DescriptorReader(), fd, ":fd0_4_44") == [b"ab", b"cdef", b"gh"]

    def test_empty_stream_is_exhausted(self, make_fd):
        fd = make_fd(b"")
        assert DescriptorReader().read_field(fd, spec(":fd0__10")) == FieldRead(b"", True, False)


class TestBuffers:

    def test_interleaved_descriptors(self, make_fd):
        fd_a = make_fd(b"1\n2\n")
        fd_b = make_fd(b"x,y,")
        reader = DescriptorReader()
        lines, commas = spec(":fd0__10"), spec(":fd0__44")
        assert reader.read_field(fd_a, lines).data == b"1"
        assert reader.read_field(fd_b, commas).data == b"x"
        assert reader.read_field(fd_a, lines).data == b"2"
        assert reader.read_field(fd_b, commas).data == b"y"
        assert reader.buffer(fd_a) is not reader.buffer(fd_b)

    def test_buffer_grows_for_long_field(self, make_fd):
        data = b"z" * 20000
        fd = make_fd(data, use_file=True)
        reader = DescriptorReader()
        assert reader.read_field(fd, spec(":fd0")).data == data
        assert reader.buffer(fd).max >= 20000

    def test_compaction_reuses_buffer(self, make_fd):
        fd = make_fd(b"x" * 8000 + b"\n" + b"y" * 8000, use_file=True)
        reader = DescriptorReader()
        s = spec(":fd0__10")
        assert reader.read_field(fd, s).data == b"x" * 8000
        assert reader.read_field(fd, s).data == b"y" * 8000
        assert reader.buffer(fd).max == descriptor_reader.BLOCK_SIZE

    def test_window_invariant(self, make_fd):
        fd = make_fd(b"a,bb,ccc,")
        reader = DescriptorReader()
        s = spec(":fd0__44")
        for _ in range(3):
            reader.read_field(fd, s)
            buf = reader.buffer(fd)
            assert 0 <= buf.pos <= buf.fill <= buf.max

    def test_buffer_limit(self, make_fd, monkeypatch):
        monkeypatch.setattr(descriptor_reader, "sys", SimpleNamespace(maxsize=10000))
        fd = make_fd(b"q" * 9000)
        with pytest.raises(BufferLimitError):
            DescriptorReader().read_field(fd, spec(":fd0"))


class TestErrors:

    def test_closed_descriptor(self):
        r, w = os.pipe()
        os.close(r)
        os.close(w)
        with pytest.raises(StreamReadError, match=f"read error from fd {r}"):
            DescriptorReader().read_field(r, spec(":fd0"))

    def test_negative_descriptor(self):
        with pytest.raises(StreamReadError):
            DescriptorReader().buffer(-1)
