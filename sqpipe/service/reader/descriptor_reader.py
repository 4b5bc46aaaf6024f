"""
Delimiter-aware reader for descriptor streams.

Each descriptor number owns one growable buffer for the whole run. A field
is cut from the unconsumed window `[pos, fill)`; bytes before `pos` have
been delivered already and are never returned again.
"""
import io
import os
import re
import select
import sys
from typing import List, NamedTuple, Optional

from sqpipe.consts.TerminatorKind import TerminatorKind
from sqpipe.errors import BufferLimitError, StreamReadError
from sqpipe.models.stream_spec import DescriptorStreamSpec
from sqpipe.util.log_config import setup_logger

logger = setup_logger(__name__)

BLOCK_SIZE = io.DEFAULT_BUFFER_SIZE

# isspace() in the C locale
WHITESPACE = b" \t\n\v\f\r"
_WHITESPACE_REGEX = re.compile(rb"[ \t\n\v\f\r]")


class FieldRead(NamedTuple):
    data: bytes
    # EOF reached with no bytes and no terminator for this field
    exhausted: bool
    # more data may follow on the descriptor
    pending: bool


class DescriptorBuffer:
    """Unconsumed-data window over a growable allocation: 0 <= pos <= fill <= max."""

    def __init__(self, fd: int) -> None:
        self.fd = fd
        self.data = bytearray()
        self.pos = 0
        self.fill = 0
        self.inc = 0
        self.eof = False

    @property
    def max(self) -> int:
        return len(self.data)

    @property
    def available(self) -> int:
        return self.fill - self.pos

    def compact(self) -> None:
        """Move the unconsumed window to offset 0."""
        if self.pos == 0:
            return
        n = self.fill - self.pos
        self.data[0:n] = self.data[self.pos:self.fill]
        self.pos = 0
        self.fill = n

    def grow(self) -> None:
        self.inc += BLOCK_SIZE
        if self.max + self.inc > sys.maxsize:
            raise BufferLimitError(f"internal counter overrun reading fd {self.fd}")
        try:
            self.data.extend(bytes(self.inc))
        except MemoryError as e:
            raise BufferLimitError(f"out of memory reading fd {self.fd}") from e
        logger.debug(f"fd {self.fd}: buffer grown to {self.max} bytes")

    def take(self, length: int, skip: int = 0) -> bytes:
        """Consume `length` bytes as the field plus `skip` terminator bytes."""
        field = bytes(self.data[self.pos:self.pos + length])
        self.pos += length + skip
        if self.pos == self.fill:
            self.pos = self.fill = 0
        return field


class DescriptorReader:
    """Reads delimited fields from file descriptors, one buffer per descriptor."""

    def __init__(self) -> None:
        self._buffers: List[Optional[DescriptorBuffer]] = []

    def buffer(self, fd: int) -> DescriptorBuffer:
        if fd < 0:
            raise StreamReadError(f"invalid file descriptor {fd}")
        if fd >= len(self._buffers):
            self._buffers.extend([None] * (fd + 1 - len(self._buffers)))
        buf = self._buffers[fd]
        if buf is None:
            buf = self._buffers[fd] = DescriptorBuffer(fd)
        return buf

    def read_field(self, fd: int, spec: DescriptorStreamSpec) -> FieldRead:
        """
        Read the next field from `fd` according to `spec`.

        Returns:
            FieldRead with the field bytes (trimmed if requested), whether
            the stream was already exhausted, and whether data may follow.
        """
        buf = self.buffer(fd)
        scanned = 0

        while True:
            avail = buf.available
            limit = min(avail, spec.max) if spec.max else avail

            if spec.terminator is not TerminatorKind.NONE and scanned < limit:
                hit = self._find_terminator(buf, spec, buf.pos + scanned, buf.pos + limit)
                if hit >= 0:
                    return self._result(buf, spec, buf.take(hit - buf.pos, 1), exhausted=False)
                scanned = limit

            if spec.max and avail >= spec.max:
                return self._result(buf, spec, buf.take(spec.max), exhausted=False)

            if buf.eof:
                return self._result(buf, spec, buf.take(avail), exhausted=avail == 0)

            self._fill(buf)

    @staticmethod
    def _find_terminator(buf: DescriptorBuffer, spec: DescriptorStreamSpec, start: int, end: int) -> int:
        if spec.terminator is TerminatorKind.WHITESPACE:
            m = _WHITESPACE_REGEX.search(buf.data, start, end)
            return m.start() if m else -1
        return buf.data.find(spec.terminator_byte, start, end)

    @staticmethod
    def _result(buf: DescriptorBuffer, spec: DescriptorStreamSpec, field: bytes, exhausted: bool) -> FieldRead:
        if spec.trim:
            field = field.strip(WHITESPACE)
        return FieldRead(field, exhausted, pending=not (buf.eof and buf.available == 0))

    def _fill(self, buf: DescriptorBuffer) -> None:
        """Read more bytes into `buf`, making room first if it is full."""
        if buf.fill >= buf.max:
            if buf.pos > 0:
                buf.compact()
            else:
                buf.grow()

        while True:
            try:
                chunk = os.read(buf.fd, buf.max - buf.fill)
            except InterruptedError:
                continue
            except BlockingIOError:
                select.select([buf.fd], [], [])
                continue
            except OSError as e:
                raise StreamReadError(f"read error from fd {buf.fd}: {e.strerror or e}") from e
            break

        if not chunk:
            buf.eof = True
            logger.debug(f"fd {buf.fd}: EOF")
            return

        buf.data[buf.fill:buf.fill + len(chunk)] = chunk
        buf.fill += len(chunk)
