"""
Row serialization for shell consumption.

Verbose output (the default) is one line per column:

    <row> <name> t <value>     value is simple text, printed as is
    <row> <name> e <value>     value is escaped, decode with printf '%b' or $'...'
    <row> <name> 0             NULL

which a shell reads with

    sqpipe db 'select * from t' |
    while read -r row col type data
    do case "$type" in
    t)  echo "row=$row col=$col data=$data";;
    e)  printf 'row=%s col=%s data=%b\\n' "$row" "$col" "$data";;
    0)  echo "row=$row col=$col NULL";;
    esac
    done
"""
import re
from typing import BinaryIO, Optional, Sequence, Tuple

from sqpipe.consts.OutputKind import OutputKind
from sqpipe.errors import OutputWriteError
from sqpipe.models.output_mode import OutputMode

_BACKSLASH = 0x5C
_QUOTE = 0x27

_UNSAFE_REGEX = re.compile(rb"[\x00-\x1f\x7f-\x9f]")
_NAME_QUOTE_REGEX = re.compile(rb"([ \t\n\v\f\r\\])")


def _escape_table(ansi: bool, extra: bytes = b"") -> Tuple[bytes, ...]:
    table = []
    for b in range(256):
        if ansi:
            octal = b < 0x21 or b >= 0x7F
        else:
            octal = b <= 0x20 or 0x7F <= b <= 0x9F
        if octal or b in extra:
            table.append(b"\\%03o" % b)
        elif b == _BACKSLASH:
            table.append(b"\\\\")
        elif ansi and b == _QUOTE:
            table.append(b"\\'")
        else:
            table.append(bytes((b,)))
    return tuple(table)


_DEFAULT_TABLE = _escape_table(ansi=False)
_ANSI_TABLE = _escape_table(ansi=True)


def is_simple(value: bytes) -> bool:
    """
    True if `value` can be printed literally.

    The shell strips whitespace around a field read with `read`, so a value
    with leading or trailing whitespace is never simple.
    """
    if not value:
        return True
    if value[0] <= 0x20 or value[-1] <= 0x20:
        return False
    return _UNSAFE_REGEX.search(value) is None


def escape_value(value: bytes, ansi: bool = False) -> bytes:
    """Octal-escape `value` the way verbose 'e' lines carry it."""
    table = _ANSI_TABLE if ansi else _DEFAULT_TABLE
    return b"".join(table[b] for b in value)


def quote_name(name: bytes) -> bytes:
    """Backslash-quote whitespace and backslashes in a column name."""
    return _NAME_QUOTE_REGEX.sub(rb"\\\1", name)


def _encode_text(text: Optional[str]) -> Optional[bytes]:
    if text is None:
        return None
    # an empty marker stands for a single NUL byte
    return text.encode("utf-8", "surrogateescape") or b"\0"


class RowEncoder:
    """Writes fetched rows to a binary stream in the configured OutputMode."""

    def __init__(self, mode: OutputMode, out: BinaryIO) -> None:
        self.mode = mode
        self.kind = mode.kind
        self.out = out
        self.separators = tuple(s.encode("utf-8", "surrogateescape") for s in mode.separators)
        self.terminator = b"\0" if mode.nul else b"\n"
        self.row_begin = _encode_text(mode.row_begin)
        self.row_end = _encode_text(mode.row_end)

        if self.kind is OutputKind.SEPARATED:
            # separator bytes never appear unescaped inside a field
            self.table = _escape_table(mode.ansi, b"".join(self.separators))
        else:
            self.table = _ANSI_TABLE if mode.ansi else _DEFAULT_TABLE

    def render_row(self, columns: Sequence[bytes], row: Sequence[Optional[bytes]], row_index: int) -> None:
        """
        Write one row.

        Args:
            columns: Column names as bytes
            row: Column values, None for NULL
            row_index: 1-based row number across the whole run

        Raises:
            OutputWriteError: If stdout cannot be written.
        """
        if self.kind is OutputKind.RAW:
            parts = self._render_raw(row, row_index)
        elif self.kind is OutputKind.SEPARATED:
            parts = self._render_separated(row)
        else:
            parts = self._render_verbose(columns, row, row_index)

        try:
            self.out.write(b"".join(parts))
            if self.mode.unbuffered:
                self.out.flush()
        except OSError as e:
            raise OutputWriteError(f"cannot write to stdout: {e.strerror or e}") from e

    def flush(self) -> None:
        try:
            self.out.flush()
        except OSError as e:
            raise OutputWriteError(f"cannot write to stdout: {e.strerror or e}") from e

    def _escape(self, value: bytes) -> bytes:
        table = self.table
        return b"".join(table[b] for b in value)

    def _render_raw(self, row, row_index):
        nul = self.mode.nul
        parts = []
        if row_index > 1 and not nul:
            parts.append(b"\n")
        if self.row_begin is not None:
            parts.append(self.row_begin)
        for i, value in enumerate(row):
            if i and not nul:
                parts.append(b"\n")
            if value is not None:
                parts.append(value)
            if nul:
                parts.append(b"\0")
        if self.row_end is not None:
            parts.append(self.row_end)
        return parts

    def _render_separated(self, row):
        seps = self.separators
        parts = []
        if self.row_begin is not None:
            parts.append(self.row_begin)
        for i, value in enumerate(row):
            if i:
                parts.append(seps[(i - 1) % len(seps)])
            if value is not None:
                parts.append(self._escape(value))
        if self.row_end is not None:
            parts.append(self.row_end)
        parts.append(self.terminator)
        return parts

    def _render_verbose(self, columns, row, row_index):
        prefix = b"%d " % row_index
        parts = []
        if self.row_begin is not None:
            parts.append(self.row_begin)
        for name, value in zip(columns, row):
            parts.append(prefix)
            parts.append(quote_name(name))
            if value is None:
                parts.append(b" 0")
            elif is_simple(value):
                parts.append(b" t ")
                parts.append(value)
            else:
                parts.append(b" e ")
                parts.append(self._escape(value))
            parts.append(b"\n")
        if self.row_end is not None:
            parts.append(self.row_end)
        return parts
