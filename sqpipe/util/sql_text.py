"""
Script scanning: split a SQL script into statements and locate bind markers.

This is a tokenizer, not a parser. It knows just enough of SQLite's
lexical rules to

  - skip quoted strings, quoted identifiers and comments,
  - find the ';' that ends a statement (SQLite decides whether the
    statement is complete, so trigger bodies stay intact),
  - find bind markers and assign them the ordinal SQLite would:
    '?' takes the next free number, '?NNN' takes NNN, and a named marker
    reuses the number of an earlier marker with the same name.
"""
import re
import sqlite3
from typing import Iterator, List, Optional, Tuple

from sqpipe.errors import MalformedMarkerError
from sqpipe.models.bind_marker import BindMarker
from sqpipe.models.statement import Placeholder, Statement

# SQLITE_MAX_VARIABLE_NUMBER default
MAX_VARIABLE_NUMBER = 32766

_TOKEN_REGEX = re.compile(
    r"""
    (?P<squote>'(?:[^']|'')*'?) |
    (?P<dquote>"(?:[^"]|"")*"?) |
    (?P<backtick>`(?:[^`]|``)*`?) |
    (?P<bracket>\[[^\]]*\]?) |
    (?P<line_comment>--[^\n]*) |
    (?P<block_comment>/\*.*?(?:\*/|\Z)) |
    (?P<cast>::) |
    (?P<numbered>\?\d+) |
    (?P<qmark>\?) |
    (?P<named>[:@$][\w$]+) |
    (?P<word>\w[\w$]*) |
    (?P<semicolon>;) |
    (?P<space>\s+) |
    (?P<other>.)
    """,
    re.VERBOSE | re.DOTALL,
)

_IGNORED = ("space", "line_comment", "block_comment")

_Found = Tuple[int, int, Optional[str]]


def split_script(sql: str) -> Iterator[Statement]:
    """
    Yield the statements of `sql` one at a time.

    The generator scans lazily: the next statement is only looked at once
    the caller asks for it. Empty statements (whitespace, comments, lone
    ';') are skipped.
    """
    pos = 0
    while pos < len(sql):
        statement, pos = scan_statement(sql, pos)
        if statement is not None:
            yield statement


def scan_statement(sql: str, start: int = 0) -> Tuple[Optional[Statement], int]:
    """
    Scan one statement beginning at `start`.

    Returns:
        (statement or None if it was empty, offset just past the statement)
    """
    found: List[_Found] = []
    has_content = False

    for m in _TOKEN_REGEX.finditer(sql, start):
        kind = m.lastgroup
        if kind == "semicolon":
            end = m.end()
            # ';' inside CREATE TRIGGER ... BEGIN ... END does not end it
            if sqlite3.complete_statement(sql[start:end]):
                return _build_statement(sql, start, end, found, has_content), end
            continue
        if kind in _IGNORED:
            continue
        has_content = True
        if kind == "qmark":
            found.append((m.start(), m.end(), None))
        elif kind in ("numbered", "named"):
            found.append((m.start(), m.end(), m.group()))

    return _build_statement(sql, start, len(sql), found, has_content), len(sql)


def _build_statement(sql: str, start: int, end: int, found: List[_Found], has_content: bool) -> Optional[Statement]:
    if not has_content:
        return None

    next_index = 0
    index_by_name = {}
    name_by_index = {}
    placeholders = []

    for tok_start, tok_end, name in found:
        if name is None:
            next_index += 1
            index = next_index
        elif name[0] == "?":
            index = int(name[1:])
            if not 0 < index <= MAX_VARIABLE_NUMBER:
                raise MalformedMarkerError(f"variable number must be between ?1 and ?{MAX_VARIABLE_NUMBER}: {name}")
            index_by_name.setdefault(name, index)
            name_by_index.setdefault(index, name)
            next_index = max(next_index, index)
        elif name in index_by_name:
            index = index_by_name[name]
        else:
            next_index += 1
            index = next_index
            index_by_name[name] = index
            name_by_index[index] = name
        placeholders.append(Placeholder(tok_start - start, tok_end - start, index, name))

    markers = tuple(BindMarker.classify(i, name_by_index.get(i)) for i in range(1, next_index + 1))
    return Statement(text=sql[start:end], markers=markers, placeholders=tuple(placeholders))
