import math
import sqlite3
from typing import Iterator, Optional, Sequence, Tuple, Union

from sqpipe.errors import EngineError
from sqpipe.models.statement import Statement
from sqpipe.service.binder.parameter_binder import BindValue
from sqpipe.util.log_config import setup_logger
from .runner import Row, Runner, StatementResult, to_bytes

logger = setup_logger(__name__)


def _error(e: Exception, message: str) -> EngineError:
    return EngineError("sqlite", getattr(e, "sqlite_errorcode", None), message, str(e))


def real_text(value: float) -> bytes:
    """
    Render a REAL the way SQLite converts it to TEXT ('%!.15g').

    The mantissa always carries a decimal point: 1.0, 1.0e+100.
    """
    if math.isinf(value):
        return b"Inf" if value > 0 else b"-Inf"
    mantissa, e, exponent = ("%.15g" % value).partition("e")
    if "." not in mantissa and mantissa[-1:].isdigit():
        mantissa += ".0"
    return (mantissa + e + exponent).encode("ascii")


def _column(value) -> Optional[bytes]:
    if isinstance(value, float):
        return real_text(value)
    return to_bytes(value)


def prepare_bindings(statement: Statement, values: Sequence[BindValue]) -> Tuple[str, Union[tuple, dict]]:
    """
    Return the SQL text and parameters to hand to sqlite3.

    Named markers stay as written so that result column names match the
    statement text; the sqlite3 module then wants a dict keyed by the name
    without its first character. Bare '?' markers become '?N' to get a name.
    When two names share a key (':a' and '$a') or '?NNN' leaves unnamed
    slots, every marker is rewritten to '?N' and bound by position instead.
    """
    if not statement.markers:
        return statement.text, ()

    bare = {p.index for p in statement.placeholders if p.name is None}
    keys = []
    for marker in statement.markers:
        if marker.index in bare:
            keys.append(str(marker.index))
        elif marker.name is None:
            keys = None
            break
        else:
            keys.append(marker.name[1:])

    if keys is not None and len(set(keys)) == len(keys):
        sql = statement.render(lambda p: f"?{p.index}" if p.name is None else p.name)
        return sql, dict(zip(keys, values))

    return statement.render(lambda p: f"?{p.index}"), tuple(values)


class SQLiteRunner(Runner):

    name = "sqlite"

    def __init__(self, db_file, timeout_ms: int = 100) -> None:
        super().__init__(db_file, timeout_ms)
        self.con: Optional[sqlite3.Connection] = None

    def open(self) -> None:
        try:
            # autocommit: every statement runs the way the script says
            self.con = sqlite3.connect(str(self.db_file), timeout=self.timeout_ms / 1000.0, isolation_level=None)
        except sqlite3.Error as e:
            raise _error(e, f"cannot open db {self.db_file}") from e
        # keep TEXT as raw bytes; values need not be valid UTF-8
        self.con.text_factory = bytes
        logger.debug(f"opened sqlite database {self.db_file}")

    def close(self) -> None:
        if self.con is None:
            return
        con, self.con = self.con, None
        try:
            con.close()
        except sqlite3.Error as e:
            raise _error(e, f"cannot close db {self.db_file}") from e

    def set_timeout(self) -> None:
        try:
            self.con.execute(f"PRAGMA busy_timeout = {int(self.timeout_ms)}")
        except sqlite3.Error as e:
            raise _error(e, f"cannot set timeout to {self.timeout_ms}") from e

    def _execute(self, statement: Statement, values: Sequence[BindValue]) -> StatementResult:
        sql, params = prepare_bindings(statement, values)
        self.set_timeout()
        try:
            cur = self.con.execute(sql, params)
        except (sqlite3.Error, UnicodeEncodeError) as e:
            raise _error(e, f"cannot step statement: {statement.display}") from e

        columns = [to_bytes(d[0]) for d in cur.description] if cur.description else []
        return StatementResult(columns, self._rows(cur, statement))

    def _rows(self, cur: sqlite3.Cursor, statement: Statement) -> Iterator[Row]:
        try:
            for row in cur:
                yield tuple(_column(v) for v in row)
        except sqlite3.Error as e:
            raise _error(e, f"cannot step statement: {statement.display}") from e
        finally:
            cur.close()
