from typing import Iterator, Sequence

from sqpipe.errors import EngineError
from sqpipe.models.statement import Statement
from sqpipe.service.binder.parameter_binder import BindValue
from sqpipe.util.log_config import setup_logger
from .runner import Row, Runner, StatementResult, to_bytes

logger = setup_logger(__name__)

# Fixed batch for the vectorized engine
BATCH_SIZE = 2048


def _error(e: Exception, message: str) -> EngineError:
    # duckdb exposes no numeric result codes
    return EngineError("duckdb", None, message, str(e))


class DuckdbRunner(Runner):

    name = "duckdb"

    def __init__(self, db_file, timeout_ms: int = 100) -> None:
        super().__init__(db_file, timeout_ms)
        self.con = None

    def open(self) -> None:
        import duckdb

        try:
            self.con = duckdb.connect(database=str(self.db_file))
        except duckdb.Error as e:
            raise _error(e, f"cannot open db {self.db_file}") from e
        logger.debug(f"opened duckdb database {self.db_file}")
        if self.timeout_ms:
            logger.debug(f"duckdb has no busy handler, timeout {self.timeout_ms}ms ignored")

    def close(self) -> None:
        import duckdb

        if self.con is None:
            return
        con, self.con = self.con, None
        try:
            con.close()
        except duckdb.Error as e:
            raise _error(e, f"cannot close db {self.db_file}") from e

    def _execute(self, statement: Statement, values: Sequence[BindValue]) -> StatementResult:
        import duckdb

        # numbered placeholders keep '$NAME' markers away from duckdb's named parameters
        sql = statement.render(lambda p: f"${p.index}")
        try:
            cur = self.con.execute(sql, list(values) if values else None)
        except duckdb.Error as e:
            raise _error(e, f"cannot step statement: {statement.display}") from e

        columns = [to_bytes(d[0]) for d in cur.description] if cur.description else []
        return StatementResult(columns, self._rows(cur, statement))

    def _rows(self, cur, statement: Statement) -> Iterator[Row]:
        import duckdb

        if not cur.description:
            return
        try:
            while True:
                batch = cur.fetchmany(BATCH_SIZE)
                if not batch:
                    break
                for row in batch:
                    yield tuple(to_bytes(v) for v in row)
        except duckdb.Error as e:
            raise _error(e, f"cannot step statement: {statement.display}") from e
