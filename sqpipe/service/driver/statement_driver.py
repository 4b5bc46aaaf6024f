"""
Statement loop driver.

    ParseNext -> BindParameters -> Execute -> EmitRows* -> CheckLoop
              -> (BindParameters | Finalize) -> ParseNext | End

In loop mode a statement with descriptor markers is bound and executed
again as long as its streams report pending data. A bind that finds a
stream already exhausted ends the statement without executing it, even
on the first iteration.
"""
from sqpipe.models.statement import Statement
from sqpipe.service.context import RunContext
from sqpipe.util.log_config import setup_logger
from sqpipe.util.sql_text import split_script

logger = setup_logger(__name__)


class StatementDriver:

    def __init__(self, context: RunContext) -> None:
        self.context = context
        self.cursor = 0
        self.rows = 0
        self.executions = 0

    def run(self, script: str) -> int:
        """
        Execute every statement of `script` in order.

        Returns:
            Number of rows written.
        """
        for statement in split_script(script):
            self.run_statement(statement)
        logger.debug(f"done: {self.executions} execution(s), {self.rows} row(s)")
        return self.rows

    def run_statement(self, statement: Statement) -> int:
        """Run one statement, looping over its descriptor streams if enabled."""
        ctx = self.context
        loop = ctx.config.loop and statement.has_streams
        start = self.cursor
        executions = 0

        while True:
            bound = ctx.binder.bind(statement, start)
            self.cursor = bound.next_cursor

            if loop and bound.exhausted:
                logger.debug(f"stream exhausted after {executions} execution(s): {statement.display}")
                break

            self._execute(statement, bound.values)
            executions += 1

            if not (loop and bound.pending):
                break

        return executions

    def _execute(self, statement: Statement, values) -> None:
        ctx = self.context
        result = ctx.runner.execute(statement, values)
        for row in result.rows:
            self.rows += 1
            ctx.encoder.render_row(result.columns, row, self.rows)
        self.executions += 1
