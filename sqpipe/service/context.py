import os
from typing import BinaryIO, Mapping, Optional

from sqpipe.config.tool_config import ToolConfig
from sqpipe.consts.EngineType import EngineType
from sqpipe.service.binder.parameter_binder import ParameterBinder
from sqpipe.service.encoder.row_encoder import RowEncoder
from sqpipe.service.reader.descriptor_reader import DescriptorReader
from sqpipe.service.runner.runner import Runner
from sqpipe.util.log_config import setup_logger

logger = setup_logger(__name__)


def create_runner(config: ToolConfig) -> Runner:
    logger.debug(f"engine {config.engine.value} for {config.database}")
    if config.engine is EngineType.DUCKDB:
        from sqpipe.service.runner.duckdb_runner import DuckdbRunner
        return DuckdbRunner(config.database, config.timeout_ms)
    from sqpipe.service.runner.sqlite_runner import SQLiteRunner
    return SQLiteRunner(config.database, config.timeout_ms)


class RunContext:
    """
    Everything one run shares: the engine connection, the descriptor
    buffers, the binder and the row encoder.

    Use as a context manager; leaving it closes the database and flushes
    the output stream.
    """

    def __init__(
        self,
        config: ToolConfig,
        out: BinaryIO,
        environ: Optional[Mapping[str, str]] = None,
        runner: Optional[Runner] = None,
    ) -> None:
        self.config = config
        self.runner = runner if runner is not None else create_runner(config)
        self.reader = DescriptorReader()
        self.binder = ParameterBinder(self.reader, config.args, os.environ if environ is None else environ)
        self.encoder = RowEncoder(config.output, out)

    def __enter__(self) -> "RunContext":
        self.runner.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.encoder.flush()
        finally:
            self.runner.close()
