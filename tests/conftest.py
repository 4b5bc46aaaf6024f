"""Shared fixtures for sqpipe tests."""

import io
import logging
import os

import pytest

from sqpipe.config.tool_config import ToolConfig
from sqpipe.models.output_mode import OutputMode
from sqpipe.service.context import RunContext
from sqpipe.service.driver.statement_driver import StatementDriver
from sqpipe.util.log_config import ROOT_LOGGER


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo configure_logging() so caplog sees sqpipe records in every test."""
    yield
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def make_fd(tmp_path):
    """Return a readable descriptor with the given content; closed after the test."""
    fds = []
    counter = [0]

    def make(data: bytes, use_file: bool = False) -> int:
        if use_file or len(data) > 32768:
            # larger than a pipe buffer: back it with a file
            counter[0] += 1
            path = tmp_path / f"stream{counter[0]}.bin"
            path.write_bytes(data)
            fd = os.open(path, os.O_RDONLY)
        else:
            fd, w = os.pipe()
            os.write(w, data)
            os.close(w)
        fds.append(fd)
        return fd

    yield make

    for fd in fds:
        try:
            os.close(fd)
        except OSError:
            pass


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "test.sqlite")


@pytest.fixture
def run_sql(db_path):
    """Run a script through a fresh RunContext; returns (stdout bytes, driver)."""

    def run(script, args=(), environ=None, loop=False, output=None):
        config = ToolConfig(
            database=db_path,
            script=script,
            args=list(args),
            loop=loop,
            output=output or OutputMode(),
        )
        out = io.BytesIO()
        with RunContext(config, out, environ if environ is not None else {}) as ctx:
            driver = StatementDriver(ctx)
            driver.run(script)
        return out.getvalue(), driver

    return run
