from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterator, List, NamedTuple, Optional, Sequence, Tuple, Union

from sqpipe.models.statement import Statement
from sqpipe.service.binder.parameter_binder import BindValue
from sqpipe.util.log_config import setup_logger

logger = setup_logger(__name__)

Row = Tuple[Optional[bytes], ...]


class StatementResult(NamedTuple):
    columns: List[bytes]
    rows: Iterator[Row]


def to_bytes(value: Any) -> Optional[bytes]:
    """Normalize an engine value to the bytes the encoder prints."""
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8", "surrogateescape")
    if isinstance(value, bool):
        return b"1" if value else b"0"
    if isinstance(value, float):
        return repr(value).encode("ascii")
    return str(value).encode("utf-8", "surrogateescape")


class Runner(ABC):
    """Abstract base Runner.

    A runner owns one embedded database connection for the whole run.
    Subclasses implement open/close and statement execution; use
    super().__init__(...) in subclass constructors to initialize the
    common fields.
    """

    name = "engine"

    def __init__(self, db_file: Union[str, Path], timeout_ms: int = 100) -> None:
        self.db_file = db_file
        self.timeout_ms = timeout_ms

    def __enter__(self) -> "Runner":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @abstractmethod
    def open(self) -> None:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    @abstractmethod
    def _execute(self, statement: Statement, values: Sequence[BindValue]) -> StatementResult:
        pass

    def execute(self, statement: Statement, values: Sequence[BindValue]) -> StatementResult:
        """
        Bind `values` (ordinal 1..n) and execute `statement`.

        Returns:
            StatementResult with column names and a lazy row iterator; engine
            errors raised while stepping surface from the iterator.
        """
        logger.debug(f"execute: {statement.display}")
        return self._execute(statement, values)
