"""
Error taxonomy for sqpipe.

Every fatal condition is raised as a SqPipeError subclass and unwinds to
`cli.main()`, which writes one diagnostic line and exits with `exit_code`.
"""
from typing import Optional


class SqPipeError(Exception):
    """Base class for all fatal sqpipe errors."""

    exit_code = 255


class UsageError(SqPipeError):
    """Malformed invocation or inconsistent options."""

    exit_code = 1


class MissingArgumentError(UsageError):
    """A positional bind marker has no command-line argument left."""

    def __init__(self, position: int) -> None:
        super().__init__(f"missing argument on commandline: {position}")
        self.position = position


class ConfigError(UsageError):
    """Invalid YAML configuration file."""


class EngineError(SqPipeError):
    """
    Failure reported by the embedded engine.

    Args:
        engine: Engine name used as message prefix (e.g. 'sqlite')
        code: Numeric engine error code, if the engine exposes one
        message: What sqpipe was doing when the engine failed
        detail: The engine's own message
    """

    def __init__(self, engine: str, code: Optional[int], message: str, detail: Optional[str] = None) -> None:
        self.engine = engine
        self.code = code
        self.message = message
        self.detail = detail
        text = f"{engine} error {code if code is not None else '?'}: {message}"
        if detail:
            text += f": {detail}"
        super().__init__(text)


class StreamReadError(SqPipeError):
    """Read failure on a descriptor stream."""


class OutputWriteError(SqPipeError):
    """Write failure on standard output."""


class BufferLimitError(SqPipeError):
    """A descriptor buffer could not grow any further."""


class MalformedMarkerError(SqPipeError):
    """A bind marker violates the marker grammar."""


class InternalError(SqPipeError):
    """Marker shape the binder does not know how to resolve."""
