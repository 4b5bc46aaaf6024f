import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence, Union

from sqpipe.consts.BindSource import BindSource
from sqpipe.errors import InternalError, MissingArgumentError
from sqpipe.models.statement import Statement
from sqpipe.service.reader.descriptor_reader import DescriptorReader
from sqpipe.util.log_config import setup_logger

logger = setup_logger(__name__)

# str binds as TEXT, bytes as BLOB, None as NULL
BindValue = Union[str, bytes, None]


def _os_value(value: str) -> BindValue:
    """
    Return `value` as TEXT, or as the original bytes if it came from argv
    or the environment undecoded (lone surrogates from surrogateescape).
    """
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return os.fsencode(value)
    return value


@dataclass
class BindResult:
    values: List[BindValue] = field(default_factory=list)
    next_cursor: int = 0
    streams: int = 0
    exhausted: bool = False
    pending: bool = False


class ParameterBinder:
    """
    Resolves the value of every bind marker of a statement.

    Positional markers consume command-line arguments starting at the cursor
    passed to `bind`; the caller passes the same cursor again to re-bind the
    same arguments on a loop iteration. Descriptor markers advance their
    streams independently.
    """

    def __init__(self, reader: DescriptorReader, args: Sequence[str], environ: Optional[Mapping[str, str]] = None) -> None:
        self.reader = reader
        self.args = list(args)
        self.environ = os.environ if environ is None else environ
        self.count = 0

    def bind(self, statement: Statement, cursor: int) -> BindResult:
        result = BindResult(next_cursor=cursor)

        for marker in statement.markers:
            self.count += 1
            source = marker.source

            if source is BindSource.POSITIONAL:
                if result.next_cursor >= len(self.args):
                    raise MissingArgumentError(result.next_cursor + 1)
                value = self.args[result.next_cursor]
                result.next_cursor += 1
                logger.debug(f"[{self.count}] parm {marker.label} = '{value}'")
                value = _os_value(value)

            elif source is BindSource.ENVIRONMENT:
                value = self.environ.get(marker.env_name)
                if value is None:
                    logger.debug(f"[{self.count}] parm {marker.label} = NULL")
                else:
                    logger.debug(f"[{self.count}] parm {marker.label} = '{value}'")
                    value = _os_value(value)

            elif source is BindSource.DESCRIPTOR_STREAM:
                read = self.reader.read_field(marker.stream.fd, marker.stream)
                value = read.data
                result.streams += 1
                result.exhausted = result.exhausted or read.exhausted
                result.pending = result.pending or read.pending
                logger.debug(f"[{self.count}] parm {marker.label} = {len(value)} bytes"
                             f"{' (exhausted)' if read.exhausted else ''}")

            else:
                raise InternalError(f"internal error: {marker.label}")

            result.values.append(value)

        return result
