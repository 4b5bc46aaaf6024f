"""Output mode data class selected once at startup."""

from dataclasses import dataclass
from typing import Optional, Tuple

from sqpipe.consts.OutputKind import OutputKind
from sqpipe.errors import UsageError


@dataclass(frozen=True)
class OutputMode:

    raw: bool = False
    nul: bool = False
    ansi: bool = False
    separators: Tuple[str, ...] = ()
    row_begin: Optional[str] = None
    row_end: Optional[str] = None
    unbuffered: bool = False

    @property
    def kind(self) -> OutputKind:
        if self.separators:
            return OutputKind.SEPARATED
        if self.raw or self.nul:
            return OutputKind.RAW
        return OutputKind.VERBOSE

    def validate(self) -> "OutputMode":
        """
        Reject flag combinations that contradict each other.

        Raises:
            UsageError: raw together with separators, or ansi together with raw.
        """
        if self.raw and self.separators:
            raise UsageError("raw output cannot be combined with field separators")
        if self.ansi and self.kind is OutputKind.RAW:
            raise UsageError("ANSI escaping cannot be combined with raw output")
        return self
