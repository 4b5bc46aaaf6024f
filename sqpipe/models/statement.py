from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from sqpipe.consts.BindSource import BindSource
from sqpipe.models.bind_marker import BindMarker


@dataclass(frozen=True)
class Placeholder:
    """One marker occurrence inside the statement text; `name` is None for a bare '?'."""
    start: int
    end: int
    index: int
    name: Optional[str] = None


@dataclass(frozen=True)
class Statement:
    text: str
    markers: Tuple[BindMarker, ...] = ()
    placeholders: Tuple[Placeholder, ...] = ()

    @property
    def parameter_count(self) -> int:
        return len(self.markers)

    @property
    def has_streams(self) -> bool:
        return any(m.source is BindSource.DESCRIPTOR_STREAM for m in self.markers)

    @property
    def display(self) -> str:
        return self.text.strip()

    def render(self, placeholder: Callable[[Placeholder], str]) -> str:
        """
        Return the statement text with every marker occurrence replaced by
        `placeholder(p)`, e.g. `lambda p: f"${p.index}"` for DuckDB.
        """
        parts = []
        last = 0
        for p in self.placeholders:
            parts.append(self.text[last:p.start])
            parts.append(placeholder(p))
            last = p.end
        parts.append(self.text[last:])
        return "".join(parts)
