from dataclasses import dataclass
from typing import Optional

from sqpipe.consts.BindSource import BindSource
from sqpipe.errors import InternalError
from sqpipe.models.stream_spec import DescriptorStreamSpec, is_stream_name


@dataclass(frozen=True)
class BindMarker:
    """
    One bind marker of a statement, classified by where its value comes from.

    `index` is the 1-based ordinal the engine binds; `name` is the marker
    text as written (None for a bare '?').
    """
    index: int
    name: Optional[str]
    source: BindSource
    env_name: Optional[str] = None
    stream: Optional[DescriptorStreamSpec] = None

    @classmethod
    def classify(cls, index: int, name: Optional[str]) -> "BindMarker":
        if not name or name[0] == "?":
            return cls(index, name, BindSource.POSITIONAL)

        if name[0] == ":":
            if is_stream_name(name):
                return cls(index, name, BindSource.DESCRIPTOR_STREAM, stream=DescriptorStreamSpec.parse(name))
            return cls(index, name, BindSource.POSITIONAL)

        if name[0] == "$":
            return cls(index, name, BindSource.ENVIRONMENT, env_name=name[1:])

        raise InternalError(f"internal error: unsupported bind marker {name}")

    @property
    def label(self) -> str:
        return self.name or "?"
