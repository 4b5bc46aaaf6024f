"""Models for sqpipe data structures."""

from .bind_marker import BindMarker
from .output_mode import OutputMode
from .statement import Placeholder, Statement
from .stream_spec import DescriptorStreamSpec

__all__ = ["BindMarker", "DescriptorStreamSpec", "OutputMode", "Placeholder", "Statement"]
