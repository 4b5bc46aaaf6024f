from enum import Enum


class BindSource(Enum):
    POSITIONAL = "positional"
    ENVIRONMENT = "environment"
    DESCRIPTOR_STREAM = "descriptor_stream"
