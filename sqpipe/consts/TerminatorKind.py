from enum import Enum


class TerminatorKind(Enum):
    NONE = "none"
    WHITESPACE = "whitespace"
    BYTE = "byte"
