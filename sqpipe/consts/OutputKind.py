from enum import Enum


class OutputKind(Enum):
    VERBOSE = "verbose"
    RAW = "raw"
    SEPARATED = "separated"
