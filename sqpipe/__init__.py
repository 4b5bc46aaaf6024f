"""sqpipe - run SQL against an embedded database and stream rows to shell scripts."""

__version__ = "0.3.0"
