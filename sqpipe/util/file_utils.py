import os
from pathlib import Path
from typing import Union

from sqpipe.errors import UsageError


def read_script(path: Union[str, os.PathLike]) -> str:
    """
    Read the SQL script named on the command line with -f.

    Raises:
        UsageError: If the file cannot be read or is not UTF-8 text.
    """
    p = Path(path).expanduser()
    try:
        return p.read_text(encoding="utf-8")
    except OSError as e:
        raise UsageError(f"cannot read sql script {p}: {e.strerror or e}") from e
    except UnicodeDecodeError as e:
        raise UsageError(f"sql script {p} is not valid UTF-8: {e.reason} at byte {e.start}") from e
