from enum import Enum
from pathlib import Path
from typing import Union


class EngineType(Enum):
    SQLITE = "sqlite"
    DUCKDB = "duckdb"

    @classmethod
    def from_path(cls, db_path: Union[str, Path]) -> "EngineType":
        """
        Infer the engine from the database file extension.

        - .duckdb       -> duckdb
        - otherwise     -> sqlite (fallback)
        """
        if Path(db_path).suffix.lower() == ".duckdb":
            return cls.DUCKDB
        return cls.SQLITE
