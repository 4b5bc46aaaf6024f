from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from sqpipe.consts.EngineType import EngineType
from sqpipe.models.output_mode import OutputMode


@dataclass
class ToolConfig:

    database: str
    script: str
    args: List[str] = field(default_factory=list)
    engine: EngineType = EngineType.SQLITE
    timeout_ms: int = 100
    loop: bool = False
    debug: bool = False
    script_is_file: bool = False
    log_file: Optional[Path] = None
    output: OutputMode = field(default_factory=OutputMode)

    def __str__(self):
        return (f"ToolConfig(\n"
                f"  database={self.database},\n"
                f"  engine={self.engine.value},\n"
                f"  timeout_ms={self.timeout_ms},\n"
                f"  loop={self.loop},\n"
                f"  args={self.args},\n"
                f"  output={self.output}\n"
                f")")
