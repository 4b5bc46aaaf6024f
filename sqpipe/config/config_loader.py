"""
Configuration loader for sqpipe.

Option defaults may come from a YAML file:

    # sqpipe.yaml
    timeout: 2000
    separators: ["\\t"]
    unbuffered: true

Command-line flags override file values, which override built-in defaults.
An environment overlay `<stem>_<env><suffix>` (e.g. sqpipe_ci.yaml) is
merged over the base file when --env is given.
"""
import argparse
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from sqpipe.config.tool_config import ToolConfig
from sqpipe.consts.EngineType import EngineType
from sqpipe.errors import ConfigError, UsageError
from sqpipe.models.output_mode import OutputMode

CONFIG_ENV_VAR = "SQPIPE_CONFIG"

# key -> accepted python type(s) after yaml.safe_load
OPTION_TYPES = {
    "timeout": int,
    "raw": bool,
    "nul": bool,
    "ansi": bool,
    "begin": str,
    "end": str,
    "loop": bool,
    "separators": (list, str),
    "unbuffered": bool,
    "debug": bool,
    "engine": str,
    "log_file": str,
}


class ConfigLoader:

    def __init__(self, config_path: Optional[Path] = None, env: Optional[str] = None):
        if config_path is None and os.environ.get(CONFIG_ENV_VAR):
            config_path = Path(os.environ[CONFIG_ENV_VAR])
        self.config_path = config_path
        self.env = env
        self.config_data = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """
        Load option defaults from YAML.
        Supports environment-specific overrides via <stem>_<env><suffix>

        Returns:
            Dict of validated option defaults (empty without a config file)
        """
        if self.config_path is None:
            if self.env:
                raise ConfigError("--env requires a config file")
            return {}

        data = self._read_yaml(self.config_path)

        # Load environment-specific override if specified
        if self.env:
            env_config_file = self.config_path.with_name(
                f"{self.config_path.stem}_{self.env}{self.config_path.suffix}"
            )
            # dict.update() will overwrite existing keys
            data.update(self._read_yaml(env_config_file))

        self._validate(data)
        return data

    @staticmethod
    def _read_yaml(path: Path) -> Dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"cannot read config {path}: {e.strerror or e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"config {path} must be a mapping of option names")
        return data

    @staticmethod
    def _validate(data: Dict[str, Any]) -> None:
        for key, value in data.items():
            if key not in OPTION_TYPES:
                raise ConfigError(f"unknown config key: {key}")
            expected = OPTION_TYPES[key]
            # bool is an int subclass; a timeout of 'true' is a mistake
            if isinstance(value, bool) and expected is not bool:
                raise ConfigError(f"config key {key} has wrong type: {type(value).__name__}")
            if not isinstance(value, expected):
                raise ConfigError(f"config key {key} has wrong type: {type(value).__name__}")

        if "timeout" in data and data["timeout"] < 0:
            raise ConfigError("config key timeout must not be negative")
        if isinstance(data.get("separators"), list) and not all(isinstance(s, str) for s in data["separators"]):
            raise ConfigError("config key separators must be a list of strings")
        if "engine" in data and data["engine"] not in {e.value for e in EngineType}:
            raise ConfigError(f"unknown engine in config: {data['engine']}")

    def build(self, ns: argparse.Namespace) -> ToolConfig:
        """
        Merge parsed command-line options over the loaded defaults.

        Args:
            ns: argparse namespace; options left at None fall back to the file

        Returns:
            ToolConfig with a validated OutputMode
        """
        data = self.config_data

        def pick(value, key, default):
            if value is not None:
                return value
            return data.get(key, default)

        separators = pick(ns.sep, "separators", [])
        if isinstance(separators, str):
            separators = [separators]

        engine_name = pick(ns.engine, "engine", None)
        engine = EngineType(engine_name) if engine_name else EngineType.from_path(ns.database)

        timeout_ms = pick(ns.timeout, "timeout", 100)
        if timeout_ms < 0:
            raise UsageError(f"timeout must not be negative: {timeout_ms}")

        log_file = pick(ns.log_file, "log_file", None)

        output = OutputMode(
            raw=pick(ns.raw, "raw", False),
            nul=pick(ns.nul, "nul", False),
            ansi=pick(ns.ansi, "ansi", False),
            separators=tuple(separators),
            row_begin=pick(ns.begin, "begin", None),
            row_end=pick(ns.end, "end", None),
            unbuffered=pick(ns.unbuffered, "unbuffered", False),
        ).validate()

        return ToolConfig(
            database=ns.database,
            script=ns.script,
            args=list(ns.args),
            engine=engine,
            timeout_ms=timeout_ms,
            loop=pick(ns.loop, "loop", False),
            debug=pick(ns.debug, "debug", False),
            script_is_file=bool(ns.file),
            log_file=Path(log_file) if log_file else None,
            output=output,
        )
