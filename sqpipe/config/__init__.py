"""Configuration module for sqpipe runs."""

from .config_loader import ConfigLoader
from .tool_config import ToolConfig

__all__ = ["ConfigLoader", "ToolConfig"]
