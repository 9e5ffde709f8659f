"""Shared logging and error primitives."""

from cuesync.backend.common.errors import ConfigError, CueFileError, CueSyncError
from cuesync.backend.common.logging import JsonFormatter, get_logger, init_logging

__all__ = [
    "ConfigError",
    "CueFileError",
    "CueSyncError",
    "JsonFormatter",
    "get_logger",
    "init_logging",
]
