from __future__ import annotations


class CueSyncError(Exception):
    """Base for all cuesync exceptions."""


class ConfigError(CueSyncError):
    """Configuration related issues."""


class CueFileError(CueSyncError):
    """A cue file could not be read or did not validate."""
