from __future__ import annotations

"""Exceptions for the playback subsystem."""

from cuesync.backend.common.errors import CueSyncError


class PlaybackError(CueSyncError):
    """Top-level error raised by the playback subsystem."""


class MediaUnavailable(PlaybackError):
    """Raised when the media backend cannot be loaded or bound."""


class SeekError(PlaybackError):
    """Raised when the media element rejects or fails a seek."""


class SeekTimeout(SeekError):
    """Raised when a seek does not resolve within the configured timeout."""
