"""Tick-driven subtitle cue synchronization for media playback."""

__version__ = "0.1.0"
