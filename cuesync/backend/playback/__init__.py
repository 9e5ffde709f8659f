"""Subtitle timing, play modes and dual-track merging.

Exports resolve lazily: the settings package imports :mod:`.models`, and the
session/controller modules import the settings package in turn.
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any

__all__ = [
    "AutoPauseContext",
    "AutoPausePreference",
    "Clock",
    "Cue",
    "DualTrackMerger",
    "ManualTimeSource",
    "PlayMode",
    "PlaybackEngine",
    "PlaybackError",
    "PlaybackModeController",
    "PlaybackSession",
    "SeekError",
    "SubtitleCollection",
    "SubtitleSlice",
    "load_cues",
]

_MODULE_EXPORTS = {
    "auto_pause": {"AutoPauseContext"},
    "clock": {"Clock", "ManualTimeSource"},
    "collection": {"SubtitleCollection"},
    "controller": {"PlaybackModeController"},
    "cue_file": {"load_cues"},
    "engine": {"PlaybackEngine"},
    "exceptions": {"PlaybackError", "SeekError"},
    "merger": {"DualTrackMerger"},
    "models": {"AutoPausePreference", "Cue", "PlayMode", "SubtitleSlice"},
    "session": {"PlaybackSession"},
}

if TYPE_CHECKING:  # pragma: no cover - for static analysis only
    from .auto_pause import AutoPauseContext
    from .clock import Clock, ManualTimeSource
    from .collection import SubtitleCollection
    from .controller import PlaybackModeController
    from .cue_file import load_cues
    from .engine import PlaybackEngine
    from .exceptions import PlaybackError, SeekError
    from .merger import DualTrackMerger
    from .models import AutoPausePreference, Cue, PlayMode, SubtitleSlice
    from .session import PlaybackSession


def __getattr__(name: str) -> Any:
    for module_name, symbols in _MODULE_EXPORTS.items():
        if name in symbols:
            module = importlib.import_module(f"{__name__}.{module_name}")
            value = getattr(module, name)
            globals()[name] = value
            return value
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


def __dir__() -> list[str]:
    exported = set(__all__)
    exported.update(globals().keys())
    return sorted(exported)
