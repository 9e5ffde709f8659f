from __future__ import annotations

"""Dataclasses and enums shared across the playback subsystem."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional

MASTER_TRACK = 0
SLAVE_TRACK = 1


class PlayMode(str, Enum):
    NORMAL = "normal"
    AUTO_PAUSE = "autoPause"
    CONDENSED = "condensed"
    REPEAT = "repeat"
    FAST_FORWARD = "fastForward"


class AutoPausePreference(str, Enum):
    AT_START = "atStart"
    AT_END = "atEnd"


CueIdentity = tuple[int, int]


@dataclass(frozen=True, slots=True)
class Cue:
    start: float
    end: float
    original_start: float
    original_end: float
    track: int = 0
    index: int = 0
    text: str = ""
    payload: Any = field(default=None, compare=False)

    @classmethod
    def create(
        cls,
        start: float,
        end: float,
        *,
        track: int = 0,
        index: int = 0,
        text: str = "",
        payload: Any = None,
    ) -> "Cue":
        return cls(
            start=start,
            end=end,
            original_start=start,
            original_end=end,
            track=track,
            index=index,
            text=text,
            payload=payload,
        )

    @property
    def identity(self) -> CueIdentity:
        return (self.track, self.index)

    @property
    def duration(self) -> float:
        return self.end - self.start

    def with_offset(self, offset_ms: float) -> "Cue":
        return replace(
            self,
            start=self.original_start + offset_ms,
            end=self.original_end + offset_ms,
        )

    def is_showing_at(self, timestamp: float) -> bool:
        return self.start <= timestamp < self.end

    def as_dict(self) -> dict[str, object]:
        return {
            "start": self.start,
            "end": self.end,
            "original_start": self.original_start,
            "original_end": self.original_end,
            "track": self.track,
            "index": self.index,
            "text": self.text,
        }


@dataclass(slots=True)
class SubtitleSlice:
    showing: list[Cue] = field(default_factory=list)
    next_to_show: Optional[list[Cue]] = None
    started_showing: Optional[list[Cue]] = None
    will_stop_showing: Optional[list[Cue]] = None
    last_shown: Optional[list[Cue]] = None

    @classmethod
    def empty(cls) -> "SubtitleSlice":
        return cls()

    def as_dict(self) -> dict[str, object]:
        def _dump(cues: Optional[list[Cue]]) -> Optional[list[dict[str, object]]]:
            return None if cues is None else [c.as_dict() for c in cues]

        return {
            "showing": _dump(self.showing),
            "next_to_show": _dump(self.next_to_show),
            "started_showing": _dump(self.started_showing),
            "will_stop_showing": _dump(self.will_stop_showing),
            "last_shown": _dump(self.last_shown),
        }


@dataclass(slots=True)
class MediaReadyState:
    """Snapshot the media element reports when it becomes ready."""

    paused: bool
    playback_rate: float = 1.0
    duration_ms: float = 0.0
    current_time_ms: float = 0.0
