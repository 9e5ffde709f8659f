from __future__ import annotations

"""Indexed time queries over a sorted cue list."""

from bisect import bisect_left, bisect_right
from dataclasses import replace
from itertools import accumulate
from typing import Callable, Collection, Iterable, Optional

from cuesync.backend.common.logging import get_logger
from cuesync.backend.playback.models import Cue, SubtitleSlice

log = get_logger(__name__)

DEFAULT_SHOWING_CHECK_RADIUS_MS = 150.0


class SubtitleCollection:
    """Answers "what is showing / next / about to change" at a timestamp.

    Cues are kept sorted by ``(start, index)``. Alongside the start keys the
    collection keeps a running maximum of ``end`` so backward scans from a
    bisect point can stop as soon as no earlier cue can still be active.
    Tracks are independent and may overlap in time.
    """

    def __init__(
        self,
        *,
        showing_check_radius_ms: Optional[float] = DEFAULT_SHOWING_CHECK_RADIUS_MS,
        return_next_to_show: bool = True,
        return_last_shown: bool = False,
    ) -> None:
        self._radius = showing_check_radius_ms
        self._return_next_to_show = return_next_to_show
        self._return_last_shown = return_last_shown
        self._cues: list[Cue] = []
        self._starts: list[float] = []
        self._max_end: list[float] = []
        self._by_end: list[Cue] = []
        self._ends: list[float] = []
        self._tracks: frozenset[int] = frozenset()

    @classmethod
    def empty(cls) -> "SubtitleCollection":
        return cls()

    @property
    def showing_check_radius_ms(self) -> Optional[float]:
        return self._radius

    @property
    def subtitles(self) -> list[Cue]:
        return list(self._cues)

    @property
    def tracks(self) -> frozenset[int]:
        return self._tracks

    @property
    def length_ms(self) -> float:
        return self._max_end[-1] if self._max_end else 0.0

    def __len__(self) -> int:
        return len(self._cues)

    def set_subtitles(self, cues: Optional[Iterable[Cue]]) -> None:
        normalized: list[Cue] = []
        for cue in cues or ():
            if cue.start > cue.end:
                log.warning(
                    "cue_inverted_interval",
                    extra={"track": cue.track, "index": cue.index, "start": cue.start, "end": cue.end},
                )
                cue = replace(cue, end=cue.start, original_end=cue.original_start)
            normalized.append(cue)

        normalized.sort(key=lambda c: (c.start, c.index))
        self._cues = normalized
        self._starts = [c.start for c in normalized]
        self._max_end = list(accumulate((c.end for c in normalized), max))
        self._by_end = sorted(normalized, key=lambda c: (c.end, c.start, c.index))
        self._ends = [c.end for c in self._by_end]
        self._tracks = frozenset(c.track for c in normalized)

    def subtitles_at(self, timestamp: float, exclude_tracks: Collection[int] = ()) -> SubtitleSlice:
        """Slice at ``timestamp``; cues on ``exclude_tracks`` are invisible to every set."""

        if not self._cues:
            return SubtitleSlice.empty()

        upper = bisect_right(self._starts, timestamp)
        showing = self._active_before(
            upper,
            lambda c: c.end > timestamp and c.track not in exclude_tracks,
            timestamp,
        )

        next_to_show: Optional[list[Cue]] = None
        if self._return_next_to_show:
            next_to_show = self._next_after(upper, exclude_tracks)

        started_showing: Optional[list[Cue]] = None
        will_stop_showing: Optional[list[Cue]] = None
        if self._radius is not None:
            radius = self._radius
            started_showing = [c for c in showing if timestamp < c.start + radius]
            will_stop_showing = [c for c in showing if timestamp >= c.end - radius]

        last_shown: Optional[list[Cue]] = None
        if self._return_last_shown:
            last_shown = self._last_shown(timestamp, exclude_tracks)

        return SubtitleSlice(
            showing=showing,
            next_to_show=next_to_show,
            started_showing=started_showing,
            will_stop_showing=will_stop_showing,
            last_shown=last_shown,
        )

    def overlapping(self, start: float, end: float, track: Optional[int] = None) -> list[Cue]:
        """Cues whose interval intersects ``[start, end)``, in start order."""

        if not self._cues or end <= start:
            return []
        upper = bisect_left(self._starts, end)
        found = self._active_before(upper, lambda c: c.end > start, start)
        if track is None:
            return found
        return [c for c in found if c.track == track]

    def _active_before(self, upper: int, predicate: Callable[[Cue], bool], horizon: float) -> list[Cue]:
        found: list[Cue] = []
        i = upper - 1
        while i >= 0 and self._max_end[i] > horizon:
            cue = self._cues[i]
            if predicate(cue):
                found.append(cue)
            i -= 1
        found.reverse()
        return found

    def _next_after(self, upper: int, exclude_tracks: Collection[int]) -> Optional[list[Cue]]:
        i = upper
        while i < len(self._cues) and self._cues[i].track in exclude_tracks:
            i += 1
        if i == len(self._cues):
            return None
        first_start = self._starts[i]
        stop = bisect_right(self._starts, first_start, lo=i)
        return [c for c in self._cues[i:stop] if c.track not in exclude_tracks]

    def _last_shown(self, timestamp: float, exclude_tracks: Collection[int]) -> Optional[list[Cue]]:
        pos = bisect_right(self._ends, timestamp)
        # Zero-duration cues never show, skip them.
        while pos > 0 and (
            self._by_end[pos - 1].start == self._by_end[pos - 1].end
            or self._by_end[pos - 1].track in exclude_tracks
        ):
            pos -= 1
        if pos == 0:
            return None
        last_end = self._ends[pos - 1]
        lo = bisect_left(self._ends, last_end, hi=pos)
        return [c for c in self._by_end[lo:pos] if c.start < c.end and c.track not in exclude_tracks]
