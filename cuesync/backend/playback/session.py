from __future__ import annotations

"""Playback session: one owner for clock, cues, modes and the media element."""

from dataclasses import replace
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, Optional

from cuesync.backend.common.logging import get_logger
from cuesync.backend.playback.auto_pause import AutoPauseContext, Disposer
from cuesync.backend.playback.clock import Clock, TimeSource
from cuesync.backend.playback.collection import SubtitleCollection
from cuesync.backend.playback.controller import ModeListener, PlaybackModeController
from cuesync.backend.playback.cue_file import parse_cues
from cuesync.backend.playback.engine import PlaybackEngine
from cuesync.backend.playback.merger import DualTrackMerger
from cuesync.backend.playback.models import Cue, CueIdentity, MediaReadyState, PlayMode, SubtitleSlice
from cuesync.backend.playback.scheduler import Scheduler
from cuesync.config.settings.core import PlaybackSettings

if TYPE_CHECKING:
    from cuesync.backend.media.base import MediaElement

log = get_logger(__name__)

ShowingListener = Callable[[list[Cue]], None]


def _unique_identities(cues: Iterable[Cue]) -> list[Cue]:
    """Give every cue a distinct ``(track, index)``.

    The first cue holding an identity keeps it; later cues on the same track
    that collide get the next unused index, in position order.
    """

    cues = list(cues)
    next_index: dict[int, int] = {}
    for cue in cues:
        next_index[cue.track] = max(next_index.get(cue.track, 0), cue.index + 1)

    seen: set[CueIdentity] = set()
    unique: list[Cue] = []
    reassigned = 0
    for cue in cues:
        if cue.identity in seen:
            cue = replace(cue, index=next_index[cue.track])
            next_index[cue.track] += 1
            reassigned += 1
        seen.add(cue.identity)
        unique.append(cue)
    if reassigned:
        log.warning("cue_indexes_reassigned", extra={"count": reassigned})
    return unique


class PlaybackSession:
    """Everything one playback session needs, wired together.

    The session is the surface the UI/orchestration layer talks to: cue
    loading, offsets, track toggles, transport controls and play modes. It is
    passed by reference; nothing here is module-global.
    """

    def __init__(
        self,
        settings: Optional[PlaybackSettings] = None,
        *,
        media: Optional["MediaElement"] = None,
        time_source: Optional[TimeSource] = None,
        merger: Optional[DualTrackMerger] = None,
    ) -> None:
        self._settings = settings or PlaybackSettings()
        self.clock = Clock(time_source)
        self.auto_pause = AutoPauseContext()
        self.collection = self._new_collection()
        self.engine = PlaybackEngine(
            self.clock,
            self.auto_pause,
            media,
            seek_timeout_ms=self._settings.seek_timeout_ms,
        )
        self.controller = PlaybackModeController(
            self.engine,
            self.auto_pause,
            self._settings,
            collection=self.collection,
            length=self.length,
            disabled_tracks=lambda: self._disabled_tracks,
        )
        self.merger = merger or DualTrackMerger()
        self._source_cues: list[Cue] = []
        self._offset_ms = 0.0
        self._disabled_tracks: frozenset[int] = frozenset()
        self._media_duration_ms = media.duration_ms if media is not None else 0.0
        self._showing_listeners: list[ShowingListener] = []
        self._last_showing: Optional[tuple[tuple[CueIdentity, float, float], ...]] = None
        self._jobs: list[Disposer] = []

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    @property
    def settings(self) -> PlaybackSettings:
        return self._settings

    def update_settings(self, settings: PlaybackSettings) -> None:
        radius_changed = settings.showing_check_radius_ms != self._settings.showing_check_radius_ms
        self._settings = settings
        self.controller.settings = settings
        if radius_changed:
            self._rebuild()

    # ------------------------------------------------------------------
    # Cues
    # ------------------------------------------------------------------
    @property
    def cues(self) -> list[Cue]:
        return self.collection.subtitles

    def set_cues(self, cues: Optional[Iterable[Cue]]) -> None:
        """Replace the cue set. Cues keep their ``original_*`` times; the offset is reapplied."""

        self._source_cues = _unique_identities(cues or ())
        self._rebuild()
        log.info(
            "cues_loaded",
            extra={"count": len(self._source_cues), "tracks": sorted(self.collection.tracks)},
        )

    def load_records(self, records: Iterable[Mapping[str, Any]]) -> None:
        """Load raw cue records (as found in a cue file); raises ``CueFileError`` if invalid."""

        self.set_cues(parse_cues(list(records)))

    def _new_collection(self) -> SubtitleCollection:
        return SubtitleCollection(
            showing_check_radius_ms=self._settings.showing_check_radius_ms,
            return_next_to_show=True,
            return_last_shown=True,
        )

    def _rebuild(self) -> None:
        collection = self._new_collection()
        collection.set_subtitles(c.with_offset(self._offset_ms) for c in self._source_cues)
        self.collection = collection
        self.controller.load(collection)
        self.auto_pause.clear()
        self._last_showing = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def length(self) -> float:
        return max(self._media_duration_ms, self.collection.length_ms)

    def time(self) -> float:
        return self.clock.time(self.length())

    def progress(self) -> float:
        return self.clock.progress(self.length())

    def subtitles_at(self, timestamp: Optional[float] = None) -> SubtitleSlice:
        at = self.time() if timestamp is None else timestamp
        return self.collection.subtitles_at(at, self._disabled_tracks)

    def showing(self, timestamp: Optional[float] = None) -> list[Cue]:
        """Showing cues after track filtering and master/slave merging."""

        return self.merger.merge(self.subtitles_at(timestamp).showing, self.collection, self._disabled_tracks)

    def on_showing(self, listener: ShowingListener) -> Disposer:
        self._showing_listeners.append(listener)

        def _dispose() -> None:
            if listener in self._showing_listeners:
                self._showing_listeners.remove(listener)

        return _dispose

    # ------------------------------------------------------------------
    # Offset and tracks
    # ------------------------------------------------------------------
    @property
    def offset(self) -> float:
        return self._offset_ms

    def apply_offset(self, offset_ms: float) -> float:
        if self._source_cues:
            last_end = max(c.original_end for c in self._source_cues)
            floor = -max(self._media_duration_ms, last_end)
            offset_ms = max(floor, offset_ms)
        self._offset_ms = float(offset_ms)
        self._rebuild()
        log.info("offset_applied", extra={"offset_ms": self._offset_ms})
        return self._offset_ms

    @property
    def disabled_tracks(self) -> frozenset[int]:
        return self._disabled_tracks

    def toggle_track(self, track: int) -> bool:
        """Flip a track's enabled state; returns True when the track is now enabled."""

        if track in self._disabled_tracks:
            self._disabled_tracks = self._disabled_tracks - {track}
        else:
            self._disabled_tracks = self._disabled_tracks | {track}
        self.auto_pause.clear()
        self._last_showing = None
        return track not in self._disabled_tracks

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------
    @property
    def mode(self) -> PlayMode:
        return self.controller.mode

    def toggle_mode(self, mode: PlayMode) -> PlayMode:
        return self.controller.toggle(mode)

    def on_mode_changed(self, listener: ModeListener) -> Disposer:
        return self.controller.on_mode_changed(listener)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    async def seek(self, time_ms: float) -> None:
        """User-initiated seek; media failures propagate to the caller."""

        target = min(max(0.0, time_ms), self.length()) if self.length() > 0 else max(0.0, time_ms)
        await self.engine.seek_paused(target)

    async def seek_progress(self, progress: float) -> None:
        await self.seek(min(1.0, max(0.0, progress)) * self.length())

    def play(self) -> None:
        self.engine.play()

    def pause(self) -> None:
        self.engine.pause()

    def set_playback_rate(self, rate: float) -> None:
        bounded = min(self._settings.max_playback_rate, max(self._settings.min_playback_rate, rate))
        self.engine.update_playback_rate(round(bounded, 3))

    def adjust_playback_rate(self, increase: bool) -> float:
        step = self._settings.playback_rate_step
        self.set_playback_rate(self.clock.rate + step if increase else self.clock.rate - step)
        return self.clock.rate

    def bind_media(self, media: Optional["MediaElement"]) -> None:
        self.engine.bind_media(media)
        self._media_duration_ms = media.duration_ms if media is not None else 0.0

    def handle_media_ready(self, state: MediaReadyState) -> None:
        """Align the clock with what the media element reports on readiness."""

        self._media_duration_ms = state.duration_ms
        self.clock.set_time(state.current_time_ms)
        if state.paused:
            self.clock.stop()
        else:
            self.clock.start()
        if state.playback_rate > 0:
            self.clock.rate = state.playback_rate
        log.debug(
            "media_ready",
            extra={"paused": state.paused, "rate": state.playback_rate, "duration_ms": state.duration_ms},
        )

    # ------------------------------------------------------------------
    # Tick loop
    # ------------------------------------------------------------------
    def tick(self) -> list[Cue]:
        slice_ = self.controller.tick()
        showing = [] if slice_ is None else self.merger.merge(
            slice_.showing, self.collection, self._disabled_tracks
        )
        self._publish(showing)
        return showing

    def start(self, scheduler: Scheduler) -> None:
        if self._jobs:
            return
        self._jobs = [
            scheduler.every(self._settings.tick_period_ms, self.tick, name="tick"),
            scheduler.every(
                self._settings.standalone_check_period_ms,
                self.controller.standalone_check,
                name="standalone_check",
            ),
        ]

    def stop(self) -> None:
        for dispose in self._jobs:
            dispose()
        self._jobs = []

    async def aclose(self) -> None:
        """Stop ticking and let seeks already in flight finish."""

        self.stop()
        await self.controller.wait_idle()
        self.controller.close()
        self._showing_listeners.clear()

    def _publish(self, showing: list[Cue]) -> None:
        key = tuple((c.identity, c.start, c.end) for c in showing)
        identities = tuple(c.identity for c in showing)
        if self._last_showing is not None and self._last_showing == key:
            return
        self._last_showing = key
        for listener in list(self._showing_listeners):
            listener(list(showing))
        log.debug("showing_changed", extra={"cues": identities})
