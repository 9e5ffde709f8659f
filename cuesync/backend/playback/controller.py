from __future__ import annotations

"""Play-mode state machine driven by the periodic tick."""

import asyncio
from typing import Any, Callable, Collection, Coroutine, Optional

from cuesync.backend.common.logging import get_logger
from cuesync.backend.playback.auto_pause import AutoPauseContext, Disposer
from cuesync.backend.playback.collection import SubtitleCollection
from cuesync.backend.playback.engine import PlaybackEngine, SeekGuard, SeekTicket
from cuesync.backend.playback.exceptions import SeekError
from cuesync.backend.playback.models import AutoPausePreference, Cue, PlayMode, SubtitleSlice
from cuesync.config.settings.core import PlaybackSettings

log = get_logger(__name__)

ModeListener = Callable[[PlayMode, PlayMode], None]

_SEEK_CONDENSED = "condensed"
_SEEK_REPEAT = "repeat"
_SEEK_LOOP = "loop_to_start"


class PlaybackModeController:
    """Owns the active :class:`PlayMode` and the per-tick mode behaviour.

    Each ``tick`` runs in a fixed order: slice at the clock time, transition
    dispatch through the auto-pause context, then the mode action. Seeks are
    started as asyncio tasks behind a :class:`SeekGuard`; a tick that finds a
    seek in flight drops its own.
    """

    def __init__(
        self,
        engine: PlaybackEngine,
        auto_pause: AutoPauseContext,
        settings: Optional[PlaybackSettings] = None,
        *,
        collection: Optional[SubtitleCollection] = None,
        length: Optional[Callable[[], float]] = None,
        disabled_tracks: Optional[Callable[[], Collection[int]]] = None,
    ) -> None:
        self._engine = engine
        self._auto_pause = auto_pause
        self._settings = settings or PlaybackSettings()
        self._collection = collection or SubtitleCollection.empty()
        self._length = length or (lambda: self._collection.length_ms)
        self._disabled_tracks = disabled_tracks or (lambda: ())
        self._mode = PlayMode.NORMAL
        self._generation = 0
        self._expected_seek_time_ms = self._settings.initial_expected_seek_time_ms
        self._guard = SeekGuard()
        self._tasks: set[asyncio.Task[None]] = set()
        self._listeners: list[ModeListener] = []
        self._last_slice: Optional[SubtitleSlice] = None
        self._subscriptions: list[Disposer] = [
            auto_pause.on_started_showing(self._handle_started_showing),
            auto_pause.on_will_stop_showing(self._handle_will_stop_showing),
        ]

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------
    @property
    def mode(self) -> PlayMode:
        return self._mode

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def expected_seek_time_ms(self) -> float:
        return self._expected_seek_time_ms

    @property
    def seek_in_flight(self) -> bool:
        return self._guard.in_flight

    @property
    def last_slice(self) -> Optional[SubtitleSlice]:
        return self._last_slice

    @property
    def settings(self) -> PlaybackSettings:
        return self._settings

    @settings.setter
    def settings(self, value: PlaybackSettings) -> None:
        self._settings = value

    @property
    def modes_available(self) -> bool:
        return len(self._collection) > 0

    # ------------------------------------------------------------------
    # Mode transitions
    # ------------------------------------------------------------------
    def on_mode_changed(self, listener: ModeListener) -> Disposer:
        self._listeners.append(listener)

        def _dispose() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _dispose

    def toggle(self, mode: PlayMode) -> PlayMode:
        if not self.modes_available:
            log.debug("play_mode_toggle_ignored", extra={"requested": mode.value, "reason": "no_cues"})
            return self._mode

        new_mode = PlayMode.NORMAL if self._mode == mode else mode
        if new_mode == PlayMode.REPEAT and not self._slice_now().showing:
            log.debug("play_mode_toggle_ignored", extra={"requested": mode.value, "reason": "nothing_showing"})
            return self._mode

        self._set_mode(new_mode)
        return self._mode

    def reset(self) -> None:
        self._set_mode(PlayMode.NORMAL)

    def load(self, collection: SubtitleCollection) -> None:
        """Switch to a rebuilt collection; in-flight seek results become stale."""

        self._collection = collection
        self._generation += 1
        self._last_slice = None
        if not self.modes_available:
            self.reset()

    def _set_mode(self, new_mode: PlayMode) -> None:
        old_mode = self._mode
        if old_mode == new_mode:
            return
        self._mode = new_mode
        self._generation += 1
        if old_mode == PlayMode.FAST_FORWARD:
            self._engine.update_playback_rate(1.0)
        log.info("play_mode_changed", extra={"old": old_mode.value, "new": new_mode.value})
        for listener in list(self._listeners):
            listener(old_mode, new_mode)

    # ------------------------------------------------------------------
    # Periodic work
    # ------------------------------------------------------------------
    def tick(self) -> Optional[SubtitleSlice]:
        if not self.modes_available:
            return None

        timestamp = self._engine.clock.time(self._length())
        slice_ = self._collection.subtitles_at(timestamp, self._disabled_tracks())
        self._last_slice = slice_

        self._auto_pause.observe(slice_)
        self._auto_pause.drain()

        if self._mode == PlayMode.CONDENSED:
            self._condensed_step(timestamp, slice_)
        elif self._mode == PlayMode.FAST_FORWARD:
            self._fast_forward_step(timestamp, slice_)

        return slice_

    def standalone_check(self) -> None:
        """Loop back to the start when playing subtitles without a media element."""

        clock = self._engine.clock
        if not self._engine.standalone or not clock.running:
            return
        length = self._length()
        if length <= 0 or clock.progress(length) < 1:
            return
        self._engine.pause()
        self._request_seek(0.0, _SEEK_LOOP)

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        for dispose in self._subscriptions:
            dispose()
        self._subscriptions = []
        self._listeners.clear()

    def _slice_now(self) -> SubtitleSlice:
        timestamp = self._engine.clock.time(self._length())
        return self._collection.subtitles_at(timestamp, self._disabled_tracks())

    def _condensed_step(self, timestamp: float, slice_: SubtitleSlice) -> None:
        # Only silence is skipped; a showing cue always plays out.
        if slice_.showing or not slice_.next_to_show:
            return
        next_cue = slice_.next_to_show[0]
        gap = next_cue.start - timestamp
        if gap <= self._expected_seek_time_ms + self._settings.condensed_margin_ms:
            return
        self._request_seek(next_cue.start, _SEEK_CONDENSED)

    def _fast_forward_step(self, timestamp: float, slice_: SubtitleSlice) -> None:
        next_cues = slice_.next_to_show
        silent = not slice_.showing and (
            not next_cues or next_cues[0].start - timestamp > self._settings.fast_forward_gap_ms
        )
        rate = self._settings.fast_forward_rate if silent else 1.0
        self._engine.update_playback_rate(rate)

    # ------------------------------------------------------------------
    # Transition handlers
    # ------------------------------------------------------------------
    def _handle_started_showing(self, cue: Cue) -> None:
        if (
            self._mode == PlayMode.AUTO_PAUSE
            and self._settings.auto_pause_preference == AutoPausePreference.AT_START
        ):
            log.debug("auto_pause_at_start", extra={"track": cue.track, "index": cue.index})
            self._engine.pause()

    def _handle_will_stop_showing(self, cue: Cue) -> None:
        if self._mode == PlayMode.REPEAT:
            self._request_seek(cue.start, _SEEK_REPEAT)
        elif (
            self._mode == PlayMode.AUTO_PAUSE
            and self._settings.auto_pause_preference == AutoPausePreference.AT_END
        ):
            log.debug("auto_pause_at_end", extra={"track": cue.track, "index": cue.index})
            self._engine.pause()

    # ------------------------------------------------------------------
    # Seeks
    # ------------------------------------------------------------------
    def _request_seek(self, target_ms: float, reason: str) -> bool:
        ticket = self._guard.try_begin(target_ms, self._generation, self._engine.clock.now(), reason)
        if ticket is None:
            log.debug("mode_seek_dropped", extra={"target_ms": target_ms, "reason": reason})
            return False
        return self._spawn(self._perform_seek(ticket), ticket)

    def _spawn(self, coro: Coroutine[Any, Any, None], ticket: SeekTicket) -> bool:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            self._guard.finish(ticket)
            log.warning("mode_seek_without_event_loop", extra={"target_ms": ticket.target_ms})
            return False
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def _perform_seek(self, ticket: SeekTicket) -> None:
        try:
            await self._engine.seek_paused(ticket.target_ms)
        except SeekError as exc:
            log.warning(
                "mode_seek_failed",
                extra={"target_ms": ticket.target_ms, "reason": ticket.reason, "error": str(exc)},
            )
            return
        finally:
            self._guard.finish(ticket)

        elapsed = self._engine.clock.now() - ticket.started_at
        if ticket.generation != self._generation:
            log.debug("mode_seek_result_stale", extra={"target_ms": ticket.target_ms, "reason": ticket.reason})
            return
        if ticket.reason == _SEEK_CONDENSED:
            self._expected_seek_time_ms = elapsed
            log.debug("expected_seek_time_updated", extra={"expected_seek_time_ms": elapsed})
