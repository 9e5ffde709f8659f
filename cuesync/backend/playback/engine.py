"""Clock/media wiring: seek, play, pause and playback rate."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from cuesync.backend.common.logging import get_logger
from cuesync.backend.playback.auto_pause import AutoPauseContext
from cuesync.backend.playback.clock import Clock
from cuesync.backend.playback.exceptions import SeekError, SeekTimeout

if TYPE_CHECKING:
    from cuesync.backend.media.base import MediaElement

log = get_logger(__name__)


@dataclass(slots=True)
class SeekTicket:
    target_ms: float
    generation: int
    started_at: float
    reason: str


class SeekGuard:
    """Explicit in-flight state for seeks issued by the mode controller."""

    def __init__(self) -> None:
        self._ticket: Optional[SeekTicket] = None

    @property
    def in_flight(self) -> bool:
        return self._ticket is not None

    @property
    def ticket(self) -> Optional[SeekTicket]:
        return self._ticket

    def try_begin(self, target_ms: float, generation: int, now_ms: float, reason: str) -> Optional[SeekTicket]:
        if self._ticket is not None:
            return None
        self._ticket = SeekTicket(target_ms=target_ms, generation=generation, started_at=now_ms, reason=reason)
        return self._ticket

    def finish(self, ticket: SeekTicket) -> None:
        if self._ticket is ticket:
            self._ticket = None


class PlaybackEngine:
    """Keeps the clock, the media element and the auto-pause context in step.

    Without a media element the engine drives the clock alone ("standalone"
    playback of a subtitle file).
    """

    def __init__(
        self,
        clock: Clock,
        auto_pause: AutoPauseContext,
        media: Optional["MediaElement"] = None,
        *,
        seek_timeout_ms: Optional[float] = 5000.0,
    ) -> None:
        self._clock = clock
        self._auto_pause = auto_pause
        self._media = media
        self._seek_timeout_ms = seek_timeout_ms
        self._pause_requests = 0

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def media(self) -> Optional["MediaElement"]:
        return self._media

    @property
    def standalone(self) -> bool:
        return self._media is None

    @property
    def pause_requests(self) -> int:
        """Counter bumped by every pause; lets seeks detect a pause issued meanwhile."""

        return self._pause_requests

    def bind_media(self, media: Optional["MediaElement"]) -> None:
        self._media = media

    async def seek(self, time_ms: float, forward_to_media: bool = True) -> None:
        self._clock.set_time(time_ms)
        try:
            if forward_to_media and self._media is not None:
                await self._forward_seek(time_ms)
        finally:
            self._auto_pause.clear()

    async def seek_paused(self, time_ms: float, forward_to_media: bool = True) -> None:
        """Seek with the clock stopped for the round trip.

        The clock is restarted afterwards if it was running before and nobody
        paused playback while the seek was in flight, even when the seek fails.
        """

        playing = self._clock.running
        pauses_before = self._pause_requests
        if playing:
            self._clock.stop()
        try:
            await self.seek(time_ms, forward_to_media)
        finally:
            if playing and self._pause_requests == pauses_before:
                self._clock.start()

    def play(self, forward_to_media: bool = True) -> None:
        self._clock.start()
        if forward_to_media and self._media is not None:
            self._media.play()

    def pause(self, forward_to_media: bool = True) -> None:
        self._pause_requests += 1
        self._clock.stop()
        if forward_to_media and self._media is not None:
            self._media.pause()

    def update_playback_rate(self, rate: float, forward_to_media: bool = True) -> bool:
        if self._clock.rate == rate:
            return False
        self._clock.rate = rate
        if forward_to_media and self._media is not None:
            self._media.set_playback_rate(rate)
        log.debug("playback_rate_changed", extra={"rate": rate})
        return True

    async def _forward_seek(self, time_ms: float) -> None:
        assert self._media is not None
        timeout = None if self._seek_timeout_ms is None else self._seek_timeout_ms / 1000.0
        try:
            await asyncio.wait_for(self._media.seek(time_ms), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise SeekTimeout(f"Seek to {time_ms}ms timed out after {self._seek_timeout_ms}ms") from exc
        except SeekError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise SeekError(f"Seek to {time_ms}ms failed: {exc}") from exc
