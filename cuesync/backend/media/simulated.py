from __future__ import annotations

"""Headless media element used by the CLI simulator and the test-suite."""

import asyncio
from typing import Any, Optional

from cuesync.backend.common.logging import get_logger
from cuesync.backend.playback.clock import ManualTimeSource, TimeSource, monotonic_ms
from cuesync.backend.playback.exceptions import SeekError
from cuesync.backend.playback.models import MediaReadyState

log = get_logger(__name__)


class SimulatedMediaElement:
    """Keeps position/paused/rate state and records every call it receives.

    With a :class:`ManualTimeSource` a seek advances synthetic time by
    ``seek_latency_ms`` instead of sleeping, so seek round trips are measurable
    in deterministic tests.
    """

    def __init__(
        self,
        duration_ms: float = 0.0,
        *,
        seek_latency_ms: float = 0.0,
        time_source: Optional[TimeSource] = None,
        paused: bool = True,
    ) -> None:
        self._duration_ms = float(duration_ms)
        self.seek_latency_ms = float(seek_latency_ms)
        self._time = time_source or monotonic_ms
        self.paused = paused
        self.playback_rate = 1.0
        self.position_ms = 0.0
        self.fail_next_seeks = 0
        self.hang_seeks = False
        self.calls: list[tuple[Any, ...]] = []

    @property
    def duration_ms(self) -> float:
        return self._duration_ms

    @property
    def seeks(self) -> list[float]:
        return [call[1] for call in self.calls if call[0] == "seek"]

    async def seek(self, time_ms: float) -> None:
        self.calls.append(("seek", time_ms, self._time()))
        if self.hang_seeks:
            await asyncio.Event().wait()
        if self.fail_next_seeks > 0:
            self.fail_next_seeks -= 1
            raise SeekError(f"Simulated seek failure at {time_ms}ms")
        if isinstance(self._time, ManualTimeSource):
            self._time.advance(self.seek_latency_ms)
            await asyncio.sleep(0)
        else:
            await asyncio.sleep(self.seek_latency_ms / 1000.0)
        self.position_ms = max(0.0, float(time_ms))
        log.debug("simulated_seek_done", extra={"time_ms": time_ms})

    def play(self) -> None:
        self.calls.append(("play", self._time()))
        self.paused = False

    def pause(self) -> None:
        self.calls.append(("pause", self._time()))
        self.paused = True

    def set_playback_rate(self, rate: float) -> None:
        self.calls.append(("rate", rate, self._time()))
        self.playback_rate = rate

    def ready_state(self) -> MediaReadyState:
        return MediaReadyState(
            paused=self.paused,
            playback_rate=self.playback_rate,
            duration_ms=self._duration_ms,
            current_time_ms=self.position_ms,
        )
