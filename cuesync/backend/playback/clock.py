"""Virtual playback clock decoupled from the media element."""

from __future__ import annotations

import time
from typing import Callable, Optional

TimeSource = Callable[[], float]


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class ManualTimeSource:
    """Wall-time source that only moves when told to."""

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now = float(start_ms)

    def __call__(self) -> float:
        return self._now

    def advance(self, delta_ms: float) -> float:
        if delta_ms < 0:
            raise ValueError("Time cannot move backwards")
        self._now += delta_ms
        return self._now

    def set(self, now_ms: float) -> None:
        if now_ms < self._now:
            raise ValueError("Time cannot move backwards")
        self._now = float(now_ms)


class Clock:
    """Logical media time derived from an anchor and a wall-time source.

    While running, ``time()`` is ``anchor_logical + (now - anchor_real) * rate``.
    While stopped it stays at the anchor. Every mutation rebases the anchor so
    that the logical time never jumps.
    """

    def __init__(self, now: Optional[TimeSource] = None) -> None:
        self._now: TimeSource = now or monotonic_ms
        self._anchor_real = self._now()
        self._anchor_logical = 0.0
        self._rate = 1.0
        self._running = False

    @property
    def now(self) -> TimeSource:
        return self._now

    @property
    def running(self) -> bool:
        return self._running

    @property
    def rate(self) -> float:
        return self._rate

    @rate.setter
    def rate(self, value: float) -> None:
        self.set_rate(value)

    def start(self) -> None:
        if self._running:
            return
        self._anchor_real = self._now()
        self._running = True

    def stop(self) -> None:
        if not self._running:
            return
        self._anchor_logical = self._raw_time()
        self._anchor_real = self._now()
        self._running = False

    def set_time(self, time_ms: float) -> None:
        self._anchor_logical = float(time_ms)
        self._anchor_real = self._now()

    def set_rate(self, rate: float) -> None:
        if rate <= 0:
            raise ValueError(f"Playback rate must be positive, got {rate}")
        self._anchor_logical = self._raw_time()
        self._anchor_real = self._now()
        self._rate = float(rate)

    def time(self, length_ms: Optional[float] = None) -> float:
        value = max(0.0, self._raw_time())
        if length_ms is not None:
            value = min(value, max(0.0, length_ms))
        return value

    def progress(self, length_ms: float) -> float:
        if length_ms <= 0:
            return 0.0
        return min(1.0, self.time(length_ms) / length_ms)

    def _raw_time(self) -> float:
        if not self._running:
            return self._anchor_logical
        return self._anchor_logical + (self._now() - self._anchor_real) * self._rate
