"""Periodic job scheduling for the playback tick loop."""

from __future__ import annotations

import asyncio
import heapq
import itertools
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

from cuesync.backend.common.logging import get_logger
from cuesync.backend.playback.clock import ManualTimeSource

log = get_logger(__name__)

Job = Callable[[], None]
Disposer = Callable[[], None]


class Scheduler(Protocol):
    def every(self, period_ms: float, job: Job, *, name: str = "job") -> Disposer:
        ...


class AsyncioScheduler:
    """Runs each job on its own asyncio task, sleeping ``period_ms`` between calls.

    Jobs are synchronous, so one call always finishes before the next one of
    any job starts.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop
        self._tasks: set[asyncio.Task[None]] = set()

    def every(self, period_ms: float, job: Job, *, name: str = "job") -> Disposer:
        if period_ms <= 0:
            raise ValueError("period_ms must be positive")
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(self._run(period_ms / 1000.0, job, name), name=f"cuesync-{name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        def _dispose() -> None:
            task.cancel()

        return _dispose

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()

    async def _run(self, period_s: float, job: Job, name: str) -> None:
        while True:
            await asyncio.sleep(period_s)
            try:
                job()
            except Exception:  # noqa: BLE001
                log.exception("scheduled_job_failed", extra={"job": name})


@dataclass(order=True)
class _Entry:
    due: float
    seq: int
    period: float = field(compare=False)
    job: Job = field(compare=False)
    name: str = field(compare=False)
    cancelled: bool = field(default=False, compare=False)


class ManualScheduler:
    """Deterministic scheduler driven by a :class:`ManualTimeSource`.

    ``advance`` moves synthetic time forward and runs every job that becomes
    due, in due-time order, with the time source set to the due time.
    """

    def __init__(self, time_source: ManualTimeSource) -> None:
        self._time = time_source
        self._queue: list[_Entry] = []
        self._seq = itertools.count()

    @property
    def time_source(self) -> ManualTimeSource:
        return self._time

    def every(self, period_ms: float, job: Job, *, name: str = "job") -> Disposer:
        if period_ms <= 0:
            raise ValueError("period_ms must be positive")
        entry = _Entry(
            due=self._time() + period_ms,
            seq=next(self._seq),
            period=period_ms,
            job=job,
            name=name,
        )
        heapq.heappush(self._queue, entry)

        def _dispose() -> None:
            entry.cancelled = True

        return _dispose

    def advance(self, delta_ms: float) -> int:
        target = self._time() + delta_ms
        ran = 0
        while self._queue and self._queue[0].due <= target:
            entry = heapq.heappop(self._queue)
            if entry.cancelled:
                continue
            if entry.due > self._time():
                self._time.set(entry.due)
            entry.job()
            ran += 1
            if not entry.cancelled:
                entry.due += entry.period
                entry.seq = next(self._seq)
                heapq.heappush(self._queue, entry)
        self._time.set(target)
        return ran
