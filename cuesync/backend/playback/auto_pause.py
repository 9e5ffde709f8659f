from __future__ import annotations

"""At-most-once routing of cue boundary transitions to subscribers."""

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

from cuesync.backend.common.logging import get_logger
from cuesync.backend.playback.models import Cue, CueIdentity, SubtitleSlice

log = get_logger(__name__)

CueHandler = Callable[[Cue], None]
Disposer = Callable[[], None]


class TransitionKind(str, Enum):
    STARTED_SHOWING = "started_showing"
    WILL_STOP_SHOWING = "will_stop_showing"


@dataclass(frozen=True, slots=True)
class TransitionEvent:
    kind: TransitionKind
    cue: Cue


class AutoPauseContext:
    """Turns per-tick transition sets into one notification per traversal.

    ``observe`` queues an event the first time a cue appears in a transition
    window and remembers its identity until the cue leaves that window again.
    ``drain`` delivers the queue. Which notification actually pauses playback
    is decided by the subscribers, not here.

    After ``clear`` the next observed slice is only recorded: cues already
    inside a window at that moment stay silent until they leave it and the
    clock enters a window again.
    """

    def __init__(self, max_pending: int = 256) -> None:
        self._handlers: dict[TransitionKind, list[CueHandler]] = {kind: [] for kind in TransitionKind}
        self._notified: dict[TransitionKind, set[CueIdentity]] = {kind: set() for kind in TransitionKind}
        self._pending: deque[TransitionEvent] = deque()
        self._max_pending = max_pending
        self._generation = 0
        self._resync = False

    @property
    def pending(self) -> int:
        return len(self._pending)

    def on_started_showing(self, handler: CueHandler) -> Disposer:
        return self._subscribe(TransitionKind.STARTED_SHOWING, handler)

    def on_will_stop_showing(self, handler: CueHandler) -> Disposer:
        return self._subscribe(TransitionKind.WILL_STOP_SHOWING, handler)

    def observe(self, slice_: SubtitleSlice) -> int:
        if self._resync:
            self._resync = False
            self._mark(TransitionKind.STARTED_SHOWING, slice_.started_showing)
            self._mark(TransitionKind.WILL_STOP_SHOWING, slice_.will_stop_showing)
            return 0
        queued = self._observe_kind(TransitionKind.STARTED_SHOWING, slice_.started_showing)
        queued += self._observe_kind(TransitionKind.WILL_STOP_SHOWING, slice_.will_stop_showing)
        return queued

    def drain(self) -> int:
        generation = self._generation
        delivered = 0
        while self._pending:
            event = self._pending.popleft()
            for handler in list(self._handlers[event.kind]):
                handler(event.cue)
            delivered += 1
            if self._generation != generation:
                # A handler cleared the context; anything left is stale.
                break
        return delivered

    def clear(self) -> None:
        self._pending.clear()
        for notified in self._notified.values():
            notified.clear()
        self._generation += 1
        self._resync = True

    def _mark(self, kind: TransitionKind, cues: Optional[Iterable[Cue]]) -> None:
        self._notified[kind] = {cue.identity for cue in cues or ()}

    def _observe_kind(self, kind: TransitionKind, cues: Optional[Iterable[Cue]]) -> int:
        notified = self._notified[kind]
        current = {cue.identity: cue for cue in cues or ()}
        # Identities no longer in the window finished their traversal.
        notified.intersection_update(current)
        queued = 0
        for identity, cue in current.items():
            if identity in notified:
                continue
            notified.add(identity)
            self._enqueue(TransitionEvent(kind=kind, cue=cue))
            queued += 1
        return queued

    def _enqueue(self, event: TransitionEvent) -> None:
        if len(self._pending) >= self._max_pending:
            evicted = self._pending.popleft()
            # Forget it so the next observe can queue it again.
            self._notified[evicted.kind].discard(evicted.cue.identity)
            log.warning(
                "auto_pause_event_evicted",
                extra={"kind": evicted.kind.value, "track": evicted.cue.track, "index": evicted.cue.index},
            )
        self._pending.append(event)

    def _subscribe(self, kind: TransitionKind, handler: CueHandler) -> Disposer:
        handlers = self._handlers[kind]
        handlers.append(handler)

        def _dispose() -> None:
            try:
                handlers.remove(handler)
            except ValueError:
                log.debug("auto_pause_handler_already_removed", extra={"kind": kind.value})

        return _dispose
