from __future__ import annotations

"""Boundary between the playback core and a concrete media element."""

from typing import Protocol, runtime_checkable

from cuesync.backend.playback.models import MediaReadyState


@runtime_checkable
class MediaElement(Protocol):
    """What the playback core needs from a video/audio element.

    ``seek`` may cross a process boundary and take hundreds of milliseconds;
    everything else is fire-and-forget.
    """

    @property
    def duration_ms(self) -> float:
        ...

    async def seek(self, time_ms: float) -> None:
        ...

    def play(self) -> None:
        ...

    def pause(self) -> None:
        ...

    def set_playback_rate(self, rate: float) -> None:
        ...

    def ready_state(self) -> MediaReadyState:
        ...
