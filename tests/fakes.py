# tests/fakes.py
from typing import Any, List

from cuesync.backend.playback.models import Cue, PlayMode
from cuesync.backend.playback.scheduler import ManualScheduler
from cuesync.backend.playback.session import PlaybackSession


class Recorder:
    """Callable that remembers every call's arguments."""

    def __init__(self) -> None:
        self.calls: List[Any] = []

    def __call__(self, *args: Any) -> None:
        self.calls.append(args[0] if len(args) == 1 else args)

    def __len__(self) -> int:
        return len(self.calls)


class ModeLog(Recorder):
    def transitions(self) -> List[tuple[PlayMode, PlayMode]]:
        return list(self.calls)


class BrokenMedia:
    """Media element whose seek raises something that is not a SeekError."""

    duration_ms = 10_000.0

    def __init__(self) -> None:
        self.played = 0
        self.paused = 0

    async def seek(self, time_ms: float) -> None:
        raise RuntimeError("decoder crashed")

    def play(self) -> None:
        self.played += 1

    def pause(self) -> None:
        self.paused += 1

    def set_playback_rate(self, rate: float) -> None:
        pass

    def ready_state(self):  # pragma: no cover - not used by the tests
        raise NotImplementedError


async def drive(session: PlaybackSession, scheduler: ManualScheduler, duration_ms: float, step_ms: float = 100.0) -> None:
    """Advance synthetic time in tick-sized steps, letting spawned seeks settle after each."""
    elapsed = 0.0
    while elapsed < duration_ms:
        scheduler.advance(step_ms)
        await session.controller.wait_idle()
        elapsed += step_ms


def cue(start: float, end: float, track: int = 0, index: int = 0, text: str = "") -> Cue:
    return Cue.create(start, end, track=track, index=index, text=text)


class FakeVlcPlayer:
    def __init__(self) -> None:
        self.time = 0
        self.rate = 1.0
        self.playing = False
        self.media = None

    def set_media(self, media) -> None:
        self.media = media

    def set_time(self, ms: int) -> None:
        self.time = ms

    def get_time(self) -> int:
        return self.time

    def get_length(self) -> int:
        return 90_000

    def play(self) -> int:
        self.playing = True
        return 0

    def set_pause(self, flag: int) -> None:
        self.playing = not flag

    def set_rate(self, rate: float) -> int:
        self.rate = rate
        return 0

    def get_rate(self) -> float:
        return self.rate

    def get_state(self) -> str:
        return "playing" if self.playing else "paused"

    def stop(self) -> None:
        self.playing = False

    def release(self) -> None:
        pass


class FakeVlcInstance:
    def __init__(self) -> None:
        self.player = FakeVlcPlayer()

    def media_player_new(self) -> FakeVlcPlayer:
        return self.player

    def media_new(self, source: str) -> str:
        return source

    def release(self) -> None:
        pass


class FakeVlcModule:
    """Just enough of python-vlc's surface for the media adapter."""

    class State:
        Playing = "playing"

    def __init__(self) -> None:
        self.instances: List[FakeVlcInstance] = []

    def Instance(self) -> FakeVlcInstance:
        instance = FakeVlcInstance()
        self.instances.append(instance)
        return instance
