# tests/conftest.py
from typing import Callable, Iterable, Optional

import pytest

from cuesync.backend.media.simulated import SimulatedMediaElement
from cuesync.backend.playback.clock import ManualTimeSource
from cuesync.backend.playback.models import Cue
from cuesync.backend.playback.scheduler import ManualScheduler
from cuesync.backend.playback.session import PlaybackSession
from cuesync.config.settings.core import PlaybackSettings


@pytest.fixture
def time_source() -> ManualTimeSource:
    return ManualTimeSource()


@pytest.fixture
def scheduler(time_source) -> ManualScheduler:
    return ManualScheduler(time_source)


@pytest.fixture
def playback_settings() -> PlaybackSettings:
    """Defaults only; never picks up CUESYNC_* variables from the environment."""
    return PlaybackSettings()


@pytest.fixture
def make_session(time_source, playback_settings) -> Callable[..., PlaybackSession]:
    """Factory for a session wired to synthetic time.

    Pass ``media=False`` for standalone playback (no media element).
    """

    def _make(
        cues: Iterable[Cue] = (),
        *,
        settings: Optional[PlaybackSettings] = None,
        media: bool = True,
        duration_ms: float = 10_000.0,
        seek_latency_ms: float = 0.0,
    ) -> PlaybackSession:
        element = None
        if media:
            element = SimulatedMediaElement(
                duration_ms,
                seek_latency_ms=seek_latency_ms,
                time_source=time_source,
            )
        session = PlaybackSession(
            settings or playback_settings,
            media=element,
            time_source=time_source,
        )
        session.set_cues(list(cues))
        return session

    return _make
