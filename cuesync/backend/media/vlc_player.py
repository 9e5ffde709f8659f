from __future__ import annotations

"""VLC-backed media element."""

import asyncio
from pathlib import Path
from typing import Optional, Union

from cuesync.backend.common.logging import get_logger
from cuesync.backend.media.vlc_paths import prepare_vlc_runtime
from cuesync.backend.playback.exceptions import MediaUnavailable, SeekError
from cuesync.backend.playback.models import MediaReadyState

log = get_logger(__name__)

_SEEK_POLL_S = 0.02
_SEEK_TOLERANCE_MS = 250


class VlcMediaElement:
    """Adapts a python-vlc media player to the playback core.

    VLC applies ``set_time`` asynchronously, so ``seek`` polls the reported
    position until it lands near the target. The engine wraps this call in
    its own timeout.
    """

    def __init__(self, source: Union[str, Path], *, vlc_root: Optional[str] = None) -> None:
        runtime = prepare_vlc_runtime(vlc_root)
        if runtime is None:
            log.warning("vlc_runtime_not_configured", extra={"hint": "Using system VLC installation"})
        try:
            import vlc  # type: ignore
        except Exception as exc:  # noqa: BLE001
            raise MediaUnavailable(f"python-vlc import failed: {exc}") from exc
        self._vlc = vlc
        self._instance = vlc.Instance()
        if self._instance is None:
            raise MediaUnavailable("libvlc could not be initialised")
        self._player = self._instance.media_player_new()
        self._media = self._instance.media_new(str(source))
        self._player.set_media(self._media)
        self._source = str(source)
        log.info("vlc_media_loaded", extra={"source": self._source})

    @property
    def duration_ms(self) -> float:
        length = self._player.get_length()
        return float(length) if length and length > 0 else 0.0

    async def seek(self, time_ms: float) -> None:
        target = int(max(0.0, time_ms))
        result = self._player.set_time(target)
        if result not in (None, 0):
            raise SeekError(f"VLC rejected seek to {target}ms")
        while abs(self._player.get_time() - target) > _SEEK_TOLERANCE_MS:
            await asyncio.sleep(_SEEK_POLL_S)
        log.debug("vlc_seek_done", extra={"time_ms": target})

    def play(self) -> None:
        self._player.play()

    def pause(self) -> None:
        self._player.set_pause(1)

    def set_playback_rate(self, rate: float) -> None:
        if self._player.set_rate(rate) == -1:
            log.warning("vlc_rate_rejected", extra={"rate": rate})

    def ready_state(self) -> MediaReadyState:
        state = self._player.get_state()
        paused = state != self._vlc.State.Playing
        position = self._player.get_time()
        return MediaReadyState(
            paused=paused,
            playback_rate=self._player.get_rate() or 1.0,
            duration_ms=self.duration_ms,
            current_time_ms=float(position) if position and position > 0 else 0.0,
        )

    def release(self) -> None:
        self._player.stop()
        self._player.release()
        self._instance.release()
