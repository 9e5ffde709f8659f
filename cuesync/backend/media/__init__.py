"""Media elements the playback core can drive."""

from cuesync.backend.media.base import MediaElement
from cuesync.backend.media.simulated import SimulatedMediaElement
from cuesync.backend.media.vlc_player import VlcMediaElement

__all__ = [
    "MediaElement",
    "SimulatedMediaElement",
    "VlcMediaElement",
]
