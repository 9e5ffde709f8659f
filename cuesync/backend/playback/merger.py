from __future__ import annotations

"""Master/slave synchronization of two parallel subtitle tracks."""

import re
from dataclasses import replace
from typing import Collection, Iterable, Optional

from cuesync.backend.playback.collection import SubtitleCollection
from cuesync.backend.playback.models import MASTER_TRACK, SLAVE_TRACK, Cue

_WHITESPACE = re.compile(r"\s+")
_FLOATING_DASH = re.compile(r"\s+-\s+")
_EDGE_DASHES = re.compile(r"^[\s\-]+|[\s\-]+$")


def merge_texts(texts: Iterable[str]) -> str:
    """Join cue texts into one line, removing dialogue dashes left floating by the join."""

    merged = " ".join(texts)
    merged = _WHITESPACE.sub(" ", merged)
    merged = _FLOATING_DASH.sub(" ", merged)
    return _EDGE_DASHES.sub("", merged)


class DualTrackMerger:
    """Shows the slave track only inside master cue windows.

    While a master cue is showing, every slave cue overlapping it is folded
    into one synthetic cue spanning exactly the master interval. Without a
    master cue the slave track is silent, which includes a disabled master
    track. Disabling the slave track turns merging off.
    """

    def __init__(self, master_track: int = MASTER_TRACK, slave_track: int = SLAVE_TRACK) -> None:
        self.master_track = master_track
        self.slave_track = slave_track

    def applies_to(self, collection: SubtitleCollection, disabled_tracks: Collection[int] = ()) -> bool:
        tracks = collection.tracks
        return (
            self.master_track in tracks
            and self.slave_track in tracks
            and self.slave_track not in disabled_tracks
        )

    def merge(
        self,
        showing: list[Cue],
        collection: SubtitleCollection,
        disabled_tracks: Collection[int] = (),
    ) -> list[Cue]:
        if not self.applies_to(collection, disabled_tracks):
            return sorted(showing, key=lambda c: c.track)

        merged = [c for c in showing if c.track != self.slave_track]
        master = next((c for c in merged if c.track == self.master_track), None)
        if master is not None:
            synthetic = self._synthesize(master, collection)
            if synthetic is not None:
                merged.append(synthetic)
        return sorted(merged, key=lambda c: c.track)

    def _synthesize(self, master: Cue, collection: SubtitleCollection) -> Optional[Cue]:
        contributors = collection.overlapping(master.start, master.end, track=self.slave_track)
        if not contributors:
            return None
        text = merge_texts(c.text for c in contributors)
        if not text:
            return None
        first = contributors[0]
        return replace(first, start=master.start, end=master.end, text=text)
