# tests/test_collection.py
import random

from cuesync.backend.playback.collection import SubtitleCollection
from cuesync.backend.playback.models import Cue

from tests.fakes import cue


def _identities(cues):
    return {c.identity for c in cues}


def _random_cues(seed: int, count: int = 200) -> list[Cue]:
    rng = random.Random(seed)
    cues = []
    for i in range(count):
        start = rng.randrange(0, 20_000, 10)
        duration = rng.choice([0, rng.randrange(10, 4_000, 10)])
        cues.append(cue(start, start + duration, track=rng.randrange(0, 3), index=i))
    return cues


def test_showing_matches_linear_scan():
    for seed in (1, 7, 42):
        cues = _random_cues(seed)
        collection = SubtitleCollection()
        collection.set_subtitles(cues)
        sample_times = {c.start for c in cues} | {c.end for c in cues} | set(range(0, 25_000, 37))
        for t in sorted(sample_times):
            expected = {c.identity for c in cues if c.start <= t < c.end}
            assert _identities(collection.subtitles_at(t).showing) == expected, t


def test_boundary_is_start_inclusive_end_exclusive():
    a = cue(0, 1_000, index=0)
    b = cue(1_000, 2_000, index=1)
    collection = SubtitleCollection(showing_check_radius_ms=150)
    collection.set_subtitles([a, b])

    at_boundary = collection.subtitles_at(1_000)
    assert at_boundary.showing == [b]
    assert at_boundary.started_showing == [b]
    assert at_boundary.will_stop_showing == []

    assert collection.subtitles_at(849).will_stop_showing == []
    assert collection.subtitles_at(850).will_stop_showing == [a]
    assert collection.subtitles_at(999).will_stop_showing == [a]


def test_next_to_show_groups_equal_starts_and_honours_exclusions():
    cues = [
        cue(0, 1_000, index=0),
        cue(3_000, 4_000, track=0, index=1),
        cue(3_000, 3_500, track=1, index=0),
    ]
    collection = SubtitleCollection()
    collection.set_subtitles(cues)

    assert _identities(collection.subtitles_at(2_500).next_to_show) == {(0, 1), (1, 0)}
    assert collection.subtitles_at(2_500, exclude_tracks={1}).next_to_show == [cues[1]]
    assert collection.subtitles_at(5_000).next_to_show is None


def test_next_to_show_can_be_turned_off():
    collection = SubtitleCollection(return_next_to_show=False, showing_check_radius_ms=None)
    collection.set_subtitles([cue(1_000, 2_000)])
    result = collection.subtitles_at(0)
    assert result.next_to_show is None
    assert result.started_showing is None
    assert result.will_stop_showing is None


def test_last_shown():
    a = cue(0, 1_000, index=0)
    b = cue(1_000, 2_000, index=1)
    collection = SubtitleCollection(return_last_shown=True)
    collection.set_subtitles([a, b, cue(2_200, 2_200, index=2)])

    assert collection.subtitles_at(100).last_shown is None
    assert collection.subtitles_at(1_500).last_shown == [a]
    # The zero-duration cue at 2200 never showed.
    assert collection.subtitles_at(2_500).last_shown == [b]


def test_excluded_tracks_are_invisible():
    master = cue(0, 2_000, track=0)
    slave = cue(500, 1_500, track=1)
    collection = SubtitleCollection(return_last_shown=True)
    collection.set_subtitles([master, slave])

    result = collection.subtitles_at(1_000, exclude_tracks={1})
    assert result.showing == [master]
    assert slave not in result.started_showing
    assert collection.subtitles_at(1_800, exclude_tracks={1}).last_shown is None


def test_inverted_cue_becomes_zero_duration():
    collection = SubtitleCollection()
    collection.set_subtitles([cue(500, 200)])
    stored = collection.subtitles[0]
    assert stored.start == stored.end == 500
    assert collection.subtitles_at(500).showing == []


def test_overlapping_interval_query():
    slave_a = cue(1_800, 2_900, track=1, index=0)
    slave_b = cue(2_900, 4_100, track=1, index=1)
    far = cue(5_000, 6_000, track=1, index=2)
    master = cue(2_000, 4_000, track=0, index=0)
    collection = SubtitleCollection()
    collection.set_subtitles([master, slave_a, slave_b, far])

    assert collection.overlapping(2_000, 4_000, track=1) == [slave_a, slave_b]
    assert collection.overlapping(2_000, 4_000) == [slave_a, master, slave_b]
    assert collection.overlapping(4_000, 4_000) == []


def test_empty_collection():
    collection = SubtitleCollection.empty()
    result = collection.subtitles_at(1_000)
    assert result.showing == []
    assert result.next_to_show is None
    assert collection.length_ms == 0
    assert len(collection) == 0
