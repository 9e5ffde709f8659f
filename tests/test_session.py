# tests/test_session.py
import asyncio

from cuesync.backend.playback.models import MediaReadyState

from tests.fakes import Recorder, cue


def test_offset_shifts_cues_and_keeps_originals(make_session):
    session = make_session([cue(1_000, 2_000)])
    assert session.apply_offset(500) == 500
    shifted = session.cues[0]
    assert (shifted.start, shifted.end) == (1_500, 2_500)
    assert (shifted.original_start, shifted.original_end) == (1_000, 2_000)

    assert session.apply_offset(-100_000) == -10_000
    session.apply_offset(0)
    assert session.cues[0].start == 1_000


def test_toggle_track_hides_its_cues(make_session):
    session = make_session([cue(0, 2_000, track=0), cue(0, 2_000, track=2)])
    assert session.toggle_track(2) is False
    assert session.disabled_tracks == frozenset({2})
    assert [c.track for c in session.showing(1_000)] == [0]
    assert session.toggle_track(2) is True
    assert [c.track for c in session.showing(1_000)] == [0, 2]


def test_showing_listener_only_hears_changes(make_session):
    session = make_session([cue(1_000, 2_000)])
    heard = Recorder()
    dispose = session.on_showing(heard)

    for t in (500, 600, 1_000, 1_500, 2_000):
        session.clock.set_time(t)
        session.tick()

    assert [[c.index for c in showing] for showing in heard.calls] == [[], [0], []]
    dispose()
    session.clock.set_time(1_200)
    session.tick()
    assert len(heard) == 3


def test_media_ready_aligns_the_clock(make_session):
    session = make_session([cue(0, 1_000)])
    session.handle_media_ready(
        MediaReadyState(paused=False, playback_rate=1.5, duration_ms=20_000, current_time_ms=3_000)
    )
    assert session.clock.running
    assert session.clock.rate == 1.5
    assert session.time() == 3_000
    assert session.length() == 20_000


def test_playback_rate_is_bounded(make_session):
    session = make_session([cue(0, 1_000)])
    session.set_playback_rate(10)
    assert session.clock.rate == 5.0
    session.set_playback_rate(1.0)
    assert session.adjust_playback_rate(increase=False) == 0.9
    assert session.engine.media.playback_rate == 0.9


def test_user_seek_is_clamped(make_session):
    session = make_session([cue(0, 1_000)], duration_ms=8_000)

    async def scenario():
        await session.seek(-50)
        assert session.time() == 0
        await session.seek(99_999)
        assert session.time() == 8_000
        await session.seek_progress(0.25)
        assert session.time() == 2_000

    asyncio.run(scenario())
    assert session.engine.media.seeks == [0, 8_000, 2_000]


def test_length_without_media_uses_last_cue(make_session):
    session = make_session([cue(0, 1_000), cue(3_000, 4_500, index=1)], media=False)
    assert session.length() == 4_500
    assert session.engine.standalone


def test_load_records_assigns_indexes(make_session):
    session = make_session()
    session.load_records([{"start": 0, "end": 500, "text": "uno"}, {"start": 600, "end": 900, "text": "dos"}])
    assert [c.identity for c in session.cues] == [(0, 0), (0, 1)]
    assert [c.text for c in session.showing(700)] == ["dos"]


def test_colliding_identities_get_distinct_indexes(make_session):
    session = make_session([cue(2_000, 3_000, text="a"), cue(2_500, 3_000, text="b"), cue(4_000, 5_000, index=1)])
    assert sorted(c.identity for c in session.cues) == [(0, 0), (0, 1), (0, 2)]
    assert {c.text: c.index for c in session.cues} == {"a": 0, "b": 2, "": 1}

    stopping = Recorder()
    session.auto_pause.on_will_stop_showing(stopping)
    for t in (2_000, 2_900):
        session.auto_pause.observe(session.subtitles_at(t))
    session.auto_pause.drain()
    assert sorted(c.text for c in stopping.calls) == ["a", "b"]
