# tests/test_cli.py
import json

import pytest

from cuesync.cli.playback import main


@pytest.fixture
def cue_file(tmp_path):
    path = tmp_path / "cues.json"
    path.write_text(
        json.dumps(
            [
                {"start": 0, "end": 1000, "text": "Hello"},
                {"start": 5000, "end": 6000, "text": "again"},
                {"start": 5200, "end": 5800, "text": "otra vez", "track": 1},
            ]
        ),
        encoding="utf-8",
    )
    return path


def test_slice_prints_the_active_cues(cue_file, capsys):
    main(["slice", str(cue_file), "5500"])
    payload = json.loads(capsys.readouterr().out)
    assert payload["time_ms"] == 5500
    assert [c["text"] for c in payload["showing"]] == ["again", "otra vez"]
    assert payload["next_to_show"] is None
    assert [c["text"] for c in payload["last_shown"]] == ["Hello"]
    assert [(c["track"], c["text"]) for c in payload["merged"]] == [(0, "again"), (1, "otra vez")]


def test_slice_can_hide_tracks(cue_file, capsys):
    main(["slice", str(cue_file), "5500", "--exclude-track", "1"])
    payload = json.loads(capsys.readouterr().out)
    assert [c["text"] for c in payload["showing"]] == ["again"]


def test_simulate_condensed(cue_file, capsys):
    main(["simulate", str(cue_file), "--mode", "condensed", "--seek-latency-ms", "250"])
    payload = json.loads(capsys.readouterr().out)
    assert payload["mode"] == "condensed"
    assert payload["expected_seek_time_ms"] == 250
    seeks = [call for call in payload["media_calls"] if call[0] == "seek"]
    assert seeks == [["seek", 5000.0, 1000.0]]
    shown = [e["cues"] for e in payload["events"] if e["event"] == "showing"]
    assert [[0, 0, "Hello"]] in shown


def test_missing_cue_file_exits(tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["slice", str(tmp_path / "nope.json"), "0"])
    assert excinfo.value.code == 1
    assert "Cue file not found" in capsys.readouterr().err


def test_bad_setting_override_exits(cue_file, capsys):
    with pytest.raises(SystemExit):
        main(["slice", str(cue_file), "0", "--set", "fast_forward_rate=0"])
    assert "Invalid playback settings" in capsys.readouterr().err
