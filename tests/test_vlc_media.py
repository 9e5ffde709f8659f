# tests/test_vlc_media.py
import asyncio
import json
import os
import sys
from pathlib import Path

import pytest

from cuesync.backend.media import vlc_paths
from cuesync.backend.media.base import MediaElement
from cuesync.backend.media.vlc_player import VlcMediaElement
from cuesync.backend.playback.exceptions import MediaUnavailable
from cuesync.cli.playback import main

from tests.fakes import FakeVlcModule


@pytest.fixture
def isolated_env(monkeypatch, tmp_path):
    for key in ("PYTHON_VLC_MODULE_PATH", "VLC_PLUGIN_PATH", "PATH", "LD_LIBRARY_PATH", "DYLD_LIBRARY_PATH"):
        monkeypatch.setenv(key, "")
    monkeypatch.setenv("CUESYNC_VLC_ROOT", str(tmp_path / "no-runtime-here"))
    return tmp_path


def _bundle(base):
    (base / "lib").mkdir(parents=True)
    (base / "plugins").mkdir()
    return base


def test_platform_subdirectory_wins_over_the_root(isolated_env):
    root = _bundle(isolated_env / "vlc")
    platform_dir = _bundle(root / "linux-x86_64")
    runtime = vlc_paths.find_vlc_runtime(str(root), platform="linux")
    assert runtime.lib_dir == platform_dir / "lib"
    assert vlc_paths.find_vlc_runtime(str(root), platform="darwin").lib_dir == root / "lib"


def test_incomplete_bundle_is_skipped(isolated_env):
    root = isolated_env / "vlc"
    (root / "lib").mkdir(parents=True)
    assert vlc_paths.find_vlc_runtime(str(root), platform="linux") is None


def test_export_prepends_the_library_path_once():
    runtime = vlc_paths.VlcRuntime(Path("/opt/vlc"), Path("/opt/vlc/lib"), Path("/opt/vlc/plugins"))
    env = {"LD_LIBRARY_PATH": os.pathsep.join(["/usr/lib", "/opt/vlc/lib"])}
    vlc_paths.export_vlc_runtime(runtime, env, platform="linux")
    assert env["PYTHON_VLC_MODULE_PATH"] == "/opt/vlc/lib"
    assert env["VLC_PLUGIN_PATH"] == "/opt/vlc/plugins"
    assert env["LD_LIBRARY_PATH"] == os.pathsep.join(["/usr/lib", "/opt/vlc/lib"])

    env = {}
    vlc_paths.export_vlc_runtime(runtime, env, platform="win32")
    assert env["PATH"] == "/opt/vlc/lib"


def test_prepare_exports_into_the_process_environment(isolated_env):
    root = _bundle(isolated_env / "vlc")
    assert vlc_paths.prepare_vlc_runtime(str(root)) is not None
    assert os.environ["PYTHON_VLC_MODULE_PATH"] == str(root / "lib")
    assert os.environ["VLC_PLUGIN_PATH"] == str(root / "plugins")


def test_missing_runtime_falls_back_to_system(isolated_env):
    assert vlc_paths.prepare_vlc_runtime() is None
    assert os.environ["PYTHON_VLC_MODULE_PATH"] == ""


def test_adapter_requires_python_vlc(isolated_env, monkeypatch):
    monkeypatch.setitem(sys.modules, "vlc", None)
    with pytest.raises(MediaUnavailable):
        VlcMediaElement("movie.mkv")


def test_adapter_drives_the_player(isolated_env, monkeypatch):
    fake = FakeVlcModule()
    monkeypatch.setitem(sys.modules, "vlc", fake)
    element = VlcMediaElement("movie.mkv")
    assert isinstance(element, MediaElement)
    player = fake.instances[0].player

    asyncio.run(element.seek(12_345.6))
    assert player.time == 12_345
    element.play()
    element.set_playback_rate(2.0)
    state = element.ready_state()
    assert not state.paused
    assert state.playback_rate == 2.0
    assert state.duration_ms == 90_000
    assert state.current_time_ms == 12_345
    element.pause()
    assert element.ready_state().paused
    element.release()


@pytest.fixture
def cue_file(tmp_path):
    path = tmp_path / "cues.json"
    path.write_text(json.dumps([{"start": 0, "end": 1000, "text": "Hola"}]), encoding="utf-8")
    return path


def test_play_command_drives_vlc(isolated_env, monkeypatch, cue_file, capsys):
    fake = FakeVlcModule()
    monkeypatch.setitem(sys.modules, "vlc", fake)
    main(["play", "movie.mkv", str(cue_file), "--until-ms", "250"])
    payload = json.loads(capsys.readouterr().out)
    assert payload["media"] == "movie.mkv"
    assert payload["mode"] == "normal"
    assert payload["final_media_ms"] >= 250
    assert [[0, 0, "Hola"]] in [e["cues"] for e in payload["events"] if e["event"] == "showing"]
    player = fake.instances[0].player
    assert player.media == "movie.mkv"
    # Released on exit.
    assert not player.playing


def test_play_command_without_python_vlc_exits(isolated_env, monkeypatch, cue_file, capsys):
    monkeypatch.setitem(sys.modules, "vlc", None)
    with pytest.raises(SystemExit) as excinfo:
        main(["play", "movie.mkv", str(cue_file)])
    assert excinfo.value.code == 1
    assert "python-vlc import failed" in capsys.readouterr().err
