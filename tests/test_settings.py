# tests/test_settings.py
import json

import pytest

from cuesync.backend.common.errors import ConfigError
from cuesync.backend.playback.models import AutoPausePreference
from cuesync.config.settings import build_playback_settings, get_settings
from cuesync.config.settings.core import PlaybackSettings


@pytest.fixture
def user_settings(tmp_path, monkeypatch):
    path = tmp_path / "user_settings.json"
    monkeypatch.setenv("CUESYNC_USER_SETTINGS", str(path))
    yield path
    monkeypatch.undo()
    get_settings(reload=True)


def test_defaults():
    settings = PlaybackSettings()
    assert settings.auto_pause_preference == AutoPausePreference.AT_END
    assert settings.fast_forward_rate == 2.7
    assert settings.condensed_margin_ms == 500
    assert settings.showing_check_radius_ms == 150
    assert settings.tick_period_ms == 100


def test_environment_overrides_playback_fields(monkeypatch):
    monkeypatch.setenv("CUESYNC_FAST_FORWARD_RATE", "3.5")
    monkeypatch.setenv("CUESYNC_AUTO_PAUSE_PREFERENCE", "atStart")
    settings = build_playback_settings({"fast_forward_rate": 2.0})
    assert settings.fast_forward_rate == 3.5
    assert settings.auto_pause_preference == AutoPausePreference.AT_START


def test_explicit_overrides_win(monkeypatch):
    monkeypatch.setenv("CUESYNC_CONDENSED_MARGIN_MS", "700")
    assert build_playback_settings(condensed_margin_ms="250").condensed_margin_ms == 250


def test_invalid_values_raise_config_error():
    with pytest.raises(ConfigError):
        build_playback_settings(fast_forward_rate=0.5)
    with pytest.raises(ConfigError):
        build_playback_settings(tick_period_ms=0)


def test_user_settings_file_is_loaded(user_settings):
    user_settings.write_text(
        json.dumps({"log_level": "debug", "playback": {"fast_forward_rate": 3}}),
        encoding="utf-8",
    )
    settings = get_settings(reload=True)
    assert settings.log_level == "DEBUG"
    assert settings.playback.fast_forward_rate == 3.0
    assert get_settings() is settings
    assert settings.as_dict()["playback"]["fast_forward_rate"] == 3.0


def test_invalid_user_settings_raise(user_settings):
    user_settings.write_text(json.dumps({"playback": {"tick_period_ms": -1}}), encoding="utf-8")
    with pytest.raises(ConfigError):
        get_settings(reload=True)


def test_settings_are_immutable():
    settings = PlaybackSettings()
    with pytest.raises(Exception):
        settings.fast_forward_rate = 4.0  # type: ignore[misc]
