from __future__ import annotations

import json
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cuesync.backend.common.errors import ConfigError
from cuesync.backend.common.logging import get_logger
from cuesync.backend.playback.models import AutoPausePreference

from .paths import get_user_settings_path

log = get_logger(__name__)

_SETTINGS_LOCK = threading.Lock()
_SETTINGS_SINGLETON: Optional["Settings"] = None

# CUESYNC_<NAME> environment variables override the matching playback field.
_PLAYBACK_ENV_PREFIX = "CUESYNC_"


class PlaybackSettings(BaseModel):
    """Tuning knobs consumed by the playback core.

    The transition radius and the condensed margin were tuned against a
    100ms tick; changing ``tick_period_ms`` usually means re-tuning both.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    auto_pause_preference: AutoPausePreference = AutoPausePreference.AT_END
    fast_forward_rate: float = Field(default=2.7, gt=1.0, le=16.0)
    fast_forward_gap_ms: float = Field(default=1000.0, ge=0)
    condensed_margin_ms: float = Field(default=500.0, ge=0)
    initial_expected_seek_time_ms: float = Field(default=1000.0, ge=0)
    showing_check_radius_ms: float = Field(default=150.0, ge=0)
    tick_period_ms: float = Field(default=100.0, gt=0)
    standalone_check_period_ms: float = Field(default=1000.0, gt=0)
    seek_timeout_ms: Optional[float] = Field(default=5000.0, gt=0)
    min_playback_rate: float = Field(default=0.1, gt=0)
    max_playback_rate: float = Field(default=5.0, gt=0)
    playback_rate_step: float = Field(default=0.1, gt=0)

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


@dataclass
class Settings:
    app_name: str
    env: str
    log_level: str
    user_settings_path: os.PathLike[str]
    playback: PlaybackSettings = field(default_factory=PlaybackSettings)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "app_name": self.app_name,
            "env": self.env,
            "log_level": self.log_level,
            "user_settings_path": str(self.user_settings_path),
            "playback": self.playback.as_dict(),
        }


def load_user_settings(path: Optional[Path] = None) -> Dict[str, Any]:
    user_path = path or get_user_settings_path()
    if not user_path.exists():
        return {}
    try:
        with user_path.open("r", encoding="utf-8") as fh:
            payload = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        log.warning("user_settings_unreadable", extra={"path": str(user_path), "error": str(exc)})
        return {}
    return payload if isinstance(payload, dict) else {}


def _playback_env_overrides() -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    for name in PlaybackSettings.model_fields:
        value = os.getenv(f"{_PLAYBACK_ENV_PREFIX}{name.upper()}")
        if value is not None and value != "":
            overrides[name] = value
    return overrides


def build_playback_settings(raw: Optional[Mapping[str, Any]] = None, **overrides: Any) -> PlaybackSettings:
    payload: Dict[str, Any] = dict(raw or {})
    payload.update(_playback_env_overrides())
    payload.update(overrides)
    try:
        return PlaybackSettings.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"Invalid playback settings: {exc}") from exc


def _build_settings() -> Settings:
    user_path = get_user_settings_path()
    user_cfg = load_user_settings(user_path)
    app_name = os.getenv("CUESYNC_APP_NAME", user_cfg.get("app_name", "cuesync"))
    env = os.getenv("CUESYNC_ENV", user_cfg.get("env", "development"))
    log_level = os.getenv("CUESYNC_LOG_LEVEL", user_cfg.get("log_level", "INFO")).upper()
    playback = build_playback_settings(user_cfg.get("playback") or {})

    return Settings(
        app_name=app_name,
        env=env,
        log_level=log_level,
        user_settings_path=user_path,
        playback=playback,
    )


def get_settings(*, reload: bool = False) -> Settings:
    global _SETTINGS_SINGLETON
    with _SETTINGS_LOCK:
        if _SETTINGS_SINGLETON is None or reload:
            _SETTINGS_SINGLETON = _build_settings()

        return _SETTINGS_SINGLETON


__all__ = [
    "PlaybackSettings",
    "Settings",
    "build_playback_settings",
    "get_settings",
    "load_user_settings",
]
