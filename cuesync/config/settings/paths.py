from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

_CONFIG_DIR = Path(__file__).resolve().parent.parent
_PACKAGE_ROOT = _CONFIG_DIR.parent
_PATH_BASES = [_PACKAGE_ROOT, *_PACKAGE_ROOT.parents]

load_dotenv(_PACKAGE_ROOT / ".env")

_DEFAULT_CONFIG_PATHS = {
    "user_settings": str(_PACKAGE_ROOT / "var" / "user_settings.json"),
    "vlc_runtime_root": str(_PACKAGE_ROOT / "Resources" / "vlc"),
}

# Environment overrides win over config_paths.json and the defaults above.
_ENV_OVERRIDES = {
    "user_settings": "CUESYNC_USER_SETTINGS",
    "vlc_runtime_root": "CUESYNC_VLC_ROOT",
}

_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def expand_env_in_str(value: str) -> str:
    """Expand ``${VAR}`` tokens within a string."""

    def _repl(match: re.Match[str]) -> str:
        return os.getenv(match.group(1), "")

    return _ENV_PATTERN.sub(_repl, value)


def read_json(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def _resolve_candidate(value: str) -> str:
    candidate = Path(expand_env_in_str(value)).expanduser()
    if candidate.is_absolute():
        return str(candidate.resolve())

    for base in _PATH_BASES:
        resolved = (base / candidate).resolve()
        if resolved.exists() or resolved.parent.exists():
            return str(resolved)

    return str((_PACKAGE_ROOT / candidate).resolve())


def load_config_paths() -> Dict[str, str]:
    cfg_path = _CONFIG_DIR / "config_paths.json"
    raw: Dict[str, Any] = read_json(cfg_path) if cfg_path.exists() else {}
    merged = {**_DEFAULT_CONFIG_PATHS, **(raw or {})}

    for key, env_var in _ENV_OVERRIDES.items():
        override = os.getenv(env_var)
        if override:
            merged[key] = override

    return {key: _resolve_candidate(value) for key, value in merged.items()}


def get_user_settings_path() -> Path:
    return Path(load_config_paths()["user_settings"])


def get_vlc_runtime_root() -> str:
    return load_config_paths()["vlc_runtime_root"]


__all__ = [
    "expand_env_in_str",
    "get_user_settings_path",
    "get_vlc_runtime_root",
    "load_config_paths",
    "read_json",
]
