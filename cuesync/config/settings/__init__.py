from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any

__all__ = [
    "PlaybackSettings",
    "Settings",
    "build_playback_settings",
    "core",
    "get_settings",
    "get_user_settings_path",
    "get_vlc_runtime_root",
    "load_config_paths",
    "load_user_settings",
    "paths",
]

_MODULE_EXPORTS = {
    "core": {
        "PlaybackSettings",
        "Settings",
        "build_playback_settings",
        "get_settings",
        "load_user_settings",
    },
    "paths": {
        "get_user_settings_path",
        "get_vlc_runtime_root",
        "load_config_paths",
    },
}

_SUBMODULE_NAMES = {"core", "paths"}

if TYPE_CHECKING:  # pragma: no cover - only for static analysis
    from . import core, paths
    from .core import PlaybackSettings, Settings, build_playback_settings, get_settings, load_user_settings
    from .paths import get_user_settings_path, get_vlc_runtime_root, load_config_paths


def __getattr__(name: str) -> Any:
    if name in _SUBMODULE_NAMES:
        module = importlib.import_module(f"{__name__}.{name}")
        globals()[name] = module
        return module

    for module_name, symbols in _MODULE_EXPORTS.items():
        if name in symbols:
            module = importlib.import_module(f"{__name__}.{module_name}")
            value = getattr(module, name)
            globals()[name] = value
            return value

    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


def __dir__() -> list[str]:
    exported = set(__all__)
    exported.update(_SUBMODULE_NAMES)
    for symbols in _MODULE_EXPORTS.values():
        exported.update(symbols)
    exported.update(globals().keys())
    return sorted(exported)
