from __future__ import annotations

"""Locating a bundled libvlc for python-vlc.

python-vlc reads ``PYTHON_VLC_MODULE_PATH`` and ``VLC_PLUGIN_PATH`` at import
time, so a bundled runtime has to be exported before ``import vlc``. A bundle
is a directory holding ``lib/`` and ``plugins/``, either directly or under a
per-platform subdirectory such as ``linux-x86_64/``.
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import MutableMapping, Optional

from cuesync.backend.common.logging import get_logger
from cuesync.config.settings.paths import get_vlc_runtime_root

log = get_logger(__name__)


def platform_subdirs(platform: str) -> tuple[str, ...]:
    """Bundle subdirectories tried for ``platform``, most specific first."""

    if platform.startswith(("win", "cygwin")):
        return ("win64", "win32")
    if platform == "darwin":
        return ("macos-arm64", "macos-x64", "macos")
    if platform.startswith("linux"):
        return ("linux-x86_64", "linux")
    return ()


def library_path_variable(platform: str) -> str:
    if platform.startswith(("win", "cygwin")):
        return "PATH"
    if platform == "darwin":
        return "DYLD_LIBRARY_PATH"
    return "LD_LIBRARY_PATH"


@dataclass(frozen=True, slots=True)
class VlcRuntime:
    """A bundled runtime found on disk."""

    root: Path
    lib_dir: Path
    plugin_dir: Path

    def environment(self, current: str = "", platform: str = sys.platform) -> dict[str, str]:
        """Variables to export; ``current`` is the existing library search path."""

        lib = str(self.lib_dir)
        search = [part for part in current.split(os.pathsep) if part]
        if lib not in search:
            search.insert(0, lib)
        return {
            "PYTHON_VLC_MODULE_PATH": lib,
            "VLC_PLUGIN_PATH": str(self.plugin_dir),
            library_path_variable(platform): os.pathsep.join(search),
        }


def _bundle_at(base: Path) -> Optional[VlcRuntime]:
    lib_dir, plugin_dir = base / "lib", base / "plugins"
    if lib_dir.is_dir() and plugin_dir.is_dir():
        return VlcRuntime(base, lib_dir, plugin_dir)
    if lib_dir.exists() or plugin_dir.exists():
        log.warning(
            "vlc_runtime_incomplete",
            extra={"root": str(base), "lib": lib_dir.is_dir(), "plugins": plugin_dir.is_dir()},
        )
    return None


def find_vlc_runtime(explicit_root: Optional[str] = None, platform: str = sys.platform) -> Optional[VlcRuntime]:
    """Look for a bundle under ``explicit_root`` and then the configured root."""

    roots = [Path(p) for p in (explicit_root, get_vlc_runtime_root()) if p]
    for root in roots:
        if not root.is_dir():
            continue
        for base in [root / sub for sub in platform_subdirs(platform)] + [root]:
            runtime = _bundle_at(base)
            if runtime is not None:
                return runtime
    log.info("vlc_runtime_not_bundled", extra={"searched": [str(r) for r in roots]})
    return None


def export_vlc_runtime(
    runtime: VlcRuntime,
    environ: Optional[MutableMapping[str, str]] = None,
    platform: str = sys.platform,
) -> None:
    env = os.environ if environ is None else environ
    current = env.get(library_path_variable(platform), "")
    env.update(runtime.environment(current, platform))
    log.debug("vlc_runtime_exported", extra={"root": str(runtime.root)})


def prepare_vlc_runtime(explicit_root: Optional[str] = None) -> Optional[VlcRuntime]:
    """Find and export a bundled runtime; ``None`` leaves python-vlc on the system libvlc."""

    runtime = find_vlc_runtime(explicit_root)
    if runtime is not None:
        export_vlc_runtime(runtime)
    return runtime
