"""Shared helpers for the cuesync CLI modules."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Mapping, NoReturn


def build_subparser(parent: argparse._SubParsersAction, name: str, **kwargs: Any) -> argparse.ArgumentParser:
    return parent.add_parser(name, **kwargs)


def print_json(payload: Any) -> None:
    """Render a Python object as formatted JSON to stdout."""

    print(json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False))


def to_serializable(value: Any) -> Any:
    """Best-effort conversion for cues, slices and settings into JSON-friendly structures."""

    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Mapping):
        return {str(k): to_serializable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_serializable(item) for item in value]
    if hasattr(value, "as_dict"):
        return to_serializable(value.as_dict())
    if hasattr(value, "model_dump"):
        return to_serializable(value.model_dump(mode="json"))
    if is_dataclass(value) and not isinstance(value, type):
        return to_serializable(asdict(value))
    return str(value)


def parse_track_list(values: Iterable[str]) -> frozenset[int]:
    """Parse ``--exclude-track`` values, accepting repeats and comma lists."""

    tracks: set[int] = set()
    for value in values:
        for part in value.split(","):
            part = part.strip()
            if not part:
                continue
            try:
                tracks.add(int(part))
            except ValueError as exc:
                raise argparse.ArgumentTypeError(f"Expected a track number, got '{part}'") from exc
    return frozenset(tracks)


def exit_with_error(message: str, *, code: int = 1) -> NoReturn:
    """Emit a message to stderr and exit."""

    sys.stderr.write(f"Error: {message}\n")
    raise SystemExit(code)


def parse_key_value_pairs(pairs: Iterable[str]) -> dict[str, str]:
    """Parse ``key=value`` strings into a mapping."""

    data: dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise argparse.ArgumentTypeError(f"Expected KEY=VALUE syntax, got '{pair}'")
        key, value = pair.split("=", 1)
        data[key.strip()] = value.strip()
    return data
