from __future__ import annotations

"""JSON cue files.

A cue file is either a bare list of cue records or an object with a
``cues`` list. Times are milliseconds::

    {"cues": [{"start": 1000, "end": 3000, "text": "Hola", "track": 0}]}

``index`` is optional and defaults to the record's position within its track.
"""

import json
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from cuesync.backend.common.errors import CueFileError
from cuesync.backend.common.logging import get_logger
from cuesync.backend.playback.models import Cue

log = get_logger(__name__)


class CueRecord(BaseModel):
    """One cue as it appears on disk."""

    model_config = ConfigDict(extra="ignore")

    start: float = Field(ge=0)
    end: float = Field(ge=0)
    text: str = ""
    track: int = Field(default=0, ge=0)
    index: Optional[int] = Field(default=None, ge=0)


_RECORDS = TypeAdapter(list[CueRecord])


def parse_cues(payload: Any) -> list[Cue]:
    """Validate decoded JSON and build cues, assigning missing indexes per track."""

    if isinstance(payload, dict):
        payload = payload.get("cues", [])
    try:
        records = _RECORDS.validate_python(payload)
    except ValidationError as exc:
        raise CueFileError(f"Invalid cue records: {exc}") from exc

    next_index: dict[int, int] = {}
    seen: set[tuple[int, int]] = set()
    cues: list[Cue] = []
    for record in records:
        index = record.index if record.index is not None else next_index.get(record.track, 0)
        next_index[record.track] = max(next_index.get(record.track, 0), index + 1)
        if (record.track, index) in seen:
            raise CueFileError(f"Duplicate cue index {index} on track {record.track}")
        seen.add((record.track, index))
        cues.append(Cue.create(record.start, record.end, track=record.track, index=index, text=record.text))
    return cues


def load_cues(path: Union[str, Path]) -> list[Cue]:
    file_path = Path(path)
    try:
        payload = json.loads(file_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise CueFileError(f"Cue file not found: {file_path}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise CueFileError(f"Unable to read cue file {file_path}: {exc}") from exc
    cues = parse_cues(payload)
    log.info("cue_file_loaded", extra={"path": str(file_path), "count": len(cues)})
    return cues
