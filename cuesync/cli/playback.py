"""Playback CLI: query cue files, simulate play modes headlessly or play media through VLC."""

from __future__ import annotations

import argparse
import asyncio
from typing import Any, Optional, Sequence

from cuesync.backend.common.errors import ConfigError, CueFileError
from cuesync.backend.common.logging import get_logger, init_logging
from cuesync.backend.media import SimulatedMediaElement, VlcMediaElement
from cuesync.backend.playback.clock import ManualTimeSource
from cuesync.backend.playback.collection import SubtitleCollection
from cuesync.backend.playback.cue_file import load_cues
from cuesync.backend.playback.exceptions import MediaUnavailable
from cuesync.backend.playback.merger import DualTrackMerger
from cuesync.backend.playback.models import Cue, PlayMode
from cuesync.backend.playback.scheduler import AsyncioScheduler, ManualScheduler
from cuesync.backend.playback.session import PlaybackSession
from cuesync.config.settings.core import PlaybackSettings, build_playback_settings, get_settings

from ._utils import (
    build_subparser,
    exit_with_error,
    parse_key_value_pairs,
    parse_track_list,
    print_json,
    to_serializable,
)


def _load(path: str) -> list[Cue]:
    try:
        return load_cues(path)
    except CueFileError as exc:
        exit_with_error(str(exc))


def _playback_settings(args: argparse.Namespace) -> PlaybackSettings:
    try:
        base = get_settings().playback.model_dump()
        overrides = parse_key_value_pairs(args.set or [])
        return build_playback_settings(base, **overrides)
    except (argparse.ArgumentTypeError, ConfigError) as exc:
        exit_with_error(str(exc))


def _handle_slice(args: argparse.Namespace) -> None:
    settings = _playback_settings(args)
    collection = SubtitleCollection(
        showing_check_radius_ms=settings.showing_check_radius_ms,
        return_next_to_show=True,
        return_last_shown=True,
    )
    collection.set_subtitles(_load(args.cue_file))
    try:
        excluded = parse_track_list(args.exclude_track or [])
    except argparse.ArgumentTypeError as exc:
        exit_with_error(str(exc))
    slice_ = collection.subtitles_at(args.time_ms, excluded)
    merged = DualTrackMerger().merge(slice_.showing, collection, excluded)
    payload = slice_.as_dict()
    payload["time_ms"] = args.time_ms
    payload["merged"] = [cue.as_dict() for cue in merged]
    print_json(payload)


async def _simulate(
    cues: list[Cue],
    settings: PlaybackSettings,
    *,
    mode: PlayMode,
    until_ms: float,
    duration_ms: float,
    seek_latency_ms: float,
    start_ms: float = 0.0,
) -> dict[str, Any]:
    time_source = ManualTimeSource()
    scheduler = ManualScheduler(time_source)
    media = SimulatedMediaElement(duration_ms, seek_latency_ms=seek_latency_ms, time_source=time_source)
    session = PlaybackSession(settings, media=media, time_source=time_source)
    session.set_cues(cues)

    events: list[dict[str, Any]] = []

    def _on_showing(showing: list[Cue]) -> None:
        events.append(
            {
                "event": "showing",
                "wall_ms": time_source(),
                "media_ms": round(session.time(), 3),
                "cues": [[c.track, c.index, c.text] for c in showing],
            }
        )

    def _on_mode(old: PlayMode, new: PlayMode) -> None:
        events.append({"event": "mode", "wall_ms": time_source(), "old": old.value, "new": new.value})

    session.on_showing(_on_showing)
    session.on_mode_changed(_on_mode)

    if start_ms > 0:
        await session.seek(start_ms)
    session.toggle_mode(mode)
    session.start(scheduler)
    session.play()
    max_wall_ms = until_ms * 4 + 10_000
    while session.time() < until_ms and time_source() < max_wall_ms:
        scheduler.advance(settings.tick_period_ms)
        await session.controller.wait_idle()
        if not session.clock.running:
            events.append({"event": "paused", "wall_ms": time_source(), "media_ms": round(session.time(), 3)})
            session.play()
    await session.aclose()

    return {
        "mode": session.mode,
        "final_media_ms": round(session.time(), 3),
        "expected_seek_time_ms": session.controller.expected_seek_time_ms,
        "events": events,
        "media_calls": [list(call) for call in media.calls],
    }


def _handle_simulate(args: argparse.Namespace) -> None:
    settings = _playback_settings(args)
    cues = _load(args.cue_file)
    if not cues:
        exit_with_error("Cue file contains no cues")
    last_end = max(c.end for c in cues)
    until = args.until_ms if args.until_ms is not None else last_end
    duration = args.duration_ms if args.duration_ms is not None else last_end
    result = asyncio.run(
        _simulate(
            cues,
            settings,
            mode=PlayMode(args.mode),
            until_ms=until,
            duration_ms=duration,
            seek_latency_ms=args.seek_latency_ms,
            start_ms=args.start_ms,
        )
    )
    print_json(to_serializable(result))


async def _play(
    media: VlcMediaElement,
    cues: list[Cue],
    settings: PlaybackSettings,
    *,
    mode: PlayMode,
    until_ms: float,
) -> dict[str, Any]:
    session = PlaybackSession(settings, media=media)
    session.set_cues(cues)
    session.handle_media_ready(media.ready_state())
    loop = asyncio.get_running_loop()
    started = loop.time()
    events: list[dict[str, Any]] = []

    def _wall_ms() -> float:
        return round((loop.time() - started) * 1000.0, 3)

    def _on_showing(showing: list[Cue]) -> None:
        events.append(
            {
                "event": "showing",
                "wall_ms": _wall_ms(),
                "media_ms": round(session.time(), 3),
                "cues": [[c.track, c.index, c.text] for c in showing],
            }
        )

    def _on_mode(old: PlayMode, new: PlayMode) -> None:
        events.append({"event": "mode", "wall_ms": _wall_ms(), "old": old.value, "new": new.value})

    session.on_showing(_on_showing)
    session.on_mode_changed(_on_mode)

    if session.length() > 0:
        until_ms = min(until_ms, session.length())
    scheduler = AsyncioScheduler()
    session.toggle_mode(mode)
    session.start(scheduler)
    session.play()
    poll_s = settings.tick_period_ms / 1000.0
    try:
        while session.time() < until_ms:
            await asyncio.sleep(poll_s)
            if not session.clock.running:
                # Nobody is at the keyboard to resume an auto-pause.
                events.append({"event": "paused", "wall_ms": _wall_ms(), "media_ms": round(session.time(), 3)})
                session.play()
    finally:
        await session.aclose()
        scheduler.cancel_all()

    return {
        "mode": session.mode,
        "final_media_ms": round(session.time(), 3),
        "events": events,
    }


def _handle_play(args: argparse.Namespace) -> None:
    settings = _playback_settings(args)
    cues = _load(args.cue_file)
    try:
        media = VlcMediaElement(args.media, vlc_root=args.vlc_root)
    except MediaUnavailable as exc:
        exit_with_error(str(exc))
    until = args.until_ms
    if until is None:
        until = max((c.end for c in cues), default=0.0)
        if media.duration_ms > 0:
            until = min(until, media.duration_ms)
    try:
        result = asyncio.run(_play(media, cues, settings, mode=PlayMode(args.mode), until_ms=until))
    finally:
        media.release()
    result["media"] = args.media
    print_json(to_serializable(result))


def _handle_settings(args: argparse.Namespace) -> None:
    print_json(to_serializable(get_settings(reload=args.reload)))


def _add_settings_override(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--set",
        action="append",
        metavar="KEY=VALUE",
        help="Override a playback setting for this run (repeatable), e.g. fast_forward_rate=3.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cuesync", description="Subtitle cue synchronization tools.")
    parser.add_argument("--log-level", help="Override the configured log level.")
    subparsers = parser.add_subparsers(dest="command")
    subparsers.required = True

    slice_parser = build_subparser(subparsers, "slice", help="Show which cues are active at a media time.")
    slice_parser.add_argument("cue_file", help="Path to a JSON cue file.")
    slice_parser.add_argument("time_ms", type=float, help="Media time in milliseconds.")
    slice_parser.add_argument(
        "--exclude-track",
        action="append",
        metavar="TRACK",
        help="Track number to hide (repeatable or comma separated).",
    )
    _add_settings_override(slice_parser)
    slice_parser.set_defaults(func=_handle_slice)

    simulate_parser = build_subparser(
        subparsers,
        "simulate",
        help="Play a cue file headlessly in a play mode and print the event log.",
    )
    simulate_parser.add_argument("cue_file", help="Path to a JSON cue file.")
    simulate_parser.add_argument(
        "--mode",
        choices=[m.value for m in PlayMode],
        default=PlayMode.NORMAL.value,
        help="Play mode to enable before playback starts.",
    )
    simulate_parser.add_argument("--start-ms", type=float, default=0.0, help="Media time to start from.")
    simulate_parser.add_argument("--until-ms", type=float, help="Stop once media time reaches this value.")
    simulate_parser.add_argument("--duration-ms", type=float, help="Simulated media duration.")
    simulate_parser.add_argument(
        "--seek-latency-ms",
        type=float,
        default=250.0,
        help="Synthetic time each media seek takes.",
    )
    _add_settings_override(simulate_parser)
    simulate_parser.set_defaults(func=_handle_simulate)

    play_parser = build_subparser(
        subparsers,
        "play",
        help="Play a media file through VLC in a play mode and print the event log.",
    )
    play_parser.add_argument("media", help="Media file or URL for VLC to open.")
    play_parser.add_argument("cue_file", help="Path to a JSON cue file.")
    play_parser.add_argument(
        "--mode",
        choices=[m.value for m in PlayMode],
        default=PlayMode.NORMAL.value,
        help="Play mode to enable before playback starts.",
    )
    play_parser.add_argument("--until-ms", type=float, help="Stop once media time reaches this value.")
    play_parser.add_argument("--vlc-root", help="Directory holding a bundled VLC runtime.")
    _add_settings_override(play_parser)
    play_parser.set_defaults(func=_handle_play)

    settings_parser = build_subparser(subparsers, "settings", help="Print the effective settings.")
    settings_parser.add_argument("--reload", action="store_true", help="Reload settings before printing.")
    settings_parser.set_defaults(func=_handle_settings)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        level = args.log_level or get_settings().log_level
    except ConfigError as exc:
        exit_with_error(str(exc))
    init_logging(level)
    get_logger("cuesync.cli").debug("cli_command", extra={"command": args.command})
    args.func(args)


if __name__ == "__main__":  # pragma: no cover
    main()
