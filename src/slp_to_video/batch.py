"""
Loading and validation of batch input files.

A batch is a JSON array of targets::

    [
      {
        "outputPath": "out/game1.avi",
        "replays": [
          {"replay": "Game_1.slp", "startFrame": 100, "endFrame": 2000},
          {"replay": "Game_2.slp", "overlayPath": "overlay.png"}
        ]
      }
    ]
"""

import json
import logging

from .models import ReplaySegment, Target

logger = logging.getLogger("slp_to_video")


class BatchError(ValueError):
    """Raised when a batch description is malformed."""


def _optional_int(entry: dict, key: str, where: str) -> int | None:
    value = entry.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise BatchError(f"{where}: '{key}' must be an integer, got {value!r}")
    return value


def parse_segment(entry: object, where: str) -> ReplaySegment:
    """Parse one replay entry of a target."""
    if not isinstance(entry, dict):
        raise BatchError(f"{where}: expected an object, got {type(entry).__name__}")
    replay = entry.get("replay")
    if not isinstance(replay, str) or not replay:
        raise BatchError(f"{where}: missing required field 'replay'")
    overlay = entry.get("overlayPath")
    if overlay is not None and not isinstance(overlay, str):
        raise BatchError(f"{where}: 'overlayPath' must be a string")
    return ReplaySegment(
        replay=replay,
        start_frame=_optional_int(entry, "startFrame", where),
        end_frame=_optional_int(entry, "endFrame", where),
        overlay_path=overlay or None,
    )


def parse_batch(data: object) -> list[Target]:
    """Validate decoded batch JSON and convert it to targets."""
    if not isinstance(data, list):
        raise BatchError("batch must be a JSON array of targets")

    targets: list[Target] = []
    seen: set[str] = set()
    for ti, entry in enumerate(data):
        where = f"target {ti}"
        if not isinstance(entry, dict):
            raise BatchError(f"{where}: expected an object, got {type(entry).__name__}")
        output_path = entry.get("outputPath")
        if not isinstance(output_path, str) or not output_path:
            raise BatchError(f"{where}: missing required field 'outputPath'")
        if output_path in seen:
            raise BatchError(f"{where}: duplicate outputPath {output_path!r}")
        seen.add(output_path)

        replays = entry.get("replays")
        if not isinstance(replays, list):
            raise BatchError(f"{where}: missing required field 'replays'")
        segments = [
            parse_segment(r, f"{where}, replay {ri}") for ri, r in enumerate(replays)
        ]
        targets.append(Target(output_path=output_path, segments=segments))
    return targets


def load_batch(path: str) -> list[Target]:
    """Read a batch file from disk."""
    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise BatchError(f"{path}: invalid JSON ({e})") from e
    targets = parse_batch(data)
    logger.debug(
        f"Loaded {len(targets)} target(s), "
        f"{sum(len(t.segments) for t in targets)} replay(s) from {path}"
    )
    return targets
