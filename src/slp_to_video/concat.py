"""
Concatenation of finished clips into each target's output video.
"""

import asyncio
import json
import logging
import re
from pathlib import Path

from .executor import execute_commands_in_queue
from .materialize import read_output_path
from .stages import Stage, log_failures

logger = logging.getLogger("slp_to_video")

CONCAT_LIST_FILE = "concat.txt"
CLIP_SUFFIXES = (Stage.TRIMMED.value, Stage.OVERLAID.value)
_ORDINAL_RE = re.compile(r"^(\d+)")


class ProbeError(RuntimeError):
    """Raised when a clip's duration cannot be determined."""


def clip_ordinal(name: str) -> int:
    m = _ORDINAL_RE.match(name)
    if not m:
        raise ValueError(f"Clip name has no leading ordinal: {name}")
    return int(m.group(1))


def list_clips(target_dir: Path) -> list[Path]:
    """Finished clips of a target, ordered by job ordinal (numerically)."""
    clips = [p for p in Path(target_dir).iterdir() if p.name.endswith(CLIP_SUFFIXES)]
    return sorted(clips, key=lambda p: clip_ordinal(p.name))


def _duration(value: object) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def minimum_duration(info: dict) -> float:
    """Shorter of the first audio and first video stream durations in ffprobe output."""
    durations: dict[str, float] = {}
    for stream in info.get("streams", []):
        kind = stream.get("codec_type")
        if kind in ("audio", "video") and kind not in durations:
            d = _duration(stream.get("duration"))
            if d is not None:
                durations[kind] = d
    if not durations:
        d = _duration(info.get("format", {}).get("duration"))
        if d is None:
            raise ProbeError("no stream or container duration reported")
        return d
    return min(durations.values())


def probe_args(video: Path) -> list[str]:
    return [
        "-v", "error",
        "-show_entries", "stream=codec_type,duration:format=duration",
        "-of", "json",
        str(video),
    ]


async def get_minimum_duration(video: Path, ffprobe_path: str = "ffprobe") -> float:
    logger.debug("Running: %s %s", ffprobe_path, " ".join(probe_args(video)))
    proc = await asyncio.create_subprocess_exec(
        ffprobe_path,
        *probe_args(video),
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    out, err = await proc.communicate()
    if proc.returncode != 0:
        detail = err.decode(errors="replace").strip()
        raise ProbeError(f"{video}: ffprobe exited with code {proc.returncode}: {detail}")
    try:
        return minimum_duration(json.loads(out))
    except (ValueError, ProbeError) as e:
        raise ProbeError(f"{video}: {e}") from e


def _quote(path: Path) -> str:
    return "'" + str(path).replace("'", "'\\''") + "'"


def write_concat_list(path: Path, clips: list[Path], durations: list[float]) -> None:
    """Write an ffmpeg concat script with an explicit [0, duration] window per clip."""
    with open(path, "w", encoding="utf-8") as f:
        for clip, duration in zip(clips, durations):
            f.write(f"file {_quote(clip)}\n")
            f.write("inpoint 0.0\n")
            f.write(f"outpoint {duration}\n")


def concat_args(concat_list: Path, output_path: str) -> list[str]:
    return ["-y", "-f", "concat", "-safe", "0", "-i", str(concat_list), "-c", "copy", output_path]


async def concatenate_videos(
    target_dir: Path, ffmpeg_path: str = "ffmpeg", ffprobe_path: str = "ffprobe"
) -> str | None:
    """Join a target's clips into its output file; returns the output path."""
    target_dir = Path(target_dir)
    clips = list_clips(target_dir)
    if not clips:
        return None

    durations = await asyncio.gather(*(get_minimum_duration(c, ffprobe_path) for c in clips))
    concat_list = target_dir / CONCAT_LIST_FILE
    write_concat_list(concat_list, clips, list(durations))

    output_path = read_output_path(target_dir)
    results = await execute_commands_in_queue(ffmpeg_path, [concat_args(concat_list, output_path)], 1)
    log_failures("ffmpeg concat", results)
    logger.info(f"Done ({len(clips)} clip(s) -> {output_path})")
    return output_path
