"""
Pipeline stages: render, merge, black-frame detection, trim and overlay.

Every stage is a full pass over all jobs before the next one starts. Stages
find their inputs through a fixed naming contract rooted at each job's base
path (its descriptor path without the `.json` extension):

    <base>.json                      job descriptor
    <base>.avi / <base>.wav          renderer dumps
    <base>-merged.avi                video + audio, scaled
    <base>-merged-blackdetect.json   detected black intervals
    <base>-trimmed.avi               black intro/outro removed
    <base>-overlaid.avi              overlay composited (optional)
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .config import RunConfig
from .executor import execute_commands_in_queue
from .models import BlackFrame, CommandResult, TrimWindow
from .progress import ProgressSink, report_message
from .watchers import kill_dolphin_on_end_frame, read_black_frames, save_black_frames

logger = logging.getLogger("slp_to_video")

BLACKDETECT_FILTER = "blackdetect=d=0.01:pix_th=0.01"


class Stage(str, Enum):
    DESCRIPTOR = ".json"
    RENDER_VIDEO = ".avi"
    RENDER_AUDIO = ".wav"
    MERGED = "-merged.avi"
    BLACKDETECT = "-merged-blackdetect.json"
    TRIMMED = "-trimmed.avi"
    OVERLAID = "-overlaid.avi"


def base_path(descriptor: str | Path) -> Path:
    """Strip the descriptor extension to get the job's base path."""
    descriptor = Path(descriptor)
    return descriptor.with_name(descriptor.name.removesuffix(Stage.DESCRIPTOR.value))


def stage_output_path(stage: Stage, base: str | Path) -> Path:
    return Path(f"{base}{stage.value}")


@dataclass(frozen=True)
class JobFiles:
    """A job as seen by the stages: its descriptor and base path."""

    descriptor: Path
    base: Path
    overlay_path: str | None = None

    @classmethod
    def load(cls, descriptor: str | Path) -> "JobFiles":
        descriptor = Path(descriptor)
        config = json.loads(descriptor.read_text(encoding="utf-8"))
        return cls(descriptor=descriptor, base=base_path(descriptor), overlay_path=config.get("overlayPath") or None)

    def path(self, stage: Stage) -> str:
        return str(stage_output_path(stage, self.base))


def render_args(job: JobFiles, iso_path: str) -> list[str]:
    return ["-i", str(job.descriptor), "-o", str(job.base), "-b", "-e", iso_path]


def merge_args(job: JobFiles, bitrate_kbps: int, scale: str) -> list[str]:
    return [
        "-y",
        "-i", job.path(Stage.RENDER_VIDEO),
        "-i", job.path(Stage.RENDER_AUDIO),
        "-b:v", f"{bitrate_kbps}k",
        "-vf", f"scale={scale}",
        job.path(Stage.MERGED),
    ]


def blackdetect_args(job: JobFiles) -> list[str]:
    return [
        "-i", job.path(Stage.MERGED),
        "-vf", BLACKDETECT_FILTER,
        "-max_muxing_queue_size", "9999",
        "-f", "null", "-",
    ]


def compute_trim_window(black_frames: list[BlackFrame]) -> TrimWindow:
    """Keep the clip between the intro blank and the optional outro blank.

    Starts at the end of the first black interval and ends at the start of
    the second, if there is one. Without any black interval the clip is kept
    whole.
    """
    if not black_frames:
        logger.warning("No black frames detected, keeping the whole clip")
        return TrimWindow(start=0.0)
    if len(black_frames) > 2:
        logger.debug(f"{len(black_frames)} black intervals detected, using the first two")
    start = black_frames[0].black_end
    end = black_frames[1].black_start if len(black_frames) > 1 else None
    return TrimWindow(start=start, end=end)


def trim_args(job: JobFiles, window: TrimWindow, bitrate_kbps: int) -> list[str]:
    params = window.filter_params()
    return [
        "-y",
        "-i", job.path(Stage.MERGED),
        "-b:v", f"{bitrate_kbps}k",
        "-filter_complex",
        f"[0:v]trim={params},setpts=PTS-STARTPTS[v1];"
        f"[0:a]atrim={params},asetpts=PTS-STARTPTS[a1]",
        "-map", "[v1]", "-map", "[a1]",
        job.path(Stage.TRIMMED),
    ]


def overlay_args(job: JobFiles, bitrate_kbps: int) -> list[str]:
    if job.overlay_path is None:
        raise ValueError(f"{job.descriptor} has no overlay")
    return [
        "-y",
        "-i", job.path(Stage.TRIMMED),
        "-i", job.overlay_path,
        "-b:v", f"{bitrate_kbps}k",
        "-filter_complex", "[0:v][1:v] overlay",
        job.path(Stage.OVERLAID),
    ]


def log_failures(stage_name: str, results: list[CommandResult], *, allow_signals: bool = False) -> None:
    """Warn about non-zero exits; the next stage fails on the missing output."""
    for result in results:
        code = result.returncode
        if code == 0 or code is None:
            continue
        if allow_signals and code < 0:
            continue
        logger.warning(f"{stage_name} exited with code {code}: {' '.join(result.args)}")


def delete_files(paths: list[str]) -> None:
    for path in paths:
        Path(path).unlink()


async def process_replay_configs(
    files: list[Path], config: RunConfig, progress: ProgressSink
) -> None:
    """Run all stages over the given job descriptors."""
    jobs = [JobFiles.load(f) for f in files]
    overlaid = [job for job in jobs if job.overlay_path]
    ffmpeg = config.ffmpeg_path
    workers = config.num_workers

    # Dump frames to video and audio
    report_message(progress, "Generating videos...")
    results = await execute_commands_in_queue(
        config.dolphin_path,
        [render_args(job, config.iso_path) for job in jobs],
        workers,
        {"stdout": asyncio.subprocess.PIPE},
        kill_dolphin_on_end_frame,
        progress,
    )
    log_failures("dolphin", results, allow_signals=True)

    # Merge video and audio files
    report_message(progress, "Merging video and audio...")
    results = await execute_commands_in_queue(
        ffmpeg,
        [merge_args(job, config.bitrate_kbps, config.scale) for job in jobs],
        workers,
        progress=progress,
    )
    log_failures("ffmpeg merge", results)
    delete_files([job.path(s) for job in jobs for s in (Stage.RENDER_VIDEO, Stage.RENDER_AUDIO)])

    # Find black frames
    report_message(progress, "Detecting black frames...")
    results = await execute_commands_in_queue(
        ffmpeg,
        [blackdetect_args(job) for job in jobs],
        workers,
        {"stderr": asyncio.subprocess.PIPE},
        save_black_frames,
        progress,
    )
    log_failures("ffmpeg blackdetect", results)

    # Trim black frames
    trim_args_list = [
        trim_args(job, compute_trim_window(read_black_frames(job.path(Stage.BLACKDETECT))), config.bitrate_kbps)
        for job in jobs
    ]
    report_message(progress, "Trimming black frames...")
    results = await execute_commands_in_queue(ffmpeg, trim_args_list, workers, progress=progress)
    log_failures("ffmpeg trim", results)
    delete_files([job.path(Stage.MERGED) for job in jobs])

    # Add overlays
    if overlaid:
        report_message(progress, "Adding overlays...")
        results = await execute_commands_in_queue(
            ffmpeg,
            [overlay_args(job, config.bitrate_kbps) for job in overlaid],
            workers,
            progress=progress,
        )
        log_failures("ffmpeg overlay", results)
        delete_files([job.path(Stage.TRIMMED) for job in overlaid])
