"""
Expansion of a batch into per-replay job descriptor files.
"""

import json
import logging
import secrets
from pathlib import Path

from .metadata import FIRST_FRAME, ReplayMetadataReader
from .models import ReplayJob, ReplaySegment, Target
from .scratch import ScratchRoot

logger = logging.getLogger("slp_to_video")

OUTPUT_PATH_FILE = "outputPath.txt"


def resolve_job(
    segment: ReplaySegment, index: int, target_dir: Path, reader: ReplayMetadataReader
) -> ReplayJob:
    """Bind a segment to its ordinal and directory and fill in missing frame bounds."""
    start = segment.start_frame if segment.start_frame is not None else FIRST_FRAME
    end = segment.end_frame if segment.end_frame is not None else reader.last_frame(segment.replay)
    if start >= end:
        logger.warning(f"{segment.replay}: start frame {start} is not before end frame {end}")
    return ReplayJob(
        replay=segment.replay,
        index=index,
        target_dir=str(target_dir),
        start_frame=start,
        end_frame=end,
        command_id=secrets.token_hex(12),
        overlay_path=segment.overlay_path,
    )


def write_descriptor(job: ReplayJob) -> Path:
    path = Path(job.target_dir) / f"{job.index}.json"
    path.write_text(json.dumps(job.to_descriptor()), encoding="utf-8")
    return path


def generate_replay_configs(
    target: Target, scratch: ScratchRoot, reader: ReplayMetadataReader
) -> list[Path]:
    """Create the scratch directory of one target and write its job descriptors."""
    target_dir = scratch.make_target_dir()
    (target_dir / OUTPUT_PATH_FILE).write_text(target.output_path, encoding="utf-8")
    return [
        write_descriptor(resolve_job(segment, index, target_dir, reader))
        for index, segment in enumerate(target.segments)
    ]


def materialize_batch(
    targets: list[Target], scratch: ScratchRoot, reader: ReplayMetadataReader
) -> list[Path]:
    """Write descriptors for every target; returns all descriptor paths."""
    files: list[Path] = []
    for target in targets:
        files.extend(generate_replay_configs(target, scratch, reader))
    logger.info(f"Prepared {len(files)} replay(s) for {len(targets)} output(s)")
    return files


def read_output_path(target_dir: Path) -> str:
    return (target_dir / OUTPUT_PATH_FILE).read_text(encoding="utf-8")
