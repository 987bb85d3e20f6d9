"""
Pipeline entry point: batch file in, finished videos out.
"""

import asyncio
import logging

from .batch import load_batch
from .concat import concatenate_videos
from .config import RunConfig
from .dolphin_config import configure_dolphin
from .materialize import materialize_batch
from .metadata import ReplayMetadataReader, SlippiMetadataReader
from .progress import NullProgress, ProgressSink, report_message
from .scratch import ScratchRoot
from .stages import process_replay_configs

logger = logging.getLogger("slp_to_video")


async def run_pipeline(
    config: RunConfig,
    progress: ProgressSink | None = None,
    reader: ReplayMetadataReader | None = None,
) -> list[str]:
    """Convert every target of the batch; returns the output paths written."""
    sink = progress or NullProgress()
    reader = reader or SlippiMetadataReader()

    targets = load_batch(config.input_file)
    configure_dolphin(config)

    with ScratchRoot(config.tmpdir) as scratch:
        files = materialize_batch(targets, scratch, reader)
        await process_replay_configs(files, config, sink)

        report_message(sink, "Concatenating videos...")
        outputs = await asyncio.gather(
            *(
                concatenate_videos(d, config.ffmpeg_path, config.prober_path)
                for d in scratch.target_dirs()
            )
        )
        report_message(sink, "Done")

    return [o for o in outputs if o is not None]


def main(
    config: RunConfig,
    progress: ProgressSink | None = None,
    reader: ReplayMetadataReader | None = None,
) -> list[str]:
    """Synchronous wrapper around run_pipeline for in-process callers."""
    return asyncio.run(run_pipeline(config, progress, reader))
