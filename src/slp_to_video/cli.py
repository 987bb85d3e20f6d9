"""
Command-line interface for the replay-to-video pipeline.
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

from .config import DEFAULT_BITRATE_KBPS, DEFAULT_DOLPHIN_PATH, DEFAULT_ISO_PATH, RunConfig
from .pipeline import run_pipeline
from .progress import LoggingProgress, NullProgress, ProgressSink, TqdmProgress

logger = logging.getLogger("slp_to_video")


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    ap = argparse.ArgumentParser(description="Convert .slp files to video in AVI format.")

    ap.add_argument(
        "input_file",
        metavar="INPUT_FILE",
        help="JSON file describing the input .slp files and output filenames",
    )
    ap.add_argument("--num-cpus", type=int, default=1, help="The number of processes to use")

    # External tools
    ap.add_argument(
        "--dolphin-path",
        default=os.getenv("SLP_DOLPHIN_PATH", DEFAULT_DOLPHIN_PATH),
        help="Path to the Dolphin executable",
    )
    ap.add_argument(
        "--ssbm-iso-path",
        default=os.getenv("SLP_SSBM_ISO_PATH", DEFAULT_ISO_PATH),
        help="Path to the SSBM ISO image",
    )
    ap.add_argument("--ffmpeg-path", default=os.getenv("SLP_FFMPEG_PATH", "ffmpeg"))
    ap.add_argument(
        "--ffprobe-path",
        default=os.getenv("SLP_FFPROBE_PATH"),
        help="Path to ffprobe (default: next to ffmpeg)",
    )

    # Game / video settings
    ap.add_argument("--game-music-on", action="store_true", help="Turn game music on")
    ap.add_argument("--hide-hud", action="store_true", help="Hide percentage and stock icons")
    ap.add_argument("--widescreen-off", action="store_true", help="Turn off widescreen")
    ap.add_argument("--bitrate-kbps", type=int, default=DEFAULT_BITRATE_KBPS, help="Bitrate in kbps")

    ap.add_argument(
        "--tmpdir",
        default=os.getenv("SLP_TMPDIR"),
        help="Temporary directory to use (temporary files may be large)",
    )
    ap.add_argument("--verbose", "-v", action="store_true", help="Print steps to screen")

    return ap.parse_args(argv)


def build_config(args: argparse.Namespace) -> RunConfig:
    return RunConfig(
        input_file=str(Path(args.input_file).resolve()),
        num_workers=args.num_cpus,
        dolphin_path=str(Path(args.dolphin_path).resolve()),
        iso_path=str(Path(args.ssbm_iso_path).resolve()),
        ffmpeg_path=args.ffmpeg_path,
        ffprobe_path=args.ffprobe_path,
        bitrate_kbps=args.bitrate_kbps,
        game_music_on=args.game_music_on,
        hide_hud=args.hide_hud,
        widescreen_off=args.widescreen_off,
        tmpdir=str(Path(args.tmpdir).resolve()) if args.tmpdir else None,
        verbose=args.verbose,
    )


def make_progress(verbose: bool, interactive: bool | None = None) -> ProgressSink:
    """Pick a progress sink: bars on a terminal, log lines when stderr is redirected."""
    if not verbose:
        return NullProgress()
    if interactive is None:
        interactive = sys.stderr.isatty()
    return TqdmProgress() if interactive else LoggingProgress()


def _exit_on_sigterm(signum, frame) -> None:
    # Turn SIGTERM into SystemExit so the scratch directory still gets removed.
    sys.exit(128 + signum)


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    load_dotenv()
    args = parse_args(argv)
    setup_logging(args.verbose)
    signal.signal(signal.SIGTERM, _exit_on_sigterm)

    config = build_config(args)
    progress = make_progress(config.verbose)
    try:
        asyncio.run(run_pipeline(config, progress))
    finally:
        if isinstance(progress, TqdmProgress):
            progress.close()


if __name__ == "__main__":
    main()
