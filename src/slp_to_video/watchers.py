"""
Watchers attached to the output streams of running processes.

Each watcher exposes a push interface: `feed(text)` for every decoded chunk
and `close()` once the stream reaches EOF. `pump_stream` drives a watcher from
an asyncio stream and returns only when the stream is closed, which may be
after the process itself has exited.
"""

import asyncio
import codecs
import json
import logging
import re
from collections.abc import Callable
from pathlib import Path

from .models import BlackFrame

logger = logging.getLogger("slp_to_video")

END_FRAME_MARKER = "[END_FRAME]"
END_FRAME_KILL_DELAY = 5.0  # seconds, lets the renderer flush its dumps

BLACK_FRAME_RE = re.compile(
    r"black_start:\s*([-+]?\d*\.?\d+(?:[eE][-+]?\d+)?)\s+"
    r"black_end:\s*([-+]?\d*\.?\d+(?:[eE][-+]?\d+)?)"
)
_LINE_SPLIT_RE = re.compile(r"\r\n|\r|\n")
CHUNK_SIZE = 4096


async def pump_stream(
    stream: asyncio.StreamReader | None,
    on_text: Callable[[str], None],
    encoding: str = "utf-8",
) -> None:
    """Feed decoded chunks of `stream` to `on_text` until EOF."""
    if stream is None:
        raise ValueError("stream is not piped; spawn the process with stdout/stderr=PIPE")
    decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
    while True:
        chunk = await stream.read(CHUNK_SIZE)
        if not chunk:
            break
        text = decoder.decode(chunk)
        if text:
            on_text(text)
    tail = decoder.decode(b"", final=True)
    if tail:
        on_text(tail)


class _LineBuffer:
    """Splits pushed text into complete lines, carrying partial lines over."""

    def __init__(self) -> None:
        self._pending = ""

    def push(self, text: str) -> list[str]:
        parts = _LINE_SPLIT_RE.split(self._pending + text)
        self._pending = parts.pop()
        return parts

    def flush(self) -> list[str]:
        rest, self._pending = self._pending, ""
        return [rest] if rest else []


class EndFrameKiller:
    """Kills a renderer a fixed delay after it reports the end of playback."""

    def __init__(
        self,
        proc: asyncio.subprocess.Process,
        marker: str = END_FRAME_MARKER,
        delay: float | None = None,
    ) -> None:
        self.proc = proc
        self.marker = marker
        self.delay = END_FRAME_KILL_DELAY if delay is None else delay
        self.kills_scheduled = 0
        self._lines = _LineBuffer()

    def feed(self, text: str) -> None:
        for line in self._lines.push(text):
            self._check(line)

    def close(self) -> None:
        for line in self._lines.flush():
            self._check(line)

    def _check(self, line: str) -> None:
        if self.marker in line:
            logger.debug(f"End marker seen (pid {self.proc.pid}), killing in {self.delay}s")
            asyncio.get_running_loop().call_later(self.delay, self.kill)
            self.kills_scheduled += 1

    def kill(self) -> None:
        if self.proc.returncode is not None:
            return
        try:
            self.proc.kill()
        except ProcessLookupError:
            pass


def parse_black_frames(text: str) -> list[BlackFrame]:
    """Extract black intervals from blackdetect log output, in order of appearance."""
    return [
        BlackFrame(black_start=float(m.group(1)), black_end=float(m.group(2)))
        for m in BLACK_FRAME_RE.finditer(text)
    ]


def black_frames_path(video_path: str | Path) -> Path:
    """Sidecar file holding the black intervals detected in `video_path`."""
    video = Path(video_path)
    return video.with_name(f"{video.stem}-blackdetect.json")


def write_black_frames(path: str | Path, black_frames: list[BlackFrame]) -> None:
    data = [{"black_start": b.black_start, "black_end": b.black_end} for b in black_frames]
    Path(path).write_text(json.dumps(data), encoding="utf-8")


def read_black_frames(path: str | Path) -> list[BlackFrame]:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return [BlackFrame(black_start=float(d["black_start"]), black_end=float(d["black_end"])) for d in data]


class BlackFrameCollector:
    """Collects black intervals from ffmpeg's stderr and saves them next to the video."""

    def __init__(self, video_path: str | Path) -> None:
        self.video_path = Path(video_path)
        self.black_frames: list[BlackFrame] = []
        self._lines = _LineBuffer()

    @property
    def sidecar_path(self) -> Path:
        return black_frames_path(self.video_path)

    def feed(self, text: str) -> None:
        for line in self._lines.push(text):
            self.black_frames.extend(parse_black_frames(line))

    def close(self) -> None:
        for line in self._lines.flush():
            self.black_frames.extend(parse_black_frames(line))

    def save(self) -> Path:
        write_black_frames(self.sidecar_path, self.black_frames)
        logger.debug(f"{len(self.black_frames)} black interval(s) -> {self.sidecar_path}")
        return self.sidecar_path


async def kill_dolphin_on_end_frame(proc: asyncio.subprocess.Process, args: list[str]) -> None:
    """Spawn hook for the render stage."""
    killer = EndFrameKiller(proc)
    await pump_stream(proc.stdout, killer.feed)
    killer.close()


async def save_black_frames(proc: asyncio.subprocess.Process, args: list[str]) -> None:
    """Spawn hook for the black-detect stage; writes the sidecar once stderr closes."""
    collector = BlackFrameCollector(args[args.index("-i") + 1])
    await pump_stream(proc.stderr, collector.feed)
    collector.close()
    collector.save()
