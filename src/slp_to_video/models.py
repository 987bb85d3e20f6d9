"""
Data models for the replay-to-video pipeline.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ReplaySegment:
    """One replay reference within a target, with optional frame range and overlay."""

    replay: str
    start_frame: int | None = None  # None => first frame of the recording
    end_frame: int | None = None  # None => last frame of the recording
    overlay_path: str | None = None


@dataclass(frozen=True)
class Target:
    """A requested output video made of one or more replay segments."""

    output_path: str
    segments: list[ReplaySegment] = field(default_factory=list)


@dataclass(frozen=True)
class ReplayJob:
    """A segment bound to its ordinal and scratch directory, with resolved frame bounds."""

    replay: str
    index: int
    target_dir: str
    start_frame: int
    end_frame: int
    command_id: str
    overlay_path: str | None = None

    def to_descriptor(self) -> dict:
        """Serialize into the renderer's replay config format."""
        return {
            "mode": "normal",
            "replay": self.replay,
            "startFrame": self.start_frame,
            "endFrame": self.end_frame,
            "isRealTimeMode": False,
            "commandId": self.command_id,
            "overlayPath": self.overlay_path,
        }


@dataclass(frozen=True)
class BlackFrame:
    """A detected black interval, in seconds."""

    black_start: float
    black_end: float


@dataclass(frozen=True)
class TrimWindow:
    """Portion of a clip to keep; end=None keeps everything to the end of the stream."""

    start: float
    end: float | None = None

    def filter_params(self) -> str:
        params = f"start={self.start}"
        if self.end is not None:
            params += f":end={self.end}"
        return params


@dataclass(frozen=True)
class CommandResult:
    """Exit status of one queued invocation."""

    args: list[str]
    returncode: int | None
