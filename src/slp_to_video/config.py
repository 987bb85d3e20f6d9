"""
Run configuration for the replay-to-video pipeline.
"""

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_DOLPHIN_PATH = os.path.join("Ishiiruka", "build", "Binaries", "dolphin-emu")
DEFAULT_ISO_PATH = "SSBM.iso"
DEFAULT_BITRATE_KBPS = 15000


def sibling_ffprobe(ffmpeg_path: str) -> str:
    """ffprobe next to the given ffmpeg, e.g. `/opt/ff/ffmpeg.exe` -> `/opt/ff/ffprobe.exe`."""
    head, name = os.path.split(ffmpeg_path)
    if "ffmpeg" not in name:
        return "ffprobe"
    return os.path.join(head, name.replace("ffmpeg", "ffprobe", 1))


@dataclass(frozen=True)
class RunConfig:
    """Immutable options for one pipeline run."""

    input_file: str
    num_workers: int = 1
    dolphin_path: str = DEFAULT_DOLPHIN_PATH
    iso_path: str = DEFAULT_ISO_PATH
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str | None = None
    bitrate_kbps: int = DEFAULT_BITRATE_KBPS
    game_music_on: bool = False
    hide_hud: bool = False
    widescreen_off: bool = False
    tmpdir: str | None = None
    verbose: bool = False

    def __post_init__(self) -> None:
        if self.num_workers < 1:
            raise ValueError(f"num_workers must be >= 1, got {self.num_workers}")
        if self.bitrate_kbps <= 0:
            raise ValueError(f"bitrate_kbps must be positive, got {self.bitrate_kbps}")

    @property
    def dolphin_dir(self) -> Path:
        return Path(self.dolphin_path).parent

    @property
    def game_settings_path(self) -> Path:
        return self.dolphin_dir / "User" / "GameSettings" / "GALE01.ini"

    @property
    def graphics_settings_path(self) -> Path:
        return self.dolphin_dir / "User" / "Config" / "GFX.ini"

    @property
    def prober_path(self) -> str:
        return self.ffprobe_path or sibling_ffprobe(self.ffmpeg_path)

    @property
    def scale(self) -> str:
        """Output resolution passed to ffmpeg's scale filter."""
        return "1280:1056" if self.widescreen_off else "1920:1080"
