"""
Dolphin settings applied before rendering.
"""

import logging
from pathlib import Path

from .config import RunConfig

logger = logging.getLogger("slp_to_video")

GAME_SETTING_PREFIXES = ("$Game Music", "$Hide HUD", "$Widescreen")


def rewrite_game_settings(
    lines: list[str], game_music_on: bool, hide_hud: bool, widescreen_off: bool
) -> list[str]:
    """Drop existing music/HUD/widescreen codes from GALE01.ini and append ours."""
    out = [ln for ln in lines if not ln.startswith(GAME_SETTING_PREFIXES)]
    out.append(f"$Game Music {'ON' if game_music_on else 'OFF'}")
    if hide_hud:
        out.append("$Hide HUD")
    if not widescreen_off:
        out.append("$Widescreen 16:9")
    return out


def rewrite_graphics_settings(lines: list[str], widescreen_off: bool, bitrate_kbps: int) -> list[str]:
    """Replace AspectRatio and BitrateKbps in GFX.ini, keeping every other line."""
    out = []
    for ln in lines:
        if ln.startswith("AspectRatio"):
            out.append(f"AspectRatio = {5 if widescreen_off else 6}")
        elif ln.startswith("BitrateKbps"):
            out.append(f"BitrateKbps = {bitrate_kbps}")
        else:
            out.append(ln)
    return out


def _rewrite(path: Path, transform) -> None:
    lines = path.read_text(encoding="utf-8").splitlines()
    path.write_text("\n".join(transform(lines)), encoding="utf-8")
    logger.debug(f"Updated {path}")


def configure_dolphin(config: RunConfig) -> None:
    _rewrite(
        config.game_settings_path,
        lambda lines: rewrite_game_settings(
            lines, config.game_music_on, config.hide_hud, config.widescreen_off
        ),
    )
    _rewrite(
        config.graphics_settings_path,
        lambda lines: rewrite_graphics_settings(lines, config.widescreen_off, config.bitrate_kbps),
    )
