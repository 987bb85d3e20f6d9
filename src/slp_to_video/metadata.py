"""
Replay metadata lookups.
"""

import logging
from typing import Protocol

from slippi import Game

logger = logging.getLogger("slp_to_video")

# Index of the first frame of every Slippi game (frames before 0 are the countdown).
FIRST_FRAME = -123


class ReplayMetadataError(RuntimeError):
    """Raised when a replay's length cannot be determined."""


class ReplayMetadataReader(Protocol):
    def last_frame(self, replay_path: str) -> int:
        """Return the index of the last frame recorded in the replay."""
        ...


class SlippiMetadataReader:
    """Reads replay lengths with py-slippi."""

    def last_frame(self, replay_path: str) -> int:
        game = Game(replay_path)
        if game.frames:
            return game.frames[-1].index
        duration = getattr(game.metadata, "duration", None)
        if duration is None:
            raise ReplayMetadataError(f"Cannot determine last frame of {replay_path}")
        logger.debug(f"{replay_path} has no frame data, using metadata duration {duration}")
        return FIRST_FRAME + duration - 1
