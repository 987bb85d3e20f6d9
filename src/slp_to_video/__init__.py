"""
slp-to-video - Batch conversion of Slippi replays to video.

Drives Dolphin and ffmpeg to:
- Render each replay to video and audio dumps
- Merge and rescale the dumps
- Detect and trim the black intro/outro of every clip
- Composite optional overlays
- Concatenate the clips of each requested output
"""

__version__ = "0.1.0"
