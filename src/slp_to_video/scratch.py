"""
Per-run scratch directory handling.
"""

import atexit
import logging
import shutil
import tempfile
from pathlib import Path

logger = logging.getLogger("slp_to_video")


class ScratchRoot:
    """A fresh temporary directory tree owned by one run.

    The tree is removed when the context exits and, as a fallback, when the
    interpreter exits, whether the run succeeded or not.
    """

    def __init__(self, base_dir: str | None = None) -> None:
        self.base_dir = base_dir
        self.path: Path | None = None

    def create(self) -> Path:
        if self.base_dir:
            Path(self.base_dir).mkdir(parents=True, exist_ok=True)
        self.path = Path(tempfile.mkdtemp(prefix="tmp-", dir=self.base_dir))
        atexit.register(self.remove)
        logger.debug(f"Scratch root: {self.path}")
        return self.path

    def make_target_dir(self) -> Path:
        """Create an isolated subdirectory for one output target."""
        if self.path is None:
            raise RuntimeError("scratch root has not been created")
        return Path(tempfile.mkdtemp(prefix="tmp-", dir=self.path))

    def target_dirs(self) -> list[Path]:
        if self.path is None:
            return []
        return sorted(p for p in self.path.iterdir() if p.is_dir())

    def remove(self) -> None:
        if self.path is not None and self.path.exists():
            shutil.rmtree(self.path, ignore_errors=True)
            logger.debug(f"Removed scratch root {self.path}")

    def __enter__(self) -> "ScratchRoot":
        self.create()
        return self

    def __exit__(self, *exc) -> None:
        self.remove()
        atexit.unregister(self.remove)
