"""
Progress reporting sinks.

The pipeline reports two kinds of events: a human-readable message when a
stage starts, and a completed/total tick after every finished process.
"""

import logging
from typing import Protocol

from tqdm import tqdm

logger = logging.getLogger("slp_to_video")


class ProgressSink(Protocol):
    def message(self, text: str) -> None: ...

    def count(self, done: int, total: int) -> None: ...


class NullProgress:
    """Discards all events."""

    def message(self, text: str) -> None:
        pass

    def count(self, done: int, total: int) -> None:
        pass


class LoggingProgress:
    """Sends events to the package logger."""

    def message(self, text: str) -> None:
        logger.info(text)

    def count(self, done: int, total: int) -> None:
        logger.debug(f"{done}/{total}")


def report_message(sink: ProgressSink, text: str) -> None:
    """Deliver a stage message; sink errors are logged, never raised."""
    try:
        sink.message(text)
    except Exception as e:
        logger.warning(f"Progress reporting failed: {e}")


def report_count(sink: ProgressSink, done: int, total: int) -> None:
    try:
        sink.count(done, total)
    except Exception as e:
        logger.warning(f"Progress reporting failed: {e}")


class TqdmProgress:
    """Draws one progress bar per stage."""

    def __init__(self) -> None:
        self._bar: tqdm | None = None
        self._desc = ""

    def message(self, text: str) -> None:
        self.close()
        self._desc = text.rstrip(".")
        tqdm.write(text)

    def count(self, done: int, total: int) -> None:
        if self._bar is None or self._bar.total != total:
            self.close()
            self._bar = tqdm(total=total, desc=self._desc, unit="job")
        self._bar.n = min(done, total)
        self._bar.refresh()

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None
