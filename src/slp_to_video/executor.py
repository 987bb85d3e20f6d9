"""
Bounded-concurrency runner for external commands.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from .models import CommandResult
from .progress import NullProgress, ProgressSink, report_count

logger = logging.getLogger("slp_to_video")

SpawnHook = Callable[[asyncio.subprocess.Process, list[str]], Awaitable[None]]

DEFAULT_SPAWN_OPTIONS: dict[str, Any] = {
    "stdin": asyncio.subprocess.DEVNULL,
    "stdout": asyncio.subprocess.DEVNULL,
    "stderr": asyncio.subprocess.DEVNULL,
}


async def execute_commands_in_queue(
    command: str,
    args_list: list[list[str]],
    num_workers: int,
    spawn_options: dict[str, Any] | None = None,
    on_spawn: SpawnHook | None = None,
    progress: ProgressSink | None = None,
) -> list[CommandResult]:
    """Run `command` once per entry of `args_list`, at most `num_workers` at a time.

    `args_list` is consumed: every worker pops entries until it is empty. When
    `on_spawn` is given it runs alongside the process and must finish before
    the worker moves on; a worker slot is free only once the process has
    exited and the hook has returned.

    Exit codes are collected but not acted upon.
    """
    if num_workers < 1:
        raise ValueError(f"num_workers must be >= 1, got {num_workers}")

    options = {**DEFAULT_SPAWN_OPTIONS, **(spawn_options or {})}
    sink = progress or NullProgress()
    total = len(args_list)
    done = 0
    results: list[CommandResult] = []
    running: set[asyncio.subprocess.Process] = set()

    async def worker() -> None:
        nonlocal done
        while args_list:
            args = args_list.pop()
            logger.debug("Running: %s %s", command, " ".join(map(str, args)))
            proc = await asyncio.create_subprocess_exec(command, *args, **options)
            running.add(proc)
            if on_spawn is not None:
                await asyncio.gather(proc.wait(), on_spawn(proc, args))
            else:
                await proc.wait()
            running.discard(proc)
            results.append(CommandResult(args=args, returncode=proc.returncode))
            done += 1
            report_count(sink, done, total)

    workers = [asyncio.create_task(worker()) for _ in range(num_workers)]
    try:
        await asyncio.gather(*workers)
    except BaseException:
        for task in workers:
            task.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        await _kill_all(running)
        raise
    return results


async def _kill_all(procs: set[asyncio.subprocess.Process]) -> None:
    """Kill processes left behind by a failed queue and reap them."""
    for proc in procs:
        if proc.returncode is None:
            logger.debug(f"Killing pid {proc.pid}")
            try:
                proc.kill()
            except ProcessLookupError:
                pass
    await asyncio.gather(*(proc.wait() for proc in procs), return_exceptions=True)
