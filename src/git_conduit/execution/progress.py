"""
git-conduit — progress tailer

File: src/git_conduit/execution/progress.py

Purpose
- Feed one caller-visible progress callback from two independent sources while an invocation
  is in flight: inline stderr scanning and the side-channel progress file.

Functional requirements
- Stderr chunks are split on carriage return or line feed; the incomplete remainder is kept
  until more bytes arrive or the stream ends.
- Side-channel tailing is a child task owned by the invocation; it is stopped and joined, and
  its temp file deleted, on every exit path. Cleanup failures are logged, never raised.
- Ordering is FIFO within each source and unspecified between sources.
"""

from __future__ import annotations

import asyncio
import re
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Final

from git_conduit.domain.models import ProgressEvent
from git_conduit.execution.audit import TraceCallback, TraceEvent
from git_conduit.execution.filesystem import FileSystemAdapter
from git_conduit.execution.process import CancelToken
from git_conduit.observability.logging import get_logger
from git_conduit.parsers.progress import (
    parse_tool_progress,
    parse_transfer_progress,
    parse_transfer_summary,
)

ProgressCallback = Callable[[ProgressEvent], None]

SIDE_CHANNEL_ENV: Final[str] = "GIT_LFS_PROGRESS"
FORCE_PROGRESS_ENV: Final[str] = "GIT_LFS_FORCE_PROGRESS"

_LINE_SEPARATOR_RE: Final[re.Pattern[str]] = re.compile(r"\r|\n")
# "12:34:56.789012 trace: ..." or "12:34:56.789012 git.c:455 ..."
_TRACE_LINE_RE: Final[re.Pattern[str]] = re.compile(
    r"^\d{2}:\d{2}:\d{2}\.\d+\s+(?:trace:|[A-Za-z0-9_.-]+\.c:)"
)

_logger = get_logger(__name__)


class StderrProgressScanner:
    """Incremental stderr scanner producing progress and trace events."""

    def __init__(
        self,
        *,
        on_progress: ProgressCallback | None = None,
        on_trace: TraceCallback | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._on_progress = on_progress
        self._on_trace = on_trace
        self._clock = clock
        self._buffer = ""

    @property
    def active(self) -> bool:
        return self._on_progress is not None or self._on_trace is not None

    def feed(self, chunk: str) -> None:
        self._buffer += chunk
        *complete, self._buffer = _LINE_SEPARATOR_RE.split(self._buffer)
        for line in complete:
            self._dispatch(line)

    def flush(self) -> None:
        remainder, self._buffer = self._buffer, ""
        self._dispatch(remainder)

    def _dispatch(self, line: str) -> None:
        trimmed = line.strip()
        if not trimmed:
            return
        if self._on_trace is not None and _TRACE_LINE_RE.match(trimmed):
            self._on_trace(TraceEvent(timestamp=self._clock(), line=trimmed))
            return
        if self._on_progress is None:
            return
        event: ProgressEvent | None = parse_transfer_summary(trimmed)
        if event is None:
            event = parse_tool_progress(trimmed)
        if event is not None:
            self._on_progress(event)


@asynccontextmanager
async def side_channel_progress(
    filesystem: FileSystemAdapter,
    on_progress: ProgressCallback,
    *,
    prefix: str,
    poll_interval: float | None = None,
) -> AsyncIterator[Path]:
    """Provision the side-channel file, tail it for the duration of the block, then clean up.

    Yields the file path to export to the subprocess. The tail task and the file are both
    gone by the time the block exits, whether it exits normally, by exception or by
    cancellation.
    """

    path = await filesystem.create_temp_file(prefix)
    stop = CancelToken()

    def on_line(line: str) -> None:
        event = parse_transfer_progress(line)
        if event is not None:
            on_progress(event)

    tail_task = asyncio.ensure_future(
        filesystem.tail(path, cancel=stop, on_line=on_line, poll_interval=poll_interval)
    )
    try:
        yield path
    finally:
        stop.cancel()
        try:
            await tail_task
        except Exception as exc:
            _logger.debug("side_channel_tail_failed", path=str(path), error=str(exc))
        finally:
            if not tail_task.done():
                tail_task.cancel()
        try:
            await filesystem.delete_file(path)
        except OSError as exc:
            _logger.debug("side_channel_cleanup_failed", path=str(path), error=str(exc))


__all__ = [
    "FORCE_PROGRESS_ENV",
    "ProgressCallback",
    "SIDE_CHANNEL_ENV",
    "StderrProgressScanner",
    "side_channel_progress",
]
