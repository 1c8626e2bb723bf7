"""
git-conduit — filesystem adapter

File: src/git_conduit/execution/filesystem.py

Purpose
- Temp file provisioning and append-only file tailing for side-channel progress.

Functional requirements
- Temp files are uniquely named and created empty, so concurrent invocations never share one.
- ``tail`` polls for appended bytes, hands over complete non-empty lines in append order and
  returns once its cancel signal fires, after one last read.
- Deleting a file that is already gone is not an error.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from collections.abc import AsyncIterator, Callable
from contextlib import suppress
from pathlib import Path
from types import TracebackType
from typing import Final, Protocol, runtime_checkable

from git_conduit.execution.process import CancelToken

PathLike = str | os.PathLike[str]
LineCallback = Callable[[str], None]

DEFAULT_POLL_INTERVAL_SECONDS: Final[float] = 0.1
DEFAULT_TEMP_PREFIX: Final[str] = "git-conduit-"


@runtime_checkable
class FileSystemAdapter(Protocol):
    async def create_temp_file(self, prefix: str = DEFAULT_TEMP_PREFIX) -> Path: ...

    async def write_file(self, path: PathLike, data: str) -> None: ...

    async def read_text(self, path: PathLike) -> str: ...

    async def exists(self, path: PathLike) -> bool: ...

    async def delete_file(self, path: PathLike) -> None: ...

    async def tail(
        self,
        path: PathLike,
        *,
        cancel: CancelToken,
        on_line: LineCallback,
        poll_interval: float | None = None,
    ) -> None: ...


class LocalFileSystem(FileSystemAdapter):
    """Local disk implementation; tail polling uses a fixed interval."""

    def __init__(self, *, poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")
        self._poll_interval = poll_interval

    async def create_temp_file(self, prefix: str = DEFAULT_TEMP_PREFIX) -> Path:
        fd, name = tempfile.mkstemp(prefix=prefix, suffix=".log")
        os.close(fd)
        return Path(name)

    async def write_file(self, path: PathLike, data: str) -> None:
        Path(path).write_text(data, encoding="utf-8")

    async def read_text(self, path: PathLike) -> str:
        return Path(path).read_text(encoding="utf-8")

    async def exists(self, path: PathLike) -> bool:
        return Path(path).exists()

    async def delete_file(self, path: PathLike) -> None:
        Path(path).unlink(missing_ok=True)

    async def tail(
        self,
        path: PathLike,
        *,
        cancel: CancelToken,
        on_line: LineCallback,
        poll_interval: float | None = None,
    ) -> None:
        interval = poll_interval if poll_interval is not None else self._poll_interval
        reader = _AppendReader(Path(path))
        while True:
            stopping = cancel.cancelled
            for line in reader.read_new_lines():
                on_line(line)
            if stopping:
                break
            with suppress(TimeoutError):
                await asyncio.wait_for(cancel.wait(), timeout=interval)
        trailing = reader.flush()
        if trailing:
            on_line(trailing)

    def tail_stream(self, path: PathLike, *, poll_interval: float | None = None) -> TailHandle:
        """Start tailing ``path`` in a child task; must be called from a running loop."""

        return TailHandle(self, path, poll_interval=poll_interval)


class TailHandle:
    """Async iterator over lines appended to a file, with explicit ``stop``/``dispose``."""

    _EOF: Final[object] = object()

    def __init__(
        self,
        filesystem: FileSystemAdapter,
        path: PathLike,
        *,
        poll_interval: float | None = None,
    ) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._stop = CancelToken()
        self._task = asyncio.ensure_future(
            filesystem.tail(
                path,
                cancel=self._stop,
                on_line=self._queue.put_nowait,
                poll_interval=poll_interval,
            )
        )
        self._task.add_done_callback(lambda _task: self._queue.put_nowait(self._EOF))

    def __aiter__(self) -> AsyncIterator[str]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[str]:
        while True:
            item = await self._queue.get()
            if item is self._EOF:
                return
            assert isinstance(item, str)  # noqa: S101
            yield item

    @property
    def stopped(self) -> bool:
        return self._task.done()

    def stop(self) -> None:
        self._stop.cancel()

    async def dispose(self) -> None:
        self.stop()
        await self._task

    async def __aenter__(self) -> TailHandle:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.dispose()


class _AppendReader:
    """Tracks the read offset of a growing file and splits appended bytes into lines."""

    __slots__ = ("_offset", "_path", "_pending")

    def __init__(self, path: Path) -> None:
        self._path = path
        self._offset = 0
        self._pending = b""

    def read_new_lines(self) -> list[str]:
        try:
            with self._path.open("rb") as handle:
                handle.seek(0, os.SEEK_END)
                size = handle.tell()
                if size < self._offset:
                    self._offset = 0
                    self._pending = b""
                handle.seek(self._offset)
                data = handle.read()
        except FileNotFoundError:
            return []
        if not data:
            return []
        self._offset += len(data)
        *complete, self._pending = (self._pending + data).split(b"\n")
        lines = (raw.decode("utf-8", errors="replace").strip() for raw in complete)
        return [line for line in lines if line]

    def flush(self) -> str:
        trailing = self._pending.decode("utf-8", errors="replace").strip()
        self._pending = b""
        return trailing


__all__ = [
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "DEFAULT_TEMP_PREFIX",
    "FileSystemAdapter",
    "LineCallback",
    "LocalFileSystem",
    "TailHandle",
]
