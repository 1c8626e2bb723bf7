"""
git-conduit — process execution adapter

File: src/git_conduit/execution/process.py

Purpose
- Spawn the external tool, stream its output as it arrives and honour a cooperative
  cancellation signal.

What should be included in this file
- ``CancelToken``: one idempotent cancellation signal per invocation.
- ``ProcessAdapter`` protocol consumed by the runner, plus the asyncio implementation.
- ``StreamingProcess``: lazily produced stdout lines with ``kill``/``dispose`` and ``async with``.

Functional requirements
- Cancellation resolves the call with ``aborted=True``; it never raises.
- Spawn failures resolve with exit code ``-1`` and the OS error text on stderr.
- Disposal terminates the process if it is still running, whichever path the caller uses.
"""

from __future__ import annotations

import asyncio
import codecs
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import suppress
from dataclasses import dataclass
from types import TracebackType
from typing import Final, Protocol, runtime_checkable

from git_conduit.domain.context import RawResult

OutputCallback = Callable[[str], None]

SPAWN_FAILED_EXIT_CODE: Final[int] = -1

_CHUNK_SIZE: Final[int] = 8192
_STREAM_LIMIT: Final[int] = 1024 * 1024
_PIPE_DRAIN_TIMEOUT_SECONDS: Final[float] = 2.0


class CancelToken:
    """Cooperative cancellation signal. Firing it again, or after completion, is a no-op."""

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass(frozen=True, slots=True)
class SpawnSpec:
    argv: tuple[str, ...]
    env: Mapping[str, str] | None = None
    cwd: str | None = None
    stdin_text: str | None = None


@runtime_checkable
class ProcessAdapter(Protocol):
    """Pluggable process execution used by the runner."""

    async def spawn(
        self,
        spec: SpawnSpec,
        *,
        cancel: CancelToken | None = None,
        on_stdout: OutputCallback | None = None,
        on_stderr: OutputCallback | None = None,
    ) -> RawResult: ...

    async def stream(self, spec: SpawnSpec) -> StreamingProcess: ...


class StreamingProcess:
    """Handle over a running process whose stdout is consumed line by line.

    The line sequence is produced lazily, finite, and can be iterated only once.
    """

    def __init__(self, process: asyncio.subprocess.Process, argv: tuple[str, ...]) -> None:
        self.argv = argv
        self._process = process
        self._stderr_chunks: list[bytes] = []
        self._stderr_task = asyncio.ensure_future(self._drain_stderr())
        self._consumed = False
        self._disposed = False

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    @property
    def stderr(self) -> str:
        return b"".join(self._stderr_chunks).decode("utf-8", errors="replace")

    def lines(self) -> AsyncIterator[str]:
        if self._consumed:
            raise RuntimeError("stream output can only be iterated once")
        self._consumed = True
        return self._iterate_lines()

    def __aiter__(self) -> AsyncIterator[str]:
        return self.lines()

    async def _iterate_lines(self) -> AsyncIterator[str]:
        stdout = self._process.stdout
        if stdout is None:
            return
        while True:
            raw = await stdout.readline()
            if not raw:
                break
            yield raw.decode("utf-8", errors="replace").rstrip("\r\n")

    def kill(self) -> None:
        if self._process.returncode is None:
            with suppress(ProcessLookupError):
                self._process.kill()

    async def wait(self) -> int:
        return await self._process.wait()

    async def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self.kill()
        await self._process.wait()
        try:
            await asyncio.wait_for(self._stderr_task, timeout=_PIPE_DRAIN_TIMEOUT_SECONDS)
        except TimeoutError:
            self._stderr_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._stderr_task

    async def __aenter__(self) -> StreamingProcess:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.dispose()

    async def _drain_stderr(self) -> None:
        stderr = self._process.stderr
        if stderr is None:
            return
        while True:
            chunk = await stderr.read(_CHUNK_SIZE)
            if not chunk:
                return
            self._stderr_chunks.append(chunk)


class AsyncioProcessAdapter(ProcessAdapter):
    """Local subprocess execution on top of ``asyncio.create_subprocess_exec``."""

    async def spawn(
        self,
        spec: SpawnSpec,
        *,
        cancel: CancelToken | None = None,
        on_stdout: OutputCallback | None = None,
        on_stderr: OutputCallback | None = None,
    ) -> RawResult:
        if cancel is not None and cancel.cancelled:
            return RawResult(stdout="", stderr="", exit_code=SPAWN_FAILED_EXIT_CODE, aborted=True)

        try:
            process = await asyncio.create_subprocess_exec(
                *spec.argv,
                cwd=spec.cwd,
                env=dict(spec.env) if spec.env is not None else None,
                stdin=(
                    asyncio.subprocess.PIPE
                    if spec.stdin_text is not None
                    else asyncio.subprocess.DEVNULL
                ),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            return RawResult(stdout="", stderr=str(exc), exit_code=SPAWN_FAILED_EXIT_CODE)

        stdout_chunks: list[bytes] = []
        stderr_chunks: list[bytes] = []
        io_task = asyncio.ensure_future(
            asyncio.gather(
                _feed_stdin(process, spec.stdin_text),
                _pump(process.stdout, stdout_chunks, on_stdout),
                _pump(process.stderr, stderr_chunks, on_stderr),
            )
        )
        completion = asyncio.ensure_future(_finish(process, io_task))

        aborted = False
        try:
            if cancel is None:
                await completion
            else:
                cancel_wait = asyncio.ensure_future(cancel.wait())
                try:
                    await asyncio.wait(
                        {completion, cancel_wait}, return_when=asyncio.FIRST_COMPLETED
                    )
                finally:
                    cancel_wait.cancel()
                    with suppress(asyncio.CancelledError):
                        await cancel_wait
                if not completion.done():
                    aborted = True
                    await _terminate(process, io_task)
                    await completion
        except BaseException:
            await _terminate(process, io_task)
            completion.cancel()
            raise

        exit_code = process.returncode
        return RawResult(
            stdout=b"".join(stdout_chunks).decode("utf-8", errors="replace"),
            stderr=b"".join(stderr_chunks).decode("utf-8", errors="replace"),
            exit_code=exit_code if exit_code is not None else SPAWN_FAILED_EXIT_CODE,
            aborted=aborted,
        )

    async def stream(self, spec: SpawnSpec) -> StreamingProcess:
        process = await asyncio.create_subprocess_exec(
            *spec.argv,
            cwd=spec.cwd,
            env=dict(spec.env) if spec.env is not None else None,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            limit=_STREAM_LIMIT,
        )
        return StreamingProcess(process, spec.argv)


async def _feed_stdin(process: asyncio.subprocess.Process, stdin_text: str | None) -> None:
    if stdin_text is None or process.stdin is None:
        return
    with suppress(BrokenPipeError, ConnectionResetError):
        process.stdin.write(stdin_text.encode("utf-8"))
        await process.stdin.drain()
    process.stdin.close()


async def _pump(
    stream: asyncio.StreamReader | None,
    sink: list[bytes],
    callback: OutputCallback | None,
) -> None:
    if stream is None:
        return
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        chunk = await stream.read(_CHUNK_SIZE)
        if not chunk:
            break
        sink.append(chunk)
        if callback is not None:
            text = decoder.decode(chunk)
            if text:
                callback(text)
    if callback is not None:
        remainder = decoder.decode(b"", final=True)
        if remainder:
            callback(remainder)


async def _finish(process: asyncio.subprocess.Process, io_task: asyncio.Future[object]) -> None:
    await asyncio.wait({io_task})
    await process.wait()
    if not io_task.cancelled():
        error = io_task.exception()
        if error is not None:
            raise error


async def _terminate(process: asyncio.subprocess.Process, io_task: asyncio.Future[object]) -> None:
    if process.returncode is None:
        with suppress(ProcessLookupError):
            process.kill()
    await process.wait()
    # Helpers spawned by git may inherit the pipes and keep them open after the kill.
    try:
        await asyncio.wait_for(asyncio.shield(io_task), timeout=_PIPE_DRAIN_TIMEOUT_SECONDS)
    except TimeoutError:
        io_task.cancel()
        with suppress(asyncio.CancelledError):
            await io_task


__all__ = [
    "AsyncioProcessAdapter",
    "CancelToken",
    "OutputCallback",
    "ProcessAdapter",
    "SPAWN_FAILED_EXIT_CODE",
    "SpawnSpec",
    "StreamingProcess",
]
