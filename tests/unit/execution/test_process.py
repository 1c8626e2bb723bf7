"""
git-conduit — unit tests for the asyncio process adapter.

File: tests/unit/execution/test_process.py

Purpose
- Exercise spawn/stream against a real interpreter subprocess: output capture, streaming
  callbacks, stdin, cancellation and spawn failures.
"""

from __future__ import annotations

import asyncio
import sys

import pytest

from git_conduit.execution.process import (
    SPAWN_FAILED_EXIT_CODE,
    AsyncioProcessAdapter,
    CancelToken,
    SpawnSpec,
)


def _python(code: str, *, stdin_text: str | None = None) -> SpawnSpec:
    return SpawnSpec(argv=(sys.executable, "-c", code), stdin_text=stdin_text)


@pytest.mark.asyncio
async def test_spawn_captures_output_and_exit_code() -> None:
    adapter = AsyncioProcessAdapter()
    code = "import sys; print('out'); sys.stderr.write('err\\n'); sys.exit(3)"

    result = await adapter.spawn(_python(code))

    assert result.stdout.strip() == "out"
    assert result.stderr.strip() == "err"
    assert result.exit_code == 3
    assert result.aborted is False


@pytest.mark.asyncio
async def test_spawn_streams_chunks_to_callbacks() -> None:
    adapter = AsyncioProcessAdapter()
    seen_out: list[str] = []
    seen_err: list[str] = []
    code = "import sys; sys.stdout.write('a\\nb\\n'); sys.stderr.write('Counting: 1/2\\r')"

    result = await adapter.spawn(
        _python(code), on_stdout=seen_out.append, on_stderr=seen_err.append
    )

    assert "".join(seen_out) == result.stdout == "a\nb\n"
    assert "".join(seen_err) == "Counting: 1/2\r"


@pytest.mark.asyncio
async def test_spawn_feeds_stdin() -> None:
    adapter = AsyncioProcessAdapter()
    code = "import sys; sys.stdout.write(sys.stdin.read().upper())"

    result = await adapter.spawn(_python(code, stdin_text="commit message\n"))

    assert result.stdout == "COMMIT MESSAGE\n"


@pytest.mark.asyncio
async def test_spawn_missing_binary_resolves_with_spawn_failed_code() -> None:
    adapter = AsyncioProcessAdapter()

    result = await adapter.spawn(SpawnSpec(argv=("/nonexistent/git-conduit-binary", "--version")))

    assert result.exit_code == SPAWN_FAILED_EXIT_CODE
    assert result.stderr
    assert result.aborted is False


@pytest.mark.asyncio
async def test_cancel_kills_running_process_and_marks_aborted() -> None:
    adapter = AsyncioProcessAdapter()
    cancel = CancelToken()
    code = "import sys, time; print('started', flush=True); time.sleep(30)"
    started = asyncio.Event()

    def on_stdout(chunk: str) -> None:
        if "started" in chunk:
            started.set()

    task = asyncio.ensure_future(adapter.spawn(_python(code), cancel=cancel, on_stdout=on_stdout))
    await asyncio.wait_for(started.wait(), timeout=10)
    cancel.cancel()
    cancel.cancel()

    result = await asyncio.wait_for(task, timeout=10)

    assert result.aborted is True
    assert "started" in result.stdout


@pytest.mark.asyncio
async def test_cancel_fired_before_spawn_never_starts_process() -> None:
    adapter = AsyncioProcessAdapter()
    cancel = CancelToken()
    cancel.cancel()

    result = await adapter.spawn(_python("raise SystemExit(0)"), cancel=cancel)

    assert result.aborted is True
    assert result.stdout == ""


@pytest.mark.asyncio
async def test_cancel_after_completion_is_noop() -> None:
    adapter = AsyncioProcessAdapter()
    cancel = CancelToken()

    result = await adapter.spawn(_python("print('done')"), cancel=cancel)
    cancel.cancel()

    assert result.aborted is False
    assert result.exit_code == 0


@pytest.mark.asyncio
async def test_stream_yields_lines_once_and_disposes() -> None:
    adapter = AsyncioProcessAdapter()
    code = "import sys; [print(f'line {i}') for i in range(3)]; sys.stderr.write('warn')"

    async with await adapter.stream(_python(code)) as handle:
        lines = [line async for line in handle.lines()]
        with pytest.raises(RuntimeError, match="only be iterated once"):
            handle.lines()
        assert await handle.wait() == 0

    assert lines == ["line 0", "line 1", "line 2"]
    assert handle.stderr == "warn"


@pytest.mark.asyncio
async def test_stream_dispose_kills_unfinished_process() -> None:
    adapter = AsyncioProcessAdapter()
    code = "import time; print('first', flush=True); time.sleep(30)"

    handle = await adapter.stream(_python(code))
    iterator = handle.lines()
    assert await asyncio.wait_for(iterator.__anext__(), timeout=10) == "first"
    await asyncio.wait_for(handle.dispose(), timeout=10)
    await handle.dispose()

    assert handle.returncode is not None
