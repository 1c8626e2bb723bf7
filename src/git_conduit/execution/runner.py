"""
git-conduit — execution runner

File: src/git_conduit/execution/runner.py

Purpose
- Run one git invocation end to end: build argv, prepare the environment, provision progress
  sources, spawn, classify.

What should be included in this file
- ``RunnerOptions`` (binary, environment, PATH prefix, HOME isolation, credential helper,
  audit/trace hooks) and ``with_options`` merging.
- ``GitRunner.run`` returning the raw result, ``run_or_raise`` raising the classified error,
  and ``stream`` for lazily consumed output.

Functional requirements
- The side-channel file exists before the process starts and is gone when the call returns.
- Cancellation resolves to ``aborted=True`` and is classified as ``Aborted``.
- No state is shared between concurrent invocations.

Non-functional requirements
- Credentials never reach the logs: argv is redacted before it is logged.
"""

from __future__ import annotations

import os
import time
import uuid
from collections.abc import Mapping, Sequence
from contextlib import AsyncExitStack
from dataclasses import dataclass, field, replace
from pathlib import PurePath
from typing import Any, Final

from git_conduit.domain.context import ExecutionContext, RawResult
from git_conduit.errors import GitError, engine_unavailable
from git_conduit.execution.audit import AuditCallback, AuditEvent, TraceCallback
from git_conduit.execution.classifier import classify
from git_conduit.execution.command import build_argv
from git_conduit.execution.filesystem import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    FileSystemAdapter,
    LocalFileSystem,
)
from git_conduit.execution.process import (
    AsyncioProcessAdapter,
    CancelToken,
    ProcessAdapter,
    SpawnSpec,
    StreamingProcess,
)
from git_conduit.execution.progress import (
    FORCE_PROGRESS_ENV,
    SIDE_CHANNEL_ENV,
    ProgressCallback,
    StderrProgressScanner,
    side_channel_progress,
)
from git_conduit.observability.logging import correlation_scope, get_logger, redact_text

DEFAULT_TEMP_PREFIX: Final[str] = "git-conduit-progress-"


@dataclass(frozen=True, slots=True)
class CredentialHelper:
    """``helper`` is passed as ``credential.helper``; ``helper_path``'s directory joins PATH."""

    helper: str | None = None
    helper_path: str | None = None


@dataclass(frozen=True, slots=True)
class RunnerOptions:
    git_binary: str = "git"
    env: Mapping[str, str] = field(default_factory=dict)
    path_prefix: tuple[str, ...] = ()
    home: str | None = None
    credential: CredentialHelper | None = None
    on_audit: AuditCallback | None = None
    on_trace: TraceCallback | None = None
    inherit_env: bool = True
    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS
    temp_prefix: str = DEFAULT_TEMP_PREFIX

    def merged(self, **changes: Any) -> RunnerOptions:
        """Return a copy with ``changes`` applied; PATH prefixes append and env maps merge."""

        if "path_prefix" in changes:
            changes["path_prefix"] = (*self.path_prefix, *changes["path_prefix"])
        if "env" in changes:
            changes["env"] = {**self.env, **changes["env"]}
        return replace(self, **changes)


class GitRunner:
    """Executes git commands for an execution scope."""

    def __init__(
        self,
        options: RunnerOptions | None = None,
        *,
        process: ProcessAdapter | None = None,
        filesystem: FileSystemAdapter | None = None,
        logger: Any | None = None,
        base_env: Mapping[str, str] | None = None,
    ) -> None:
        self.options = options if options is not None else RunnerOptions()
        self._process = process if process is not None else AsyncioProcessAdapter()
        self._filesystem = (
            filesystem
            if filesystem is not None
            else LocalFileSystem(poll_interval=self.options.poll_interval)
        )
        self._logger = logger if logger is not None else get_logger(__name__)
        self._base_env = base_env

    def with_options(self, **changes: Any) -> GitRunner:
        return GitRunner(
            self.options.merged(**changes),
            process=self._process,
            filesystem=self._filesystem,
            logger=self._logger,
            base_env=self._base_env,
        )

    def build_argv(self, context: ExecutionContext, args: Sequence[str]) -> tuple[str, ...]:
        config: list[tuple[str, str]] = []
        credential = self.options.credential
        if credential is not None and credential.helper:
            config.append(("credential.helper", credential.helper))
        return build_argv(context, args, git_binary=self.options.git_binary, config=config)

    def build_env(self) -> dict[str, str]:
        options = self.options
        if self._base_env is not None:
            env = dict(self._base_env)
        elif options.inherit_env:
            env = dict(os.environ)
        else:
            env = {}
        env.setdefault("GIT_TERMINAL_PROMPT", "0")
        env.update(options.env)

        if options.home:
            env["HOME"] = options.home
            env["USERPROFILE"] = options.home

        prefixes = list(options.path_prefix)
        if options.credential is not None and options.credential.helper_path:
            helper_dir = str(PurePath(options.credential.helper_path).parent)
            if helper_dir not in ("", "."):
                prefixes.insert(0, helper_dir)
        if prefixes:
            current = env.get("PATH", "")
            env["PATH"] = os.pathsep.join([*prefixes, current] if current else prefixes)

        if options.on_trace is not None:
            trace = env.get("GIT_TRACE")
            if trace is None:
                env["GIT_TRACE"] = "1"
            elif trace in ("", "0", "false"):
                self._logger.warning("git_trace_disabled", git_trace=trace)
        return env

    async def run(
        self,
        context: ExecutionContext,
        args: Sequence[str],
        *,
        cancel: CancelToken | None = None,
        on_progress: ProgressCallback | None = None,
        transfer_progress: bool = False,
        stdin_text: str | None = None,
    ) -> RawResult:
        """Run git and return its raw result; failures are not raised here."""

        argv = self.build_argv(context, args)
        env = self.build_env()
        scanner = StderrProgressScanner(on_progress=on_progress, on_trace=self.options.on_trace)

        with correlation_scope(invocation_id=uuid.uuid4().hex):
            started = time.monotonic()
            self._emit_audit(
                AuditEvent(type="start", timestamp=time.time(), argv=argv, context=context)
            )
            self._logger.debug(
                "git_command_start",
                argv=[redact_text(part) for part in argv],
                scope=str(context.kind),
            )

            async with AsyncExitStack() as stack:
                if on_progress is not None and transfer_progress:
                    progress_path = await stack.enter_async_context(
                        side_channel_progress(
                            self._filesystem,
                            on_progress,
                            prefix=self.options.temp_prefix,
                            poll_interval=self.options.poll_interval,
                        )
                    )
                    env[SIDE_CHANNEL_ENV] = str(progress_path)
                    env[FORCE_PROGRESS_ENV] = "1"

                try:
                    result = await self._process.spawn(
                        SpawnSpec(argv=argv, env=env, stdin_text=stdin_text),
                        cancel=cancel,
                        on_stderr=scanner.feed if scanner.active else None,
                    )
                except Exception as exc:
                    self._emit_end(argv, context, started, stderr=str(exc), cancel=cancel)
                    raise
                if scanner.active:
                    scanner.flush()

            duration_ms = self._emit_end(argv, context, started, result=result)
            self._logger.debug(
                "git_command_end",
                argv=[redact_text(part) for part in argv],
                exit_code=result.exit_code,
                aborted=result.aborted,
                duration_ms=duration_ms,
            )
        return result

    async def run_or_raise(
        self,
        context: ExecutionContext,
        args: Sequence[str],
        *,
        cancel: CancelToken | None = None,
        on_progress: ProgressCallback | None = None,
        transfer_progress: bool = False,
        stdin_text: str | None = None,
    ) -> RawResult:
        result = await self.run(
            context,
            args,
            cancel=cancel,
            on_progress=on_progress,
            transfer_progress=transfer_progress,
            stdin_text=stdin_text,
        )
        error = self.map_error(result, context, args)
        if error is not None:
            raise error
        return result

    def map_error(
        self, result: RawResult, context: ExecutionContext, args: Sequence[str]
    ) -> GitError | None:
        return classify(result, context, self.build_argv(context, args))

    async def stream(self, context: ExecutionContext, args: Sequence[str]) -> StreamingProcess:
        """Start git and return a handle over its stdout lines.

        The caller owns the handle and must ``dispose()`` it or use it with ``async with``.
        """

        argv = self.build_argv(context, args)
        try:
            return await self._process.stream(SpawnSpec(argv=argv, env=self.build_env()))
        except OSError as exc:
            raise engine_unavailable(engine_id="cli", detail=str(exc), argv=argv) from exc

    def _emit_audit(self, event: AuditEvent) -> None:
        if self.options.on_audit is not None:
            self.options.on_audit(event)

    def _emit_end(
        self,
        argv: tuple[str, ...],
        context: ExecutionContext,
        started: float,
        *,
        result: RawResult | None = None,
        stderr: str = "",
        cancel: CancelToken | None = None,
    ) -> int:
        duration_ms = int((time.monotonic() - started) * 1000)
        if result is None:
            event = AuditEvent(
                type="end",
                timestamp=time.time(),
                argv=argv,
                context=context,
                stdout="",
                stderr=stderr,
                exit_code=-1,
                aborted=cancel.cancelled if cancel is not None else False,
                duration_ms=duration_ms,
            )
        else:
            event = AuditEvent(
                type="end",
                timestamp=time.time(),
                argv=argv,
                context=context,
                stdout=result.stdout,
                stderr=result.stderr,
                exit_code=result.exit_code,
                aborted=result.aborted,
                duration_ms=duration_ms,
            )
        self._emit_audit(event)
        return duration_ms


__all__ = ["CredentialHelper", "DEFAULT_TEMP_PREFIX", "GitRunner", "RunnerOptions"]
