"""
git-conduit — command-line engine

File: src/git_conduit/backends/cli.py

Purpose
- The default engine: every operation is a git subprocess run through :class:`GitRunner`,
  whose output is handed to the matching parser.

What should be included in this file
- The full core and extended-transfer surface.
- CLI-only helpers outside the uniform surface: ``raw``, ``ls_tree``, ``ls_remote``,
  ``worktree_list``.

Functional requirements
- Failures surface as the classified ``GitError`` from the runner; successful output is parsed
  with the tolerant parsers.
- Large-file operations and ``clone`` request side-channel progress when a callback is given.
"""

from __future__ import annotations

import os
from collections.abc import Sequence

from git_conduit.backends.base import NO_OPTIONS, BackendCapabilities, CallOptions
from git_conduit.domain.context import ExecutionContext, GlobalScope, RawResult, WorktreeScope
from git_conduit.domain.models import (
    BranchInfo,
    EngineVersion,
    LfsStatus,
    ParsedCommit,
    RemoteRef,
    RepositoryProbe,
    StatusResult,
    TreeEntry,
    WorktreeEntry,
)
from git_conduit.errors import ErrorContext, ErrorKind, GitError
from git_conduit.execution.runner import GitRunner
from git_conduit.parsers.listing import (
    BRANCH_LIST_FORMAT,
    parse_branch_list,
    parse_ls_remote,
    parse_ls_tree,
    parse_worktree_list,
)
from git_conduit.parsers.log import GIT_LOG_FORMAT, parse_git_log
from git_conduit.parsers.status import parse_status
from git_conduit.parsers.text import parse_lines
from git_conduit.parsers.version import parse_git_version, parse_lfs_status

CLI_CAPABILITIES = BackendCapabilities(
    engine_id="cli",
    supports_extended_transfer=True,
    supports_progress=True,
    supports_cancellation=True,
    supports_bare_repository=True,
    supports_embedded_runtime=False,
)


class CliBackend:
    def __init__(self, runner: GitRunner | None = None) -> None:
        self.runner = runner if runner is not None else GitRunner()

    @property
    def capabilities(self) -> BackendCapabilities:
        return CLI_CAPABILITIES

    async def _run(
        self,
        context: ExecutionContext,
        args: Sequence[str],
        options: CallOptions,
        *,
        transfer_progress: bool = False,
    ) -> RawResult:
        return await self.runner.run_or_raise(
            context,
            args,
            cancel=options.cancel,
            on_progress=options.on_progress,
            transfer_progress=transfer_progress,
        )

    async def raw(
        self,
        context: ExecutionContext,
        args: Sequence[str],
        *,
        options: CallOptions = NO_OPTIONS,
        transfer_progress: bool = False,
    ) -> RawResult:
        """Run arbitrary git arguments; non-zero exits still raise."""

        return await self._run(context, args, options, transfer_progress=transfer_progress)

    async def engine_version(self) -> EngineVersion:
        result = await self._run(GlobalScope(), ["--version"], NO_OPTIONS)
        version = parse_git_version(result.stdout)
        if version is None:
            raise GitError(
                ErrorKind.UNSUPPORTED_ENGINE_VERSION,
                f"unrecognised git version output: {result.stdout.strip()!r}",
                context=ErrorContext(engine_id="cli", stdout=result.stdout),
            )
        return version

    async def check_repository(self, path: str) -> RepositoryProbe | None:
        """Probe ``path``; ``None`` when git does not recognise it as a repository."""

        if not os.path.isdir(path):
            return None
        context = WorktreeScope(path)
        args = ["rev-parse", "--is-bare-repository", "--absolute-git-dir"]
        result = await self.runner.run(context, args)
        if result.exit_code != 0:
            error = self.runner.map_error(result, context, args)
            if error is not None and error.kind is not ErrorKind.NON_ZERO_EXIT:
                raise error
            return None
        lines = parse_lines(result.stdout)
        if len(lines) < 2:
            return None
        return RepositoryProbe(
            path=os.path.abspath(path),
            is_bare=lines[0] == "true",
            git_dir=lines[1],
        )

    async def init(
        self,
        path: str,
        *,
        bare: bool = False,
        initial_branch: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> None:
        args = ["init", "--quiet"]
        if bare:
            args.append("--bare")
        if initial_branch:
            args.append(f"--initial-branch={initial_branch}")
        args.append(path)
        await self._run(GlobalScope(), args, options)

    async def clone(
        self,
        url: str,
        path: str,
        *,
        bare: bool = False,
        depth: int | None = None,
        branch: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> None:
        args = ["clone"]
        if options.on_progress is not None:
            args.append("--progress")
        if bare:
            args.append("--bare")
        if depth is not None:
            args.append(f"--depth={depth}")
        if branch:
            args.extend(("--branch", branch))
        args.extend(("--", url, path))
        await self._run(
            GlobalScope(), args, options, transfer_progress=options.on_progress is not None
        )

    async def status(
        self, context: ExecutionContext, *, options: CallOptions = NO_OPTIONS
    ) -> StatusResult:
        args = ["status", "--porcelain=v2", "--branch", "-z"]
        result = await self._run(context, args, options)
        return parse_status(result.stdout)

    async def log(
        self,
        context: ExecutionContext,
        *,
        max_count: int | None = None,
        ref: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> list[ParsedCommit]:
        args = ["log", f"--format={GIT_LOG_FORMAT}"]
        if max_count is not None:
            args.append(f"--max-count={max_count}")
        if ref:
            args.append(ref)
        args.append("--")
        result = await self._run(context, args, options)
        return parse_git_log(result.stdout)

    async def commit(
        self,
        context: ExecutionContext,
        message: str,
        *,
        allow_empty: bool = False,
        author: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> str:
        """Commit the index and return the new commit id."""

        args = ["commit", "--quiet", "--file=-"]
        if allow_empty:
            args.append("--allow-empty")
        if author:
            args.append(f"--author={author}")
        await self.runner.run_or_raise(
            context, args, cancel=options.cancel, stdin_text=message
        )
        result = await self._run(context, ["rev-parse", "HEAD"], options)
        return result.stdout.strip()

    async def add(
        self,
        context: ExecutionContext,
        paths: Sequence[str] = (),
        *,
        all: bool = False,
        options: CallOptions = NO_OPTIONS,
    ) -> None:
        args = ["add", "--all"] if all else ["add"]
        args.extend(("--", *paths))
        await self._run(context, args, options)

    async def branch_list(
        self, context: ExecutionContext, *, options: CallOptions = NO_OPTIONS
    ) -> list[BranchInfo]:
        result = await self._run(
            context, ["branch", "--list", f"--format={BRANCH_LIST_FORMAT}"], options
        )
        return parse_branch_list(result.stdout)

    async def branch_create(
        self,
        context: ExecutionContext,
        name: str,
        *,
        start_point: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> None:
        args = ["branch", name]
        if start_point:
            args.append(start_point)
        await self._run(context, args, options)

    async def lfs_pull(
        self,
        context: ExecutionContext,
        *,
        remote: str | None = None,
        ref: str | None = None,
        include: Sequence[str] = (),
        exclude: Sequence[str] = (),
        options: CallOptions = NO_OPTIONS,
    ) -> None:
        args = ["lfs", "pull"]
        if include:
            args.extend(("--include", ",".join(include)))
        if exclude:
            args.extend(("--exclude", ",".join(exclude)))
        if remote:
            args.append(remote)
            if ref:
                args.append(ref)
        await self._run(context, args, options, transfer_progress=True)

    async def lfs_push(
        self,
        context: ExecutionContext,
        *,
        remote: str = "origin",
        ref: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> None:
        await self._run(
            context, ["lfs", "push", remote, ref or "HEAD"], options, transfer_progress=True
        )

    async def lfs_status(
        self, context: ExecutionContext, *, options: CallOptions = NO_OPTIONS
    ) -> LfsStatus:
        result = await self._run(context, ["lfs", "status", "--json"], options)
        return parse_lfs_status(result.stdout)

    async def ls_tree(
        self,
        context: ExecutionContext,
        treeish: str = "HEAD",
        paths: Sequence[str] = (),
        *,
        recursive: bool = False,
        name_only: bool = False,
        object_only: bool = False,
        long: bool = False,
        options: CallOptions = NO_OPTIONS,
    ) -> list[TreeEntry]:
        args = ["ls-tree"]
        if recursive:
            args.append("-r")
        if name_only:
            args.append("--name-only")
        elif object_only:
            args.append("--object-only")
        elif long:
            args.append("--long")
        args.append(treeish)
        if paths:
            args.extend(("--", *paths))
        result = await self._run(context, args, options)
        return parse_ls_tree(
            result.stdout, name_only=name_only, object_only=object_only, long=long
        )

    async def ls_remote(
        self,
        remote: str,
        *,
        context: ExecutionContext | None = None,
        heads: bool = False,
        tags: bool = False,
        options: CallOptions = NO_OPTIONS,
    ) -> list[RemoteRef]:
        args = ["ls-remote"]
        if heads:
            args.append("--heads")
        if tags:
            args.append("--tags")
        args.append(remote)
        result = await self._run(context if context is not None else GlobalScope(), args, options)
        return parse_ls_remote(result.stdout)

    async def worktree_list(
        self, context: ExecutionContext, *, options: CallOptions = NO_OPTIONS
    ) -> list[WorktreeEntry]:
        result = await self._run(context, ["worktree", "list", "--porcelain"], options)
        return parse_worktree_list(result.stdout)


__all__ = ["CLI_CAPABILITIES", "CliBackend"]
