"""
git-conduit — native library engine

File: src/git_conduit/backends/pygit2_backend.py

Purpose
- Satisfy the core operation set through the libgit2 bindings (``pygit2``) without spawning git.

Functional requirements
- The library is imported on first use, once per instance, and shared by concurrent first
  callers. A missing library surfaces as ``SpawnFailed``.
- Blocking library calls run in a worker thread; progress callbacks are marshalled back onto the
  event loop.
- Library failures become ``NonZeroExit`` errors whose category is derived from the library's
  message.
"""

from __future__ import annotations

import asyncio
import importlib
import os
from collections.abc import Callable, Sequence
from types import ModuleType
from typing import Any, TypeVar

from git_conduit.backends.base import (
    NO_OPTIONS,
    BackendCapabilities,
    CallOptions,
    repository_path,
    split_identity,
    split_message,
)
from git_conduit.backends.loader import Importer, LazyModule
from git_conduit.domain.context import ExecutionContext
from git_conduit.domain.models import (
    BranchInfo,
    ChangedEntry,
    EngineVersion,
    IgnoredEntry,
    ParsedCommit,
    RenamedEntry,
    RepositoryProbe,
    StatusBranch,
    StatusEntry,
    StatusResult,
    ToolProgress,
    UnmergedEntry,
    UntrackedEntry,
)
from git_conduit.errors import ErrorContext, ErrorKind, GitError
from git_conduit.execution.progress import ProgressCallback
from git_conduit.parsers.categories import detect_error_category

PYGIT2_CAPABILITIES = BackendCapabilities(
    engine_id="pygit2",
    supports_extended_transfer=False,
    supports_progress=True,
    supports_cancellation=False,
    supports_bare_repository=True,
    supports_embedded_runtime=False,
)

T = TypeVar("T")


class Pygit2Backend:
    def __init__(self, *, importer: Importer = importlib.import_module) -> None:
        self._library = LazyModule("pygit2", engine_id="pygit2", importer=importer)

    @property
    def capabilities(self) -> BackendCapabilities:
        return PYGIT2_CAPABILITIES

    async def _call(self, operation: str, func: Callable[..., T], *args: Any) -> T:
        module = await self._library.get()
        try:
            return await asyncio.to_thread(func, module, *args)
        except (module.GitError, KeyError, ValueError, OSError) as exc:
            detail = str(exc) or type(exc).__name__
            raise GitError(
                ErrorKind.NON_ZERO_EXIT,
                detail,
                context=ErrorContext(engine_id="pygit2", operation=operation, stderr=detail),
                category=detect_error_category(detail),
            ) from exc

    async def engine_version(self) -> EngineVersion:
        module = await self._library.get()
        return EngineVersion.parse(module.LIBGIT2_VERSION)

    async def check_repository(self, path: str) -> RepositoryProbe | None:
        return await self._call("check_repository", _check_repository, path)

    async def init(
        self,
        path: str,
        *,
        bare: bool = False,
        initial_branch: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> None:
        await self._call("init", _init, path, bare, initial_branch)

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
        emit = _threadsafe_emitter(options.on_progress)
        await self._call("clone", _clone, url, path, bare, depth, branch, emit)

    async def status(
        self, context: ExecutionContext, *, options: CallOptions = NO_OPTIONS
    ) -> StatusResult:
        return await self._call("status", _status, repository_path(context))

    async def log(
        self,
        context: ExecutionContext,
        *,
        max_count: int | None = None,
        ref: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> list[ParsedCommit]:
        return await self._call("log", _log, repository_path(context), max_count, ref)

    async def commit(
        self,
        context: ExecutionContext,
        message: str,
        *,
        allow_empty: bool = False,
        author: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> str:
        return await self._call(
            "commit", _commit, repository_path(context), message, allow_empty, author
        )

    async def add(
        self,
        context: ExecutionContext,
        paths: Sequence[str] = (),
        *,
        all: bool = False,
        options: CallOptions = NO_OPTIONS,
    ) -> None:
        await self._call("add", _add, repository_path(context), tuple(paths), all)

    async def branch_list(
        self, context: ExecutionContext, *, options: CallOptions = NO_OPTIONS
    ) -> list[BranchInfo]:
        return await self._call("branch_list", _branch_list, repository_path(context))

    async def branch_create(
        self,
        context: ExecutionContext,
        name: str,
        *,
        start_point: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> None:
        await self._call(
            "branch_create", _branch_create, repository_path(context), name, start_point
        )


def _threadsafe_emitter(on_progress: ProgressCallback | None) -> ProgressCallback | None:
    if on_progress is None:
        return None
    loop = asyncio.get_running_loop()

    def emit(event: Any) -> None:
        loop.call_soon_threadsafe(on_progress, event)

    return emit


# Worker-thread functions. Each receives the loaded pygit2 module first.


def _check_repository(pygit2: ModuleType, path: str) -> RepositoryProbe | None:
    if not os.path.isdir(path):
        return None
    discovered = pygit2.discover_repository(path)
    if discovered is None:
        return None
    repo = pygit2.Repository(discovered)
    try:
        return RepositoryProbe(
            path=os.path.abspath(path),
            is_bare=repo.is_bare,
            git_dir=os.path.normpath(repo.path),
        )
    finally:
        repo.free()


def _init(pygit2: ModuleType, path: str, bare: bool, initial_branch: str | None) -> None:
    repo = pygit2.init_repository(path, bare=bare, initial_head=initial_branch)
    repo.free()


def _clone(
    pygit2: ModuleType,
    url: str,
    path: str,
    bare: bool,
    depth: int | None,
    branch: str | None,
    emit: ProgressCallback | None,
) -> None:
    kwargs: dict[str, Any] = {"bare": bare}
    if branch:
        kwargs["checkout_branch"] = branch
    if depth is not None:
        kwargs["depth"] = depth
    if emit is not None:
        kwargs["callbacks"] = _progress_callbacks(pygit2, emit)
    repo = pygit2.clone_repository(url, path, **kwargs)
    repo.free()


def _progress_callbacks(pygit2: ModuleType, emit: ProgressCallback) -> Any:
    class _TransferCallbacks(pygit2.RemoteCallbacks):  # type: ignore[misc,name-defined]
        def transfer_progress(self, stats: Any) -> None:
            total = stats.total_objects
            current = stats.received_objects
            emit(
                ToolProgress(
                    phase="Receiving objects",
                    current=current,
                    total=total,
                    percent=round(current / total * 100) if total > 0 else None,
                    done=total > 0 and stats.indexed_objects >= total,
                )
            )

    return _TransferCallbacks()


def _index_char(flags: int, status: Any) -> str:
    if flags & status.INDEX_NEW:
        return "A"
    if flags & status.INDEX_MODIFIED:
        return "M"
    if flags & status.INDEX_DELETED:
        return "D"
    if flags & status.INDEX_RENAMED:
        return "R"
    if flags & status.INDEX_TYPECHANGE:
        return "T"
    return "."


def _worktree_char(flags: int, status: Any) -> str:
    if flags & status.WT_MODIFIED:
        return "M"
    if flags & status.WT_DELETED:
        return "D"
    if flags & status.WT_RENAMED:
        return "R"
    if flags & status.WT_TYPECHANGE:
        return "T"
    return "."


def _status_entry(path: str, flags: int, status: Any) -> StatusEntry | None:
    """Map libgit2 status flags onto porcelain v2 records; modes and hashes are not reported."""

    if flags & status.IGNORED:
        return IgnoredEntry(path=path)
    if flags & status.CONFLICTED:
        return UnmergedEntry(
            xy="UU",
            sub="N...",
            mode_stage1="",
            mode_stage2="",
            mode_stage3="",
            mode_worktree="",
            hash_stage1="",
            hash_stage2="",
            hash_stage3="",
            path=path,
        )
    if flags & status.WT_NEW and not flags & (status.INDEX_NEW | status.INDEX_MODIFIED):
        return UntrackedEntry(path=path)
    xy = _index_char(flags, status) + _worktree_char(flags, status)
    if xy == "..":
        return None
    unreported = dict.fromkeys(
        ("mode_head", "mode_index", "mode_worktree", "hash_head", "hash_index"), ""
    )
    if "R" in xy:
        return RenamedEntry(xy=xy, sub="N...", score="", path=path, orig_path="", **unreported)
    return ChangedEntry(xy=xy, sub="N...", path=path, **unreported)


def _status_branch(pygit2: ModuleType, repo: Any) -> StatusBranch:
    if repo.head_is_unborn:
        target = repo.references["HEAD"].target
        head = target.removeprefix("refs/heads/") if isinstance(target, str) else None
        return StatusBranch(head=head)
    oid = str(repo.head.target)
    if repo.head_is_detached:
        return StatusBranch(head="(detached)", oid=oid)
    name = repo.head.shorthand
    branch = repo.branches.local.get(name)
    upstream = branch.upstream if branch is not None else None
    if upstream is None:
        return StatusBranch(head=name, oid=oid)
    ahead, behind = repo.ahead_behind(repo.head.target, upstream.target)
    return StatusBranch(
        head=name, oid=oid, upstream=upstream.shorthand, ahead=ahead, behind=behind
    )


def _status(pygit2: ModuleType, path: str) -> StatusResult:
    status = pygit2.enums.FileStatus
    repo = pygit2.Repository(path)
    try:
        entries = [
            entry
            for file_path, flags in sorted(repo.status().items())
            if (entry := _status_entry(file_path, int(flags), status)) is not None
        ]
        return StatusResult(branch=_status_branch(pygit2, repo), entries=tuple(entries))
    finally:
        repo.free()


def _to_parsed_commit(commit: Any) -> ParsedCommit:
    subject, body = split_message(commit.message)
    return ParsedCommit(
        hash=str(commit.id),
        abbrev_hash=commit.short_id,
        parents=tuple(str(parent) for parent in commit.parent_ids),
        author_name=commit.author.name,
        author_email=commit.author.email,
        author_timestamp=commit.author.time,
        committer_name=commit.committer.name,
        committer_email=commit.committer.email,
        committer_timestamp=commit.committer.time,
        subject=subject,
        body=body,
    )


def _log(
    pygit2: ModuleType, path: str, max_count: int | None, ref: str | None
) -> list[ParsedCommit]:
    repo = pygit2.Repository(path)
    try:
        if ref:
            start = repo.revparse_single(ref).peel(pygit2.Commit).id
        elif repo.head_is_unborn:
            return []
        else:
            start = repo.head.target
        commits: list[ParsedCommit] = []
        for commit in repo.walk(start, pygit2.enums.SortMode.TIME):
            if max_count is not None and len(commits) >= max_count:
                break
            commits.append(_to_parsed_commit(commit))
        return commits
    finally:
        repo.free()


def _commit(
    pygit2: ModuleType, path: str, message: str, allow_empty: bool, author: str | None
) -> str:
    repo = pygit2.Repository(path)
    try:
        index = repo.index
        index.read()
        tree = index.write_tree()
        parents = [] if repo.head_is_unborn else [repo.head.target]
        if not allow_empty and parents and repo[parents[0]].tree_id == tree:
            raise ValueError("nothing to commit, working tree clean")
        committer = repo.default_signature
        if author:
            name, email = split_identity(author)
            author_sig = pygit2.Signature(name, email)
        else:
            author_sig = committer
        oid = repo.create_commit("HEAD", author_sig, committer, message, tree, parents)
        return str(oid)
    finally:
        repo.free()


def _add(pygit2: ModuleType, path: str, paths: tuple[str, ...], add_all: bool) -> None:
    repo = pygit2.Repository(path)
    try:
        index = repo.index
        index.read()
        if add_all:
            index.add_all(list(paths))
        else:
            for file_path in paths:
                index.add(file_path)
        index.write()
    finally:
        repo.free()


def _branch_list(pygit2: ModuleType, path: str) -> list[BranchInfo]:
    repo = pygit2.Repository(path)
    try:
        branches: list[BranchInfo] = []
        for name in sorted(repo.branches.local):
            branch = repo.branches.local[name]
            branches.append(
                BranchInfo(name=name, current=branch.is_head(), object_id=str(branch.target))
            )
        return branches
    finally:
        repo.free()


def _branch_create(pygit2: ModuleType, path: str, name: str, start_point: str | None) -> None:
    repo = pygit2.Repository(path)
    try:
        commit = repo.revparse_single(start_point or "HEAD").peel(pygit2.Commit)
        repo.branches.local.create(name, commit)
    finally:
        repo.free()


__all__ = ["PYGIT2_CAPABILITIES", "Pygit2Backend"]
