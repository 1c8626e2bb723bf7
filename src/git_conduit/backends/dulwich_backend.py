"""
git-conduit — embedded runtime engine

File: src/git_conduit/backends/dulwich_backend.py

Purpose
- Satisfy the core operation set with the pure-Python ``dulwich`` implementation, for hosts
  that cannot spawn a git binary.

Functional requirements
- The runtime modules are imported on first use, once per instance; concurrent first callers
  share the load.
- Progress, cancellation and large-file transfer are not offered and are refused by the gate.
"""

from __future__ import annotations

import asyncio
import importlib
import io
import os
from collections.abc import Callable, Sequence
from dataclasses import dataclass
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
    ParsedCommit,
    RepositoryProbe,
    StatusBranch,
    StatusResult,
    UntrackedEntry,
)
from git_conduit.errors import ErrorContext, ErrorKind, GitError
from git_conduit.parsers.categories import detect_error_category

DULWICH_CAPABILITIES = BackendCapabilities(
    engine_id="dulwich",
    supports_extended_transfer=False,
    supports_progress=False,
    supports_cancellation=False,
    supports_bare_repository=True,
    supports_embedded_runtime=True,
)

T = TypeVar("T")

_SYMREF_PREFIX = b"ref: "
_BRANCH_PREFIX = b"refs/heads/"


@dataclass(frozen=True, slots=True)
class _Runtime:
    package: ModuleType
    porcelain: ModuleType
    errors: ModuleType
    objectspec: ModuleType


class DulwichBackend:
    def __init__(self, *, importer: Importer = importlib.import_module) -> None:
        self._modules = {
            name: LazyModule(name, engine_id="dulwich", importer=importer)
            for name in ("dulwich", "dulwich.porcelain", "dulwich.errors", "dulwich.objectspec")
        }

    @property
    def capabilities(self) -> BackendCapabilities:
        return DULWICH_CAPABILITIES

    async def _runtime(self) -> _Runtime:
        modules = self._modules
        return _Runtime(
            package=await modules["dulwich"].get(),
            porcelain=await modules["dulwich.porcelain"].get(),
            errors=await modules["dulwich.errors"].get(),
            objectspec=await modules["dulwich.objectspec"].get(),
        )

    async def _call(self, operation: str, func: Callable[..., T], *args: Any) -> T:
        runtime = await self._runtime()
        failures = (
            runtime.errors.NotGitRepository,
            runtime.errors.GitProtocolError,
            runtime.porcelain.Error,
            KeyError,
            ValueError,
            OSError,
        )
        try:
            return await asyncio.to_thread(func, runtime, *args)
        except failures as exc:
            detail = str(exc) or type(exc).__name__
            raise GitError(
                ErrorKind.NON_ZERO_EXIT,
                detail,
                context=ErrorContext(engine_id="dulwich", operation=operation, stderr=detail),
                category=detect_error_category(detail),
            ) from exc

    async def engine_version(self) -> EngineVersion:
        runtime = await self._runtime()
        version = tuple(runtime.package.__version__)
        major, minor, patch = (*version, 0, 0, 0)[:3]
        return EngineVersion(major, minor, patch, raw=".".join(map(str, version)))

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
        await self._call("clone", _clone, url, path, bare, depth, branch)

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


def _text(value: bytes | str) -> str:
    return value.decode("utf-8", errors="replace") if isinstance(value, bytes) else value


def _head_branch(repo: Any) -> str | None:
    head = repo.refs.read_ref(b"HEAD")
    if head is None or not head.startswith(_SYMREF_PREFIX):
        return None
    target = head[len(_SYMREF_PREFIX) :].strip()
    return _text(target.removeprefix(_BRANCH_PREFIX))


def _head_oid(repo: Any) -> str | None:
    try:
        return _text(repo.refs[b"HEAD"])
    except KeyError:
        return None


# Worker-thread functions. Each receives the loaded runtime first.


def _check_repository(runtime: _Runtime, path: str) -> RepositoryProbe | None:
    if not os.path.isdir(path):
        return None
    try:
        repo = runtime.porcelain.Repo(path)
    except runtime.errors.NotGitRepository:
        return None
    try:
        return RepositoryProbe(
            path=os.path.abspath(path),
            is_bare=repo.bare,
            git_dir=os.path.abspath(repo.controldir()),
        )
    finally:
        repo.close()


def _init(runtime: _Runtime, path: str, bare: bool, initial_branch: str | None) -> None:
    os.makedirs(path, exist_ok=True)
    kwargs: dict[str, Any] = {}
    if initial_branch:
        kwargs["default_branch"] = initial_branch.encode("utf-8")
    repo_class = runtime.porcelain.Repo
    repo = repo_class.init_bare(path, **kwargs) if bare else repo_class.init(path, **kwargs)
    repo.close()


def _clone(
    runtime: _Runtime,
    url: str,
    path: str,
    bare: bool,
    depth: int | None,
    branch: str | None,
) -> None:
    repo = runtime.porcelain.clone(
        url, path, bare=bare, depth=depth, branch=branch, errstream=io.BytesIO()
    )
    repo.close()


def _status(runtime: _Runtime, path: str) -> StatusResult:
    repo = runtime.porcelain.Repo(path)
    try:
        report = runtime.porcelain.status(repo)
        codes: dict[str, list[str]] = {}
        for change, letter in (("add", "A"), ("modify", "M"), ("delete", "D")):
            for file_path in report.staged.get(change, ()):
                codes.setdefault(_text(file_path), [".", "."])[0] = letter
        for file_path in report.unstaged:
            codes.setdefault(_text(file_path), [".", "."])[1] = "M"

        entries: list[ChangedEntry | UntrackedEntry] = [
            ChangedEntry(
                xy="".join(xy),
                sub="N...",
                mode_head="",
                mode_index="",
                mode_worktree="",
                hash_head="",
                hash_index="",
                path=file_path,
            )
            for file_path, xy in sorted(codes.items())
        ]
        entries.extend(UntrackedEntry(path=_text(p)) for p in sorted(report.untracked))
        head = _head_branch(repo)
        branch = StatusBranch(head=head if head is not None else "(detached)", oid=_head_oid(repo))
        return StatusResult(branch=branch, entries=tuple(entries))
    finally:
        repo.close()


def _to_parsed_commit(commit: Any) -> ParsedCommit:
    author_name, author_email = split_identity(_text(commit.author))
    committer_name, committer_email = split_identity(_text(commit.committer))
    subject, body = split_message(_text(commit.message))
    commit_id = _text(commit.id)
    return ParsedCommit(
        hash=commit_id,
        abbrev_hash=commit_id[:7],
        parents=tuple(_text(parent) for parent in commit.parents),
        author_name=author_name,
        author_email=author_email,
        author_timestamp=commit.author_time,
        committer_name=committer_name,
        committer_email=committer_email,
        committer_timestamp=commit.commit_time,
        subject=subject,
        body=body,
    )


def _log(
    runtime: _Runtime, path: str, max_count: int | None, ref: str | None
) -> list[ParsedCommit]:
    repo = runtime.porcelain.Repo(path)
    try:
        if ref:
            start = runtime.objectspec.parse_commit(repo, ref.encode("utf-8")).id
        else:
            head = _head_oid(repo)
            if head is None:
                return []
            start = head.encode("ascii")
        walker = repo.get_walker(include=[start], max_entries=max_count)
        return [_to_parsed_commit(entry.commit) for entry in walker]
    finally:
        repo.close()


def _commit(
    runtime: _Runtime, path: str, message: str, allow_empty: bool, author: str | None
) -> str:
    repo = runtime.porcelain.Repo(path)
    try:
        if not allow_empty and _head_oid(repo) is not None:
            staged = runtime.porcelain.status(repo).staged
            if not any(staged.values()):
                raise ValueError("nothing to commit, working tree clean")
        commit_id = runtime.porcelain.commit(
            repo,
            message=message.encode("utf-8"),
            author=author.encode("utf-8") if author else None,
        )
        return _text(commit_id)
    finally:
        repo.close()


def _add(runtime: _Runtime, path: str, paths: tuple[str, ...], add_all: bool) -> None:
    repo = runtime.porcelain.Repo(path)
    try:
        if add_all and not paths:
            report = runtime.porcelain.status(repo)
            paths = tuple(_text(item) for item in (*report.unstaged, *report.untracked))
            removed = [p for p in paths if not os.path.lexists(os.path.join(repo.path, p))]
            if removed:
                runtime.porcelain.remove(
                    repo, paths=[os.path.join(repo.path, p) for p in removed], cached=True
                )
            paths = tuple(p for p in paths if p not in removed)
        if paths:
            runtime.porcelain.add(repo, paths=[os.path.join(repo.path, p) for p in paths])
    finally:
        repo.close()


def _branch_list(runtime: _Runtime, path: str) -> list[BranchInfo]:
    repo = runtime.porcelain.Repo(path)
    try:
        current = _head_branch(repo)
        branches: list[BranchInfo] = []
        for raw_name in sorted(runtime.porcelain.branch_list(repo)):
            name = _text(raw_name)
            branches.append(
                BranchInfo(
                    name=name,
                    current=name == current,
                    object_id=_text(repo.refs[_BRANCH_PREFIX + name.encode("utf-8")]),
                )
            )
        return branches
    finally:
        repo.close()


def _branch_create(runtime: _Runtime, path: str, name: str, start_point: str | None) -> None:
    repo = runtime.porcelain.Repo(path)
    try:
        runtime.porcelain.branch_create(repo, name, objectish=start_point)
    finally:
        repo.close()


__all__ = ["DULWICH_CAPABILITIES", "DulwichBackend"]
