"""
git-conduit — repository surface

File: src/git_conduit/client.py

Purpose
- Entry point for callers: pick an engine, gate it on its version, and open repositories whose
  shape (worktree or bare) is decided once.

What should be included in this file
- ``GitClient`` with ``open``/``open_worktree``/``open_bare``/``init``/``clone``/``preflight``.
- ``WorktreeRepository`` and ``BareRepository`` bound to their execution scope.
- ``as_worktree``/``as_bare`` narrowing that fails loudly on mismatch.

Functional requirements
- The opened repository type is fixed at open time; callers never probe fields to find out
  which shape they hold.
- Every operation goes through the capability gate.
"""

from __future__ import annotations

from collections.abc import Sequence

from git_conduit.backends.base import NO_OPTIONS, BackendCapabilities, CallOptions, CoreBackend
from git_conduit.backends.cli import CliBackend
from git_conduit.backends.gate import GatedBackend
from git_conduit.domain.context import BareScope, ScopeKind, WorktreeScope
from git_conduit.domain.models import (
    BranchInfo,
    EngineVersion,
    LfsStatus,
    ParsedCommit,
    RepositoryProbe,
    StatusResult,
)
from git_conduit.errors import (
    ErrorContext,
    ErrorKind,
    GitError,
    scope_mismatch,
    unsupported_engine_version,
)
from git_conduit.observability.logging import get_logger

_logger = get_logger(__name__)


class WorktreeRepository:
    """Repository with a working tree; commands run with ``-C <path>``."""

    kind = ScopeKind.WORKTREE

    def __init__(self, backend: GatedBackend, probe: RepositoryProbe) -> None:
        self.backend = backend
        self.probe = probe
        self.context = WorktreeScope(probe.path)

    @property
    def path(self) -> str:
        return self.probe.path

    def __repr__(self) -> str:
        return f"WorktreeRepository(path={self.path!r}, engine={self.backend.engine_id!r})"

    async def status(self, *, options: CallOptions = NO_OPTIONS) -> StatusResult:
        return await self.backend.status(self.context, options=options)

    async def log(
        self,
        *,
        max_count: int | None = None,
        ref: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> list[ParsedCommit]:
        return await self.backend.log(self.context, max_count=max_count, ref=ref, options=options)

    async def commit(
        self,
        message: str,
        *,
        allow_empty: bool = False,
        author: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> str:
        return await self.backend.commit(
            self.context, message, allow_empty=allow_empty, author=author, options=options
        )

    async def add(
        self,
        paths: Sequence[str] = (),
        *,
        all: bool = False,
        options: CallOptions = NO_OPTIONS,
    ) -> None:
        await self.backend.add(self.context, paths, all=all, options=options)

    async def branch_list(self, *, options: CallOptions = NO_OPTIONS) -> list[BranchInfo]:
        return await self.backend.branch_list(self.context, options=options)

    async def branch_create(
        self,
        name: str,
        *,
        start_point: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> None:
        await self.backend.branch_create(
            self.context, name, start_point=start_point, options=options
        )

    async def lfs_pull(
        self,
        *,
        remote: str | None = None,
        ref: str | None = None,
        include: Sequence[str] = (),
        exclude: Sequence[str] = (),
        options: CallOptions = NO_OPTIONS,
    ) -> None:
        await self.backend.lfs_pull(
            self.context,
            remote=remote,
            ref=ref,
            include=include,
            exclude=exclude,
            options=options,
        )

    async def lfs_push(
        self,
        *,
        remote: str = "origin",
        ref: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> None:
        await self.backend.lfs_push(self.context, remote=remote, ref=ref, options=options)

    async def lfs_status(self, *, options: CallOptions = NO_OPTIONS) -> LfsStatus:
        return await self.backend.lfs_status(self.context, options=options)


class BareRepository:
    """Repository without a working tree; commands run with ``--git-dir <git_dir>``."""

    kind = ScopeKind.BARE

    def __init__(self, backend: GatedBackend, probe: RepositoryProbe) -> None:
        self.backend = backend
        self.probe = probe
        self.context = BareScope(probe.git_dir)

    @property
    def path(self) -> str:
        return self.probe.path

    def __repr__(self) -> str:
        return f"BareRepository(git_dir={self.probe.git_dir!r}, engine={self.backend.engine_id!r})"

    async def log(
        self,
        *,
        max_count: int | None = None,
        ref: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> list[ParsedCommit]:
        return await self.backend.log(self.context, max_count=max_count, ref=ref, options=options)

    async def branch_list(self, *, options: CallOptions = NO_OPTIONS) -> list[BranchInfo]:
        return await self.backend.branch_list(self.context, options=options)

    async def branch_create(
        self,
        name: str,
        *,
        start_point: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> None:
        await self.backend.branch_create(
            self.context, name, start_point=start_point, options=options
        )


OpenedRepository = WorktreeRepository | BareRepository


def as_worktree(repository: OpenedRepository) -> WorktreeRepository:
    if isinstance(repository, WorktreeRepository):
        return repository
    raise scope_mismatch(expected="worktree", actual="bare", path=repository.path)


def as_bare(repository: OpenedRepository) -> BareRepository:
    if isinstance(repository, BareRepository):
        return repository
    raise scope_mismatch(expected="bare", actual="worktree", path=repository.path)


class GitClient:
    """Opens repositories through one capability-gated engine."""

    def __init__(
        self,
        backend: CoreBackend | None = None,
        *,
        minimum_version: EngineVersion | str | None = None,
    ) -> None:
        self.backend = GatedBackend(backend if backend is not None else CliBackend())
        if isinstance(minimum_version, str):
            minimum_version = EngineVersion.parse(minimum_version)
        self.minimum_version = minimum_version

    @property
    def capabilities(self) -> BackendCapabilities:
        return self.backend.capabilities

    async def preflight(self) -> EngineVersion:
        """Return the engine version, raising ``UnsupportedEngineVersion`` below the minimum."""

        version = await self.backend.engine_version()
        if self.minimum_version is not None and version < self.minimum_version:
            raise unsupported_engine_version(
                engine_id=self.backend.engine_id,
                found=str(version),
                minimum=str(self.minimum_version),
            )
        _logger.debug(
            "engine_preflight_ok", engine_id=self.backend.engine_id, version=str(version)
        )
        return version

    async def open(self, path: str) -> OpenedRepository:
        probe = await self.backend.check_repository(path)
        if probe is None:
            raise GitError(
                ErrorKind.NON_ZERO_EXIT,
                f"not a git repository: {path}",
                context=ErrorContext(engine_id=self.backend.engine_id, details={"path": path}),
            )
        if probe.is_bare:
            return BareRepository(self.backend, probe)
        return WorktreeRepository(self.backend, probe)

    async def open_worktree(self, path: str) -> WorktreeRepository:
        return as_worktree(await self.open(path))

    async def open_bare(self, path: str) -> BareRepository:
        return as_bare(await self.open(path))

    async def init(
        self,
        path: str,
        *,
        bare: bool = False,
        initial_branch: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> OpenedRepository:
        await self.backend.init(path, bare=bare, initial_branch=initial_branch, options=options)
        return await self.open(path)

    async def clone(
        self,
        url: str,
        path: str,
        *,
        bare: bool = False,
        depth: int | None = None,
        branch: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> OpenedRepository:
        await self.backend.clone(
            url, path, bare=bare, depth=depth, branch=branch, options=options
        )
        return await self.open(path)


__all__ = [
    "BareRepository",
    "GitClient",
    "OpenedRepository",
    "WorktreeRepository",
    "as_bare",
    "as_worktree",
]
