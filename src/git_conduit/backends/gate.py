"""
git-conduit — capability gate

File: src/git_conduit/backends/gate.py

Purpose
- Expose one uniform operation surface over any engine and refuse unsupported requests before
  the engine is touched.

Functional requirements
- A progress callback requires ``supports_progress``; a cancel token requires
  ``supports_cancellation``; a bare scope or ``bare=True`` requires ``supports_bare_repository``;
  large-file operations require ``supports_extended_transfer``.
- A refused request raises ``CapabilityMissing`` naming the operation and the engine. It is never
  a silent no-op and never reaches the engine.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import cast

from git_conduit.backends.base import (
    NO_OPTIONS,
    BackendCapabilities,
    CallOptions,
    CoreBackend,
    ExtendedTransferBackend,
)
from git_conduit.domain.context import BareScope, ExecutionContext
from git_conduit.domain.models import (
    BranchInfo,
    EngineVersion,
    LfsStatus,
    ParsedCommit,
    RepositoryProbe,
    StatusResult,
)
from git_conduit.errors import capability_missing


class GatedBackend:
    """Capability-checked facade over a :class:`CoreBackend`."""

    def __init__(self, backend: CoreBackend) -> None:
        self._backend = backend

    @property
    def inner(self) -> CoreBackend:
        return self._backend

    @property
    def capabilities(self) -> BackendCapabilities:
        return self._backend.capabilities

    @property
    def engine_id(self) -> str:
        return self.capabilities.engine_id

    def _require(self, operation: str, capability: str) -> None:
        if not getattr(self.capabilities, capability):
            raise capability_missing(operation, self.engine_id, capability=capability)

    def _check_call(
        self,
        operation: str,
        *,
        context: ExecutionContext | None = None,
        bare: bool = False,
        options: CallOptions = NO_OPTIONS,
    ) -> None:
        if bare or isinstance(context, BareScope):
            self._require(operation, "supports_bare_repository")
        if options.on_progress is not None:
            self._require(operation, "supports_progress")
        if options.cancel is not None:
            self._require(operation, "supports_cancellation")

    def _extended(self, operation: str) -> ExtendedTransferBackend:
        self._require(operation, "supports_extended_transfer")
        return cast(ExtendedTransferBackend, self._backend)

    async def engine_version(self) -> EngineVersion:
        return await self._backend.engine_version()

    async def check_repository(self, path: str) -> RepositoryProbe | None:
        return await self._backend.check_repository(path)

    async def init(
        self,
        path: str,
        *,
        bare: bool = False,
        initial_branch: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> None:
        self._check_call("init", bare=bare, options=options)
        await self._backend.init(path, bare=bare, initial_branch=initial_branch, options=options)

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
        self._check_call("clone", bare=bare, options=options)
        await self._backend.clone(
            url, path, bare=bare, depth=depth, branch=branch, options=options
        )

    async def status(
        self, context: ExecutionContext, *, options: CallOptions = NO_OPTIONS
    ) -> StatusResult:
        self._check_call("status", context=context, options=options)
        return await self._backend.status(context, options=options)

    async def log(
        self,
        context: ExecutionContext,
        *,
        max_count: int | None = None,
        ref: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> list[ParsedCommit]:
        self._check_call("log", context=context, options=options)
        return await self._backend.log(context, max_count=max_count, ref=ref, options=options)

    async def commit(
        self,
        context: ExecutionContext,
        message: str,
        *,
        allow_empty: bool = False,
        author: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> str:
        self._check_call("commit", context=context, options=options)
        return await self._backend.commit(
            context, message, allow_empty=allow_empty, author=author, options=options
        )

    async def add(
        self,
        context: ExecutionContext,
        paths: Sequence[str] = (),
        *,
        all: bool = False,
        options: CallOptions = NO_OPTIONS,
    ) -> None:
        self._check_call("add", context=context, options=options)
        await self._backend.add(context, paths, all=all, options=options)

    async def branch_list(
        self, context: ExecutionContext, *, options: CallOptions = NO_OPTIONS
    ) -> list[BranchInfo]:
        self._check_call("branch_list", context=context, options=options)
        return await self._backend.branch_list(context, options=options)

    async def branch_create(
        self,
        context: ExecutionContext,
        name: str,
        *,
        start_point: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> None:
        self._check_call("branch_create", context=context, options=options)
        await self._backend.branch_create(context, name, start_point=start_point, options=options)

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
        backend = self._extended("lfs_pull")
        self._check_call("lfs_pull", context=context, options=options)
        await backend.lfs_pull(
            context, remote=remote, ref=ref, include=include, exclude=exclude, options=options
        )

    async def lfs_push(
        self,
        context: ExecutionContext,
        *,
        remote: str = "origin",
        ref: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> None:
        backend = self._extended("lfs_push")
        self._check_call("lfs_push", context=context, options=options)
        await backend.lfs_push(context, remote=remote, ref=ref, options=options)

    async def lfs_status(
        self, context: ExecutionContext, *, options: CallOptions = NO_OPTIONS
    ) -> LfsStatus:
        backend = self._extended("lfs_status")
        self._check_call("lfs_status", context=context, options=options)
        return await backend.lfs_status(context, options=options)


__all__ = ["GatedBackend"]
