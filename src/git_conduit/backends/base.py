"""
git-conduit — backend contracts

File: src/git_conduit/backends/base.py

Purpose
- Define the uniform operation surface every engine satisfies and the capability record that
  gates optional behaviour.

What should be included in this file
- ``BackendCapabilities`` declared once per engine instance.
- ``CoreBackend``: required operations. ``ExtendedTransferBackend``: large-file transfer,
  implemented only by engines whose capability record says so.
- ``CallOptions`` carrying the per-call cancellation token and progress callback.

Functional requirements
- Optional support is discovered from the capability record, never from object shape.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from git_conduit.domain.context import BareScope, ExecutionContext, WorktreeScope
from git_conduit.domain.models import (
    BranchInfo,
    EngineVersion,
    LfsStatus,
    ParsedCommit,
    RepositoryProbe,
    StatusResult,
)
from git_conduit.errors import scope_mismatch
from git_conduit.execution.process import CancelToken
from git_conduit.execution.progress import ProgressCallback


@dataclass(frozen=True, slots=True)
class BackendCapabilities:
    engine_id: str
    supports_extended_transfer: bool
    supports_progress: bool
    supports_cancellation: bool
    supports_bare_repository: bool
    supports_embedded_runtime: bool

    def to_dict(self) -> dict[str, str | bool]:
        return {
            "engine_id": self.engine_id,
            "supports_extended_transfer": self.supports_extended_transfer,
            "supports_progress": self.supports_progress,
            "supports_cancellation": self.supports_cancellation,
            "supports_bare_repository": self.supports_bare_repository,
            "supports_embedded_runtime": self.supports_embedded_runtime,
        }


@dataclass(frozen=True, slots=True)
class CallOptions:
    cancel: CancelToken | None = None
    on_progress: ProgressCallback | None = None


NO_OPTIONS = CallOptions()


def repository_path(context: ExecutionContext) -> str:
    """Filesystem path an in-process engine opens for ``context``."""

    if isinstance(context, WorktreeScope):
        return context.workdir
    if isinstance(context, BareScope):
        return context.git_dir
    raise scope_mismatch(expected="worktree or bare", actual="global", path="")


def split_identity(identity: str) -> tuple[str, str]:
    """Split ``"Name <email>"``; a value without brackets is all name."""

    name, sep, rest = identity.partition("<")
    if not sep:
        return identity.strip(), ""
    return name.strip(), rest.rstrip().rstrip(">").strip()


def split_message(message: str) -> tuple[str, str]:
    subject, _, body = message.strip().partition("\n")
    return subject.strip(), body.strip()


@runtime_checkable
class CoreBackend(Protocol):
    """Operations every engine implements."""

    @property
    def capabilities(self) -> BackendCapabilities: ...

    async def engine_version(self) -> EngineVersion: ...

    async def check_repository(self, path: str) -> RepositoryProbe | None: ...

    async def init(
        self,
        path: str,
        *,
        bare: bool = False,
        initial_branch: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> None: ...

    async def clone(
        self,
        url: str,
        path: str,
        *,
        bare: bool = False,
        depth: int | None = None,
        branch: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> None: ...

    async def status(
        self, context: ExecutionContext, *, options: CallOptions = NO_OPTIONS
    ) -> StatusResult: ...

    async def log(
        self,
        context: ExecutionContext,
        *,
        max_count: int | None = None,
        ref: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> list[ParsedCommit]: ...

    async def commit(
        self,
        context: ExecutionContext,
        message: str,
        *,
        allow_empty: bool = False,
        author: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> str: ...

    async def add(
        self,
        context: ExecutionContext,
        paths: Sequence[str] = (),
        *,
        all: bool = False,
        options: CallOptions = NO_OPTIONS,
    ) -> None: ...

    async def branch_list(
        self, context: ExecutionContext, *, options: CallOptions = NO_OPTIONS
    ) -> list[BranchInfo]: ...

    async def branch_create(
        self,
        context: ExecutionContext,
        name: str,
        *,
        start_point: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> None: ...


@runtime_checkable
class ExtendedTransferBackend(Protocol):
    """Large-file transfer operations. Only engines with ``supports_extended_transfer``."""

    async def lfs_pull(
        self,
        context: ExecutionContext,
        *,
        remote: str | None = None,
        ref: str | None = None,
        include: Sequence[str] = (),
        exclude: Sequence[str] = (),
        options: CallOptions = NO_OPTIONS,
    ) -> None: ...

    async def lfs_push(
        self,
        context: ExecutionContext,
        *,
        remote: str = "origin",
        ref: str | None = None,
        options: CallOptions = NO_OPTIONS,
    ) -> None: ...

    async def lfs_status(
        self, context: ExecutionContext, *, options: CallOptions = NO_OPTIONS
    ) -> LfsStatus: ...


__all__ = [
    "BackendCapabilities",
    "CallOptions",
    "CoreBackend",
    "ExtendedTransferBackend",
    "NO_OPTIONS",
    "repository_path",
    "split_identity",
    "split_message",
]
