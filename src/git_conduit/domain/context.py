"""Execution scopes and the raw outcome of a single git invocation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ScopeKind(StrEnum):
    GLOBAL = "global"
    WORKTREE = "worktree"
    BARE = "bare"


@dataclass(frozen=True, slots=True)
class GlobalScope:
    """Invocation outside any repository (``clone``, ``ls-remote``, ``--version``)."""

    @property
    def kind(self) -> ScopeKind:
        return ScopeKind.GLOBAL

    def scope_identity(self) -> dict[str, str]:
        return {}


@dataclass(frozen=True, slots=True)
class WorktreeScope:
    """Invocation against a repository with a working tree, run via ``-C <workdir>``."""

    workdir: str

    @property
    def kind(self) -> ScopeKind:
        return ScopeKind.WORKTREE

    def scope_identity(self) -> dict[str, str]:
        return {"workdir": self.workdir}


@dataclass(frozen=True, slots=True)
class BareScope:
    """Invocation against a metadata directory only, run via ``--git-dir <git_dir>``."""

    git_dir: str

    @property
    def kind(self) -> ScopeKind:
        return ScopeKind.BARE

    def scope_identity(self) -> dict[str, str]:
        return {"git_dir": self.git_dir}


ExecutionContext = GlobalScope | WorktreeScope | BareScope


@dataclass(frozen=True, slots=True)
class RawResult:
    """Captured process outcome. Produced exactly once per invocation."""

    stdout: str
    stderr: str
    exit_code: int
    aborted: bool = False


__all__ = [
    "BareScope",
    "ExecutionContext",
    "GlobalScope",
    "RawResult",
    "ScopeKind",
    "WorktreeScope",
]
