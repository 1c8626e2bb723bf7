"""
git-conduit — domain types

File: src/git_conduit/domain/__init__.py

Purpose
- Value records shared by the parsers, the runner and the backends.

What should be included in this file
- Re-export of execution scopes, raw results and parsed records for convenience.
- Keep the domain layer free of IO side effects.
"""

from git_conduit.domain.context import (
    BareScope,
    ExecutionContext,
    GlobalScope,
    RawResult,
    ScopeKind,
    WorktreeScope,
)
from git_conduit.domain.models import (
    BranchInfo,
    ChangedEntry,
    EngineVersion,
    IgnoredEntry,
    LfsFileStatus,
    LfsStatus,
    ParsedCommit,
    ProgressEvent,
    RemoteRef,
    RenamedEntry,
    RepositoryProbe,
    StatusBranch,
    StatusEntry,
    StatusResult,
    ToolProgress,
    TransferDirection,
    TransferProgress,
    TransferSummary,
    TreeEntry,
    TreeObjectType,
    UnmergedEntry,
    UntrackedEntry,
    WorktreeEntry,
)

__all__ = [
    "BareScope",
    "BranchInfo",
    "ChangedEntry",
    "EngineVersion",
    "ExecutionContext",
    "GlobalScope",
    "IgnoredEntry",
    "LfsFileStatus",
    "LfsStatus",
    "ParsedCommit",
    "ProgressEvent",
    "RawResult",
    "RemoteRef",
    "RenamedEntry",
    "RepositoryProbe",
    "ScopeKind",
    "StatusBranch",
    "StatusEntry",
    "StatusResult",
    "ToolProgress",
    "TransferDirection",
    "TransferProgress",
    "TransferSummary",
    "TreeEntry",
    "TreeObjectType",
    "UnmergedEntry",
    "UntrackedEntry",
    "WorktreeEntry",
    "WorktreeScope",
]
