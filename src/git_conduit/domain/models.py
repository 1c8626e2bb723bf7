"""
git-conduit — parsed record models

File: src/git_conduit/domain/models.py

Purpose
- Immutable value records produced by the output parsers and the backend engines.

What should be included in this file
- Progress events (tool progress, side-channel transfer progress, transfer summaries).
- Commit, status, tree, remote ref, worktree, branch and large-file status records.
- Engine version ordering used by the preflight gate.

Non-functional requirements
- Records have no identity beyond their field values and are never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class TransferDirection(StrEnum):
    DOWNLOAD = "download"
    UPLOAD = "upload"
    CHECKOUT = "checkout"


class TreeObjectType(StrEnum):
    BLOB = "blob"
    TREE = "tree"
    COMMIT = "commit"


@dataclass(frozen=True, slots=True)
class ToolProgress:
    """In-place progress line printed by git on stderr (``Receiving objects: 40% (4/10)``)."""

    phase: str
    current: int
    total: int | None
    percent: int | None
    done: bool = False
    message: str = ""


@dataclass(frozen=True, slots=True)
class TransferProgress:
    """One line of the large-file side-channel progress file."""

    direction: TransferDirection
    object_id: str
    bytes_so_far: int
    bytes_total: int
    bytes_transferred: int


@dataclass(frozen=True, slots=True)
class TransferSummary:
    """Human-readable large-file progress printed on stderr."""

    direction: TransferDirection
    percent: int
    files_completed: int
    files_total: int
    bytes_so_far: int | None = None
    bitrate: int | None = None
    done: bool = False


ProgressEvent = ToolProgress | TransferProgress | TransferSummary


@dataclass(frozen=True, slots=True)
class ParsedCommit:
    hash: str
    abbrev_hash: str
    parents: tuple[str, ...]
    author_name: str
    author_email: str
    author_timestamp: int
    committer_name: str
    committer_email: str
    committer_timestamp: int
    subject: str
    body: str


@dataclass(frozen=True, slots=True)
class ChangedEntry:
    """Ordinary tracked change (porcelain v2 ``1`` line).

    Mode and hash fields are empty strings when the engine does not report them.
    """

    xy: str
    sub: str
    mode_head: str
    mode_index: str
    mode_worktree: str
    hash_head: str
    hash_index: str
    path: str


@dataclass(frozen=True, slots=True)
class RenamedEntry:
    """Rename or copy (porcelain v2 ``2`` line)."""

    xy: str
    sub: str
    mode_head: str
    mode_index: str
    mode_worktree: str
    hash_head: str
    hash_index: str
    score: str
    path: str
    orig_path: str


@dataclass(frozen=True, slots=True)
class UnmergedEntry:
    xy: str
    sub: str
    mode_stage1: str
    mode_stage2: str
    mode_stage3: str
    mode_worktree: str
    hash_stage1: str
    hash_stage2: str
    hash_stage3: str
    path: str


@dataclass(frozen=True, slots=True)
class UntrackedEntry:
    path: str


@dataclass(frozen=True, slots=True)
class IgnoredEntry:
    path: str


StatusEntry = ChangedEntry | RenamedEntry | UnmergedEntry | UntrackedEntry | IgnoredEntry


@dataclass(frozen=True, slots=True)
class StatusBranch:
    head: str | None = None
    oid: str | None = None
    upstream: str | None = None
    ahead: int | None = None
    behind: int | None = None

    @property
    def detached(self) -> bool:
        return self.head == "(detached)"


@dataclass(frozen=True, slots=True)
class StatusResult:
    branch: StatusBranch
    entries: tuple[StatusEntry, ...] = ()

    @property
    def is_clean(self) -> bool:
        return not any(not isinstance(entry, IgnoredEntry) for entry in self.entries)


@dataclass(frozen=True, slots=True)
class TreeEntry:
    """One ``ls-tree`` row. Name-only and object-only listings leave the other fields empty."""

    path: str
    mode: str = ""
    type: TreeObjectType | None = None
    object_id: str = ""
    size: int | None = None


@dataclass(frozen=True, slots=True)
class RemoteRef:
    object_id: str
    name: str


@dataclass(frozen=True, slots=True)
class WorktreeEntry:
    path: str
    head: str | None = None
    branch: str | None = None
    locked: bool = False
    prunable: bool = False
    detached: bool = False
    bare: bool = False
    locked_reason: str | None = None
    prunable_reason: str | None = None


@dataclass(frozen=True, slots=True)
class BranchInfo:
    name: str
    current: bool = False
    object_id: str | None = None


@dataclass(frozen=True, slots=True)
class RepositoryProbe:
    """Shape of an existing repository, decided once when it is opened."""

    path: str
    is_bare: bool
    git_dir: str


@dataclass(frozen=True, slots=True, order=True)
class EngineVersion:
    major: int
    minor: int
    patch: int = 0
    raw: str = field(default="", compare=False)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    @classmethod
    def parse(cls, text: str) -> EngineVersion:
        """Parse ``"2.30"`` or ``"2.30.1"``; raises ``ValueError`` for anything else."""

        parts = text.strip().split(".")
        if not 2 <= len(parts) <= 3 or not all(part.isdigit() for part in parts):
            raise ValueError(f"invalid version string: {text!r}")
        numbers = [int(part) for part in parts]
        if len(numbers) == 2:
            numbers.append(0)
        return cls(numbers[0], numbers[1], numbers[2], raw=text.strip())


@dataclass(frozen=True, slots=True)
class LfsFileStatus:
    path: str
    status: str
    source: str | None = None
    target: str | None = None


@dataclass(frozen=True, slots=True)
class LfsStatus:
    files: tuple[LfsFileStatus, ...] = ()


__all__ = [
    "BranchInfo",
    "ChangedEntry",
    "EngineVersion",
    "IgnoredEntry",
    "LfsFileStatus",
    "LfsStatus",
    "ParsedCommit",
    "ProgressEvent",
    "RemoteRef",
    "RenamedEntry",
    "RepositoryProbe",
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
]
