"""Typed async execution and parsing engine over the git command-line tool."""

from git_conduit.client import (
    BareRepository,
    GitClient,
    OpenedRepository,
    WorktreeRepository,
    as_bare,
    as_worktree,
)
from git_conduit.domain.context import (
    BareScope,
    ExecutionContext,
    GlobalScope,
    RawResult,
    WorktreeScope,
)
from git_conduit.errors import ErrorCategory, ErrorKind, GitError

__version__ = "0.4.0"

__all__ = [
    "BareRepository",
    "BareScope",
    "ErrorCategory",
    "ErrorKind",
    "ExecutionContext",
    "GitClient",
    "GitError",
    "GlobalScope",
    "OpenedRepository",
    "RawResult",
    "WorktreeRepository",
    "WorktreeScope",
    "__version__",
    "as_bare",
    "as_worktree",
]
