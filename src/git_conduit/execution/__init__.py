"""
git-conduit — execution layer

File: src/git_conduit/execution/__init__.py

Purpose
- Command building, process spawning, progress tailing, error classification and the runner
  that composes them into one invocation lifecycle.
"""

from git_conduit.execution.audit import AuditCallback, AuditEvent, TraceCallback, TraceEvent
from git_conduit.execution.classifier import ABORTED_MESSAGE, classify, extract_message
from git_conduit.execution.command import build_argv, scope_flags
from git_conduit.execution.filesystem import FileSystemAdapter, LocalFileSystem, TailHandle
from git_conduit.execution.process import (
    AsyncioProcessAdapter,
    CancelToken,
    ProcessAdapter,
    SpawnSpec,
    StreamingProcess,
)
from git_conduit.execution.progress import (
    ProgressCallback,
    StderrProgressScanner,
    side_channel_progress,
)
from git_conduit.execution.runner import CredentialHelper, GitRunner, RunnerOptions

__all__ = [
    "ABORTED_MESSAGE",
    "AsyncioProcessAdapter",
    "AuditCallback",
    "AuditEvent",
    "CancelToken",
    "CredentialHelper",
    "FileSystemAdapter",
    "GitRunner",
    "LocalFileSystem",
    "ProcessAdapter",
    "ProgressCallback",
    "RunnerOptions",
    "SpawnSpec",
    "StderrProgressScanner",
    "StreamingProcess",
    "TailHandle",
    "TraceCallback",
    "TraceEvent",
    "build_argv",
    "classify",
    "extract_message",
    "scope_flags",
]
