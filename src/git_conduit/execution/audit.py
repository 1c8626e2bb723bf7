"""Audit and trace events emitted around every runner invocation."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from git_conduit.domain.context import ExecutionContext


@dataclass(frozen=True, slots=True)
class AuditEvent:
    """``start`` is emitted before spawning; ``end`` carries the outcome and duration."""

    type: Literal["start", "end"]
    timestamp: float
    argv: tuple[str, ...]
    context: ExecutionContext
    stdout: str | None = None
    stderr: str | None = None
    exit_code: int | None = None
    aborted: bool | None = None
    duration_ms: int | None = None


@dataclass(frozen=True, slots=True)
class TraceEvent:
    """One ``GIT_TRACE`` line captured from stderr."""

    timestamp: float
    line: str


AuditCallback = Callable[[AuditEvent], None]
TraceCallback = Callable[[TraceEvent], None]

__all__ = ["AuditCallback", "AuditEvent", "TraceCallback", "TraceEvent"]
