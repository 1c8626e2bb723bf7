"""
git-conduit — error taxonomy

File: src/git_conduit/errors.py

Purpose
- One concrete error type for every failure surfaced to callers.

What should be included in this file
- Closed kind set: execution-level (Aborted, SpawnFailed, NonZeroExit) and domain-level
  (CapabilityMissing, ScopeMismatch, UnsupportedEngineVersion).
- Closed category set derived from the tool's own stderr, independent of kind.
- Constructors for the domain-level kinds so messages stay uniform.

Functional requirements
- Every error carries argv, exit code, captured output and scope identity when known.
- Retryability is a function of category only.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]


class ErrorKind(StrEnum):
    ABORTED = "Aborted"
    SPAWN_FAILED = "SpawnFailed"
    NON_ZERO_EXIT = "NonZeroExit"
    CAPABILITY_MISSING = "CapabilityMissing"
    SCOPE_MISMATCH = "ScopeMismatch"
    UNSUPPORTED_ENGINE_VERSION = "UnsupportedEngineVersion"


class ErrorCategory(StrEnum):
    AUTH = "auth"
    NETWORK = "network"
    CONFLICT = "conflict"
    TRANSFER = "transfer"
    PERMISSION = "permission"
    CORRUPTION = "corruption"
    UNKNOWN = "unknown"


_RETRYABLE_CATEGORIES = frozenset({ErrorCategory.NETWORK, ErrorCategory.AUTH})


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Diagnostic payload attached to a :class:`GitError`."""

    argv: tuple[str, ...] = ()
    exit_code: int | None = None
    stdout: str | None = None
    stderr: str | None = None
    workdir: str | None = None
    git_dir: str | None = None
    engine_id: str | None = None
    operation: str | None = None
    details: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {"argv": list(self.argv)}
        optional: dict[str, JSONValue] = {
            "exit_code": self.exit_code,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "workdir": self.workdir,
            "git_dir": self.git_dir,
            "engine_id": self.engine_id,
            "operation": self.operation,
        }
        for key, value in optional.items():
            if value is not None:
                payload[key] = value
        if self.details:
            payload["details"] = dict(sorted(self.details.items()))
        return payload


class GitError(RuntimeError):
    """Structured failure with a closed-set kind and an independently derived category."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        context: ErrorContext | None = None,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
    ) -> None:
        self.kind = ErrorKind(kind)
        self.message = message
        self.context = context if context is not None else ErrorContext()
        self.category = ErrorCategory(category)
        super().__init__(f"[{self.kind}] {message}")

    @property
    def retryable(self) -> bool:
        return self.category in _RETRYABLE_CATEGORIES

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "kind": str(self.kind),
            "message": self.message,
            "category": str(self.category),
            "context": self.context.to_dict(),
        }


def is_retryable_error(error: BaseException) -> bool:
    """Return retryability classification for normalized git errors."""

    return isinstance(error, GitError) and error.retryable


def capability_missing(
    operation: str, engine_id: str, *, capability: str | None = None
) -> GitError:
    return GitError(
        ErrorKind.CAPABILITY_MISSING,
        f"{operation} is not supported by {engine_id} backend",
        context=ErrorContext(
            engine_id=engine_id,
            operation=operation,
            details={"capability": capability} if capability else {},
        ),
    )


def scope_mismatch(*, expected: str, actual: str, path: str) -> GitError:
    return GitError(
        ErrorKind.SCOPE_MISMATCH,
        f"expected a {expected} repository at {path}, found a {actual} repository",
        context=ErrorContext(details={"expected": expected, "actual": actual, "path": path}),
    )


def unsupported_engine_version(*, engine_id: str, found: str, minimum: str) -> GitError:
    return GitError(
        ErrorKind.UNSUPPORTED_ENGINE_VERSION,
        f"{engine_id} engine version {found} is older than the required minimum {minimum}",
        context=ErrorContext(
            engine_id=engine_id,
            details={"found": found, "minimum": minimum},
        ),
    )


def engine_unavailable(
    *, engine_id: str, detail: str, argv: Sequence[str] = ()
) -> GitError:
    """The engine's runtime (binary or library) could not be started or loaded."""

    return GitError(
        ErrorKind.SPAWN_FAILED,
        detail,
        context=ErrorContext(argv=tuple(argv), engine_id=engine_id),
    )


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "ErrorKind",
    "GitError",
    "capability_missing",
    "engine_unavailable",
    "is_retryable_error",
    "scope_mismatch",
    "unsupported_engine_version",
]
