"""Maps a completed or aborted invocation onto one structured error."""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Final

from git_conduit.domain.context import BareScope, ExecutionContext, RawResult, WorktreeScope
from git_conduit.errors import ErrorContext, ErrorKind, GitError
from git_conduit.execution.process import SPAWN_FAILED_EXIT_CODE
from git_conduit.parsers.categories import detect_error_category

ABORTED_MESSAGE: Final[str] = "Command was aborted"

_FATAL_RE: Final[re.Pattern[str]] = re.compile(r"fatal:\s*(.+)", re.IGNORECASE)
_ERROR_RE: Final[re.Pattern[str]] = re.compile(r"error:\s*(.+)", re.IGNORECASE)
_COMMAND_NOT_FOUND: Final[str] = "command not found"


def classify(
    result: RawResult, context: ExecutionContext, argv: Sequence[str]
) -> GitError | None:
    """Return ``None`` on success, otherwise the error describing the failure.

    An aborted result is always ``Aborted``, whatever its exit code.
    """

    if result.aborted:
        return GitError(
            ErrorKind.ABORTED,
            ABORTED_MESSAGE,
            context=_error_context(result, context, argv),
            category=detect_error_category(result.stderr),
        )
    if result.exit_code == 0:
        return None
    return GitError(
        classify_kind(result),
        extract_message(result.stderr, result.exit_code),
        context=_error_context(result, context, argv),
        category=detect_error_category(result.stderr),
    )


def classify_kind(result: RawResult) -> ErrorKind:
    if result.exit_code == SPAWN_FAILED_EXIT_CODE:
        return ErrorKind.SPAWN_FAILED
    if _COMMAND_NOT_FOUND in result.stderr.lower():
        return ErrorKind.SPAWN_FAILED
    return ErrorKind.NON_ZERO_EXIT


def extract_message(stderr: str, exit_code: int) -> str:
    """``fatal:`` text, else ``error:`` text, else the first non-empty line, else the exit code."""

    text = stderr.strip()
    match = _FATAL_RE.search(text)
    if match is not None and match.group(1).strip():
        return match.group(1).strip()
    match = _ERROR_RE.search(text)
    if match is not None and match.group(1).strip():
        return match.group(1).strip()
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return f"exited with code {exit_code}"


def _error_context(
    result: RawResult, context: ExecutionContext, argv: Sequence[str]
) -> ErrorContext:
    return ErrorContext(
        argv=tuple(argv),
        exit_code=result.exit_code,
        stdout=result.stdout,
        stderr=result.stderr,
        workdir=context.workdir if isinstance(context, WorktreeScope) else None,
        git_dir=context.git_dir if isinstance(context, BareScope) else None,
    )


__all__ = ["ABORTED_MESSAGE", "classify", "classify_kind", "extract_message"]
