"""Ordered stderr pattern table mapping git failures onto error categories."""

from __future__ import annotations

import re
from typing import Final

from git_conduit.errors import ErrorCategory


def _compile(*patterns: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(pattern, re.IGNORECASE) for pattern in patterns)


# Tested top-down, first match wins. Auth precedes permission so that
# "Permission denied (publickey)" is not filed as a filesystem problem.
CATEGORY_PATTERNS: Final[tuple[tuple[ErrorCategory, tuple[re.Pattern[str], ...]], ...]] = (
    (
        ErrorCategory.AUTH,
        _compile(
            r"authentication failed",
            r"permission denied \(publickey",
            r"\b401\b",
            r"unauthorized",
            r"could not read (?:username|password)",
            r"invalid username or password",
            r"terminal prompts disabled",
            r"host key verification failed",
        ),
    ),
    (
        ErrorCategory.NETWORK,
        _compile(
            r"could not resolve host",
            r"connection timed out",
            r"connection refused",
            r"connection reset",
            r"could not read from remote repository",
            r"unable to access",
            r"network is unreachable",
            r"operation timed out",
            r"the remote end hung up unexpectedly",
            r"early eof",
        ),
    ),
    (
        ErrorCategory.CONFLICT,
        _compile(
            r"\bconflict\b",
            r"automatic merge failed",
            r"fix conflicts",
            r"needs merge",
            r"unmerged paths",
        ),
    ),
    (
        ErrorCategory.TRANSFER,
        _compile(
            r"\blfs\b",
            r"smudge filter",
            r"clean filter",
            r"insufficient storage",
        ),
    ),
    (
        ErrorCategory.PERMISSION,
        _compile(
            r"cannot lock ref",
            r"permission denied",
            r"unable to create .*\.lock",
            r"read-only file system",
            r"operation not permitted",
        ),
    ),
    (
        ErrorCategory.CORRUPTION,
        _compile(
            r"bad object",
            r"\bcorrupt",
            r"broken link",
            r"missing (?:blob|tree|commit) ",
            r"invalid sha1 pointer",
            r"object file .* is empty",
        ),
    ),
)


def detect_error_category(stderr: str) -> ErrorCategory:
    for category, patterns in CATEGORY_PATTERNS:
        if any(pattern.search(stderr) for pattern in patterns):
            return category
    return ErrorCategory.UNKNOWN


__all__ = ["CATEGORY_PATTERNS", "detect_error_category"]
