"""Parsers for engine version strings and large-file status JSON."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Final

from git_conduit.domain.models import EngineVersion, LfsFileStatus, LfsStatus
from git_conduit.parsers.text import parse_json

_GIT_VERSION_RE: Final[re.Pattern[str]] = re.compile(r"git version (\d+)\.(\d+)(?:\.(\d+))?")


def parse_git_version(stdout: str) -> EngineVersion | None:
    """Parse ``git --version`` output, tolerating vendor suffixes like ``.windows.1``."""

    match = _GIT_VERSION_RE.search(stdout)
    if match is None:
        return None
    return EngineVersion(
        major=int(match.group(1)),
        minor=int(match.group(2)),
        patch=int(match.group(3) or 0),
        raw=stdout.strip(),
    )


def parse_lfs_status(stdout: str) -> LfsStatus:
    """Parse ``git lfs status --json``; entries that are not objects are skipped."""

    payload = parse_json(stdout)
    if not isinstance(payload, Mapping):
        return LfsStatus()
    files = payload.get("files")
    if not isinstance(files, Mapping):
        return LfsStatus()

    entries: list[LfsFileStatus] = []
    for path in sorted(files):
        item = files[path]
        if not isinstance(item, Mapping):
            continue
        status = item.get("status")
        if not isinstance(status, str):
            continue
        source = item.get("from")
        target = item.get("to")
        entries.append(
            LfsFileStatus(
                path=path,
                status=status,
                source=source if isinstance(source, str) else None,
                target=target if isinstance(target, str) else None,
            )
        )
    return LfsStatus(files=tuple(entries))


__all__ = ["parse_git_version", "parse_lfs_status"]
