"""
git-conduit — progress line parsers

File: src/git_conduit/parsers/progress.py

Purpose
- Turn git's in-place stderr progress, the large-file side-channel file and the large-file
  tool's human-readable stderr summary into typed progress events.

Functional requirements
- Never raise on external input: unrecognised lines yield ``None``.
- Sizes use a fixed binary unit table (B/KB/MB/GB/TB, factor 1024).
"""

from __future__ import annotations

import re
from typing import Final

from git_conduit.domain.models import (
    ToolProgress,
    TransferDirection,
    TransferProgress,
    TransferSummary,
)

_TOOL_PROGRESS_RE: Final[re.Pattern[str]] = re.compile(
    r"^(.+?):\s*(\d+)%\s*\((\d+)/(\d+)\)(?:,\s*(done))?"
)
_TOOL_PROGRESS_COUNT_RE: Final[re.Pattern[str]] = re.compile(r"^(.+?):\s*(\d+)/(\d+)")
_BYTES_RE: Final[re.Pattern[str]] = re.compile(r"^(\d+)/(\d+)$")
_SIZE_RE: Final[re.Pattern[str]] = re.compile(
    r"^\s*(\d+(?:\.\d+)?)\s*([KMGT]?B)\s*$", re.IGNORECASE
)
_SUMMARY_RE: Final[re.Pattern[str]] = re.compile(
    r"^(?P<verb>[A-Za-z][A-Za-z ]*?)\s+LFS objects:\s*(?P<percent>\d+)%\s*"
    r"\((?P<completed>\d+)/(?P<total>\d+)\)"
    r"(?:,\s*(?P<size>\d+(?:\.\d+)?\s*[KMGT]?B))?"
    r"(?:\s*\|\s*(?P<rate>\d+(?:\.\d+)?\s*[KMGT]?B)/s)?"
    r"(?:,\s*(?P<done>done))?",
    re.IGNORECASE,
)

SIZE_UNITS: Final[dict[str, int]] = {
    "B": 1,
    "KB": 1024,
    "MB": 1024**2,
    "GB": 1024**3,
    "TB": 1024**4,
}

# Verb prefixes in match order; the first prefix the lowercased verb starts with wins.
_DIRECTION_VERBS: Final[tuple[tuple[str, TransferDirection], ...]] = (
    ("download", TransferDirection.DOWNLOAD),
    ("fetch", TransferDirection.DOWNLOAD),
    ("upload", TransferDirection.UPLOAD),
    ("push", TransferDirection.UPLOAD),
    ("checking out", TransferDirection.CHECKOUT),
    ("checkout", TransferDirection.CHECKOUT),
)

_DIRECTIONS: Final[dict[str, TransferDirection]] = {
    member.value: member for member in TransferDirection
}


def parse_tool_progress(line: str) -> ToolProgress | None:
    """Parse ``"<phase>: <pct>% (<cur>/<total>)[, done]"`` or ``"<phase>: <cur>/<total>"``."""

    message = line.strip()
    match = _TOOL_PROGRESS_RE.match(message)
    if match is not None:
        return ToolProgress(
            phase=match.group(1).strip(),
            current=int(match.group(3)),
            total=int(match.group(4)),
            percent=int(match.group(2)),
            done=match.group(5) == "done",
            message=message,
        )

    match = _TOOL_PROGRESS_COUNT_RE.match(message)
    if match is None:
        return None
    current = int(match.group(2))
    total = int(match.group(3))
    return ToolProgress(
        phase=match.group(1).strip(),
        current=current,
        total=total,
        percent=round(current / total * 100) if total > 0 else None,
        done=False,
        message=message,
    )


def parse_transfer_progress(line: str) -> TransferProgress | None:
    """Parse ``"<direction> <oid> <so_far>/<total> <transferred>"`` from the side-channel file."""

    parts = line.split()
    if len(parts) < 4:
        return None
    direction = _DIRECTIONS.get(parts[0])
    if direction is None:
        return None
    match = _BYTES_RE.match(parts[2])
    if match is None or not parts[3].isdigit():
        return None
    return TransferProgress(
        direction=direction,
        object_id=parts[1],
        bytes_so_far=int(match.group(1)),
        bytes_total=int(match.group(2)),
        bytes_transferred=int(parts[3]),
    )


def parse_transfer_summary(line: str) -> TransferSummary | None:
    """Parse ``"Downloading LFS objects:  50% (1/2), 1.5 MB | 500 KB/s"`` style lines."""

    match = _SUMMARY_RE.match(line.strip())
    if match is None:
        return None
    direction = classify_direction(match.group("verb"))
    if direction is None:
        return None
    size = match.group("size")
    rate = match.group("rate")
    return TransferSummary(
        direction=direction,
        percent=int(match.group("percent")),
        files_completed=int(match.group("completed")),
        files_total=int(match.group("total")),
        bytes_so_far=parse_size(size) if size is not None else None,
        bitrate=parse_size(rate) if rate is not None else None,
        done=match.group("done") is not None,
    )


def classify_direction(verb: str) -> TransferDirection | None:
    lowered = verb.strip().lower()
    for prefix, direction in _DIRECTION_VERBS:
        if lowered.startswith(prefix):
            return direction
    return None


def parse_size(text: str) -> int | None:
    """Convert ``"1.5 MB"`` to bytes using the binary unit table."""

    match = _SIZE_RE.match(text)
    if match is None:
        return None
    return round(float(match.group(1)) * SIZE_UNITS[match.group(2).upper()])


__all__ = [
    "SIZE_UNITS",
    "classify_direction",
    "parse_size",
    "parse_tool_progress",
    "parse_transfer_progress",
    "parse_transfer_summary",
]
