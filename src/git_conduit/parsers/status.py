"""Parser for ``git status --porcelain=v2 [--branch] [-z]``.

With ``-z`` records are NUL-terminated, paths are verbatim and a rename's original path is the
record that follows it. Line-feed output is accepted too; only a trailing ``\r`` is removed.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from typing import Final

from git_conduit.domain.models import (
    ChangedEntry,
    IgnoredEntry,
    RenamedEntry,
    StatusBranch,
    StatusEntry,
    StatusResult,
    UnmergedEntry,
    UntrackedEntry,
)
from git_conduit.parsers.text import parse_lines, parse_records

_AHEAD_BEHIND_RE: Final[re.Pattern[str]] = re.compile(r"^\+(\d+)\s+-(\d+)$")


def parse_porcelain_v2(stdout: str) -> list[StatusEntry]:
    """Dispatch each line on its two-character prefix; headers and short lines are skipped."""

    entries: list[StatusEntry] = []
    nul_terminated = "\0" in stdout
    records = iter(_split_records(stdout))
    for record in records:
        entry = _parse_entry(record, records if nul_terminated else None)
        if entry is not None:
            entries.append(entry)
    return entries


def parse_status_branch(stdout: str) -> StatusBranch:
    """Collect the ``# branch.*`` header lines emitted by ``--branch``."""

    head: str | None = None
    oid: str | None = None
    upstream: str | None = None
    ahead: int | None = None
    behind: int | None = None
    for line in _split_records(stdout):
        if not line.startswith("# branch."):
            continue
        key, _, value = line[len("# branch.") :].partition(" ")
        value = value.strip()
        if key == "oid":
            oid = None if value == "(initial)" else value
        elif key == "head":
            head = value
        elif key == "upstream":
            upstream = value
        elif key == "ab":
            match = _AHEAD_BEHIND_RE.match(value)
            if match is not None:
                ahead, behind = int(match.group(1)), int(match.group(2))
    return StatusBranch(head=head, oid=oid, upstream=upstream, ahead=ahead, behind=behind)


def parse_status(stdout: str) -> StatusResult:
    return StatusResult(
        branch=parse_status_branch(stdout),
        entries=tuple(parse_porcelain_v2(stdout)),
    )


def _split_records(stdout: str) -> list[str]:
    if "\0" in stdout:
        return [record for record in parse_records(stdout) if record]
    return [line.removesuffix("\r") for line in parse_lines(stdout, trim=False)]


def _parse_entry(line: str, following: Iterator[str] | None) -> StatusEntry | None:
    prefix = line[:2]
    if prefix == "1 ":
        parts = line.split(" ")
        if len(parts) < 9:
            return None
        return ChangedEntry(
            xy=parts[1],
            sub=parts[2],
            mode_head=parts[3],
            mode_index=parts[4],
            mode_worktree=parts[5],
            hash_head=parts[6],
            hash_index=parts[7],
            path=" ".join(parts[8:]),
        )
    if prefix == "2 ":
        parts = line.split(" ")
        if len(parts) < 10:
            return None
        if following is not None:
            path = " ".join(parts[9:])
            orig_path = next(following, None)
            if orig_path is None:
                return None
        else:
            path, tab, orig_path = " ".join(parts[9:]).partition("\t")
            if not tab:
                return None
        return RenamedEntry(
            xy=parts[1],
            sub=parts[2],
            mode_head=parts[3],
            mode_index=parts[4],
            mode_worktree=parts[5],
            hash_head=parts[6],
            hash_index=parts[7],
            score=parts[8],
            path=path,
            orig_path=orig_path,
        )
    if prefix == "u ":
        parts = line.split(" ")
        if len(parts) < 11:
            return None
        return UnmergedEntry(
            xy=parts[1],
            sub=parts[2],
            mode_stage1=parts[3],
            mode_stage2=parts[4],
            mode_stage3=parts[5],
            mode_worktree=parts[6],
            hash_stage1=parts[7],
            hash_stage2=parts[8],
            hash_stage3=parts[9],
            path=" ".join(parts[10:]),
        )
    if prefix == "? ":
        return UntrackedEntry(path=line[2:])
    if prefix == "! ":
        return IgnoredEntry(path=line[2:])
    return None


__all__ = ["parse_porcelain_v2", "parse_status", "parse_status_branch"]
