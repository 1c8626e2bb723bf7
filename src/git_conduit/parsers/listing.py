"""Parsers for tree, remote ref, worktree and branch listings."""

from __future__ import annotations

import re
from typing import Final

from git_conduit.domain.models import (
    BranchInfo,
    RemoteRef,
    TreeEntry,
    TreeObjectType,
    WorktreeEntry,
)
from git_conduit.parsers.text import parse_lines

BRANCH_LIST_FORMAT: Final[str] = "%(HEAD)%00%(refname:short)%00%(objectname)"

_TREE_LINE_RE: Final[re.Pattern[str]] = re.compile(
    r"^(\d+)\s+(\w+)\s+(\w+)(?:\s+(-|\d+))?\t(.+)$"
)
_TREE_TYPES: Final[dict[str, TreeObjectType]] = {member.value: member for member in TreeObjectType}


def parse_ls_tree(
    stdout: str,
    *,
    name_only: bool = False,
    object_only: bool = False,
    long: bool = False,
) -> list[TreeEntry]:
    """Parse ``git ls-tree`` in one of its four output shapes.

    ``name_only`` yields one path per line, ``object_only`` one object id per line (stored in
    ``object_id`` with an empty path). The default and ``long`` shapes share one row pattern;
    ``long`` adds a size column where ``-`` means no size.
    """

    lines = parse_lines(stdout)
    if name_only:
        return [TreeEntry(path=line) for line in lines]
    if object_only:
        return [TreeEntry(path="", object_id=line) for line in lines]

    entries: list[TreeEntry] = []
    for line in lines:
        match = _TREE_LINE_RE.match(line)
        if match is None:
            continue
        object_type = _TREE_TYPES.get(match.group(2))
        if object_type is None:
            continue
        size_text = match.group(4)
        size = int(size_text) if long and size_text not in (None, "-") else None
        entries.append(
            TreeEntry(
                path=match.group(5),
                mode=match.group(1),
                type=object_type,
                object_id=match.group(3),
                size=size,
            )
        )
    return entries


def parse_ls_remote(stdout: str) -> list[RemoteRef]:
    refs: list[RemoteRef] = []
    for line in parse_lines(stdout):
        object_id, tab, name = line.partition("\t")
        if not tab or not object_id or not name:
            continue
        refs.append(RemoteRef(object_id=object_id, name=name))
    return refs


def parse_worktree_list(stdout: str) -> list[WorktreeEntry]:
    """Parse ``git worktree list --porcelain`` blocks.

    A ``worktree`` line opens a record; a blank line or the next ``worktree`` line closes it.
    Attribute lines before the first ``worktree`` line are ignored.
    """

    entries: list[WorktreeEntry] = []
    current: dict[str, object] | None = None

    def flush() -> None:
        nonlocal current
        if current is not None:
            entries.append(WorktreeEntry(**current))  # type: ignore[arg-type]
        current = None

    for line in parse_lines(stdout, keep_empty=True):
        if not line:
            flush()
            continue
        key, _, value = line.partition(" ")
        if key == "worktree":
            flush()
            current = {"path": value}
            continue
        if current is None:
            continue
        if key == "HEAD":
            current["head"] = value
        elif key == "branch":
            current["branch"] = value
        elif key == "detached":
            current["detached"] = True
        elif key == "bare":
            current["bare"] = True
        elif key == "locked":
            current["locked"] = True
            current["locked_reason"] = value or None
        elif key == "prunable":
            current["prunable"] = True
            current["prunable_reason"] = value or None
    flush()
    return entries


def parse_branch_list(stdout: str) -> list[BranchInfo]:
    """Parse ``git branch --format`` output produced with :data:`BRANCH_LIST_FORMAT`."""

    branches: list[BranchInfo] = []
    for line in parse_lines(stdout):
        fields = line.split("\x00")
        if len(fields) < 3 or not fields[1]:
            continue
        branches.append(
            BranchInfo(
                name=fields[1],
                current=fields[0] == "*",
                object_id=fields[2] or None,
            )
        )
    return branches


__all__ = [
    "BRANCH_LIST_FORMAT",
    "parse_branch_list",
    "parse_ls_remote",
    "parse_ls_tree",
    "parse_worktree_list",
]
