"""
git-conduit — output parsers

File: src/git_conduit/parsers/__init__.py

Purpose
- Pure functions from raw git output to structured records.

Functional requirements
- Malformed external records are skipped or nulled out, never raised, so one odd line from a
  different git version cannot abort an otherwise successful listing.
"""

from git_conduit.parsers.categories import CATEGORY_PATTERNS, detect_error_category
from git_conduit.parsers.listing import (
    BRANCH_LIST_FORMAT,
    parse_branch_list,
    parse_ls_remote,
    parse_ls_tree,
    parse_worktree_list,
)
from git_conduit.parsers.log import GIT_LOG_FORMAT, parse_git_log
from git_conduit.parsers.progress import (
    parse_size,
    parse_tool_progress,
    parse_transfer_progress,
    parse_transfer_summary,
)
from git_conduit.parsers.status import parse_porcelain_v2, parse_status, parse_status_branch
from git_conduit.parsers.text import parse_json, parse_key_value, parse_lines, parse_records
from git_conduit.parsers.version import parse_git_version, parse_lfs_status

__all__ = [
    "BRANCH_LIST_FORMAT",
    "CATEGORY_PATTERNS",
    "GIT_LOG_FORMAT",
    "detect_error_category",
    "parse_branch_list",
    "parse_git_log",
    "parse_git_version",
    "parse_json",
    "parse_key_value",
    "parse_lfs_status",
    "parse_lines",
    "parse_ls_remote",
    "parse_ls_tree",
    "parse_porcelain_v2",
    "parse_records",
    "parse_size",
    "parse_status",
    "parse_status_branch",
    "parse_tool_progress",
    "parse_transfer_progress",
    "parse_transfer_summary",
    "parse_worktree_list",
]
