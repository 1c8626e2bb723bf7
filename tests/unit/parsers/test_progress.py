"""Unit tests for stderr progress, side-channel and summary parsers."""

from __future__ import annotations

import pytest

from git_conduit.domain.models import (
    ToolProgress,
    TransferDirection,
    TransferProgress,
    TransferSummary,
)
from git_conduit.parsers.progress import (
    classify_direction,
    parse_size,
    parse_tool_progress,
    parse_transfer_progress,
    parse_transfer_summary,
)


def test_tool_progress_percent_form() -> None:
    progress = parse_tool_progress("Receiving objects:  40% (4/10), 1.2 MiB | 3.0 MiB/s")

    assert progress == ToolProgress(
        phase="Receiving objects",
        current=4,
        total=10,
        percent=40,
        done=False,
        message="Receiving objects:  40% (4/10), 1.2 MiB | 3.0 MiB/s",
    )


def test_tool_progress_done_marker() -> None:
    progress = parse_tool_progress("Resolving deltas: 100% (7/7), done.")
    assert progress is not None
    assert progress.done is True
    assert progress.percent == 100


def test_tool_progress_count_form_derives_percent() -> None:
    progress = parse_tool_progress("Enumerating objects: 3/4")
    assert progress is not None
    assert progress.percent == 75
    assert progress.total == 4

    zero = parse_tool_progress("Counting: 0/0")
    assert zero is not None
    assert zero.percent is None


@pytest.mark.parametrize("line", ["", "hint: use --force", "Cloning into 'repo'..."])
def test_tool_progress_rejects_other_lines(line: str) -> None:
    assert parse_tool_progress(line) is None


def test_transfer_progress_side_channel_line() -> None:
    progress = parse_transfer_progress("download abc123 512/2048 512")
    assert progress == TransferProgress(
        direction=TransferDirection.DOWNLOAD,
        object_id="abc123",
        bytes_so_far=512,
        bytes_total=2048,
        bytes_transferred=512,
    )


@pytest.mark.parametrize(
    "line",
    [
        "download abc 1/2",
        "sideways abc 1/2 1",
        "upload abc 1-2 1",
        "upload abc 1/2 many",
    ],
)
def test_transfer_progress_rejects_malformed(line: str) -> None:
    assert parse_transfer_progress(line) is None


def test_transfer_summary_with_size_and_rate() -> None:
    summary = parse_transfer_summary("Downloading LFS objects:  50% (1/2), 1.5 MB | 512 KB/s")
    assert summary == TransferSummary(
        direction=TransferDirection.DOWNLOAD,
        percent=50,
        files_completed=1,
        files_total=2,
        bytes_so_far=round(1.5 * 1024**2),
        bitrate=512 * 1024,
        done=False,
    )


def test_transfer_summary_done_and_upload_direction() -> None:
    summary = parse_transfer_summary("Uploading LFS objects: 100% (3/3), 12 KB, done.")
    assert summary is not None
    assert summary.direction is TransferDirection.UPLOAD
    assert summary.done is True
    assert summary.bytes_so_far == 12 * 1024
    assert summary.bitrate is None


def test_transfer_summary_unknown_verb_is_ignored() -> None:
    assert parse_transfer_summary("Pruning LFS objects: 10% (1/10)") is None


@pytest.mark.parametrize(
    ("verb", "expected"),
    [
        ("Downloading", TransferDirection.DOWNLOAD),
        ("Fetching", TransferDirection.DOWNLOAD),
        ("Uploading", TransferDirection.UPLOAD),
        ("Pushing", TransferDirection.UPLOAD),
        ("Checking out", TransferDirection.CHECKOUT),
        ("Merging", None),
    ],
)
def test_classify_direction(verb: str, expected: TransferDirection | None) -> None:
    assert classify_direction(verb) is expected


@pytest.mark.parametrize(
    ("text", "expected"),
    [("12 B", 12), ("1KB", 1024), ("2 mb", 2 * 1024**2), ("1.5 GB", round(1.5 * 1024**3))],
)
def test_parse_size(text: str, expected: int) -> None:
    assert parse_size(text) == expected


def test_parse_size_rejects_unknown_units() -> None:
    assert parse_size("3 parsecs") is None
