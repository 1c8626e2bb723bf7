"""Unit tests for stderr error categorisation and version/large-file status parsing."""

from __future__ import annotations

import pytest

from git_conduit.domain.models import EngineVersion, LfsFileStatus
from git_conduit.errors import ErrorCategory
from git_conduit.parsers.categories import detect_error_category
from git_conduit.parsers.version import parse_git_version, parse_lfs_status


@pytest.mark.parametrize(
    ("stderr", "expected"),
    [
        ("fatal: Authentication failed for 'https://example.com/r.git/'", ErrorCategory.AUTH),
        ("git@example.com: Permission denied (publickey).", ErrorCategory.AUTH),
        ("fatal: could not read Username for 'https://x': terminal prompts disabled",
         ErrorCategory.AUTH),
        ("fatal: unable to access 'https://x/': Could not resolve host: x", ErrorCategory.NETWORK),
        ("fatal: the remote end hung up unexpectedly", ErrorCategory.NETWORK),
        ("CONFLICT (content): Merge conflict in a.txt", ErrorCategory.CONFLICT),
        ("error: you need to resolve your current index first\na.txt: needs merge",
         ErrorCategory.CONFLICT),
        ("Error downloading object: big.bin: smudge filter lfs failed", ErrorCategory.TRANSFER),
        ("error: cannot lock ref 'refs/heads/main'", ErrorCategory.PERMISSION),
        ("error: open(\"x\"): Permission denied", ErrorCategory.PERMISSION),
        ("error: object file .git/objects/ab/cd is empty", ErrorCategory.CORRUPTION),
        ("fatal: bad object HEAD", ErrorCategory.CORRUPTION),
        ("fatal: pathspec 'nope' did not match any files", ErrorCategory.UNKNOWN),
        ("", ErrorCategory.UNKNOWN),
    ],
)
def test_detect_error_category(stderr: str, expected: ErrorCategory) -> None:
    assert detect_error_category(stderr) is expected


def test_auth_wins_over_network_when_both_match() -> None:
    stderr = "fatal: Authentication failed\nfatal: unable to access 'https://x/'"
    assert detect_error_category(stderr) is ErrorCategory.AUTH


@pytest.mark.parametrize(
    ("stdout", "expected"),
    [
        ("git version 2.43.0\n", EngineVersion(2, 43, 0)),
        ("git version 2.39.3 (Apple Git-146)", EngineVersion(2, 39, 3)),
        ("git version 2.44.0.windows.1", EngineVersion(2, 44, 0)),
        ("git version 3.0", EngineVersion(3, 0, 0)),
    ],
)
def test_parse_git_version(stdout: str, expected: EngineVersion) -> None:
    parsed = parse_git_version(stdout)
    assert parsed == expected
    assert parsed is not None
    assert parsed.raw == stdout.strip()


def test_parse_git_version_rejects_unrelated_output() -> None:
    assert parse_git_version("hub version 2.14.2") is None


def test_engine_version_ordering_and_parse() -> None:
    assert EngineVersion.parse("2.30") < EngineVersion.parse("2.30.1") < EngineVersion(2, 31)
    assert str(EngineVersion.parse("2.30")) == "2.30.0"
    with pytest.raises(ValueError, match="invalid version"):
        EngineVersion.parse("2.x")


def test_parse_lfs_status_sorted_and_lenient() -> None:
    stdout = (
        '{"files": {"b.bin": {"status": "M", "from": "aaa", "to": "bbb"},'
        ' "a.bin": {"status": "A"}, "c.bin": "bogus", "d.bin": {"status": 3}}}'
    )

    status = parse_lfs_status(stdout)

    assert status.files == (
        LfsFileStatus(path="a.bin", status="A"),
        LfsFileStatus(path="b.bin", status="M", source="aaa", target="bbb"),
    )


@pytest.mark.parametrize("stdout", ["", "[]", '{"files": []}'])
def test_parse_lfs_status_empty_shapes(stdout: str) -> None:
    assert parse_lfs_status(stdout).files == ()
