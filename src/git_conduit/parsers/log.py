"""Parser for ``git log`` output produced with :data:`GIT_LOG_FORMAT`."""

from __future__ import annotations

from typing import Final

from git_conduit.domain.models import ParsedCommit

FIELD_SEPARATOR: Final[str] = "\x00"
RECORD_SEPARATOR: Final[str] = "\x01"

# hash, abbrev, parents, author name/email/time, committer name/email/time, subject, body
GIT_LOG_FORMAT: Final[str] = (
    "%H%x00%h%x00%P%x00%an%x00%ae%x00%at%x00%cn%x00%ce%x00%ct%x00%s%x00%b%x01"
)

_FIELD_COUNT: Final[int] = 11


def parse_git_log(stdout: str) -> list[ParsedCommit]:
    """Parse NUL-separated fields in SOH-terminated records.

    ``git log`` prints a line feed after every formatted record, so each record after the
    first begins with the terminator of the previous one. It is stripped from the hash field.
    Undersized records and records with non-numeric timestamps are skipped.
    """

    commits: list[ParsedCommit] = []
    for record in stdout.split(RECORD_SEPARATOR):
        if not record.strip():
            continue
        fields = record.split(FIELD_SEPARATOR)
        if len(fields) < _FIELD_COUNT:
            continue
        try:
            author_timestamp = int(fields[5], 10)
            committer_timestamp = int(fields[8], 10)
        except ValueError:
            continue
        commits.append(
            ParsedCommit(
                hash=fields[0].strip(),
                abbrev_hash=fields[1],
                parents=tuple(fields[2].split()),
                author_name=fields[3],
                author_email=fields[4],
                author_timestamp=author_timestamp,
                committer_name=fields[6],
                committer_email=fields[7],
                committer_timestamp=committer_timestamp,
                subject=fields[9],
                body=fields[10].strip(),
            )
        )
    return commits


__all__ = ["FIELD_SEPARATOR", "GIT_LOG_FORMAT", "RECORD_SEPARATOR", "parse_git_log"]
