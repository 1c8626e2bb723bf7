"""Generic splitters for line-, record-, JSON- and key/value-shaped git output."""

from __future__ import annotations

import json
from typing import Any


def parse_lines(stdout: str, *, keep_empty: bool = False, trim: bool = True) -> list[str]:
    """Split on line feed; trims each line and drops empty ones unless told otherwise."""

    lines = stdout.split("\n")
    if trim:
        lines = [line.strip() for line in lines]
    if keep_empty:
        return lines
    return [line for line in lines if line]


def parse_records(stdout: str, delimiter: str = "\0") -> list[str]:
    """Split on ``delimiter``; at most one trailing delimiter is stripped, interior empties stay."""

    if not stdout:
        return []
    normalized = stdout[: -len(delimiter)] if stdout.endswith(delimiter) else stdout
    if not normalized:
        return []
    return normalized.split(delimiter)


def parse_json(stdout: str, *, ndjson: bool = False) -> Any:
    """Decode a JSON document, or a list of documents when ``ndjson`` is set.

    Empty output yields ``None`` (or ``[]`` for NDJSON). Malformed JSON raises
    ``json.JSONDecodeError``: callers ask for JSON only from commands that promise it.
    """

    trimmed = stdout.strip()
    if not trimmed:
        return [] if ndjson else None
    if ndjson:
        return [json.loads(line) for line in trimmed.split("\n") if line.strip()]
    return json.loads(trimmed)


def parse_key_value(
    stdout: str, *, separator: str = "=", delimiter: str = "\n"
) -> dict[str, str]:
    """Parse ``key<sep>value`` records; records without a key are skipped, later keys win."""

    records = parse_lines(stdout) if delimiter == "\n" else parse_records(stdout, delimiter)
    result: dict[str, str] = {}
    for record in records:
        index = record.find(separator)
        if index <= 0:
            continue
        result[record[:index]] = record[index + len(separator) :]
    return result


__all__ = ["parse_json", "parse_key_value", "parse_lines", "parse_records"]
