"""
app/services/flat_file.py

Incremental reading of delimited flat files.
"""

from __future__ import annotations

import csv
import logging
import re
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from app.domain.errors import FileFormatError, TransferConfigurationError, TransferStage

logger = logging.getLogger(__name__)

_DELIMITER_ALIASES = {"\\t": "\t", "tab": "\t"}
_POSITIONAL_NAME_PATTERN = re.compile(r"column_([1-9]\d*)")


def normalize_delimiter(delimiter: str | None) -> str:
    """
    Return a single-character delimiter; defaults to a comma.
    """

    if delimiter is None or delimiter == "":
        return ","
    resolved = _DELIMITER_ALIASES.get(delimiter.lower(), delimiter)
    if len(resolved) != 1:
        raise TransferConfigurationError(
            f"Delimiter must be a single character, got {delimiter!r}.",
        )
    return resolved


def positional_column_name(index: int) -> str:
    """Name of the zero-based *index*-th field of a header-less file."""
    return f"column_{index + 1}"


def positional_column_index(name: str) -> int | None:
    """Zero-based field index named by *name*, or None if it is not positional."""
    match = _POSITIONAL_NAME_PATTERN.fullmatch(name)
    return int(match.group(1)) - 1 if match else None


@dataclass
class FlatFileStream:
    """
    An open flat file: resolved column names plus a lazy row iterator.
    """

    columns: list[str]
    rows: Iterator[dict[str, str]]


@contextmanager
def open_flat_file(
    path: str | Path,
    *,
    delimiter: str = ",",
    has_header: bool = True,
) -> Iterator[FlatFileStream]:
    """
    Open *path* and expose its rows one at a time.

    With a header, rows are keyed by header names and extra trailing fields
    are dropped. Without one, fields are keyed ``column_1..column_N`` by
    position. Parse and decode failures surface as FileFormatError.
    """

    separator = normalize_delimiter(delimiter)
    try:
        handle = open(path, encoding="utf-8-sig", newline="")
    except OSError as exc:
        raise FileFormatError(
            f"Unable to open file: {exc}",
            stage=TransferStage.READ,
        ) from exc

    with handle:
        reader = csv.reader(handle, delimiter=separator, strict=True)
        first_row = _next_record(reader)

        if has_header:
            columns = list(first_row or [])
            pending: list[str] | None = None
        else:
            columns = [positional_column_name(i) for i in range(len(first_row or []))]
            pending = first_row

        yield FlatFileStream(columns=columns, rows=_iter_rows(reader, columns, pending, has_header))


def _iter_rows(
    reader: Iterator[list[str]],
    columns: list[str],
    pending: list[str] | None,
    has_header: bool,
) -> Iterator[dict[str, str]]:
    if pending is not None:
        yield _to_mapping(pending, columns, has_header)
    while True:
        record = _next_record(reader)
        if record is None:
            return
        if not record:
            continue
        yield _to_mapping(record, columns, has_header)


def _to_mapping(record: list[str], columns: list[str], has_header: bool) -> dict[str, str]:
    if has_header:
        return dict(zip(columns, record))
    return {positional_column_name(i): value for i, value in enumerate(record)}


def _next_record(reader: Iterator[list[str]]) -> list[str] | None:
    try:
        return next(reader)
    except StopIteration:
        return None
    except csv.Error as exc:
        raise FileFormatError(
            f"Invalid delimited file format: {exc}",
            stage=TransferStage.READ,
        ) from exc
    except UnicodeDecodeError as exc:
        raise FileFormatError(
            "File must be UTF-8 encoded.",
            stage=TransferStage.READ,
        ) from exc
