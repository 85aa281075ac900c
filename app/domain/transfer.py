"""
app/domain/transfer.py

Domain models for column discovery and transfer jobs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from db.repositories.types import ConnectionParams


class StorageType:
    """
    Storage-type tags assigned by file inference.

    Database-described columns keep the server's own type string, so a
    column type is any ClickHouse type; these are the ones inference emits.
    """

    UINT8 = "UInt8"
    INT64 = "Int64"
    FLOAT64 = "Float64"
    DATE = "Date"
    NULLABLE_STRING = "Nullable(String)"
    STRING = "String"


class EndpointKind:
    DATABASE = "ClickHouse"
    FILE = "Flat File"


ALLOWED_ENDPOINT_KINDS = frozenset({EndpointKind.DATABASE, EndpointKind.FILE})


@dataclass(frozen=True)
class ColumnSpec:
    """
    One confirmed column; order within a job is significant.
    """

    name: str
    type: str = StorageType.STRING


@dataclass(frozen=True)
class DatabaseEndpoint:
    """
    A ClickHouse table used as source or target.
    """

    connection: ConnectionParams
    table: str
    kind: str = field(default=EndpointKind.DATABASE, init=False)


@dataclass(frozen=True)
class FileEndpoint:
    """
    A delimited flat file used as source or target.

    ``temporary`` marks an uploaded input that the engine must delete once
    the job finishes, whether it succeeds or fails.
    """

    path: Path | None = None
    delimiter: str = ","
    has_header: bool = True
    temporary: bool = False
    kind: str = field(default=EndpointKind.FILE, init=False)


Endpoint = Union[DatabaseEndpoint, FileEndpoint]


@dataclass(frozen=True)
class TransferJob:
    """
    One transient transfer request.
    """

    source: Endpoint
    target: Endpoint
    columns: tuple[ColumnSpec, ...]

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]


@dataclass(frozen=True)
class FilePreview:
    """
    Column discovery result for a flat file.
    """

    columns: list[str]
    types: dict[str, str]
    sampled_rows: int


@dataclass(frozen=True)
class TablePreview:
    """
    Column discovery result for a database table.
    """

    table: str
    columns: list[str]
    types: dict[str, str]


@dataclass(frozen=True)
class TransferResult:
    """
    End-of-run transfer outcome.
    """

    record_count: int
    message: str
    download_url: str | None = None
    file_name: str | None = None
    table_name: str | None = None


@dataclass
class RowBatch:
    """
    Bounded in-memory accumulator of coerced rows.
    """

    capacity: int
    rows: list[dict[str, Any]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.capacity < 1:
            raise ValueError("RowBatch capacity must be at least 1.")

    def add(self, row: dict[str, Any]) -> None:
        self.rows.append(row)

    @property
    def is_full(self) -> bool:
        return len(self.rows) >= self.capacity

    def __len__(self) -> int:
        return len(self.rows)

    def drain(self) -> list[dict[str, Any]]:
        """Hand the accumulated rows off and start a fresh window."""
        drained = self.rows
        self.rows = []
        return drained
