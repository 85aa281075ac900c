"""
app/domain/errors.py

Transfer error taxonomy. Every error names the stage it occurred in.
"""

from __future__ import annotations

from typing import Any


class TransferStage:
    CONFIGURATION = "configuration"
    CONNECT = "connect"
    DESCRIBE = "describe"
    CREATE_TABLE = "create_table"
    READ = "read"
    COERCE = "coerce"
    FLUSH = "flush"
    COUNT = "count"
    EXPORT = "export"
    WRITE_FILE = "write_file"


class TransferError(RuntimeError):
    """
    Base class for failures surfaced to the transfer boundary.
    """

    summary = "Ingestion failed"

    def __init__(
        self,
        message: str,
        *,
        stage: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.summary,
            "message": self.message,
            "stage": self.stage,
            "details": self.details,
        }


class TransferConfigurationError(TransferError):
    """Raised for invalid jobs: unsupported direction, empty column list, bad options."""

    summary = "Invalid parameters"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, stage=TransferStage.CONFIGURATION, details=details)


class SourceConnectionError(TransferError):
    """Raised when ClickHouse is unreachable or rejects the credentials."""

    summary = "Connection failed"


class SchemaReferenceError(TransferError):
    """Raised when a table or column reference does not resolve."""

    summary = "Invalid table or column reference"


class FileFormatError(TransferError):
    """Raised when a flat file cannot be parsed."""

    summary = "Malformed file"


class FieldCoercionError(TransferError):
    """
    Raised for a non-numeric value in a numeric column when the invalid
    number policy is ``reject``.
    """

    summary = "Field conversion failed"

    def __init__(self, *, column: str, column_type: str, value: str) -> None:
        super().__init__(
            f"Value {value!r} in column {column!r} is not a valid {column_type}.",
            stage=TransferStage.COERCE,
            details={"column": column, "type": column_type, "value": value},
        )
        self.column = column
        self.value = value


class DestinationWriteError(TransferError):
    """Raised when the destination table or file cannot be written."""

    summary = "Destination write failed"
