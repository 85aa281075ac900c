"""
app/domain package marker.
"""

from app.domain.errors import (
    DestinationWriteError,
    FieldCoercionError,
    FileFormatError,
    SchemaReferenceError,
    SourceConnectionError,
    TransferConfigurationError,
    TransferError,
    TransferStage,
)
from app.domain.transfer import (
    ColumnSpec,
    DatabaseEndpoint,
    EndpointKind,
    FileEndpoint,
    FilePreview,
    RowBatch,
    StorageType,
    TablePreview,
    TransferJob,
    TransferResult,
)

__all__ = [
    "ColumnSpec",
    "DatabaseEndpoint",
    "DestinationWriteError",
    "EndpointKind",
    "FieldCoercionError",
    "FileEndpoint",
    "FileFormatError",
    "FilePreview",
    "RowBatch",
    "SchemaReferenceError",
    "SourceConnectionError",
    "StorageType",
    "TablePreview",
    "TransferConfigurationError",
    "TransferError",
    "TransferJob",
    "TransferResult",
    "TransferStage",
]
