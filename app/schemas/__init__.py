"""
app/schemas package marker.
"""

from app.schemas.transfer import (
    ColumnSpecPayload,
    ColumnsResponse,
    ConnectionRequest,
    ErrorEnvelope,
    ErrorResponse,
    FileColumnsResponse,
    TableColumnsRequest,
    TablesResponse,
    TransferResponse,
)

__all__ = [
    "ColumnSpecPayload",
    "ColumnsResponse",
    "ConnectionRequest",
    "ErrorEnvelope",
    "ErrorResponse",
    "FileColumnsResponse",
    "TableColumnsRequest",
    "TablesResponse",
    "TransferResponse",
]
