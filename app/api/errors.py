"""
app/api/errors.py

Mapping from the transfer error taxonomy to HTTP responses.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, status

from app.domain.errors import (
    FieldCoercionError,
    FileFormatError,
    SchemaReferenceError,
    SourceConnectionError,
    TransferConfigurationError,
    TransferError,
)
from app.schemas.transfer import ErrorEnvelope

_CLIENT_ERRORS = (
    TransferConfigurationError,
    SchemaReferenceError,
    FileFormatError,
    FieldCoercionError,
)

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    status.HTTP_400_BAD_REQUEST: {
        "model": ErrorEnvelope,
        "description": "Invalid parameters, unknown table or column, malformed file or field value",
    },
    status.HTTP_500_INTERNAL_SERVER_ERROR: {
        "model": ErrorEnvelope,
        "description": "Destination write failure or unexpected error",
    },
    status.HTTP_502_BAD_GATEWAY: {
        "model": ErrorEnvelope,
        "description": "ClickHouse unreachable or credentials rejected",
    },
}


def status_for(exc: TransferError) -> int:
    if isinstance(exc, _CLIENT_ERRORS):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, SourceConnectionError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def to_http_exception(exc: TransferError) -> HTTPException:
    """
    Wrap a transfer error as an HTTPException whose detail is
    ``{error, message, stage, details}``.
    """

    return HTTPException(status_code=status_for(exc), detail=exc.to_dict())


def internal_error_detail(exc: Exception, summary: str = "Ingestion failed") -> dict[str, object]:
    return {
        "error": summary,
        "message": str(exc),
        "stage": None,
        "details": type(exc).__name__,
    }
