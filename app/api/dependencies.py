"""
app/api/dependencies.py

Shared FastAPI dependencies: upload validation, storage backends and
connection parameter resolution.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from fastapi import File, Form, HTTPException, UploadFile, status
from pydantic import ValidationError

from app.config import get_transfer_settings
from app.schemas.transfer import ConnectionRequest
from db.config import get_clickhouse_client_settings
from db.repositories.storage import LocalFileStorage
from db.repositories.types import ConnectionParams

FLAT_FILE_EXTENSIONS = (".csv", ".tsv", ".txt", ".psv", ".dat")

FLAT_FILE_CONTENT_TYPES = {
    "text/csv",
    "text/plain",
    "text/tab-separated-values",
    "application/csv",
    "application/octet-stream",
    "application/vnd.ms-excel",
}


def get_flat_file_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file looks like a delimited text file by
    extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    is_flat_filename = filename.endswith(FLAT_FILE_EXTENSIONS)
    is_flat_content_type = content_type in FLAT_FILE_CONTENT_TYPES

    if not is_flat_filename and not is_flat_content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Invalid parameters",
                "message": "Only delimited flat files are allowed.",
                "stage": None,
                "details": {"filename": file.filename, "content_type": file.content_type},
            },
        )

    return file


@lru_cache(maxsize=1)
def get_upload_storage() -> LocalFileStorage:
    return LocalFileStorage(get_transfer_settings().upload_dir)


@lru_cache(maxsize=1)
def get_export_storage() -> LocalFileStorage:
    return LocalFileStorage(get_transfer_settings().export_dir)


def build_connection_params(request: ConnectionRequest) -> ConnectionParams:
    """
    Fill omitted connection fields from the configured ClickHouse defaults.
    """

    defaults = get_clickhouse_client_settings()
    return ConnectionParams(
        host=(request.host or "").strip() or defaults.default_host,
        port=request.port or defaults.default_port,
        username=(request.username or "").strip() or defaults.default_username,
        password=request.password or "",
        database=(request.database or "").strip() or defaults.default_database,
        jwt_token=(request.jwt_token or "").strip() or None,
        secure=request.secure,
    )


@dataclass(frozen=True)
class ConnectionForms:
    """
    Source-role and target-role connection fields from one multipart form.
    """

    source: ConnectionParams
    target: ConnectionParams


def get_connection_forms(
    host: str | None = Form(default=None),
    port: int | None = Form(default=None),
    username: str | None = Form(default=None),
    password: str | None = Form(default=None),
    database: str | None = Form(default=None),
    jwt_token: str | None = Form(default=None),
    secure: bool = Form(default=False),
    target_host: str | None = Form(default=None),
    target_port: int | None = Form(default=None),
    target_username: str | None = Form(default=None),
    target_password: str | None = Form(default=None),
    target_database: str | None = Form(default=None),
    target_jwt_token: str | None = Form(default=None),
    target_secure: bool = Form(default=False),
) -> ConnectionForms:
    """
    Resolve both connection roles; ``target_``-prefixed fields belong to the
    destination.
    """

    try:
        source = ConnectionRequest(
            host=host,
            port=port,
            username=username,
            password=password,
            database=database,
            jwt_token=jwt_token,
            secure=secure,
        )
        target = ConnectionRequest(
            host=target_host,
            port=target_port,
            username=target_username,
            password=target_password,
            database=target_database,
            jwt_token=target_jwt_token,
            secure=target_secure,
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Invalid parameters", "message": str(exc), "stage": None, "details": None},
        ) from exc

    return ConnectionForms(
        source=build_connection_params(source),
        target=build_connection_params(target),
    )
