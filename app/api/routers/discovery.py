"""
app/api/routers/discovery.py

Column discovery endpoints used before a transfer is confirmed.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form, HTTPException, UploadFile, status

from app.api.dependencies import build_connection_params, get_flat_file_upload, get_upload_storage
from app.api.errors import ERROR_RESPONSES, internal_error_detail, to_http_exception
from app.domain.errors import TransferError
from app.schemas.transfer import (
    ColumnsResponse,
    ConnectionRequest,
    FileColumnsResponse,
    TableColumnsRequest,
    TablesResponse,
)
from app.services.discovery_service import DiscoveryService, get_discovery_service
from db.repositories.errors import FileStorageError
from db.repositories.storage import LocalFileStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["discovery"])


@router.post("/fetch-tables", response_model=TablesResponse, responses=ERROR_RESPONSES)
def fetch_tables(
    body: ConnectionRequest,
    service: DiscoveryService = Depends(get_discovery_service),
) -> TablesResponse:
    """
    List the tables of the requested database.
    """

    try:
        tables = service.list_tables(build_connection_params(body))
    except TransferError as exc:
        raise to_http_exception(exc) from exc
    return TablesResponse(tables=tables)


@router.post("/fetch-columns", response_model=ColumnsResponse, responses=ERROR_RESPONSES)
def fetch_columns(
    body: TableColumnsRequest,
    service: DiscoveryService = Depends(get_discovery_service),
) -> ColumnsResponse:
    """
    Describe one table; types are the server's own column types.
    """

    try:
        preview = service.describe_table(build_connection_params(body), body.table)
    except TransferError as exc:
        raise to_http_exception(exc) from exc
    return ColumnsResponse(columns=preview.columns, types=preview.types)


@router.post("/fetch-file-columns", response_model=FileColumnsResponse, responses=ERROR_RESPONSES)
def fetch_file_columns(
    file: UploadFile = Depends(get_flat_file_upload),
    delimiter: str = Form(default=","),
    has_header: bool = Form(default=True),
    service: DiscoveryService = Depends(get_discovery_service),
    storage: LocalFileStorage = Depends(get_upload_storage),
) -> FileColumnsResponse:
    """
    Infer column names and types from the head of an uploaded flat file.
    The upload is removed once the preview is built.
    """

    try:
        stored = storage.save_upload(file_name=file.filename or "upload.csv", content=file.file)
    except FileStorageError as exc:
        logger.exception("Failed to store uploaded file for preview")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=internal_error_detail(exc, "Failed to process file"),
        ) from exc
    finally:
        file.file.close()

    try:
        preview = service.preview_file(
            storage.root_dir / stored.storage_path,
            delimiter=delimiter,
            has_header=has_header,
            remove_after=True,
        )
    except TransferError as exc:
        raise to_http_exception(exc) from exc

    return FileColumnsResponse(
        columns=preview.columns,
        types=preview.types,
        sampled_rows=preview.sampled_rows,
    )
