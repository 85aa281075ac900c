"""
app/api/routers/transfer.py

Transfer endpoint: starts one ClickHouse <-> flat file job and waits for it.

The job runs inside the request's worker thread. A client disconnect does
not stop a job that is already running.
"""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import ValidationError

from app.api.dependencies import (
    ConnectionForms,
    get_connection_forms,
    get_flat_file_upload,
    get_upload_storage,
)
from app.api.errors import ERROR_RESPONSES, internal_error_detail, to_http_exception
from app.domain.errors import TransferConfigurationError, TransferError
from app.domain.transfer import (
    ColumnSpec,
    DatabaseEndpoint,
    Endpoint,
    EndpointKind,
    FileEndpoint,
    TransferJob,
)
from app.schemas.transfer import SelectedColumnsAdapter, TransferResponse
from app.services.transfer_service import TransferService, get_transfer_service
from db.repositories.errors import FileStorageError
from db.repositories.storage import LocalFileStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["transfer"])


def _parse_selected_columns(raw: str) -> tuple[ColumnSpec, ...]:
    try:
        payload = SelectedColumnsAdapter.validate_json(raw or "[]")
    except ValidationError as exc:
        raise TransferConfigurationError(
            "selected_columns must be a JSON list of {name, type} objects.",
            details={"errors": exc.errors(include_url=False)},
        ) from exc
    return tuple(ColumnSpec(name=item.name, type=item.type) for item in payload)


def _default_target_table() -> str:
    return f"imported_{int(time.time() * 1000)}"


@router.post("/start-ingestion", response_model=TransferResponse, responses=ERROR_RESPONSES)
def start_ingestion(
    source_type: str = Form(...),
    target_type: str = Form(...),
    selected_columns: str = Form(...),
    table: str | None = Form(default=None),
    target_table: str | None = Form(default=None),
    delimiter: str = Form(default=","),
    has_header: bool = Form(default=True),
    file: UploadFile | None = File(default=None),
    connections: ConnectionForms = Depends(get_connection_forms),
    service: TransferService = Depends(get_transfer_service),
    storage: LocalFileStorage = Depends(get_upload_storage),
) -> TransferResponse:
    """
    Run one transfer.

    ``source_type`` / ``target_type`` are ``ClickHouse`` or ``Flat File``.
    Source connection fields are unprefixed; target fields carry the
    ``target_`` prefix. A Flat File source needs an uploaded ``file``; it is
    deleted when the job ends.
    """

    source: Endpoint | None = None
    stored_path: str | None = None
    handed_off = False
    try:
        columns = _parse_selected_columns(selected_columns)

        if source_type == EndpointKind.FILE:
            if file is None:
                raise TransferConfigurationError("File is required.")
            get_flat_file_upload(file)
            try:
                stored = storage.save_upload(file_name=file.filename or "upload.csv", content=file.file)
                stored_path = stored.storage_path
            finally:
                file.file.close()
            source = FileEndpoint(
                path=storage.root_dir / stored.storage_path,
                delimiter=delimiter,
                has_header=has_header,
                temporary=True,
            )
        elif source_type == EndpointKind.DATABASE:
            source = DatabaseEndpoint(connection=connections.source, table=(table or "").strip())

        if target_type == EndpointKind.DATABASE:
            target: Endpoint | None = DatabaseEndpoint(
                connection=connections.target,
                table=(target_table or "").strip() or _default_target_table(),
            )
        elif target_type == EndpointKind.FILE:
            target = FileEndpoint()
        else:
            target = None

        if source is None or target is None:
            raise TransferConfigurationError(
                "Unsupported source/target combination.",
                details={"source_type": source_type, "target_type": target_type},
            )

        handed_off = True
        result = service.run(TransferJob(source=source, target=target, columns=columns))
    except TransferError as exc:
        raise to_http_exception(exc) from exc
    except FileStorageError as exc:
        logger.exception("Failed to store uploaded file for ingestion")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=internal_error_detail(exc),
        ) from exc
    except HTTPException:
        raise
    except Exception as exc:  # noqa: BLE001
        logger.exception("Ingestion failed source_type=%r target_type=%r", source_type, target_type)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=internal_error_detail(exc),
        ) from exc
    finally:
        if not handed_off and stored_path is not None:
            _discard_upload(storage, stored_path)

    return TransferResponse(
        record_count=result.record_count,
        message=result.message,
        download_url=result.download_url,
        table_name=result.table_name,
    )


def _discard_upload(storage: LocalFileStorage, stored_path: str) -> None:
    # The engine removes uploads it receives; this covers jobs rejected earlier.
    try:
        storage.delete(storage_path=stored_path)
    except FileStorageError as exc:
        logger.warning("Failed to discard rejected upload path=%s error=%s", stored_path, exc)
