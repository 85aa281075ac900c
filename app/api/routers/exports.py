"""
app/api/routers/exports.py

Download endpoint for files produced by ClickHouse -> Flat File transfers.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse

from app.api.dependencies import get_export_storage
from db.repositories.errors import FileStorageError
from db.repositories.storage import LocalFileStorage

router = APIRouter(tags=["export"])


@router.get("/exports/{file_name}", summary="Download an exported file")
def download_export(
    file_name: str,
    storage: LocalFileStorage = Depends(get_export_storage),
) -> FileResponse:
    """
    Stream one export file. Only files directly under the export directory
    are served.
    """

    try:
        path = storage.resolve(file_name)
    except FileStorageError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Export {file_name!r} not found.",
        ) from exc

    return FileResponse(path, media_type="text/csv; charset=utf-8", filename=path.name)
