"""
Local filesystem storage for uploaded input files and exported CSV files.
"""

from __future__ import annotations

import shutil
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Protocol

from db.repositories.errors import FileStorageError
from db.repositories.types import StoredFileMetadata


class FileStorageBackend(Protocol):
    """
    Storage backend used by the upload and export flows.
    """

    def save_upload(self, *, file_name: str, content: BinaryIO) -> StoredFileMetadata:
        ...

    def write_export(self, *, content: str, prefix: str = "export") -> StoredFileMetadata:
        ...

    def resolve(self, storage_path: str) -> Path:
        ...

    def delete(self, *, storage_path: str) -> None:
        ...


def _sanitize_file_name(file_name: str) -> str:
    safe_name = Path(file_name).name.strip()
    if not safe_name or safe_name in {".", ".."}:
        raise FileStorageError("Invalid file name.")
    return safe_name


class LocalFileStorage:
    """
    Local filesystem storage rooted at one directory.

    Export names are derived from a nanosecond timestamp. Two exports
    finishing within the same nanosecond would collide; that risk is accepted.
    """

    def __init__(self, root_dir: str | Path) -> None:
        self._root_dir = Path(root_dir)

    @property
    def root_dir(self) -> Path:
        return self._root_dir

    def save_upload(self, *, file_name: str, content: BinaryIO) -> StoredFileMetadata:
        safe_file_name = _sanitize_file_name(file_name or "upload.csv")
        stored_name = f"{uuid.uuid4().hex}_{safe_file_name}"
        absolute_path = self._root_dir / stored_name
        tmp_path = absolute_path.with_suffix(f"{absolute_path.suffix}.tmp")
        try:
            self._root_dir.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("wb") as handle:
                shutil.copyfileobj(content, handle)
            tmp_path.replace(absolute_path)
        except OSError as exc:
            raise FileStorageError("Failed to write uploaded file to storage.") from exc
        finally:
            if tmp_path.exists():
                try:
                    tmp_path.unlink()
                except OSError:
                    pass

        return StoredFileMetadata(
            file_name=safe_file_name,
            storage_path=stored_name,
            file_size_bytes=absolute_path.stat().st_size,
            stored_at=datetime.now(timezone.utc),
        )

    def write_export(self, *, content: str, prefix: str = "export") -> StoredFileMetadata:
        file_name = f"{prefix}_{time.time_ns()}.csv"
        absolute_path = self._root_dir / file_name
        encoded = content.encode("utf-8")
        try:
            self._root_dir.mkdir(parents=True, exist_ok=True)
            absolute_path.write_bytes(encoded)
        except OSError as exc:
            raise FileStorageError("Failed to write export file.") from exc

        return StoredFileMetadata(
            file_name=file_name,
            storage_path=file_name,
            file_size_bytes=len(encoded),
            stored_at=datetime.now(timezone.utc),
        )

    def resolve(self, storage_path: str) -> Path:
        """
        Return the absolute path of a stored file; only direct children of the
        storage root are addressable.
        """

        safe_name = _sanitize_file_name(storage_path)
        if safe_name != storage_path:
            raise FileStorageError(f"Invalid stored file name: {storage_path}")
        target = self._root_dir / safe_name
        if not target.is_file():
            raise FileStorageError(f"Stored file not found: {storage_path}")
        return target

    def delete(self, *, storage_path: str) -> None:
        target = self._root_dir / Path(storage_path)
        if not target.exists():
            return
        try:
            target.unlink()
        except OSError as exc:
            raise FileStorageError("Failed to delete stored file.") from exc
