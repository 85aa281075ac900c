"""
Repository layer exports.

The ClickHouse table repository lives in ``db.repositories.table_repository``
and is imported from there; it depends on ``db.client``, which itself
imports this package.
"""

from db.repositories.errors import (
    ClickHouseConnectionError,
    ClickHouseQueryError,
    ClickHouseRepositoryError,
    FileStorageError,
    RepositoryError,
)
from db.repositories.storage import FileStorageBackend, LocalFileStorage
from db.repositories.types import ConnectionParams, DescribedColumn, StoredFileMetadata

__all__ = [
    "ConnectionParams",
    "DescribedColumn",
    "StoredFileMetadata",
    "FileStorageBackend",
    "LocalFileStorage",
    "RepositoryError",
    "ClickHouseRepositoryError",
    "ClickHouseConnectionError",
    "ClickHouseQueryError",
    "FileStorageError",
]
