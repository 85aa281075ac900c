"""
Repository-layer exceptions for ClickHouse and file storage flows.
"""

from __future__ import annotations


class RepositoryError(Exception):
    """Base exception for repository failures."""


class ClickHouseRepositoryError(RepositoryError):
    """Base exception for ClickHouse repository failures."""


class ClickHouseConnectionError(ClickHouseRepositoryError):
    """Raised when a client cannot be created or the server rejects the credentials."""


class ClickHouseQueryError(ClickHouseRepositoryError):
    """Raised when a query, command or insert fails on the server."""


class FileStorageError(RepositoryError):
    """Raised when storing, reading or deleting a local file fails."""
