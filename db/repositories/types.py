"""
Typed DTOs used by the ClickHouse and file storage repositories.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ConnectionParams:
    """
    Connection parameters for one ClickHouse endpoint (source or target role).

    ``jwt_token`` is opaque; when present it is handed to the client as an
    access token and the password is ignored.
    """

    host: str
    username: str
    database: str
    port: int | None = None
    password: str = ""
    jwt_token: str | None = None
    secure: bool = False

    @property
    def interface(self) -> str:
        return "https" if self.secure else "http"

    def describe(self) -> str:
        """Log-safe endpoint description (no credentials)."""
        port = f":{self.port}" if self.port else ""
        return f"{self.interface}://{self.host}{port}/{self.database}"


@dataclass(frozen=True)
class DescribedColumn:
    """
    One row of ``DESCRIBE TABLE`` output.
    """

    name: str
    type: str


@dataclass(frozen=True)
class StoredFileMetadata:
    """
    Metadata produced by the storage backend after saving a file.
    """

    file_name: str
    storage_path: str
    file_size_bytes: int
    stored_at: datetime
