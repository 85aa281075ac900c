"""
app/schemas/transfer.py

Request and response schemas for discovery and transfer endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, TypeAdapter


class ConnectionRequest(BaseModel):
    """
    ClickHouse connection fields; omitted values fall back to configured defaults.
    """

    host: str | None = None
    port: int | None = Field(default=None, ge=1, le=65535)
    username: str | None = None
    password: str | None = None
    database: str | None = None
    jwt_token: str | None = None
    secure: bool = False


class TableColumnsRequest(ConnectionRequest):
    """
    Connection fields plus the table to describe.
    """

    table: str = Field(..., min_length=1)


class TablesResponse(BaseModel):
    tables: list[str] = Field(default_factory=list)


class ColumnsResponse(BaseModel):
    """
    Ordered column names plus a name -> type map.
    """

    columns: list[str] = Field(default_factory=list)
    types: dict[str, str] = Field(default_factory=dict)


class FileColumnsResponse(ColumnsResponse):
    sampled_rows: int = Field(0, ge=0)


class ColumnSpecPayload(BaseModel):
    """
    One user-confirmed column.
    """

    name: str = Field(..., min_length=1)
    type: str = "String"


SelectedColumnsAdapter = TypeAdapter(list[ColumnSpecPayload])


class TransferResponse(BaseModel):
    """
    API response model for a finished transfer.
    """

    record_count: int = Field(..., ge=0)
    message: str
    download_url: str | None = None
    table_name: str | None = None


class ErrorResponse(BaseModel):
    error: str
    message: str
    stage: str | None = None
    details: dict | str | None = None


class ErrorEnvelope(BaseModel):
    """
    Body of a failed request; FastAPI nests the error under ``detail``.
    """

    detail: ErrorResponse
