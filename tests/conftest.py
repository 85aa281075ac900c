"""
tests/conftest.py

Shared fixtures: an in-memory table repository standing in for ClickHouse
and helpers for writing flat files.
"""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Any, Mapping, Sequence

import pytest

from app.config import TransferSettings
from db.repositories.errors import ClickHouseConnectionError, ClickHouseQueryError
from db.repositories.storage import LocalFileStorage
from db.repositories.types import ConnectionParams, DescribedColumn


class FakeTableRepository:
    """
    Dict-backed repository. Tables persist across connections through the
    shared ``tables`` mapping, like a real server.
    """

    def __init__(self, tables: dict[str, dict[str, Any]]) -> None:
        self.tables = tables
        self.closed = False
        self.inserted_batches: list[int] = []
        self.fail_insert_on_batch: int | None = None
        self.empty_export_output = False

    def list_tables(self) -> list[str]:
        return sorted(self.tables)

    def describe_table(self, table: str) -> list[DescribedColumn]:
        stored = self._table(table)
        return [DescribedColumn(name=name, type=kind) for name, kind in stored["columns"]]

    def create_table(self, table: str, column_definitions: str) -> None:
        if table in self.tables:
            return
        columns = []
        for line in column_definitions.split(",\n"):
            name, kind = line.strip().split(" ", 1)
            columns.append((name.strip("`"), kind))
        self.tables[table] = {"ddl": column_definitions, "columns": columns, "rows": []}

    def insert_batch(
        self,
        table: str,
        column_names: Sequence[str],
        rows: Sequence[Mapping[str, Any]],
    ) -> None:
        batch_number = len(self.inserted_batches) + 1
        if self.fail_insert_on_batch == batch_number:
            raise ClickHouseQueryError("Cannot parse input")
        stored = self._table(table)
        stored["rows"].extend({name: row.get(name) for name in column_names} for row in rows)
        self.inserted_batches.append(len(rows))

    def count_rows(self, table: str) -> int:
        return len(self._table(table)["rows"])

    def export_csv(self, table: str, column_names: Sequence[str]) -> str:
        stored = self._table(table)
        known = {name for name, _ in stored["columns"]}
        unknown = [name for name in column_names if name not in known]
        if unknown:
            raise ClickHouseQueryError(f"Missing columns: {unknown}")
        if self.empty_export_output:
            return ""
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(column_names)
        for row in stored["rows"]:
            writer.writerow(["" if row.get(name) is None else row.get(name) for name in column_names])
        return buffer.getvalue()

    def close(self) -> None:
        self.closed = True

    def _table(self, table: str) -> dict[str, Any]:
        if table not in self.tables:
            raise ClickHouseQueryError(f"Table default.{table} does not exist.")
        return self.tables[table]


class FakeRepositoryFactory:
    """
    Callable handed to services in place of ``open_table_repository``.
    """

    def __init__(self) -> None:
        self.tables: dict[str, dict[str, Any]] = {}
        self.opened: list[FakeTableRepository] = []
        self.calls: list[ConnectionParams] = []
        self.unreachable = False
        self.fail_insert_on_batch: int | None = None
        self.empty_export_output = False

    def __call__(self, params: ConnectionParams) -> FakeTableRepository:
        self.calls.append(params)
        if self.unreachable:
            raise ClickHouseConnectionError("Failed to connect to ClickHouse.")
        repository = FakeTableRepository(self.tables)
        repository.fail_insert_on_batch = self.fail_insert_on_batch
        repository.empty_export_output = self.empty_export_output
        self.opened.append(repository)
        return repository

    def seed(self, table: str, columns: list[tuple[str, str]], rows: list[dict[str, Any]]) -> None:
        self.tables[table] = {"ddl": None, "columns": columns, "rows": list(rows)}


@pytest.fixture()
def make_flat_file(tmp_path: Path):
    """Write *text* to a file under the test directory and return its path."""

    def _make(name: str, text: str) -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _make


@pytest.fixture()
def connection() -> ConnectionParams:
    return ConnectionParams(host="localhost", username="default", database="default", port=8123)


@pytest.fixture()
def repository_factory() -> FakeRepositoryFactory:
    return FakeRepositoryFactory()


@pytest.fixture()
def export_storage(tmp_path: Path) -> LocalFileStorage:
    return LocalFileStorage(tmp_path / "exports")


@pytest.fixture()
def upload_storage(tmp_path: Path) -> LocalFileStorage:
    return LocalFileStorage(tmp_path / "uploads")


@pytest.fixture()
def settings(tmp_path: Path) -> TransferSettings:
    return TransferSettings(
        batch_size=10_000,
        export_dir=str(tmp_path / "exports"),
        upload_dir=str(tmp_path / "uploads"),
    )
