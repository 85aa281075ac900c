"""
ClickHouse table repository: introspection, DDL, batch inserts, counts
and CSV exports against one endpoint.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from clickhouse_connect.driver.client import Client
from clickhouse_connect.driver.exceptions import ClickHouseError, OperationalError

from db.client import create_clickhouse_client
from db.repositories.errors import ClickHouseConnectionError, ClickHouseQueryError
from db.repositories.types import ConnectionParams, DescribedColumn

logger = logging.getLogger(__name__)

TABLE_ENGINE_CLAUSE = "ENGINE = MergeTree() ORDER BY tuple()"


def quote_identifier(name: str) -> str:
    """
    Backtick-quote a ClickHouse identifier, escaping embedded backticks and
    backslashes.
    """

    escaped = name.replace("\\", "\\\\").replace("`", "\\`")
    return f"`{escaped}`"


class BatchWriter(Protocol):
    """
    Write side of a File -> Database transfer.
    """

    def create_table(self, table: str, column_definitions: str) -> None:
        ...

    def insert_batch(
        self,
        table: str,
        column_names: Sequence[str],
        rows: Sequence[Mapping[str, Any]],
    ) -> None:
        ...


class RowCounter(Protocol):
    """
    Authoritative row count of a destination table.
    """

    def count_rows(self, table: str) -> int:
        ...


class CSVExporter(Protocol):
    """
    Read side of a Database -> File transfer.
    """

    def export_csv(self, table: str, column_names: Sequence[str]) -> str:
        ...


class TableRepository(BatchWriter, RowCounter, CSVExporter, Protocol):
    """
    Full repository surface used by discovery and transfer services.
    """

    def list_tables(self) -> list[str]:
        ...

    def describe_table(self, table: str) -> list[DescribedColumn]:
        ...

    def close(self) -> None:
        ...


class ClickHouseTableRepository:
    """
    ClickHouse implementation of :class:`TableRepository`.

    Every call is attempted exactly once; server and transport failures are
    re-raised as repository errors for the caller to attribute to a stage.
    """

    def __init__(self, client: Client) -> None:
        self._client = client

    def list_tables(self) -> list[str]:
        result = self._run("list_tables", lambda: self._client.query("SHOW TABLES"))
        return [str(row[0]) for row in result.result_rows]

    def describe_table(self, table: str) -> list[DescribedColumn]:
        result = self._run(
            "describe_table",
            lambda: self._client.query(f"DESCRIBE TABLE {quote_identifier(table)}"),
        )
        return [DescribedColumn(name=str(row[0]), type=str(row[1])) for row in result.result_rows]

    def create_table(self, table: str, column_definitions: str) -> None:
        statement = (
            f"CREATE TABLE IF NOT EXISTS {quote_identifier(table)} (\n"
            f"{column_definitions}\n"
            f") {TABLE_ENGINE_CLAUSE}"
        )
        self._run("create_table", lambda: self._client.command(statement))
        logger.info("Destination table ensured table=%s", table)

    def insert_batch(
        self,
        table: str,
        column_names: Sequence[str],
        rows: Sequence[Mapping[str, Any]],
    ) -> None:
        if not rows:
            return
        # JSONEachRow lets the server substitute column defaults for nulls
        # sent to non-Nullable columns.
        payload = "\n".join(json.dumps(dict(row), default=str) for row in rows)
        self._run(
            "insert_batch",
            lambda: self._client.raw_insert(
                table,
                column_names=list(column_names),
                insert_block=payload.encode("utf-8"),
                fmt="JSONEachRow",
            ),
        )

    def count_rows(self, table: str) -> int:
        result = self._run(
            "count_rows",
            lambda: self._client.query(f"SELECT count() FROM {quote_identifier(table)}"),
        )
        rows = result.result_rows
        return int(rows[0][0]) if rows else 0

    def export_csv(self, table: str, column_names: Sequence[str]) -> str:
        projection = ", ".join(quote_identifier(name) for name in column_names)
        query = f"SELECT {projection} FROM {quote_identifier(table)}"
        raw = self._run("export_csv", lambda: self._client.raw_query(query, fmt="CSVWithNames"))
        return raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)

    def close(self) -> None:
        self._client.close()

    def _run(self, operation: str, call: Any) -> Any:
        try:
            return call()
        except OperationalError as exc:
            logger.error("ClickHouse transport failure operation=%s error=%s", operation, exc)
            raise ClickHouseConnectionError(f"ClickHouse connection failed during {operation}.") from exc
        except ClickHouseError as exc:
            logger.error("ClickHouse query failure operation=%s error=%s", operation, exc)
            raise ClickHouseQueryError(f"ClickHouse {operation} failed: {exc}") from exc


def open_table_repository(params: ConnectionParams) -> ClickHouseTableRepository:
    """
    Connect to *params* and wrap the client in a repository.
    """

    return ClickHouseTableRepository(create_clickhouse_client(params))
