"""
app/services/discovery_service.py

Preview-phase column discovery: table listing, table description and
flat-file column inference.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from app.config import get_transfer_settings
from app.domain.errors import (
    SchemaReferenceError,
    SourceConnectionError,
    TransferConfigurationError,
    TransferStage,
)
from app.domain.transfer import FilePreview, TablePreview
from app.services.flat_file import open_flat_file, positional_column_name
from app.services.type_inferencer import TypeInferencer
from app.services.transfer_service import RepositoryFactory
from db.repositories.errors import ClickHouseConnectionError, ClickHouseRepositoryError
from db.repositories.table_repository import TableRepository, open_table_repository
from db.repositories.types import ConnectionParams

logger = logging.getLogger(__name__)


class DiscoveryService:
    """
    Read-only introspection used before a transfer is confirmed.
    """

    def __init__(
        self,
        *,
        inferencer: TypeInferencer | None = None,
        repository_factory: RepositoryFactory = open_table_repository,
    ) -> None:
        self._inferencer = inferencer or TypeInferencer()
        self._repository_factory = repository_factory

    def list_tables(self, params: ConnectionParams) -> list[str]:
        repository = self._open_repository(params)
        try:
            tables = repository.list_tables()
        except ClickHouseConnectionError as exc:
            raise SourceConnectionError(str(exc), stage=TransferStage.DESCRIBE) from exc
        except ClickHouseRepositoryError as exc:
            raise SourceConnectionError(
                "Failed to fetch tables. Check connection parameters and authentication.",
                stage=TransferStage.DESCRIBE,
            ) from exc
        finally:
            repository.close()

        logger.info("Tables listed endpoint=%s count=%d", params.describe(), len(tables))
        return tables

    def describe_table(self, params: ConnectionParams, table: str) -> TablePreview:
        if not table:
            raise TransferConfigurationError("Table name is required.")

        repository = self._open_repository(params)
        try:
            described = repository.describe_table(table)
        except ClickHouseConnectionError as exc:
            raise SourceConnectionError(str(exc), stage=TransferStage.DESCRIBE) from exc
        except ClickHouseRepositoryError as exc:
            raise SchemaReferenceError(
                "Failed to fetch columns. Verify table exists and you have permissions.",
                stage=TransferStage.DESCRIBE,
                details={"table": table},
            ) from exc
        finally:
            repository.close()

        return TablePreview(
            table=table,
            columns=[column.name for column in described],
            types=TypeInferencer.from_description(described),
        )

    def preview_file(
        self,
        path: str | Path,
        *,
        delimiter: str = ",",
        has_header: bool = True,
        remove_after: bool = False,
    ) -> FilePreview:
        """
        Infer column names and types from the sample window of a flat file.

        Only the window is read. With ``remove_after`` the file is deleted
        once the preview finishes or fails.
        """

        try:
            with open_flat_file(path, delimiter=delimiter, has_header=has_header) as stream:
                window = self._inferencer.sample(stream.rows)
                columns = list(stream.columns)
                if not has_header:
                    width = max([len(columns), *(len(row) for row in window)])
                    columns = [positional_column_name(i) for i in range(width)]
                types = self._inferencer.infer(columns, window)
        finally:
            if remove_after:
                Path(path).unlink(missing_ok=True)

        logger.info(
            "File preview path=%s columns=%d sampled_rows=%d",
            Path(path).name,
            len(columns),
            len(window),
        )
        return FilePreview(columns=columns, types=types, sampled_rows=len(window))

    def _open_repository(self, params: ConnectionParams) -> TableRepository:
        try:
            return self._repository_factory(params)
        except ClickHouseRepositoryError as exc:
            raise SourceConnectionError(
                str(exc),
                stage=TransferStage.CONNECT,
                details={"endpoint": params.describe()},
            ) from exc


@lru_cache(maxsize=1)
def get_discovery_service() -> DiscoveryService:
    """
    Build and cache the discovery service with env-driven settings.
    """

    settings = get_transfer_settings()
    return DiscoveryService(inferencer=TypeInferencer(sample_rows=settings.inference_sample_rows))
