"""
app/services/transfer_service.py

Streaming transfer engine: runs one TransferJob between ClickHouse and a
flat file, in either direction.

    ClickHouse -> Flat File
        One projection query in CSVWithNames; the full result is buffered in
        memory and written to a uniquely named export file. The record count
        is the number of line breaks minus the header.

    Flat File -> ClickHouse
        The destination table is created if absent, then the file is read one
        row at a time, coerced, and accumulated into a RowBatch that is
        flushed whenever it reaches the configured cap, plus once more for
        the trailing partial batch. The final count is a ``count()`` query on
        the destination, so rows written by concurrent writers are included.

A job runs to completion or to its first error. There is no cancellation,
no retry and no transaction: batches already flushed stay in the
destination after a mid-stream failure. An uploaded input file is removed
exactly once when the job ends, whatever the outcome.
"""

from __future__ import annotations

import csv
import io
import logging
import uuid
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Callable

from app.config import TransferSettings, get_transfer_settings
from app.domain.errors import (
    DestinationWriteError,
    SchemaReferenceError,
    SourceConnectionError,
    TransferConfigurationError,
    TransferStage,
)
from app.domain.transfer import (
    ALLOWED_ENDPOINT_KINDS,
    DatabaseEndpoint,
    FileEndpoint,
    RowBatch,
    TransferJob,
    TransferResult,
)
from app.mappers.schema_synthesizer import SchemaSynthesizer
from app.services.flat_file import (
    normalize_delimiter,
    open_flat_file,
    positional_column_index,
    positional_column_name,
)
from app.validators.row_coercer import RowCoercer
from db.repositories.errors import (
    ClickHouseConnectionError,
    ClickHouseRepositoryError,
    FileStorageError,
)
from db.repositories.storage import FileStorageBackend, LocalFileStorage
from db.repositories.table_repository import TableRepository, open_table_repository
from db.repositories.types import ConnectionParams

logger = logging.getLogger(__name__)

RepositoryFactory = Callable[[ConnectionParams], TableRepository]


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


class TransferState:
    IDLE = "idle"
    SOURCE_OPENED = "source_opened"
    READING = "reading"
    FLUSHING = "flushing"
    DONE = "done"
    FAILED = "failed"


_ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    TransferState.IDLE: frozenset({TransferState.SOURCE_OPENED, TransferState.FAILED}),
    TransferState.SOURCE_OPENED: frozenset({TransferState.READING, TransferState.FAILED}),
    TransferState.READING: frozenset({TransferState.FLUSHING, TransferState.FAILED}),
    TransferState.FLUSHING: frozenset({TransferState.DONE, TransferState.FAILED}),
    TransferState.DONE: frozenset(),
    TransferState.FAILED: frozenset(),
}


@dataclass
class TransferRun:
    """
    Lifecycle of one job execution.
    """

    direction: str
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    state: str = TransferState.IDLE
    history: list[str] = field(default_factory=lambda: [TransferState.IDLE])

    def advance(self, new_state: str) -> None:
        if new_state not in _ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal transfer transition {self.state} -> {new_state}.")
        logger.debug("Transfer state run_id=%s %s -> %s", self.run_id, self.state, new_state)
        self.state = new_state
        self.history.append(new_state)

    def fail(self, exc: BaseException) -> None:
        if self.state in (TransferState.DONE, TransferState.FAILED):
            return
        failed_in = self.state
        self.advance(TransferState.FAILED)
        logger.error(
            "Transfer failed run_id=%s direction=%s state=%s stage=%s error=%s",
            self.run_id,
            self.direction,
            failed_in,
            getattr(exc, "stage", "unknown"),
            exc,
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def count_exported_records(csv_text: str) -> int:
    """
    Record count of a CSVWithNames payload: line breaks minus the header.

    Quoted fields containing line breaks are counted as extra records.
    """

    if not csv_text:
        return 0
    lines = csv_text.count("\n")
    if not csv_text.endswith("\n"):
        lines += 1
    return max(0, lines - 1)


def _header_line(column_names: list[str]) -> str:
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(column_names)
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class TransferService:
    """
    Runs transfer jobs. Holds no per-job state, so one instance serves
    concurrent requests.
    """

    def __init__(
        self,
        *,
        settings: TransferSettings,
        export_storage: FileStorageBackend,
        repository_factory: RepositoryFactory = open_table_repository,
        synthesizer: SchemaSynthesizer | None = None,
        export_url_prefix: str = "/exports",
    ) -> None:
        self._settings = settings
        self._export_storage = export_storage
        self._repository_factory = repository_factory
        self._synthesizer = synthesizer or SchemaSynthesizer()
        self._export_url_prefix = export_url_prefix.rstrip("/")

    def run(self, job: TransferJob) -> TransferResult:
        """
        Run *job* to completion and return its result.

        Raises a TransferError subclass naming the failing stage. Invalid
        jobs fail before any connection or file is opened.
        """

        direction = f"{job.source.kind} -> {job.target.kind}"
        run = TransferRun(direction=direction)
        logger.info(
            "Transfer started run_id=%s direction=%s columns=%d",
            run.run_id,
            direction,
            len(job.columns),
        )
        try:
            self.validate(job)
            if isinstance(job.source, DatabaseEndpoint) and isinstance(job.target, FileEndpoint):
                result = self._export_table(job, job.source, run)
            else:
                result = self._import_file(job, job.source, job.target, run)
        except Exception as exc:
            run.fail(exc)
            raise
        finally:
            self._remove_temporary_input(job)

        logger.info(
            "Transfer completed run_id=%s direction=%s record_count=%d",
            run.run_id,
            direction,
            result.record_count,
        )
        return result

    def validate(self, job: TransferJob) -> None:
        """
        Reject jobs that cannot run; performs no I/O.
        """

        kinds = (job.source.kind, job.target.kind)
        if not set(kinds) <= ALLOWED_ENDPOINT_KINDS:
            raise TransferConfigurationError(f"Unknown endpoint kind in {kinds!r}.")
        supported = (
            isinstance(job.source, DatabaseEndpoint) and isinstance(job.target, FileEndpoint)
        ) or (isinstance(job.source, FileEndpoint) and isinstance(job.target, DatabaseEndpoint))
        if not supported:
            raise TransferConfigurationError(
                "Unsupported source/target combination.",
                details={"source_type": job.source.kind, "target_type": job.target.kind},
            )
        if not job.columns:
            raise TransferConfigurationError("At least one column must be selected.")

        names = job.column_names
        if any(not name for name in names):
            raise TransferConfigurationError("Column names must not be empty.")
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise TransferConfigurationError(
                "Column names must be unique within a transfer.",
                details={"duplicates": duplicates},
            )

        if isinstance(job.source, DatabaseEndpoint) and not job.source.table:
            raise TransferConfigurationError("Source table name is required.")
        if isinstance(job.target, DatabaseEndpoint) and not job.target.table:
            raise TransferConfigurationError("Target table name is required.")
        if isinstance(job.source, FileEndpoint):
            if job.source.path is None:
                raise TransferConfigurationError("File is required.")
            normalize_delimiter(job.source.delimiter)

    # ------------------------------------------------------------------
    # ClickHouse -> Flat File
    # ------------------------------------------------------------------

    def _export_table(
        self,
        job: TransferJob,
        source: DatabaseEndpoint,
        run: TransferRun,
    ) -> TransferResult:
        repository = self._open_repository(source.connection)
        try:
            run.advance(TransferState.SOURCE_OPENED)
            run.advance(TransferState.READING)
            try:
                csv_text = repository.export_csv(source.table, job.column_names)
            except ClickHouseConnectionError as exc:
                raise SourceConnectionError(str(exc), stage=TransferStage.EXPORT) from exc
            except ClickHouseRepositoryError as exc:
                raise SchemaReferenceError(
                    str(exc),
                    stage=TransferStage.EXPORT,
                    details={"table": source.table, "columns": job.column_names},
                ) from exc
        finally:
            repository.close()

        if not csv_text:
            csv_text = _header_line(job.column_names)

        run.advance(TransferState.FLUSHING)
        try:
            stored = self._export_storage.write_export(content=csv_text)
        except FileStorageError as exc:
            raise DestinationWriteError(str(exc), stage=TransferStage.WRITE_FILE) from exc
        record_count = count_exported_records(csv_text)
        run.advance(TransferState.DONE)

        return TransferResult(
            record_count=record_count,
            message=f"Data exported to {stored.file_name}",
            download_url=f"{self._export_url_prefix}/{stored.file_name}",
            file_name=stored.file_name,
        )

    # ------------------------------------------------------------------
    # Flat File -> ClickHouse
    # ------------------------------------------------------------------

    def _import_file(
        self,
        job: TransferJob,
        source: FileEndpoint,
        target: DatabaseEndpoint,
        run: TransferRun,
    ) -> TransferResult:
        table = target.table
        column_names = job.column_names
        coercer = RowCoercer(
            job.columns,
            invalid_number_policy=self._settings.invalid_number_policy,
        )

        with open_flat_file(
            source.path,
            delimiter=source.delimiter,
            has_header=source.has_header,
        ) as stream:
            run.advance(TransferState.SOURCE_OPENED)
            self._check_file_columns(column_names, stream.columns, source.has_header)

            repository = self._open_repository(target.connection)
            try:
                self._create_table(repository, table, job)
                run.advance(TransferState.READING)

                batch = RowBatch(capacity=self._settings.batch_size)
                batches_flushed = 0
                for raw_row in stream.rows:
                    batch.add(coercer.coerce(raw_row))
                    if batch.is_full:
                        batches_flushed += 1
                        self._flush(repository, table, column_names, batch, batches_flushed)

                run.advance(TransferState.FLUSHING)
                if len(batch) > 0:
                    batches_flushed += 1
                    self._flush(repository, table, column_names, batch, batches_flushed)

                record_count = self._count(repository, table)
            finally:
                repository.close()

        run.advance(TransferState.DONE)
        logger.info(
            "File import finished run_id=%s table=%s batches=%d destination_rows=%d",
            run.run_id,
            table,
            batches_flushed,
            record_count,
        )
        return TransferResult(
            record_count=record_count,
            message=f"Data imported to ClickHouse table {table}",
            table_name=table,
        )

    def _check_file_columns(
        self,
        selected: list[str],
        file_columns: list[str],
        has_header: bool,
    ) -> None:
        # Header-less rows vary in width; any column_N is mappable and
        # fields a row lacks are coerced to null.
        if has_header:
            available = set(file_columns)
            missing = [name for name in selected if name not in available]
            message = "Selected columns are missing from the file header."
        else:
            missing = [name for name in selected if positional_column_index(name) is None]
            message = (
                "Selected columns are not positionally mappable; header-less files "
                f"expose {positional_column_name(0)}, {positional_column_name(1)} and so on."
            )
        if not missing:
            return
        raise SchemaReferenceError(
            message,
            stage=TransferStage.READ,
            details={"missing_columns": missing, "file_columns": file_columns},
        )

    def _create_table(self, repository: TableRepository, table: str, job: TransferJob) -> None:
        definitions = self._synthesizer.column_definitions(job.columns)
        try:
            repository.create_table(table, definitions)
        except ClickHouseConnectionError as exc:
            raise SourceConnectionError(str(exc), stage=TransferStage.CREATE_TABLE) from exc
        except ClickHouseRepositoryError as exc:
            raise DestinationWriteError(
                str(exc),
                stage=TransferStage.CREATE_TABLE,
                details={"table": table},
            ) from exc

    def _flush(
        self,
        repository: TableRepository,
        table: str,
        column_names: list[str],
        batch: RowBatch,
        batch_number: int,
    ) -> None:
        rows = batch.drain()
        try:
            repository.insert_batch(table, column_names, rows)
        except ClickHouseRepositoryError as exc:
            raise DestinationWriteError(
                str(exc),
                stage=TransferStage.FLUSH,
                details={"table": table, "batch_number": batch_number, "batch_rows": len(rows)},
            ) from exc
        logger.debug("Batch flushed table=%s batch=%d rows=%d", table, batch_number, len(rows))

    def _count(self, repository: TableRepository, table: str) -> int:
        try:
            return repository.count_rows(table)
        except ClickHouseConnectionError as exc:
            raise SourceConnectionError(str(exc), stage=TransferStage.COUNT) from exc
        except ClickHouseRepositoryError as exc:
            raise SchemaReferenceError(str(exc), stage=TransferStage.COUNT) from exc

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def _open_repository(self, params: ConnectionParams) -> TableRepository:
        try:
            return self._repository_factory(params)
        except ClickHouseRepositoryError as exc:
            raise SourceConnectionError(
                str(exc),
                stage=TransferStage.CONNECT,
                details={"endpoint": params.describe()},
            ) from exc

    def _remove_temporary_input(self, job: TransferJob) -> None:
        source = job.source
        if not isinstance(source, FileEndpoint) or not source.temporary or source.path is None:
            return
        try:
            Path(source.path).unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Failed to remove uploaded input path=%s error=%s", source.path, exc)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_transfer_service() -> TransferService:
    """
    Build and cache the transfer service with env-driven settings.
    """

    settings = get_transfer_settings()
    return TransferService(
        settings=settings,
        export_storage=LocalFileStorage(settings.export_dir),
    )
