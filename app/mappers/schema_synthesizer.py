"""
app/mappers/schema_synthesizer.py

Destination table definitions from confirmed column lists.
"""

from __future__ import annotations

from typing import Mapping, Sequence

from app.domain.transfer import ColumnSpec, StorageType
from db.repositories.table_repository import quote_identifier


class SchemaSynthesizer:
    """
    Renders the column-definition fragment of a ``CREATE TABLE`` statement.

    Table creation is "if absent": an existing table with an incompatible
    schema is not detected here and fails later at insert time.
    """

    def __init__(self, *, default_type: str = StorageType.STRING) -> None:
        self._default_type = default_type

    def column_definitions(self, columns: Sequence[ColumnSpec]) -> str:
        if not columns:
            raise ValueError("At least one column is required to define a table.")
        return ",\n".join(self.render_column(column) for column in columns)

    def render_column(self, column: ColumnSpec) -> str:
        column_type = (column.type or "").strip() or self._default_type
        return f"  {quote_identifier(column.name)} {column_type}"

    @staticmethod
    def columns_from_types(names: Sequence[str], types: Mapping[str, str]) -> list[ColumnSpec]:
        """Build ColumnSpecs from a preview's ``columns``/``types`` pair, keeping order."""
        return [ColumnSpec(name=name, type=types.get(name) or StorageType.STRING) for name in names]
