"""
app/services/type_inferencer.py

Column type inference for the preview phase.

Database columns take their type from ``DESCRIBE TABLE``. File columns are
classified from a bounded sample window by an ordered rule list:

    1. any value is literally ``true``/``false``      -> UInt8
    2. any value starts with ``YYYY-MM-DD``           -> Date
    3. every non-empty value is numeric (at least one) -> Float64
    4. any value is empty or absent                   -> Nullable(String)
    5. otherwise                                      -> String

The first rule that matches a column wins. This is first-match, not a
majority vote: one anomalous value in the window decides the column, and
rows beyond the window are never consulted. Integers are not distinguished
from floats.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from itertools import islice
from typing import Any, Callable, Iterable, Mapping, Sequence

from app.domain.transfer import StorageType
from db.repositories.types import DescribedColumn

DEFAULT_SAMPLE_ROWS = 10
BOOLEAN_TOKENS = frozenset({"true", "false"})
DATE_PREFIX_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}")


def _is_empty(value: str | None) -> bool:
    return value is None or value == ""


def is_numeric(value: str | None) -> bool:
    """
    True for decimal and scientific notation literals (and infinities).
    """

    if value is None or not value.strip() or "_" in value:
        return False
    try:
        parsed = float(value)
    except ValueError:
        return False
    return not math.isnan(parsed)


@dataclass(frozen=True)
class InferenceRule:
    """
    One column-level classification rule.
    """

    storage_type: str
    matches: Callable[[Sequence[str | None]], bool]


def _any_boolean(values: Sequence[str | None]) -> bool:
    return any(value in BOOLEAN_TOKENS for value in values)


def _any_date(values: Sequence[str | None]) -> bool:
    return any(value is not None and DATE_PREFIX_PATTERN.match(value) for value in values)


def _all_numeric(values: Sequence[str | None]) -> bool:
    present = [value for value in values if not _is_empty(value)]
    return bool(present) and all(is_numeric(value) for value in present)


def _any_empty(values: Sequence[str | None]) -> bool:
    return any(_is_empty(value) for value in values)


DEFAULT_RULES: tuple[InferenceRule, ...] = (
    InferenceRule(StorageType.UINT8, _any_boolean),
    InferenceRule(StorageType.DATE, _any_date),
    InferenceRule(StorageType.FLOAT64, _all_numeric),
    InferenceRule(StorageType.NULLABLE_STRING, _any_empty),
)


class TypeInferencer:
    """
    Assigns a storage-type tag to each column from a sample window.
    """

    def __init__(
        self,
        *,
        sample_rows: int = DEFAULT_SAMPLE_ROWS,
        rules: Sequence[InferenceRule] = DEFAULT_RULES,
        fallback: str = StorageType.STRING,
    ) -> None:
        self._sample_rows = max(1, sample_rows)
        self._rules = tuple(rules)
        self._fallback = fallback

    @property
    def sample_rows(self) -> int:
        return self._sample_rows

    def sample(self, rows: Iterable[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
        """Take the sample window from the head of *rows* without reading further."""
        return list(islice(rows, self._sample_rows))

    def infer(
        self,
        columns: Sequence[str],
        rows: Iterable[Mapping[str, Any]],
    ) -> dict[str, str]:
        """
        Infer a type for every column in *columns* from the first
        ``sample_rows`` rows. Only the window is consumed from *rows*.
        """

        window = self.sample(rows)
        return {
            column: self.infer_column([_as_text(row.get(column)) for row in window])
            for column in columns
        }

    def infer_column(self, values: Sequence[str | None]) -> str:
        for rule in self._rules:
            if rule.matches(values):
                return rule.storage_type
        return self._fallback

    @staticmethod
    def from_description(described: Sequence[DescribedColumn]) -> dict[str, str]:
        """Database types are authoritative; no inference."""
        return {column.name: column.type for column in described}


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)
