"""
app/validators/row_coercer.py

Per-row type coercion for File -> Database transfers.

Coercion is permissive: a non-numeric value in a numeric column does not
abort the row. Numeric parsing goes through parse-or-sentinel helpers and the
configured policy decides what an invalid marker becomes:

    propagate: Float columns store NaN, Int columns store null (the server
               substitutes the column default)
    reject:    FieldCoercionError is raised for the offending field

One exception to the numeric rules: ``true``/``false`` in an Int column become
1/0 rather than an invalid marker, so boolean columns stored as UInt8 keep
their values instead of collapsing to the column default.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from app.domain.errors import FieldCoercionError
from app.domain.transfer import ColumnSpec

BOOLEAN_INTEGER_VALUES: dict[str, int] = {"true": 1, "false": 0}


@dataclass(frozen=True)
class ParsedNumber:
    """
    Result of a parse-or-sentinel conversion.
    """

    value: int | float | None
    valid: bool = True


INVALID_NUMBER = ParsedNumber(value=None, valid=False)


def parse_float_or_sentinel(raw: Any) -> ParsedNumber:
    if isinstance(raw, bool):
        return ParsedNumber(value=float(raw))
    if isinstance(raw, (int, float)):
        return ParsedNumber(value=float(raw))
    text = str(raw).strip()
    # Python accepts digit separators; ClickHouse and the type inferencer do not.
    if "_" in text:
        return INVALID_NUMBER
    try:
        return ParsedNumber(value=float(text))
    except ValueError:
        return INVALID_NUMBER


def parse_int_or_sentinel(raw: Any) -> ParsedNumber:
    """
    Parse an integer. Decimal input is truncated toward zero.

    The boolean tokens ``true``/``false`` map to 1/0 so columns inferred as
    UInt8 keep their meaning. This departs from plain numeric parsing, which
    would treat them as invalid like any other non-numeric text.
    """

    if isinstance(raw, bool):
        return ParsedNumber(value=int(raw))
    if isinstance(raw, int):
        return ParsedNumber(value=raw)

    text = str(raw).strip()
    if text in BOOLEAN_INTEGER_VALUES:
        return ParsedNumber(value=BOOLEAN_INTEGER_VALUES[text])
    if "_" in text:
        return INVALID_NUMBER
    try:
        return ParsedNumber(value=int(text))
    except ValueError:
        pass

    as_float = parse_float_or_sentinel(text)
    if not as_float.valid or not math.isfinite(as_float.value):
        return INVALID_NUMBER
    return ParsedNumber(value=int(as_float.value))


def _column_kind(column_type: str) -> str:
    if "Int" in column_type:
        return "int"
    if "Float" in column_type:
        return "float"
    if "Date" in column_type:
        return "date"
    return "string"


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


class RowCoercer:
    """
    Converts raw rows into values typed per the confirmed column list.

    Pure: no I/O, so it runs at file-read cadence. Raw fields whose name is
    not in the confirmed list are dropped.
    """

    def __init__(
        self,
        columns: Sequence[ColumnSpec],
        *,
        invalid_number_policy: str = "propagate",
    ) -> None:
        if invalid_number_policy not in {"propagate", "reject"}:
            raise ValueError(f"Unknown invalid number policy {invalid_number_policy!r}.")
        self._columns = tuple(columns)
        self._kinds = {column.name: _column_kind(column.type or "") for column in self._columns}
        self._reject_invalid = invalid_number_policy == "reject"

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self._columns]

    def coerce(self, raw_row: Mapping[str, Any]) -> dict[str, Any]:
        coerced: dict[str, Any] = {}
        for column in self._columns:
            raw_value = raw_row.get(column.name)
            if _is_empty(raw_value):
                coerced[column.name] = None
                continue
            coerced[column.name] = self._coerce_value(column, raw_value)
        return coerced

    def _coerce_value(self, column: ColumnSpec, raw_value: Any) -> Any:
        kind = self._kinds[column.name]
        if kind == "int":
            parsed = parse_int_or_sentinel(raw_value)
            if parsed.valid:
                return parsed.value
            return self._invalid(column, raw_value, sentinel=None)
        if kind == "float":
            parsed = parse_float_or_sentinel(raw_value)
            if parsed.valid:
                return parsed.value
            return self._invalid(column, raw_value, sentinel=math.nan)
        # Dates are passed through for the server to parse.
        return raw_value

    def _invalid(self, column: ColumnSpec, raw_value: Any, *, sentinel: float | None) -> float | None:
        if self._reject_invalid:
            raise FieldCoercionError(column=column.name, column_type=column.type, value=str(raw_value))
        return sentinel
