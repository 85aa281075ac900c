from __future__ import annotations

import math
import unittest

from app.domain.errors import FieldCoercionError, TransferStage
from app.domain.transfer import ColumnSpec, StorageType
from app.services.type_inferencer import is_numeric
from app.validators.row_coercer import (
    RowCoercer,
    parse_float_or_sentinel,
    parse_int_or_sentinel,
)


class TestRowCoercer(unittest.TestCase):
    def setUp(self) -> None:
        self.columns = (
            ColumnSpec("id", "Int64"),
            ColumnSpec("score", StorageType.FLOAT64),
            ColumnSpec("active", StorageType.UINT8),
            ColumnSpec("joined", StorageType.DATE),
            ColumnSpec("name", StorageType.NULLABLE_STRING),
        )
        self.coercer = RowCoercer(self.columns)

    def test_converts_by_column_type(self) -> None:
        row = self.coercer.coerce(
            {"id": "7", "score": "2.5", "active": "true", "joined": "2024-01-05", "name": "Ann"}
        )

        self.assertEqual(row["id"], 7)
        self.assertEqual(row["score"], 2.5)
        self.assertEqual(row["active"], 1)
        self.assertEqual(row["joined"], "2024-01-05")
        self.assertEqual(row["name"], "Ann")

    def test_empty_values_become_null_for_every_type(self) -> None:
        row = self.coercer.coerce({"id": "", "score": "", "active": "", "joined": "", "name": ""})
        self.assertTrue(all(value is None for value in row.values()))

    def test_missing_fields_become_null(self) -> None:
        row = self.coercer.coerce({"id": "1"})
        self.assertEqual(row, {"id": 1, "score": None, "active": None, "joined": None, "name": None})

    def test_unselected_fields_are_dropped(self) -> None:
        row = RowCoercer((ColumnSpec("id", "Int64"),)).coerce({"id": "1", "extra": "x"})
        self.assertEqual(row, {"id": 1})

    def test_output_follows_column_order(self) -> None:
        row = self.coercer.coerce({"name": "Ann", "id": "1"})
        self.assertEqual(list(row), ["id", "score", "active", "joined", "name"])

    def test_boolean_tokens_map_to_integers(self) -> None:
        self.assertEqual(self.coercer.coerce({"active": "false"})["active"], 0)
        self.assertEqual(self.coercer.coerce({"active": "true"})["active"], 1)

    def test_invalid_float_propagates_nan(self) -> None:
        row = self.coercer.coerce({"score": "abc"})
        self.assertTrue(math.isnan(row["score"]))

    def test_invalid_int_propagates_null(self) -> None:
        row = self.coercer.coerce({"id": "abc"})
        self.assertIsNone(row["id"])

    def test_reject_policy_raises_for_invalid_number(self) -> None:
        coercer = RowCoercer(self.columns, invalid_number_policy="reject")

        with self.assertRaises(FieldCoercionError) as ctx:
            coercer.coerce({"score": "abc"})

        self.assertEqual(ctx.exception.stage, TransferStage.COERCE)
        self.assertEqual(ctx.exception.details["column"], "score")
        self.assertEqual(ctx.exception.details["value"], "abc")

    def test_reject_policy_accepts_valid_rows(self) -> None:
        coercer = RowCoercer(self.columns, invalid_number_policy="reject")
        self.assertEqual(coercer.coerce({"id": "3", "score": "1"})["score"], 1.0)

    def test_unknown_policy_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            RowCoercer(self.columns, invalid_number_policy="ignore")

    def test_string_columns_are_not_converted(self) -> None:
        row = RowCoercer((ColumnSpec("code", StorageType.STRING),)).coerce({"code": "007"})
        self.assertEqual(row, {"code": "007"})


class TestNumberParsing(unittest.TestCase):
    def test_int_truncates_decimals(self) -> None:
        self.assertEqual(parse_int_or_sentinel("3.9").value, 3)
        self.assertEqual(parse_int_or_sentinel("-3.9").value, -3)

    def test_int_rejects_non_finite(self) -> None:
        self.assertFalse(parse_int_or_sentinel("inf").valid)
        self.assertFalse(parse_int_or_sentinel("nan").valid)

    def test_int_accepts_native_values(self) -> None:
        self.assertEqual(parse_int_or_sentinel(True).value, 1)
        self.assertEqual(parse_int_or_sentinel(12).value, 12)

    def test_float_parses_scientific_notation(self) -> None:
        self.assertEqual(parse_float_or_sentinel("1e3").value, 1000.0)

    def test_float_rejects_text(self) -> None:
        parsed = parse_float_or_sentinel("twelve")
        self.assertFalse(parsed.valid)
        self.assertIsNone(parsed.value)

    def test_digit_separators_are_invalid(self) -> None:
        self.assertFalse(parse_float_or_sentinel("1_000").valid)
        self.assertFalse(parse_float_or_sentinel("1_000.5").valid)
        self.assertFalse(parse_int_or_sentinel("1_000").valid)

    def test_coercion_agrees_with_inference_on_separators(self) -> None:
        self.assertFalse(is_numeric("1_000"))
        row = RowCoercer((ColumnSpec("n", StorageType.FLOAT64),)).coerce({"n": "1_000"})
        self.assertTrue(math.isnan(row["n"]))

    def test_separators_rejected_under_reject_policy(self) -> None:
        coercer = RowCoercer((ColumnSpec("n", "Int64"),), invalid_number_policy="reject")
        with self.assertRaises(FieldCoercionError):
            coercer.coerce({"n": "1_000"})


if __name__ == "__main__":
    unittest.main()
