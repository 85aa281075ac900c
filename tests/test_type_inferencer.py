"""
tests/test_type_inferencer.py

Pytest unit tests for TypeInferencer and file previews.

Coverage
--------
- Rule order: boolean, date, numeric, empty, fallback
- First-match semantics (one anomalous value decides a column)
- Sample window bound
- Database descriptions are passed through untouched
- DiscoveryService.preview_file with and without a header
"""

from __future__ import annotations

import pytest

from app.domain.transfer import StorageType
from app.services.discovery_service import DiscoveryService
from app.services.type_inferencer import TypeInferencer, is_numeric
from db.repositories.types import DescribedColumn


@pytest.fixture()
def inferencer() -> TypeInferencer:
    return TypeInferencer()


# ---------------------------------------------------------------------------
# Column rules
# ---------------------------------------------------------------------------


class TestInferColumn:
    @pytest.mark.parametrize(
        "values, expected",
        [
            (["true", "false"], StorageType.UINT8),
            (["2024-01-05", "2024-02-01"], StorageType.DATE),
            (["2024-01-05T10:00:00"], StorageType.DATE),
            (["1", "2.5", "-3e4"], StorageType.FLOAT64),
            (["a", ""], StorageType.NULLABLE_STRING),
            (["a", None], StorageType.NULLABLE_STRING),
            (["a", "b"], StorageType.STRING),
        ],
    )
    def test_rules(self, inferencer: TypeInferencer, values: list, expected: str) -> None:
        assert inferencer.infer_column(values) == expected

    def test_boolean_rule_wins_over_strings(self, inferencer: TypeInferencer) -> None:
        """One boolean token makes the whole column UInt8."""
        assert inferencer.infer_column(["yes", "no", "true"]) == StorageType.UINT8

    def test_single_date_decides_column(self, inferencer: TypeInferencer) -> None:
        assert inferencer.infer_column(["n/a", "2023-12-31", "hello"]) == StorageType.DATE

    def test_numeric_with_blank_is_float(self, inferencer: TypeInferencer) -> None:
        """Empty values are ignored by the numeric rule, which precedes the empty rule."""
        assert inferencer.infer_column(["1", "", "3"]) == StorageType.FLOAT64

    def test_all_empty_is_nullable_string(self, inferencer: TypeInferencer) -> None:
        assert inferencer.infer_column(["", ""]) == StorageType.NULLABLE_STRING

    def test_integers_are_not_distinguished(self, inferencer: TypeInferencer) -> None:
        assert inferencer.infer_column(["1", "2", "3"]) == StorageType.FLOAT64

    def test_empty_window_falls_back_to_string(self, inferencer: TypeInferencer) -> None:
        assert inferencer.infer_column([]) == StorageType.STRING

    @pytest.mark.parametrize("value", ["nan", "1_000", "", "  ", "abc", None])
    def test_is_numeric_rejects(self, value: str | None) -> None:
        assert is_numeric(value) is False

    @pytest.mark.parametrize("value", ["0", "-1.5", "1e10", " 42 "])
    def test_is_numeric_accepts(self, value: str) -> None:
        assert is_numeric(value) is True


# ---------------------------------------------------------------------------
# Row-level inference
# ---------------------------------------------------------------------------


class TestInferRows:
    def test_mixed_columns(self, inferencer: TypeInferencer) -> None:
        rows = [
            {"id": "1", "name": "Ann", "active": "true"},
            {"id": "2", "name": "Bob", "active": "false"},
        ]
        types = inferencer.infer(["id", "name", "active"], rows)
        assert types == {
            "id": StorageType.FLOAT64,
            "name": StorageType.STRING,
            "active": StorageType.UINT8,
        }

    def test_rows_beyond_window_are_ignored(self, inferencer: TypeInferencer) -> None:
        rows = [{"v": str(i)} for i in range(10)] + [{"v": "not a number"}]
        assert inferencer.infer(["v"], rows) == {"v": StorageType.FLOAT64}

    def test_window_consumes_only_sample_rows(self) -> None:
        inferencer = TypeInferencer(sample_rows=3)
        rows = iter([{"v": str(i)} for i in range(5)])
        inferencer.infer(["v"], rows)
        assert next(rows) == {"v": "3"}

    def test_missing_keys_are_empty(self, inferencer: TypeInferencer) -> None:
        rows = [{"a": "x"}, {"a": "y", "b": "z"}]
        assert inferencer.infer(["b"], rows) == {"b": StorageType.NULLABLE_STRING}

    def test_sample_rows_is_at_least_one(self) -> None:
        assert TypeInferencer(sample_rows=0).sample_rows == 1

    def test_description_types_are_authoritative(self) -> None:
        described = [DescribedColumn("id", "UInt64"), DescribedColumn("ts", "DateTime64(3)")]
        assert TypeInferencer.from_description(described) == {"id": "UInt64", "ts": "DateTime64(3)"}


# ---------------------------------------------------------------------------
# File previews
# ---------------------------------------------------------------------------


class TestPreviewFile:
    def test_header_file(self, make_flat_file) -> None:
        path = make_flat_file("people.csv", "id,name,active\n1,Ann,true\n2,Bob,false\n")
        preview = DiscoveryService().preview_file(path)

        assert preview.columns == ["id", "name", "active"]
        assert preview.types["active"] == StorageType.UINT8
        assert preview.sampled_rows == 2
        assert path.exists()

    def test_headerless_file_uses_positional_names(self, make_flat_file) -> None:
        path = make_flat_file("raw.csv", "1,Ann\n2,Bob,extra\n")
        preview = DiscoveryService().preview_file(path, has_header=False)

        assert preview.columns == ["column_1", "column_2", "column_3"]
        assert preview.types["column_1"] == StorageType.FLOAT64
        assert preview.sampled_rows == 2

    def test_tab_delimiter(self, make_flat_file) -> None:
        path = make_flat_file("data.tsv", "a\tb\n1\tx\n")
        preview = DiscoveryService().preview_file(path, delimiter="\\t")
        assert preview.columns == ["a", "b"]

    def test_remove_after_deletes_file(self, make_flat_file) -> None:
        path = make_flat_file("gone.csv", "a\n1\n")
        DiscoveryService().preview_file(path, remove_after=True)
        assert not path.exists()

    def test_window_follows_inferencer_setting(self, make_flat_file) -> None:
        path = make_flat_file("long.csv", "v\n" + "".join(f"{i}\n" for i in range(50)))
        preview = DiscoveryService(inferencer=TypeInferencer(sample_rows=5)).preview_file(path)
        assert preview.sampled_rows == 5
