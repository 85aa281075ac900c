"""
tests/test_config.py

Environment-driven settings and startup validation.
"""

from __future__ import annotations

import pytest

from app.config import get_transfer_settings
from app.main import _validate_env
from db.config import get_clickhouse_client_settings


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_transfer_settings.cache_clear()
    get_clickhouse_client_settings.cache_clear()
    yield
    get_transfer_settings.cache_clear()
    get_clickhouse_client_settings.cache_clear()


class TestTransferSettings:
    def test_reads_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("TRANSFER_BATCH_SIZE", "500")
        monkeypatch.setenv("TRANSFER_INFERENCE_SAMPLE_ROWS", "25")
        monkeypatch.setenv("TRANSFER_INVALID_NUMBER_POLICY", "REJECT")
        monkeypatch.setenv("TRANSFER_EXPORT_DIR", "/tmp/out")

        settings = get_transfer_settings()

        assert settings.batch_size == 500
        assert settings.inference_sample_rows == 25
        assert settings.invalid_number_policy == "reject"
        assert settings.export_dir == "/tmp/out"

    def test_batch_size_floor(self, monkeypatch) -> None:
        monkeypatch.setenv("TRANSFER_BATCH_SIZE", "0")
        assert get_transfer_settings().batch_size == 1

    def test_unknown_policy_falls_back(self, monkeypatch) -> None:
        monkeypatch.setenv("TRANSFER_INVALID_NUMBER_POLICY", "ignore")
        assert get_transfer_settings().invalid_number_policy == "propagate"


class TestClickHouseClientSettings:
    def test_defaults(self, monkeypatch) -> None:
        for name in ("CLICKHOUSE_DEFAULT_HOST", "CLICKHOUSE_DEFAULT_PORT", "CLICKHOUSE_ASYNC_INSERT"):
            monkeypatch.delenv(name, raising=False)

        settings = get_clickhouse_client_settings()

        assert settings.default_host == "localhost"
        assert settings.default_port is None
        assert settings.async_insert is True

    def test_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("CLICKHOUSE_DEFAULT_HOST", "ch.internal")
        monkeypatch.setenv("CLICKHOUSE_DEFAULT_PORT", "8443")
        monkeypatch.setenv("CLICKHOUSE_ASYNC_INSERT", "off")

        settings = get_clickhouse_client_settings()

        assert settings.default_host == "ch.internal"
        assert settings.default_port == 8443
        assert settings.async_insert is False


class TestStartupValidation:
    def test_reports_every_invalid_variable(self, monkeypatch) -> None:
        monkeypatch.setenv("TRANSFER_BATCH_SIZE", "lots")
        monkeypatch.setenv("TRANSFER_INVALID_NUMBER_POLICY", "ignore")
        monkeypatch.setenv("CLICKHOUSE_DEFAULT_PORT", "http")

        with pytest.raises(RuntimeError) as exc_info:
            _validate_env()

        message = str(exc_info.value)
        assert "TRANSFER_BATCH_SIZE" in message
        assert "TRANSFER_INVALID_NUMBER_POLICY" in message
        assert "CLICKHOUSE_DEFAULT_PORT" in message

    def test_accepts_valid_values(self, monkeypatch) -> None:
        monkeypatch.setenv("TRANSFER_BATCH_SIZE", "100")
        monkeypatch.setenv("TRANSFER_INVALID_NUMBER_POLICY", "reject")
        _validate_env()
