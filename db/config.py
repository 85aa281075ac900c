"""
Shared environment-driven ClickHouse configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


def _get_env(name: str) -> str | None:
    load_env_files()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _get_int_env(name: str, default: int | None) -> int | None:
    raw_value = _get_env(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    raw_value = _get_env(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_bool_env(name: str, default: bool) -> bool:
    raw_value = _get_env(name)
    if raw_value is None:
        return default
    return raw_value.lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ClickHouseClientSettings:
    """
    Defaults applied when a request omits a connection parameter, plus
    client-wide transport settings.
    """

    default_host: str = "localhost"
    default_port: int | None = None
    default_username: str = "default"
    default_database: str = "default"
    connect_timeout: float = 10.0
    send_receive_timeout: float = 300.0
    async_insert: bool = True


@lru_cache(maxsize=1)
def get_clickhouse_client_settings() -> ClickHouseClientSettings:
    """
    Return cached ClickHouse client settings from environment variables.
    """

    return ClickHouseClientSettings(
        default_host=_get_env("CLICKHOUSE_DEFAULT_HOST") or "localhost",
        default_port=_get_int_env("CLICKHOUSE_DEFAULT_PORT", None),
        default_username=_get_env("CLICKHOUSE_DEFAULT_USERNAME") or "default",
        default_database=_get_env("CLICKHOUSE_DEFAULT_DATABASE") or "default",
        connect_timeout=max(1.0, _get_float_env("CLICKHOUSE_CONNECT_TIMEOUT", 10.0)),
        send_receive_timeout=max(1.0, _get_float_env("CLICKHOUSE_SEND_RECEIVE_TIMEOUT", 300.0)),
        async_insert=_get_bool_env("CLICKHOUSE_ASYNC_INSERT", True),
    )
