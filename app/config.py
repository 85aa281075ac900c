"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

INVALID_NUMBER_POLICIES = frozenset({"propagate", "reject"})


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_choice_env(name: str, default: str, allowed: frozenset[str]) -> str:
    """
    Read a lower-cased string restricted to *allowed*; unknown values fall back.
    """

    value = _get_str_env(name, default).lower()
    return value if value in allowed else default


@dataclass(frozen=True)
class TransferSettings:
    """
    Runtime settings for preview and transfer jobs.
    """

    batch_size: int = 10_000
    inference_sample_rows: int = 10
    invalid_number_policy: str = "propagate"
    export_dir: str = "exports"
    upload_dir: str = "uploads"


@lru_cache(maxsize=1)
def get_transfer_settings() -> TransferSettings:
    """
    Return cached transfer settings from environment variables.
    """

    return TransferSettings(
        batch_size=max(1, _get_int_env("TRANSFER_BATCH_SIZE", 10_000)),
        inference_sample_rows=max(1, _get_int_env("TRANSFER_INFERENCE_SAMPLE_ROWS", 10)),
        invalid_number_policy=_get_choice_env(
            "TRANSFER_INVALID_NUMBER_POLICY",
            "propagate",
            INVALID_NUMBER_POLICIES,
        ),
        export_dir=_get_str_env("TRANSFER_EXPORT_DIR", "exports"),
        upload_dir=_get_str_env("TRANSFER_UPLOAD_DIR", "uploads"),
    )
