from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.errors import internal_error_detail
from app.config import INVALID_NUMBER_POLICIES


def _validate_env() -> None:
    """
    Validate transfer-related environment variables at startup.

    Raises RuntimeError listing every invalid variable so the operator can
    fix all problems in one restart cycle. Unset variables use defaults.
    """

    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    for name in ("TRANSFER_BATCH_SIZE", "TRANSFER_INFERENCE_SAMPLE_ROWS"):
        raw = os.getenv(name)
        if raw is None:
            continue
        try:
            if int(raw) < 1:
                errors.append(f"{name}={raw!r} must be a positive integer.")
        except ValueError:
            errors.append(f"{name}={raw!r} is not an integer.")

    policy = os.getenv("TRANSFER_INVALID_NUMBER_POLICY")
    if policy is not None and policy.strip().lower() not in INVALID_NUMBER_POLICIES:
        errors.append(
            f"TRANSFER_INVALID_NUMBER_POLICY={policy!r} is not valid. "
            f"Allowed values: {sorted(INVALID_NUMBER_POLICIES)}."
        )

    port = os.getenv("CLICKHOUSE_DEFAULT_PORT")
    if port is not None and not port.strip().isdigit():
        errors.append(f"CLICKHOUSE_DEFAULT_PORT={port!r} is not a port number.")

    if errors:
        raise RuntimeError(
            "Startup validation failed: invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Create the upload and export directories on boot."""
    from app.config import get_transfer_settings

    settings = get_transfer_settings()
    for directory in (settings.upload_dir, settings.export_dir):
        Path(directory).mkdir(parents=True, exist_ok=True)
    logging.getLogger(__name__).info(
        "Storage ready upload_dir=%s export_dir=%s batch_size=%d",
        settings.upload_dir,
        settings.export_dir,
        settings.batch_size,
    )
    yield


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logging.getLogger(__name__).error("Unhandled error path=%s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content={"detail": internal_error_detail(exc, "Internal server error")},
    )


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="ClickHouse Flat File Bridge",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import discovery_router, exports_router, transfer_router

    application.include_router(discovery_router)
    application.include_router(transfer_router)
    application.include_router(exports_router)
    application.add_exception_handler(Exception, _unhandled_error)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
