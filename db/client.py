"""
db/client.py

ClickHouse client factory.
"""

from __future__ import annotations

import logging

import clickhouse_connect
from clickhouse_connect.driver.client import Client
from clickhouse_connect.driver.exceptions import ClickHouseError

from db.config import ClickHouseClientSettings, get_clickhouse_client_settings
from db.repositories.errors import ClickHouseConnectionError
from db.repositories.types import ConnectionParams

logger = logging.getLogger(__name__)


def build_client_kwargs(
    params: ConnectionParams,
    settings: ClickHouseClientSettings,
) -> dict[str, object]:
    """
    Translate connection parameters into ``clickhouse_connect.get_client`` kwargs.
    """

    kwargs: dict[str, object] = {
        "host": params.host,
        "username": params.username,
        "database": params.database,
        "secure": params.secure,
        "interface": params.interface,
        "connect_timeout": settings.connect_timeout,
        "send_receive_timeout": settings.send_receive_timeout,
    }
    if params.port:
        kwargs["port"] = params.port
    if params.jwt_token:
        kwargs["access_token"] = params.jwt_token
    else:
        kwargs["password"] = params.password
    if settings.async_insert:
        kwargs["settings"] = {"async_insert": 1, "wait_for_async_insert": 1}
    return kwargs


def create_clickhouse_client(
    params: ConnectionParams,
    settings: ClickHouseClientSettings | None = None,
) -> Client:
    """
    Open a client for one endpoint. Raises ClickHouseConnectionError when the
    server is unreachable or rejects the credentials.
    """

    resolved = settings or get_clickhouse_client_settings()
    try:
        client = clickhouse_connect.get_client(**build_client_kwargs(params, resolved))
    except ClickHouseError as exc:
        logger.error("ClickHouse connection failed endpoint=%s error=%s", params.describe(), exc)
        raise ClickHouseConnectionError(
            "Failed to connect to ClickHouse. Check connection parameters and authentication."
        ) from exc

    logger.debug("ClickHouse client opened endpoint=%s", params.describe())
    return client
