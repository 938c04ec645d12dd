"""Configuration models for services, pagination and logging."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, PositiveInt

from odata_query.logger import LogConfig, LogFormat

__all__ = [
    "DEFAULT_MAX_PAGE_FETCHES",
    "MAX_PAGE_FETCHES_ENV",
    "PaginationConfig",
    "HTTPClientConfig",
    "LogSettings",
    "ClientConfig",
    "load_config",
]

DEFAULT_MAX_PAGE_FETCHES = 100
MAX_PAGE_FETCHES_ENV = "ODATA_QUERY_MAX_PAGE_FETCHES"


class PaginationConfig(BaseModel):
    """Limits applied while following continuation links."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_page_fetches: PositiveInt = Field(
        default=DEFAULT_MAX_PAGE_FETCHES,
        description=(
            "Maximum number of continuation pages fetched after the first page "
            "before iteration aborts with PaginationLoopError."
        ),
    )


class HTTPClientConfig(BaseModel):
    """Transport settings for :class:`~odata_query.service.Service`."""

    model_config = ConfigDict(extra="forbid")

    timeout_sec: PositiveFloat = Field(
        default=60.0, description="Socket read timeout in seconds."
    )
    connect_timeout_sec: PositiveFloat = Field(
        default=15.0,
        description="Connection timeout in seconds.",
    )
    headers: Mapping[str, str] = Field(
        default_factory=lambda: {
            "User-Agent": "odata-query/1.0",
            "Accept": "application/atom+xml,application/xml",
            "Accept-Encoding": "gzip, deflate",
        },
        description="Default headers that will be sent with each request.",
    )
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates.")

    @property
    def timeout(self) -> tuple[float, float]:
        connect = min(self.connect_timeout_sec, self.timeout_sec)
        return (connect, self.timeout_sec)


class LogSettings(BaseModel):
    """Logging section of the configuration file."""

    model_config = ConfigDict(extra="forbid")

    level: str = "WARNING"
    format: LogFormat = LogFormat.JSON

    def to_log_config(self) -> LogConfig:
        return LogConfig(level=self.level, format=self.format)


class ClientConfig(BaseModel):
    """Top-level configuration."""

    model_config = ConfigDict(extra="forbid")

    service_url: str | None = Field(
        default=None, description="Base URL of the default service."
    )
    http: HTTPClientConfig = Field(default_factory=HTTPClientConfig)
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)
    log: LogSettings = Field(default_factory=LogSettings)


def _apply_env_overrides(payload: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    raw_limit = environ.get(MAX_PAGE_FETCHES_ENV)
    if raw_limit is None or not raw_limit.strip():
        return payload
    pagination = dict(payload.get("pagination") or {})
    pagination["max_page_fetches"] = raw_limit.strip()
    payload["pagination"] = pagination
    return payload


def load_config(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> ClientConfig:
    """Load and validate a YAML configuration file.

    Without ``path`` the defaults are used. ``ODATA_QUERY_MAX_PAGE_FETCHES``
    in the environment overrides the pagination cap either way.
    """

    payload: dict[str, Any] = {}
    if path is not None:
        with Path(path).expanduser().open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle)
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, Mapping):
            raise ValueError(f"Configuration root must be a mapping, got {type(loaded).__name__}")
        payload = dict(loaded)

    payload = _apply_env_overrides(payload, os.environ if environ is None else environ)
    return ClientConfig.model_validate(payload)
