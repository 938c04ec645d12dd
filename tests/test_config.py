"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from odata_query.config import (
    DEFAULT_MAX_PAGE_FETCHES,
    MAX_PAGE_FETCHES_ENV,
    ClientConfig,
    HTTPClientConfig,
    PaginationConfig,
    load_config,
)
from odata_query.logger import LogFormat


@pytest.mark.unit
def test_defaults_without_file() -> None:
    config = load_config(environ={})

    assert isinstance(config, ClientConfig)
    assert config.pagination.max_page_fetches == DEFAULT_MAX_PAGE_FETCHES == 100
    assert config.service_url is None
    assert config.http.timeout == (15.0, 60.0)


@pytest.mark.unit
def test_yaml_file_is_validated(tmp_path: Path) -> None:
    path = tmp_path / "odata.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "service_url": "https://example.org/Catalog.svc",
                "http": {"timeout_sec": 5, "connect_timeout_sec": 10},
                "pagination": {"max_page_fetches": 250},
                "log": {"level": "DEBUG", "format": "json"},
            }
        ),
        encoding="utf-8",
    )

    config = load_config(path, environ={})

    assert config.service_url == "https://example.org/Catalog.svc"
    assert config.http.timeout == (5.0, 5.0)
    assert config.pagination.max_page_fetches == 250
    assert config.log.format is LogFormat.JSON
    assert config.log.to_log_config().level == "DEBUG"


@pytest.mark.unit
def test_environment_overrides_page_limit(tmp_path: Path) -> None:
    path = tmp_path / "odata.yaml"
    path.write_text("pagination:\n  max_page_fetches: 7\n", encoding="utf-8")

    config = load_config(path, environ={MAX_PAGE_FETCHES_ENV: "500"})

    assert config.pagination.max_page_fetches == 500


@pytest.mark.unit
def test_empty_file_uses_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    assert load_config(path, environ={}).pagination.max_page_fetches == 100


@pytest.mark.unit
def test_unknown_keys_are_rejected(tmp_path: Path) -> None:
    path = tmp_path / "odata.yaml"
    path.write_text("pagination:\n  max_pages: 7\n", encoding="utf-8")

    with pytest.raises(ValidationError):
        load_config(path, environ={})


@pytest.mark.unit
def test_non_mapping_root_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "odata.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ValueError, match="must be a mapping"):
        load_config(path, environ={})


@pytest.mark.unit
@pytest.mark.parametrize("value", [0, -5])
def test_page_limit_must_be_positive(value: int) -> None:
    with pytest.raises(ValidationError):
        PaginationConfig(max_page_fetches=value)


@pytest.mark.unit
def test_default_headers_ask_for_atom() -> None:
    assert "application/atom+xml" in HTTPClientConfig().headers["Accept"]
