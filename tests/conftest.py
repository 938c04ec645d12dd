"""Shared pytest fixtures for odata_query tests."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest
import structlog

from tests.support import StubEntitySet, StubService, build_feed


@pytest.fixture()
def stub_service() -> StubService:
    return StubService({"Products": build_feed([])})


@pytest.fixture()
def products(stub_service: StubService) -> StubEntitySet:
    return StubEntitySet(stub_service)


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
