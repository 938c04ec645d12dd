"""Tests for the Typer-based CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import responses
import yaml
from responses import matchers
from typer.testing import CliRunner

from odata_query.cli import app, parse_literal
from tests.support import SERVICE_URL, build_feed


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.mark.unit
@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("null", None),
        ("TRUE", True),
        ("false", False),
        ("10", 10),
        ("2.5", 2.5),
        ("'O''Brien'", "O'Brien"),
        ("'42'", "42"),
        ("Milk", "Milk"),
    ],
)
def test_parse_literal(raw: str, expected: object) -> None:
    assert parse_literal(raw) == expected


@pytest.mark.unit
def test_url_prints_relative_query(runner: CliRunner) -> None:
    result = runner.invoke(
        app,
        [
            "url",
            "Products",
            "--where",
            "Price gt 10",
            "--where",
            "Name eq 'Milk'",
            "--order-by",
            "Name desc",
            "--top",
            "5",
        ],
    )

    assert result.exit_code == 0, result.output
    assert result.stdout.strip() == "Products?$filter=Price gt 10 and Name eq 'Milk'&$orderby=Name desc&$top=5"


@pytest.mark.unit
def test_url_with_service_is_absolute(runner: CliRunner) -> None:
    result = runner.invoke(app, ["url", "Products", "--service-url", SERVICE_URL, "--inline-count"])

    assert result.exit_code == 0, result.output
    assert result.stdout.strip() == f"{SERVICE_URL}/Products?$inlinecount=allpages"


@pytest.mark.unit
def test_url_rejects_malformed_filter(runner: CliRunner) -> None:
    result = runner.invoke(app, ["url", "Products", "--where", "Price 10"])

    assert result.exit_code == 2


@pytest.mark.unit
def test_url_rejects_unknown_operator(runner: CliRunner) -> None:
    result = runner.invoke(app, ["url", "Products", "--where", "Price like 10"])

    assert result.exit_code == 2


@pytest.mark.unit
def test_count_requires_service_url(runner: CliRunner) -> None:
    result = runner.invoke(app, ["count", "Products"])

    assert result.exit_code == 2


@pytest.mark.unit
@responses.activate
def test_count_prints_remote_count(runner: CliRunner) -> None:
    responses.get(
        f"{SERVICE_URL}/Products/$count",
        body="3",
        match=[matchers.query_param_matcher({"$filter": "Price gt 1"})],
    )

    result = runner.invoke(app, ["count", "Products", "-s", SERVICE_URL, "-w", "Price gt 1"])

    assert result.exit_code == 0, result.output
    assert result.stdout.strip() == "3"


@pytest.mark.unit
@responses.activate
def test_count_reports_http_errors(runner: CliRunner) -> None:
    responses.get(f"{SERVICE_URL}/Products/$count", status=503)

    result = runner.invoke(app, ["count", "Products", "-s", SERVICE_URL])

    assert result.exit_code == 1
    assert "Error:" in result.output


@pytest.mark.unit
@responses.activate
def test_fetch_prints_json_lines_across_pages(runner: CliRunner) -> None:
    responses.get(
        f"{SERVICE_URL}/Products",
        body=build_feed([{"ID": "1", "Name": "Bread"}], next_href=f"{SERVICE_URL}/Products?$skiptoken=1"),
        content_type="application/atom+xml",
        match=[matchers.query_param_matcher({"$select": "ID,Name"})],
    )
    responses.get(
        f"{SERVICE_URL}/Products",
        body=build_feed([{"ID": "2", "Name": "Milk"}]),
        content_type="application/atom+xml",
        match=[matchers.query_param_matcher({"$skiptoken": "1"})],
    )

    result = runner.invoke(
        app,
        ["fetch", "Products", "-s", SERVICE_URL, "--select", "ID", "--select", "Name"],
    )

    assert result.exit_code == 0, result.output
    records = [json.loads(line) for line in result.stdout.splitlines()]
    assert [record["Name"] for record in records] == ["Bread", "Milk"]
    assert records[0]["id"] == f"{SERVICE_URL}/Products('1')"


@pytest.mark.unit
@responses.activate
def test_fetch_aborts_when_page_limit_is_exceeded(runner: CliRunner, tmp_path: Path) -> None:
    config_path = tmp_path / "odata.yaml"
    config_path.write_text(yaml.safe_dump({"service_url": SERVICE_URL}), encoding="utf-8")
    responses.get(
        f"{SERVICE_URL}/Products",
        body=build_feed(["A"], next_href=f"{SERVICE_URL}/Products?page=2"),
        content_type="application/atom+xml",
        match=[matchers.query_param_matcher({})],
    )
    responses.get(
        f"{SERVICE_URL}/Products",
        body=build_feed(["B"], next_href=f"{SERVICE_URL}/Products?page=3"),
        content_type="application/atom+xml",
        match=[matchers.query_param_matcher({"page": "2"})],
    )

    result = runner.invoke(
        app,
        ["--config", str(config_path), "--max-page-fetches", "1", "fetch", "Products"],
    )

    assert result.exit_code == 1
    printed = [line for line in result.stdout.splitlines() if line.startswith('{"id"')]
    assert [json.loads(line)["Name"] for line in printed] == ["A", "B"]
    assert len(responses.calls) == 2
