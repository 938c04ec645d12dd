"""Command-line interface for building and running entity set queries."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import typer
from lxml import etree

from odata_query.config import ClientConfig, PaginationConfig, load_config
from odata_query.criteria import Criteria
from odata_query.exceptions import ODataQueryError, RequestException
from odata_query.log_events import LogEvents
from odata_query.logger import UnifiedLogger, configure_logging
from odata_query.query import Query
from odata_query.service import Service

__all__ = ["app", "parse_where", "parse_literal", "run"]

app = typer.Typer(
    name="odata-query",
    help="Build, count and fetch entity set queries against a feed-based data service.",
    add_completion=False,
)

_WHERE_OPTION = typer.Option(
    [],
    "--where",
    "-w",
    help="Filter as 'PROPERTY OPERATOR VALUE', e.g. \"Price gt 10\". Repeatable; combined with 'and'.",
)
_ORDER_BY_OPTION = typer.Option([], "--order-by", help="Order by property ('Name desc'). Repeatable.")
_EXPAND_OPTION = typer.Option([], "--expand", help="Association to expand. Repeatable.")
_SELECT_OPTION = typer.Option([], "--select", help="Property to select. Repeatable.")
_SKIP_OPTION = typer.Option(0, "--skip", min=0, help="Number of entities to skip.")
_TOP_OPTION = typer.Option(0, "--top", min=0, help="Maximum number of entities to return.")
_SEARCH_OPTION = typer.Option(None, "--search", help="Search term.")
_INLINE_COUNT_OPTION = typer.Option(False, "--inline-count", help="Request $inlinecount=allpages.")
_SERVICE_URL_OPTION = typer.Option(None, "--service-url", "-s", help="Base URL of the service.")


@dataclass(slots=True)
class _State:
    config: ClientConfig


def parse_literal(raw: str) -> Any:
    """Interpret a command-line filter value.

    ``null``, ``true`` and ``false`` map to their Python values, quoted text to a
    string, numbers to ``int``/``float``; anything else stays a bare string.
    """

    value = raw.strip()
    lowered = value.lower()
    if lowered == "null":
        return None
    if lowered in {"true", "false"}:
        return lowered == "true"
    if len(value) >= 2 and value[0] == value[-1] == "'":
        return value[1:-1].replace("''", "'")
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value


def parse_where(query: Query, expression: str) -> Criteria:
    parts = expression.strip().split(None, 2)
    if len(parts) != 3:
        raise typer.BadParameter(
            f"Expected 'PROPERTY OPERATOR VALUE', got {expression!r}",
            param_hint="--where",
        )
    name, operator, raw_value = parts
    try:
        return query[name].compare(operator, parse_literal(raw_value))
    except ODataQueryError as exc:
        raise typer.BadParameter(str(exc), param_hint="--where") from exc


def _build_query(
    ctx: typer.Context,
    *,
    entity_set: str,
    service_url: str | None,
    where: list[str],
    order_by: list[str],
    expand: list[str],
    select: list[str],
    skip: int,
    top: int,
    search: str | None,
    inline_count: bool,
    require_url: bool = True,
) -> tuple[Service, Query]:
    state: _State = ctx.obj
    url = service_url or state.config.service_url
    if url is None:
        if require_url:
            raise typer.BadParameter("A service URL is required", param_hint="--service-url")
        url = "http://localhost"
    service = Service(url, config=state.config.http, pagination=state.config.pagination)
    query = service[entity_set].query()
    for expression in where:
        query.where(parse_where(query, expression))
    query.order_by(*order_by).expand(*expand).select(*select)
    query.skip(skip).limit(top).search_term(search)
    if inline_count:
        query.include_count()
    return service, query


def _fail(exc: Exception) -> typer.Exit:
    UnifiedLogger.get(__name__).bind(component="cli").error(LogEvents.CLI_RUN_ERROR, error=str(exc))
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a YAML configuration file.",
        exists=True,
        dir_okay=False,
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Override the configured log level."),
    max_page_fetches: int | None = typer.Option(
        None,
        "--max-page-fetches",
        min=1,
        help="Abort after this many continuation pages.",
    ),
) -> None:
    """Load configuration and set up logging."""

    try:
        client_config = load_config(config)
    except (OSError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--config") from exc
    if max_page_fetches is not None:
        client_config = client_config.model_copy(
            update={"pagination": PaginationConfig(max_page_fetches=max_page_fetches)}
        )
    log_config = client_config.log.to_log_config()
    if log_level is not None:
        log_config = client_config.log.model_copy(update={"level": log_level}).to_log_config()
    configure_logging(log_config)
    ctx.obj = _State(config=client_config)


@app.command(name="url")
def url_command(
    ctx: typer.Context,
    entity_set: str = typer.Argument(..., help="Entity set name."),
    service_url: str | None = _SERVICE_URL_OPTION,
    where: list[str] = _WHERE_OPTION,
    order_by: list[str] = _ORDER_BY_OPTION,
    expand: list[str] = _EXPAND_OPTION,
    select: list[str] = _SELECT_OPTION,
    skip: int = _SKIP_OPTION,
    top: int = _TOP_OPTION,
    search: str | None = _SEARCH_OPTION,
    inline_count: bool = _INLINE_COUNT_OPTION,
) -> None:
    """Print the query string, absolute when a service URL is known."""

    service, query = _build_query(
        ctx,
        entity_set=entity_set,
        service_url=service_url,
        where=where,
        order_by=order_by,
        expand=expand,
        select=select,
        skip=skip,
        top=top,
        search=search,
        inline_count=inline_count,
        require_url=False,
    )
    with service:
        if service_url or ctx.obj.config.service_url:
            typer.echo(service.resolve_url(query.to_s()))
        else:
            typer.echo(query.to_s())


@app.command(name="count")
def count_command(
    ctx: typer.Context,
    entity_set: str = typer.Argument(..., help="Entity set name."),
    service_url: str | None = _SERVICE_URL_OPTION,
    where: list[str] = _WHERE_OPTION,
    search: str | None = _SEARCH_OPTION,
) -> None:
    """Print the number of entities matching the filters."""

    service, query = _build_query(
        ctx,
        entity_set=entity_set,
        service_url=service_url,
        where=where,
        order_by=[],
        expand=[],
        select=[],
        skip=0,
        top=0,
        search=search,
        inline_count=False,
    )
    with service:
        try:
            typer.echo(str(query.count()))
        except (ODataQueryError, RequestException, etree.XMLSyntaxError) as exc:
            raise _fail(exc) from exc


@app.command(name="fetch")
def fetch_command(
    ctx: typer.Context,
    entity_set: str = typer.Argument(..., help="Entity set name."),
    service_url: str | None = _SERVICE_URL_OPTION,
    where: list[str] = _WHERE_OPTION,
    order_by: list[str] = _ORDER_BY_OPTION,
    expand: list[str] = _EXPAND_OPTION,
    select: list[str] = _SELECT_OPTION,
    skip: int = _SKIP_OPTION,
    top: int = _TOP_OPTION,
    search: str | None = _SEARCH_OPTION,
    inline_count: bool = _INLINE_COUNT_OPTION,
) -> None:
    """Fetch every matching entity and print one JSON object per line."""

    service, query = _build_query(
        ctx,
        entity_set=entity_set,
        service_url=service_url,
        where=where,
        order_by=order_by,
        expand=expand,
        select=select,
        skip=skip,
        top=top,
        search=search,
        inline_count=inline_count,
    )
    with service:
        try:
            for entity in query.execute():
                record = {"id": entity.entity_id, **entity.to_dict()}
                typer.echo(json.dumps(record, ensure_ascii=False, sort_keys=False))
        except (ODataQueryError, RequestException, etree.XMLSyntaxError) as exc:
            raise _fail(exc) from exc


def run() -> None:
    """Console script entry point."""

    app()


if __name__ == "__main__":
    run()
