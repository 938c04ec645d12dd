"""Lazy iteration over the entities returned by an executed query."""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from odata_query.config import PaginationConfig
from odata_query.exceptions import PaginationLoopError
from odata_query.interfaces import EntityParser, RawResponse, ServiceProtocol
from odata_query.log_events import LogEvents
from odata_query.logger import UnifiedLogger
from odata_query.pagination import next_page_url
from odata_query.xml import response_body

if TYPE_CHECKING:
    from odata_query.query import CompiledQuery, Query

__all__ = ["Result"]


class Result:
    """Entities of an executed :class:`~odata_query.query.Query`.

    Iteration yields entities in document order and follows ``rel="next"``
    continuation links until the server stops advertising one. Each call to
    :func:`iter` starts again from the first page held by the result;
    continuation pages are fetched anew every time and never cached.

    At most ``pagination.max_page_fetches`` continuation pages are fetched
    per iteration. Needing another one raises :class:`PaginationLoopError`,
    which is how a server echoing the same link or cycling between links is
    caught.

    Without an ``entity_parser`` the raw feed entry elements are yielded.
    """

    def __init__(
        self,
        query: Query,
        response: RawResponse,
        *,
        compiled: CompiledQuery | None = None,
        pagination: PaginationConfig | None = None,
        entity_parser: EntityParser | None = None,
    ) -> None:
        self._query = query
        self._response = response
        self._compiled = compiled if compiled is not None else query.compile()
        self._pagination = pagination or PaginationConfig()
        self._entity_parser = entity_parser
        service = query.entity_set.service
        self._log = UnifiedLogger.get(__name__).bind(
            component="result",
            service=getattr(service, "name", service.service_url),
            entity_set=self._compiled.entity_set_name,
        )

    @property
    def query(self) -> Query:
        return self._query

    @property
    def compiled(self) -> CompiledQuery:
        return self._compiled

    @property
    def response(self) -> RawResponse:
        """The first page response."""

        return self._response

    @property
    def pagination(self) -> PaginationConfig:
        return self._pagination

    @property
    def _service(self) -> ServiceProtocol:
        return self._query.entity_set.service

    def __iter__(self) -> Iterator[Any]:
        service = self._service
        limit = self._pagination.max_page_fetches
        response = self._response
        fetch_count = 0

        while True:
            next_url = next_page_url(response_body(response), service.service_url)
            yield from self._process_page(service, response)

            if next_url is None:
                self._log.debug(LogEvents.PAGINATION_ITERATION_FINISHED, pages_fetched=fetch_count)
                return

            if fetch_count >= limit:
                self._log.error(
                    LogEvents.PAGINATION_LOOP_DETECTED,
                    pages_fetched=fetch_count,
                    limit=limit,
                    next_url=next_url,
                )
                raise PaginationLoopError(fetch_count=fetch_count, limit=limit, last_url=next_url)

            self._log.debug(LogEvents.PAGINATION_NEXT_RESOLVED, next_url=next_url)
            with UnifiedLogger.scoped(entity_set=self._compiled.entity_set_name):
                response = service.execute(next_url, {}, True)
            fetch_count += 1
            self._log.info(
                LogEvents.PAGINATION_PAGE_FETCHED,
                url=next_url,
                page_index=fetch_count,
            )

    def _process_page(self, service: ServiceProtocol, response: RawResponse) -> Iterator[Any]:
        options = self._query.entity_set.entity_options
        for element in service.find_entities(response):
            if self._entity_parser is None:
                yield element
            else:
                yield self._entity_parser(element, options)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._compiled.url()!r}>"
