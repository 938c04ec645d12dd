"""Exceptions raised by the query layer.

Transport level failures are not wrapped: the ``requests`` exception types
are re-exported here so that callers can catch them without importing
``requests`` directly.
"""

from __future__ import annotations

from requests.exceptions import ConnectionError as _RequestsConnectionError
from requests.exceptions import HTTPError as _RequestsHTTPError
from requests.exceptions import RequestException as _RequestsRequestException
from requests.exceptions import Timeout as _RequestsTimeout

__all__ = [
    "ODataQueryError",
    "CriteriaError",
    "QueryError",
    "PaginationLoopError",
    "FeedParseError",
    "ServiceLookupError",
    "RequestException",
    "HTTPError",
    "Timeout",
    "ConnectionError",
]

RequestException = _RequestsRequestException
HTTPError = _RequestsHTTPError
Timeout = _RequestsTimeout
ConnectionError = _RequestsConnectionError


class ODataQueryError(Exception):
    """Base class for errors raised by :mod:`odata_query`."""


class CriteriaError(ODataQueryError, ValueError):
    """A filter criteria is incomplete or uses an unknown operator."""


class QueryError(ODataQueryError, ValueError):
    """Invalid builder input or an unusable ``$count`` response."""


class FeedParseError(ODataQueryError):
    """A page body could not be parsed into a feed document."""


class ServiceLookupError(ODataQueryError, KeyError):
    """No service is registered under the requested name or URL."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class PaginationLoopError(ODataQueryError, RuntimeError):
    """Continuation links kept coming after the configured fetch limit.

    This signals a protocol anomaly (a server cycling through continuation
    links) rather than a transient fault, so it is never retried.
    """

    def __init__(self, *, fetch_count: int, limit: int, last_url: str | None) -> None:
        self.fetch_count = fetch_count
        self.limit = limit
        self.last_url = last_url
        super().__init__(
            f"Possible infinite loop detected: {fetch_count} continuation pages fetched "
            f"(limit {limit}), server still advertises {last_url!r}"
        )
