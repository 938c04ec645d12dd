"""HTTP service executing query strings and a registry of opened services."""

from __future__ import annotations

import time
from collections.abc import Iterator, Mapping
from types import TracebackType
from typing import Any
from urllib.parse import urlparse

import requests
from requests import Response

from odata_query.config import HTTPClientConfig, PaginationConfig
from odata_query.entity import EntitySet, Property
from odata_query.exceptions import RequestException, ServiceLookupError
from odata_query.interfaces import RawResponse
from odata_query.log_events import LogEvents
from odata_query.logger import UnifiedLogger
from odata_query.xml import find_all, parse_feed, response_body

__all__ = ["Service", "ServiceRegistry", "service_registry"]


class Service:
    """Remote data service reachable under ``service_url``.

    Query strings handed to :meth:`execute` are resolved against the service
    URL. Non-success responses raise :class:`requests.HTTPError`; transport
    failures are logged and re-raised unchanged.
    """

    def __init__(
        self,
        service_url: str,
        *,
        name: str | None = None,
        config: HTTPClientConfig | None = None,
        pagination: PaginationConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        if not service_url:
            raise ValueError("service_url must not be empty")
        self._service_url = service_url.rstrip("/")
        self.name = name or urlparse(self._service_url).netloc or self._service_url
        self.config = config or HTTPClientConfig()
        self.pagination = pagination or PaginationConfig()
        self._session = session or requests.Session()
        self._session.headers.update(dict(self.config.headers))
        self._entity_sets: dict[str, EntitySet] = {}
        self._log = UnifiedLogger.get(__name__).bind(component="service", service=self.name)

    @classmethod
    def open(
        cls,
        service_url: str,
        *,
        registry: ServiceRegistry | None = None,
        **kwargs: Any,
    ) -> Service:
        """Create a service and record it in ``registry`` (the default one if omitted)."""

        service = cls(service_url, **kwargs)
        (registry if registry is not None else service_registry).add(service)
        return service

    @property
    def service_url(self) -> str:
        return self._service_url

    # ------------------------------------------------------------------
    # Entity sets
    # ------------------------------------------------------------------

    def add_entity_set(
        self,
        name: str,
        *,
        type_name: str | None = None,
        namespace: str | None = None,
        properties: tuple[Property | str, ...] | list[Property | str] = (),
        pagination: PaginationConfig | None = None,
    ) -> EntitySet:
        entity_set = EntitySet(
            name,
            self,
            type_name=type_name,
            namespace=namespace,
            properties=properties,
            pagination=pagination,
        )
        self._entity_sets[name] = entity_set
        return entity_set

    @property
    def entity_sets(self) -> Mapping[str, EntitySet]:
        return dict(self._entity_sets)

    def __getitem__(self, name: str) -> EntitySet:
        """Return the named entity set, creating an undeclared one on first use."""

        entity_set = self._entity_sets.get(name)
        if entity_set is None:
            entity_set = self.add_entity_set(name)
        return entity_set

    # ------------------------------------------------------------------
    # Request execution
    # ------------------------------------------------------------------

    def resolve_url(self, url_chunk: str, *, is_raw_url: bool = False) -> str:
        """Return the absolute URL for ``url_chunk``.

        Raw URLs (continuation links) that are already absolute are used
        verbatim; everything else is appended to the service URL.
        """

        if is_raw_url and url_chunk.startswith(("http://", "https://")):
            return url_chunk
        return f"{self._service_url}/{url_chunk.lstrip('/')}"

    def execute(
        self,
        url_chunk: str,
        options: Mapping[str, Any] | None = None,
        is_raw_url: bool = False,
    ) -> Response:
        """Send a request for ``url_chunk`` and return the successful response.

        ``options`` may carry ``method``, ``headers`` and ``params``.
        """

        opts = dict(options or {})
        method = str(opts.get("method", "GET")).upper()
        url = self.resolve_url(url_chunk, is_raw_url=is_raw_url)
        self._log.debug(LogEvents.HTTP_REQUEST_SENT, method=method, url=url, raw=is_raw_url)

        start = time.perf_counter()
        try:
            response = self._session.request(
                method,
                url,
                params=opts.get("params"),
                headers=opts.get("headers"),
                timeout=self.config.timeout,
                verify=self.config.verify_ssl,
            )
            response.raise_for_status()
        except RequestException as exc:
            self._log.error(
                LogEvents.HTTP_REQUEST_FAILED,
                method=method,
                url=url,
                error=str(exc),
            )
            raise

        self._log.info(
            LogEvents.HTTP_REQUEST_COMPLETED,
            method=method,
            url=url,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 3),
        )
        return response

    def find_entities(self, response: RawResponse) -> list[Any]:
        """Return the ``<entry>`` elements of a feed page in document order."""

        root = parse_feed(response_body(response))
        if root.tag == "entry":
            return [root]
        return find_all(root, "/feed/entry")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> Service:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} {self._service_url!r}>"


class ServiceRegistry:
    """Index of opened services by name and by URL."""

    def __init__(self) -> None:
        self._by_name: dict[str, Service] = {}
        self._by_url: dict[str, Service] = {}
        self._log = UnifiedLogger.get(__name__).bind(component="service_registry")

    def add(self, service: Service) -> None:
        self._by_name[service.name] = service
        self._by_url[service.service_url] = service
        self._log.debug(
            LogEvents.REGISTRY_SERVICE_REGISTERED,
            service=service.name,
            url=service.service_url,
        )

    def get(self, lookup_key: str) -> Service | None:
        service = self._by_name.get(lookup_key)
        if service is None:
            service = self._by_url.get(lookup_key.rstrip("/"))
        return service

    def __getitem__(self, lookup_key: str) -> Service:
        service = self.get(lookup_key)
        if service is None:
            raise ServiceLookupError(f"No service registered under {lookup_key!r}")
        return service

    def __contains__(self, lookup_key: object) -> bool:
        return isinstance(lookup_key, str) and self.get(lookup_key) is not None

    def __iter__(self) -> Iterator[Service]:
        return iter(list(self._by_name.values()))

    def __len__(self) -> int:
        return len(self._by_name)

    def clear(self) -> None:
        self._by_name.clear()
        self._by_url.clear()


service_registry = ServiceRegistry()
