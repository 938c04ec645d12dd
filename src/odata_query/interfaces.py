"""Typed contracts between the query core and its collaborators.

The query builder and result iterator only rely on these protocols, so any
service or entity set implementation (including test doubles) can be used.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

__all__ = [
    "RawResponse",
    "PropertyProtocol",
    "EntityProtocol",
    "ServiceProtocol",
    "EntitySetProtocol",
    "EntityParser",
]


@runtime_checkable
class RawResponse(Protocol):
    """Successful transport response exposing a textual body."""

    @property
    def text(self) -> str: ...


@runtime_checkable
class PropertyProtocol(Protocol):
    """Schema property handle."""

    name: str


@runtime_checkable
class EntityProtocol(Protocol):
    """Blank schema instance used to resolve property names."""

    def get_property(self, name: str) -> PropertyProtocol | None: ...


@runtime_checkable
class ServiceProtocol(Protocol):
    """Executes url chunks against a remote endpoint."""

    @property
    def service_url(self) -> str: ...

    def execute(
        self,
        url_chunk: str,
        options: Mapping[str, Any] | None = None,
        is_raw_url: bool = False,
    ) -> RawResponse: ...

    def find_entities(self, response: RawResponse) -> Iterable[Any]: ...


@runtime_checkable
class EntitySetProtocol(Protocol):
    """Named collection owning the service handle and entity metadata."""

    name: str

    @property
    def service(self) -> ServiceProtocol: ...

    @property
    def entity_options(self) -> Mapping[str, Any]: ...

    def new_entity(self) -> EntityProtocol: ...


class EntityParser(Protocol):
    """Turns one feed entry element into a typed entity."""

    def __call__(self, element: Any, options: Mapping[str, Any]) -> Any: ...