"""Entity sets, blank entity instances and feed entry parsing."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from lxml import etree

from odata_query.config import PaginationConfig
from odata_query.query import Query
from odata_query.xml import child_text, find, find_all

if TYPE_CHECKING:
    from odata_query.service import Service

__all__ = ["Property", "Entity", "EntitySet"]


@dataclass(slots=True)
class Property:
    """A declared property of an entity type, optionally holding a value."""

    name: str
    type_name: str = "Edm.String"
    value: Any = None
    nullable: bool = True

    def blank(self) -> Property:
        return Property(name=self.name, type_name=self.type_name, nullable=self.nullable)


def _coerce_property(item: Property | str) -> Property:
    if isinstance(item, Property):
        return item.blank()
    return Property(name=str(item))


@dataclass(slots=True)
class Entity:
    """One record of an entity set.

    A blank instance (no values) is what :class:`~odata_query.query.Query`
    uses to resolve property names in filters.
    """

    type_name: str | None = None
    entity_id: str | None = None
    title: str | None = None
    properties: dict[str, Property] = field(default_factory=dict)

    @classmethod
    def blank(cls, options: Mapping[str, Any]) -> Entity:
        declared = [_coerce_property(item) for item in options.get("properties", ())]
        return cls(
            type_name=options.get("type_name"),
            properties={prop.name: prop for prop in declared},
        )

    @classmethod
    def from_xml(cls, element: etree._Element, options: Mapping[str, Any]) -> Entity:
        """Build an entity from a namespace-stripped Atom ``<entry>``.

        Values are kept as the strings found in the document; ``null="true"``
        becomes ``None``. Properties missing from the entry keep a ``None``
        value, undeclared ones are added as ``Edm.String``.
        """

        entity = cls.blank(options)
        entity.entity_id = child_text(element, "id")
        entity.title = child_text(element, "title")

        properties = find(element, "content/properties")
        if properties is None:
            properties = find(element, "properties")
        if properties is None:
            return entity

        for child in find_all(properties, "*"):
            name = child.tag
            if child.get("null") == "true":
                value = None
            else:
                value = child.text if child.text is not None else ""
            prop = entity.properties.get(name)
            if prop is None:
                prop = Property(name=name, type_name=child.get("type", "Edm.String"))
                entity.properties[name] = prop
            prop.value = value
        return entity

    def get_property(self, name: str) -> Property | None:
        return self.properties.get(name)

    def __getitem__(self, name: str) -> Any:
        prop = self.properties.get(name)
        if prop is None:
            raise KeyError(name)
        return prop.value

    def __setitem__(self, name: str, value: Any) -> None:
        prop = self.properties.get(name)
        if prop is None:
            prop = Property(name=name)
            self.properties[name] = prop
        prop.value = value

    def to_dict(self) -> dict[str, Any]:
        return {name: prop.value for name, prop in self.properties.items()}


class EntitySet:
    """A named collection of entities exposed by a :class:`Service`."""

    def __init__(
        self,
        name: str,
        service: Service,
        *,
        type_name: str | None = None,
        namespace: str | None = None,
        properties: Iterable[Property | str] = (),
        pagination: PaginationConfig | None = None,
    ) -> None:
        self.name = name
        self._service = service
        self.type_name = type_name
        self.namespace = namespace
        self._properties = tuple(_coerce_property(item) for item in properties)
        self._pagination = pagination

    @property
    def service(self) -> Service:
        return self._service

    @property
    def entity_options(self) -> Mapping[str, Any]:
        return {
            "name": self.name,
            "type_name": self.type_name,
            "namespace": self.namespace,
            "properties": self._properties,
            "service_name": self._service.name,
        }

    def new_entity(self) -> Entity:
        return Entity.blank(self.entity_options)

    def query(self) -> Query:
        return Query(
            self,
            pagination=self._pagination or self._service.pagination,
            entity_parser=Entity.from_xml,
        )

    def count(self) -> int:
        return self.query().count()

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.query().execute())

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} of {self._service.service_url!r}>"
