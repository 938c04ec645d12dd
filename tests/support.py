"""Test doubles and feed builders shared by the test modules."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from odata_query.entity import Entity, Property
from odata_query.xml import child_text, find_all, parse_feed

SERVICE_URL = "http://example.org/Catalog.svc"


def build_feed(
    entries: Iterable[Mapping[str, Any] | str],
    *,
    next_href: str | None = None,
    title: str = "Products",
) -> str:
    """Render an Atom feed page with optional ``rel="next"`` link."""

    parts = [
        '<?xml version="1.0" encoding="utf-8" standalone="yes"?>',
        '<feed xml:base="http://example.org/Catalog.svc/"'
        ' xmlns="http://www.w3.org/2005/Atom"'
        ' xmlns:d="http://schemas.microsoft.com/ado/2007/08/dataservices"'
        ' xmlns:m="http://schemas.microsoft.com/ado/2007/08/dataservices/metadata">',
        f'<title type="text">{title}</title>',
        f"<id>{SERVICE_URL}/{title}</id>",
        f'<link rel="self" title="{title}" href="{title}" />',
    ]
    for entry in entries:
        values = {"Name": entry} if isinstance(entry, str) else dict(entry)
        entry_id = values.get("ID", values.get("Name"))
        parts.append("<entry>")
        parts.append(f"<id>{SERVICE_URL}/{title}('{entry_id}')</id>")
        parts.append(f'<title type="text">{values.get("Name", "")}</title>')
        parts.append('<content type="application/xml"><m:properties>')
        for key, value in values.items():
            if value is None:
                parts.append(f'<d:{key} m:null="true" />')
            else:
                parts.append(f"<d:{key}>{value}</d:{key}>")
        parts.append("</m:properties></content>")
        parts.append("</entry>")
    if next_href is not None:
        parts.append(f'<link rel="next" href="{next_href}" />')
    parts.append("</feed>")
    return "".join(parts)


class StubResponse:
    def __init__(self, text: str) -> None:
        self.text = text
        self.status_code = 200


class StubService:
    """In-memory service answering url chunks from a mapping or callable."""

    def __init__(
        self,
        pages: Mapping[str, str] | Callable[[str], str],
        *,
        service_url: str = SERVICE_URL,
    ) -> None:
        self._pages = pages
        self._service_url = service_url
        self.calls: list[tuple[str, Mapping[str, Any] | None, bool]] = []

    @property
    def service_url(self) -> str:
        return self._service_url

    def execute(
        self,
        url_chunk: str,
        options: Mapping[str, Any] | None = None,
        is_raw_url: bool = False,
    ) -> StubResponse:
        self.calls.append((url_chunk, options, is_raw_url))
        if callable(self._pages):
            return StubResponse(self._pages(url_chunk))
        return StubResponse(self._pages[url_chunk])

    def find_entities(self, response: StubResponse) -> list[str]:
        root = parse_feed(response.text)
        return [child_text(entry, "title") for entry in find_all(root, "/feed/entry")]


class StubEntitySet:
    def __init__(
        self,
        service: StubService,
        *,
        name: str = "Products",
        properties: Iterable[str] = ("Name", "Price", "Category"),
    ) -> None:
        self.name = name
        self._service = service
        self._properties = tuple(Property(name=prop) for prop in properties)

    @property
    def service(self) -> StubService:
        return self._service

    @property
    def entity_options(self) -> Mapping[str, Any]:
        return {"name": self.name, "properties": self._properties}

    def new_entity(self) -> Entity:
        return Entity.blank(self.entity_options)


