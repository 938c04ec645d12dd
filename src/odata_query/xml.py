"""lxml helpers for reading Atom feed pages."""

from __future__ import annotations

from typing import Any

from lxml import etree

from odata_query.exceptions import FeedParseError

__all__ = [
    "make_xml_parser",
    "parse_feed",
    "strip_namespaces",
    "find",
    "find_all",
    "child_text",
    "response_body",
]


def make_xml_parser(
    *,
    recover: bool = False,
    remove_blank_text: bool = True,
    huge_tree: bool = False,
) -> etree.XMLParser:
    """Create a parser that never touches the network or expands entities."""

    return etree.XMLParser(
        recover=recover,
        ns_clean=True,
        remove_blank_text=remove_blank_text,
        resolve_entities=False,
        load_dtd=False,
        no_network=True,
        huge_tree=huge_tree,
    )


def strip_namespaces(root: etree._Element) -> etree._Element:
    """Drop namespace URIs from every element and attribute name in place."""

    for element in root.iter():
        if not isinstance(element.tag, str):
            continue
        element.tag = etree.QName(element).localname
        for name in list(element.attrib):
            if name.startswith("{"):
                value = element.attrib.pop(name)
                element.attrib[etree.QName(name).localname] = value
    etree.cleanup_namespaces(root)
    return root


def parse_feed(body: str | bytes) -> etree._Element:
    """Parse a page body and return its namespace-free root element.

    Syntax errors from lxml propagate unchanged.
    """

    payload = body.encode("utf-8") if isinstance(body, str) else body
    root = etree.fromstring(payload, parser=make_xml_parser())
    if root is None:
        raise FeedParseError("Page body did not produce an XML document")
    return strip_namespaces(root)


def find(root: etree._Element, path: str) -> etree._Element | None:
    """First element matched by the XPath ``path``, or ``None``."""

    matches = find_all(root, path)
    return matches[0] if matches else None


def find_all(root: etree._Element, path: str) -> list[etree._Element]:
    """Elements matched by the XPath ``path`` in document order.

    Paths are written against namespace-stripped trees, so no prefix map is
    needed. Non-element results such as strings are dropped.
    """

    return [node for node in root.xpath(path) if isinstance(node, etree._Element)]


def child_text(element: etree._Element, path: str) -> str | None:
    """Stripped text of the first match of ``path``; blank text counts as missing."""

    match = find(element, path)
    if match is None or match.text is None:
        return None
    return match.text.strip() or None


def response_body(response: Any) -> str | bytes:
    """Prefer the undecoded bytes so the document's own encoding declaration applies."""

    content = getattr(response, "content", None)
    if isinstance(content, bytes) and content:
        return content
    return response.text
