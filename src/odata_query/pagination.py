"""Continuation link extraction for paged feed responses."""

from __future__ import annotations

from odata_query.xml import find, parse_feed

__all__ = ["extract_next_href", "normalize_next_link", "next_page_url", "scheme_variants"]

_NEXT_LINK_XPATH = "/feed/link[@rel='next']"


def extract_next_href(body: str | bytes) -> str | None:
    """Return the ``href`` of the feed's ``rel="next"`` link, if any."""

    root = parse_feed(body)
    link = find(root, _NEXT_LINK_XPATH)
    if link is None:
        return None
    return (link.get("href") or "").strip() or None


def scheme_variants(service_url: str) -> tuple[str, str]:
    """Return the ``http://`` and ``https://`` spellings of ``service_url``."""

    http_version = service_url.replace("https://", "http://", 1)
    https_version = service_url.replace("http://", "https://", 1)
    return http_version, https_version


def normalize_next_link(href: str, service_url: str) -> str:
    """Strip the service base URL from an advertised continuation link.

    Some servers answer a request made over one scheme with continuation
    links spelled with the other, so both spellings of the base URL are
    removed. What remains is the path and query relative to the service.
    """

    if not service_url:
        return href
    normalized = href
    for prefix in scheme_variants(service_url):
        normalized = normalized.replace(prefix, "")
    return normalized


def next_page_url(body: str | bytes, service_url: str) -> str | None:
    href = extract_next_href(body)
    if href is None:
        return None
    return normalize_next_link(href, service_url)
