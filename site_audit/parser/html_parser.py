"""HTML parsing utilities for SiteAudit.

:func:`parse_html` extracts the on-page SEO fields a crawl records for each
page plus the outgoing links used to grow the frontier:

* title: document <title> text or ``""`` if absent.
* meta_description: ``<meta name="description">`` content.
* canonical: absolute ``<link rel="canonical">`` href.
* h1: text of the first <h1>.
* links: absolute http(s) URLs from <a href="…"> tags, deduplicated, fragments
  removed, document order.

Missing elements are always reported as empty strings, never as errors.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from urllib.parse import urldefrag, urljoin

from bs4 import BeautifulSoup
from bs4.element import Tag

from site_audit.utils import is_http_url

__all__: Sequence[str] = ("ParsedPage", "parse_html")

_SKIP_SCHEMES = ("mailto:", "javascript:", "tel:", "data:")


@dataclass(slots=True)
class ParsedPage:
    """Lightweight representation of an HTML page."""

    url: str
    title: str = ""
    meta_description: str = ""
    canonical: str = ""
    h1: str = ""
    links: list[str] = field(default_factory=list)


def _attr(tag: object, name: str) -> str:
    if not isinstance(tag, Tag):
        return ""
    value = tag.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return value.strip() if isinstance(value, str) else ""


def _has_rel(value: object, rel: str) -> bool:
    if isinstance(value, str):
        value = value.split()
    return isinstance(value, list) and rel in [v.lower() for v in value]


def parse_html(html: str, base_url: str = "") -> ParsedPage:
    soup = BeautifulSoup(html, "html.parser")

    title_tag = soup.find("title")
    title = title_tag.get_text(strip=True) if title_tag else ""

    meta = soup.find(
        "meta", attrs={"name": lambda v: isinstance(v, str) and v.lower() == "description"}
    )
    description = _attr(meta, "content")

    canonical = ""
    link_tag = soup.find("link", rel=lambda v: _has_rel(v, "canonical"))
    href = _attr(link_tag, "href")
    if href:
        canonical = urljoin(base_url, href)

    h1_tag = soup.find("h1")
    h1 = h1_tag.get_text(" ", strip=True) if h1_tag else ""

    seen: set[str] = set()
    links: list[str] = []
    for tag in soup.find_all("a", href=True):
        raw = _attr(tag, "href")
        if not raw or raw.lower().startswith(_SKIP_SCHEMES):
            continue
        absolute, _ = urldefrag(urljoin(base_url, raw))
        if not is_http_url(absolute) or absolute in seen:
            continue
        seen.add(absolute)
        links.append(absolute)

    return ParsedPage(
        url=base_url,
        title=title,
        meta_description=description,
        canonical=canonical,
        h1=h1,
        links=links,
    )
