# File: site_audit/parser/sitemap_parser.py
"""site_audit.parser.sitemap_parser: разбор sitemap.xml и sitemap index."""

from __future__ import annotations

import gzip
from dataclasses import dataclass
from typing import List, Literal, Union

from lxml import etree

from site_audit.errors import SitemapError

__all__ = ("SitemapDocument", "parse_sitemap")

_GZIP_MAGIC = b"\x1f\x8b"


@dataclass(frozen=True, slots=True)
class SitemapDocument:
    """``kind`` is ``urlset`` (page URLs) or ``index`` (child sitemap URLs)."""

    kind: Literal["urlset", "index"]
    locs: List[str]

    @property
    def is_index(self) -> bool:
        return self.kind == "index"


def parse_sitemap(content: Union[str, bytes]) -> SitemapDocument:
    """Разбирает содержимое sitemap и возвращает URL из тегов <loc>.

    Args:
        content: XML (str/bytes), optionally gzip-compressed.

    Returns:
        SitemapDocument: ``urlset`` with ``<url><loc>`` values or ``index``
        with ``<sitemap><loc>`` values, in document order.

    Raises:
        SitemapError: malformed XML or a root element that is neither
        ``urlset`` nor ``sitemapindex``.

    Пример:
    ```python
    from site_audit.parser.sitemap_parser import parse_sitemap

    with open('sitemap.xml', 'rb') as f:
        doc = parse_sitemap(f.read())
    print(doc.kind, doc.locs)
    ```
    """
    data = content.encode("utf-8") if isinstance(content, str) else content
    if data[:2] == _GZIP_MAGIC:
        try:
            data = gzip.decompress(data)
        except OSError as exc:
            raise SitemapError(f"Corrupt gzip sitemap: {exc}") from exc

    if not data.strip():
        raise SitemapError("Empty sitemap document")

    parser = etree.XMLParser(ns_clean=True, recover=False, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(data.strip(), parser=parser)
    except etree.XMLSyntaxError as exc:
        raise SitemapError(f"Malformed sitemap XML: {exc}") from exc
    if root is None:
        raise SitemapError("Empty sitemap document")

    tag = etree.QName(root).localname
    if tag == "urlset":
        kind: Literal["urlset", "index"] = "urlset"
        locs = root.findall("{*}url/{*}loc")
    elif tag == "sitemapindex":
        kind = "index"
        locs = root.findall("{*}sitemap/{*}loc")
    else:
        raise SitemapError(f"Unexpected sitemap root element <{tag}>")
    return SitemapDocument(kind=kind, locs=[loc.text.strip() for loc in locs if loc.text and loc.text.strip()])
