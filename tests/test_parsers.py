from __future__ import annotations

import gzip

import pytest

from site_audit.errors import SitemapError
from site_audit.parser.html_parser import parse_html
from site_audit.parser.sitemap_parser import parse_sitemap

URLSET = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc> https://a.com/x </loc><lastmod>2024-01-01</lastmod></url>
  <url><loc>https://a.com/y</loc></url>
  <url><loc></loc></url>
</urlset>"""

INDEX = """<?xml version="1.0" encoding="UTF-8"?>
<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <sitemap><loc>https://a.com/sitemap-1.xml</loc></sitemap>
  <sitemap><loc>https://a.com/sitemap-2.xml</loc></sitemap>
</sitemapindex>"""


def test_parse_html_extracts_seo_fields():
    html = """
    <html><head>
      <title> Shop | Example </title>
      <meta name="Description" content=" Best shop ">
      <link rel="alternate stylesheet" href="/x.css">
      <link rel="canonical" href="/shop">
    </head><body>
      <h1>Our <b>shop</b></h1><h1>Second</h1>
      <a href="/a">A</a>
      <a href="/a#section">A again</a>
      <a href="b?x=1">B</a>
      <a href="https://other.com/">Other</a>
      <a href="mailto:me@example.com">Mail</a>
      <a href="javascript:void(0)">JS</a>
      <a href="tel:+100">Tel</a>
      <a href="ftp://example.com/f">FTP</a>
      <a>No href</a>
    </body></html>
    """
    page = parse_html(html, "https://example.com/dir/")

    assert page.title == "Shop | Example"
    assert page.meta_description == "Best shop"
    assert page.canonical == "https://example.com/shop"
    assert page.h1 == "Our shop"
    assert page.links == [
        "https://example.com/a",
        "https://example.com/dir/b?x=1",
        "https://other.com/",
    ]


def test_parse_html_missing_fields_are_empty():
    page = parse_html("<html><body><p>nothing</p></body></html>", "https://example.com/")
    assert (page.title, page.meta_description, page.canonical, page.h1, page.links) == ("", "", "", "", [])


def test_parse_urlset():
    doc = parse_sitemap(URLSET)
    assert doc.kind == "urlset"
    assert not doc.is_index
    assert doc.locs == ["https://a.com/x", "https://a.com/y"]


def test_parse_index_and_plain_namespace():
    doc = parse_sitemap(INDEX.encode("utf-8"))
    assert doc.is_index
    assert doc.locs == ["https://a.com/sitemap-1.xml", "https://a.com/sitemap-2.xml"]

    bare = parse_sitemap("<urlset><url><loc>https://a.com/</loc></url></urlset>")
    assert bare.locs == ["https://a.com/"]


def test_parse_gzipped_sitemap():
    assert parse_sitemap(gzip.compress(URLSET.encode("utf-8"))).locs == ["https://a.com/x", "https://a.com/y"]


@pytest.mark.parametrize(
    "content",
    [
        "<urlset><url><loc>https://a.com/</loc></url>",
        "not xml at all",
        "<html><body>404</body></html>",
        "",
    ],
)
def test_parse_invalid_sitemaps(content):
    with pytest.raises(SitemapError):
        parse_sitemap(content)
