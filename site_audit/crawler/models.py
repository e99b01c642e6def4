"""
Data models for the SiteAudit crawler.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping


@dataclass(frozen=True, slots=True)
class FrontierEntry:
    """A URL waiting for a visit and its link distance from the start URL.

    ``url`` is the normalized dedup key; ``fetch_url`` is the link as it was
    found (fragment removed) and is what gets requested and reported.
    """

    url: str
    depth: int = 0
    fetch_url: str = ""

    def __post_init__(self) -> None:
        if self.depth < 0:
            raise ValueError(f"depth must be >= 0, got {self.depth}")

    @property
    def target(self) -> str:
        return self.fetch_url or self.url

    def child(self, url: str, fetch_url: str = "") -> FrontierEntry:
        return FrontierEntry(url=url, depth=self.depth + 1, fetch_url=fetch_url)


@dataclass(frozen=True, slots=True)
class PageRecord:
    """SEO fields of one visited page; missing fields are empty strings."""

    url: str
    title: str = ""
    meta_description: str = ""
    canonical: str = ""
    h1: str = ""
    status_code: int = 0
    depth: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "metaDescription": self.meta_description,
            "canonical": self.canonical,
            "h1": self.h1,
            "statusCode": self.status_code,
            "depth": self.depth,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PageRecord:
        return cls(
            url=str(data["url"]),
            title=str(data.get("title") or ""),
            meta_description=str(data.get("metaDescription") or ""),
            canonical=str(data.get("canonical") or ""),
            h1=str(data.get("h1") or ""),
            status_code=int(data.get("statusCode") or 0),
            depth=int(data.get("depth") or 0),
        )


@dataclass(frozen=True, slots=True)
class RenderedPage:
    """What a renderer hands back: the page fields plus outgoing links."""

    url: str
    status_code: int
    title: str = ""
    meta_description: str = ""
    canonical: str = ""
    h1: str = ""
    links: tuple[str, ...] = ()

    def to_record(self, url: str, depth: int) -> PageRecord:
        return PageRecord(
            url=url,
            title=self.title,
            meta_description=self.meta_description,
            canonical=self.canonical,
            h1=self.h1,
            status_code=self.status_code,
            depth=depth,
        )


@dataclass(frozen=True, slots=True)
class CrawlFailure:
    url: str
    reason: str

    def to_dict(self) -> Dict[str, str]:
        return {"url": self.url, "error": self.reason}


@dataclass(slots=True)
class CrawlResult:
    """Everything one crawl produced.

    ``visited`` is the whole visited set (discovered URLs included, insertion
    order); ``pages`` are in completion order.
    """

    visited: List[str] = field(default_factory=list)
    pages: List[PageRecord] = field(default_factory=list)
    failures: List[CrawlFailure] = field(default_factory=list)

    @property
    def urls(self) -> List[str]:
        """URLs of successfully recorded pages, in completion order."""
        return [p.url for p in self.pages]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "urls": self.urls,
            "pages": [p.to_dict() for p in self.pages],
            "visited": list(self.visited),
            "failures": [f.to_dict() for f in self.failures],
        }
