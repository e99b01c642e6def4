"""site_audit.reconciler: sitemap vs. crawl set reconciliation.

Direction matters: *missing* pages are listed in the sitemap but were never
reached by the crawl; *orphaned* pages were crawled but are absent from the
sitemap.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List

from site_audit.utils import normalize_url, remove_duplicates

__all__ = ("DiffReport", "reconcile", "format_coverage")


@dataclass(frozen=True, slots=True)
class DiffReport:
    sitemap_urls: List[str]
    crawled_urls: List[str]
    in_sitemap_only: List[str]
    in_crawl_only: List[str]
    in_both: List[str]

    @property
    def missing_pages(self) -> List[str]:
        return self.in_sitemap_only

    @property
    def orphaned_pages(self) -> List[str]:
        return self.in_crawl_only

    @property
    def coverage(self) -> float:
        """|in_both| / |sitemap|; an empty sitemap has coverage 0.0."""
        if not self.sitemap_urls:
            return 0.0
        return len(self.in_both) / len(self.sitemap_urls)

    @property
    def summary(self) -> Dict[str, Any]:
        return {
            "sitemapUrls": len(self.sitemap_urls),
            "crawledUrls": len(self.crawled_urls),
            "inBoth": len(self.in_both),
            "orphanedPages": len(self.in_crawl_only),
            "missingPages": len(self.in_sitemap_only),
            "coverage": format_coverage(self.coverage),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "orphanedPages": list(self.in_crawl_only),
            "missingPages": list(self.in_sitemap_only),
        }


def format_coverage(ratio: float) -> str:
    return f"{ratio * 100:.2f}%"


def reconcile(sitemap_urls: Iterable[str], crawled_urls: Iterable[str]) -> DiffReport:
    """Partitions the union of both URL populations into three disjoint buckets.

    Both sides are normalized with :func:`~site_audit.utils.normalize_url`
    and deduplicated; list order follows first appearance in the input.
    """
    sitemap = remove_duplicates([normalize_url(u) for u in sitemap_urls if u and u.strip()])
    crawled = remove_duplicates([normalize_url(u) for u in crawled_urls if u and u.strip()])
    sitemap_set, crawled_set = set(sitemap), set(crawled)
    return DiffReport(
        sitemap_urls=sitemap,
        crawled_urls=crawled,
        in_sitemap_only=[u for u in sitemap if u not in crawled_set],
        in_crawl_only=[u for u in crawled if u not in sitemap_set],
        in_both=[u for u in sitemap if u in crawled_set],
    )
