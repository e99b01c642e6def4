"""site_audit.crawler: same-host page discovery."""

from site_audit.crawler.crawler import AsyncCrawler
from site_audit.crawler.frontier import CrawlFrontier
from site_audit.crawler.models import CrawlFailure, CrawlResult, FrontierEntry, PageRecord, RenderedPage
from site_audit.crawler.renderer import HttpRenderer, PageRenderer

__all__ = (
    "AsyncCrawler",
    "CrawlFrontier",
    "CrawlFailure",
    "CrawlResult",
    "FrontierEntry",
    "PageRecord",
    "RenderedPage",
    "HttpRenderer",
    "PageRenderer",
)
