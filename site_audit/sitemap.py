"""site_audit.sitemap: fetch a sitemap and resolve sitemap indexes recursively.

Only the top-level document is fatal: if it cannot be fetched or parsed a
:class:`~site_audit.errors.SitemapError` is raised. Child sitemaps of an index
that fail are recorded as :class:`~site_audit.errors.ResourceFetchFailure` and
skipped.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional, Set

from aiohttp import ClientError, ClientSession, ClientTimeout

from site_audit.classifier import transport_error
from site_audit.errors import HttpError, ResourceFetchFailure, SitemapError
from site_audit.events import EventBus, ProgressEvent
from site_audit.limiter import ConcurrencyLimiter
from site_audit.logger import get_logger
from site_audit.parser.sitemap_parser import SitemapDocument, parse_sitemap
from site_audit.utils import remove_duplicates

__all__ = ("SitemapFetcher", "SitemapResult")

STAGE = "sitemap"


@dataclass(slots=True)
class SitemapResult:
    urls: List[str] = field(default_factory=list)
    sitemaps: List[str] = field(default_factory=list)
    failures: List[ResourceFetchFailure] = field(default_factory=list)


class SitemapFetcher:
    """Collects page URLs from a sitemap or sitemap index."""

    def __init__(
        self,
        session: ClientSession,
        timeout: float = 30.0,
        concurrency: int = 4,
        max_depth: int = 5,
        events: Optional[EventBus] = None,
    ) -> None:
        self.session = session
        self.timeout = ClientTimeout(total=timeout)
        self.concurrency = concurrency
        self.max_depth = max_depth
        self.events = events or EventBus()
        self.logger = get_logger("sitemap")

    async def _download(self, url: str) -> bytes:
        async with self.session.get(url, timeout=self.timeout) as resp:
            if resp.status >= 400:
                raise HttpError(url, resp.status)
            return await resp.read()

    async def fetch_document(self, url: str) -> SitemapDocument:
        try:
            body = await self._download(url)
        except HttpError as exc:
            raise SitemapError(f"Cannot fetch sitemap {url}: HTTP {exc.status}") from exc
        except (ClientError, asyncio.TimeoutError, ValueError) as exc:
            cause = transport_error(url, exc)
            raise SitemapError(f"Cannot fetch sitemap {url}: {cause.reason}") from cause
        return parse_sitemap(body)

    async def collect(self, sitemap_url: str) -> SitemapResult:
        """Returns every page URL reachable from *sitemap_url*, first-seen order."""
        self.logger.info("Fetching sitemap: %s", sitemap_url)
        self.events.emit(ProgressEvent(STAGE, "start", url=sitemap_url, message=sitemap_url))
        result = SitemapResult(sitemaps=[sitemap_url])
        root = await self.fetch_document(sitemap_url)
        seen: Set[str] = {sitemap_url}
        await self._absorb(root, result, seen, depth=0)
        result.urls = remove_duplicates(result.urls)
        self.logger.info(
            "Found %d URLs in %d sitemap(s), %d failed",
            len(result.urls),
            len(result.sitemaps),
            len(result.failures),
        )
        self.events.emit(
            ProgressEvent(
                STAGE,
                "finish",
                done=len(result.urls),
                message=f"{len(result.urls)} URLs, {len(result.failures)} sub-sitemaps failed",
            )
        )
        return result

    async def _absorb(self, doc: SitemapDocument, result: SitemapResult, seen: Set[str], depth: int) -> None:
        if not doc.is_index:
            result.urls.extend(doc.locs)
            return

        children = [loc for loc in doc.locs if loc not in seen]
        seen.update(children)
        if depth >= self.max_depth:
            for child in children:
                result.failures.append(ResourceFetchFailure(child, "sitemap index nesting too deep"))
            return
        self.logger.info("Sitemap index with %d sub-sitemaps", len(children))

        limiter = ConcurrencyLimiter(self.concurrency)
        outcomes = await limiter.map(self.fetch_document, children)
        for child, outcome in zip(children, outcomes):
            if not outcome.ok:
                failure = ResourceFetchFailure(child, str(outcome.error))
                result.failures.append(failure)
                self.logger.warning("✗ Error fetching %s: %s", child, outcome.error)
                self.events.emit(ProgressEvent(STAGE, "failure", url=child, message=str(outcome.error)))
                continue
            result.sitemaps.append(child)
            await self._absorb(outcome.value, result, seen, depth + 1)  # type: ignore[arg-type]
