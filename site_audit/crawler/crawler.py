# === FILE: site_audit/crawler/crawler.py ===
from __future__ import annotations

import asyncio
import time
from typing import List, Optional

from site_audit.crawler.frontier import CrawlFrontier
from site_audit.crawler.models import CrawlResult, FrontierEntry
from site_audit.crawler.renderer import PageRenderer
from site_audit.errors import RendererFailure
from site_audit.events import EventBus, ProgressEvent
from site_audit.logger import get_logger

__all__ = ("AsyncCrawler",)

STAGE = "crawl"


class AsyncCrawler:
    """Асинхронный краулер: пул воркеров поверх CrawlFrontier и рендерера страниц."""

    def __init__(
        self,
        renderer: PageRenderer,
        start_url: str,
        max_pages: int = 1000,
        max_depth: Optional[int] = None,
        concurrency: int = 10,
        events: Optional[EventBus] = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.renderer = renderer
        self.start_url = start_url
        self.max_pages = max_pages
        self.max_depth = max_depth
        self.concurrency = concurrency
        self.events = events or EventBus()
        self.logger = get_logger("crawl")

    async def crawl(self) -> CrawlResult:
        frontier = CrawlFrontier(self.start_url, self.max_pages, self.max_depth)
        self.logger.info("Старт обхода: %s (max pages %d)", frontier.start_url, self.max_pages)
        self.events.emit(
            ProgressEvent(STAGE, "start", url=frontier.start_url, total=self.max_pages, message=frontier.start_url)
        )
        start = time.monotonic()
        frontier.seed()
        workers = [asyncio.create_task(self._worker(frontier)) for _ in range(self.concurrency)]
        try:
            await frontier.join()
        finally:
            for w in workers:
                w.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        result = frontier.result()
        duration = time.monotonic() - start
        self.logger.info(
            "Завершено: %d страниц за %.2f с (%.2f стр/с), ошибок: %d",
            len(result.pages),
            duration,
            len(result.pages) / duration if duration else 0,
            len(result.failures),
        )
        self.events.emit(
            ProgressEvent(
                STAGE,
                "finish",
                done=len(result.pages),
                total=self.max_pages,
                message=f"{len(result.pages)} pages, {len(result.failures)} failed",
            )
        )
        return result

    async def _worker(self, frontier: CrawlFrontier) -> None:
        while True:
            entry = await frontier.next()
            try:
                # past the budget remaining entries are only drained
                if await frontier.acquire_slot():
                    await self._visit(frontier, entry)
            finally:
                frontier.task_done()

    async def _visit(self, frontier: CrawlFrontier, entry: FrontierEntry) -> None:
        try:
            page = await self.renderer.render(entry.target)
        except RendererFailure as exc:
            await self._failed(frontier, entry.target, exc.reason)
            return
        except Exception as exc:
            self.logger.exception("Renderer crashed on %s", entry.target)
            await self._failed(frontier, entry.target, str(exc) or type(exc).__name__)
            return

        record = page.to_record(entry.target, entry.depth)
        if not await frontier.record(record):
            return
        self.events.emit(
            ProgressEvent(
                STAGE,
                "item",
                url=entry.target,
                done=frontier.recorded,
                total=self.max_pages,
                status=record.status_code,
                category="ok" if record.status_code < 400 else "broken",
            )
        )
        if frontier.budget_exhausted:
            return
        queued: List[FrontierEntry] = await frontier.admit(entry, page.links)
        if queued:
            self.logger.debug("%s: queued %d links at depth %d", entry.target, len(queued), entry.depth + 1)

    async def _failed(self, frontier: CrawlFrontier, url: str, reason: str) -> None:
        await frontier.fail(url, reason)
        self.logger.warning("Failed %s: %s", url, reason)
        self.events.emit(ProgressEvent(STAGE, "failure", url=url, done=frontier.recorded, total=self.max_pages, message=reason))
