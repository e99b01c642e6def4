"""
Crawl frontier: visited set, pending entries and the page budget.

The visited set is the only deduplication gate. A URL enters it the moment
it is first admitted (not when it is visited), so concurrent parents can
never enqueue it twice.
"""
from __future__ import annotations

import asyncio
from typing import Dict, Iterable, List, Optional
from urllib.parse import urldefrag, urlsplit, urlunsplit

from site_audit.crawler.models import CrawlFailure, CrawlResult, FrontierEntry, PageRecord
from site_audit.utils import extract_host, is_http_url, is_same_host, normalize_url

__all__ = ("CrawlFrontier",)


def _request_url(link: str) -> str:
    """The link as it will be requested: fragment dropped, empty path as '/', nothing else touched."""
    url = urldefrag(link.strip())[0]
    parts = urlsplit(url)
    if parts.netloc and not parts.path:
        url = urlunsplit(parts._replace(path="/"))
    return url


class CrawlFrontier:
    def __init__(self, start_url: str, max_pages: int, max_depth: Optional[int] = None) -> None:
        if max_pages < 1:
            raise ValueError(f"max_pages must be >= 1, got {max_pages}")
        if max_depth is not None and max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {max_depth}")
        root = normalize_url(str(start_url))
        if not is_http_url(root):
            raise ValueError(f"start URL must be an absolute http(s) URL: {start_url!r}")
        self.start_url = root
        self._start_fetch_url = _request_url(str(start_url))
        self.host = extract_host(root)
        self.max_pages = max_pages
        self.max_depth = max_depth

        self._visited: Dict[str, None] = {}
        self._queue: asyncio.Queue[FrontierEntry] = asyncio.Queue()
        self._admit_lock = asyncio.Lock()
        self._slots = asyncio.Condition()
        self._in_flight = 0
        self._pages: List[PageRecord] = []
        self._failures: List[CrawlFailure] = []

    # ------------------------------------------------------------------ #
    # visited set / queue
    # ------------------------------------------------------------------ #

    def seed(self) -> FrontierEntry:
        """Marks the start URL visited and queues it at depth 0."""
        root = FrontierEntry(self.start_url, 0, fetch_url=self._start_fetch_url)
        if self.start_url not in self._visited:
            self._visited[self.start_url] = None
            self._queue.put_nowait(root)
        return root

    def accepts(self, url: str) -> bool:
        """Same host as the start URL and an http(s) scheme."""
        return is_same_host(url, self.host)

    async def admit(self, parent: FrontierEntry, links: Iterable[str]) -> List[FrontierEntry]:
        """Queues every new same-host link of *parent* at ``parent.depth + 1``.

        Returns the entries actually queued.
        """
        if self.max_depth is not None and parent.depth >= self.max_depth:
            return []
        fresh: List[FrontierEntry] = []
        async with self._admit_lock:
            for link in links:
                fetch_url = _request_url(link)
                url = normalize_url(fetch_url)
                if not self.accepts(url) or url in self._visited:
                    continue
                self._visited[url] = None
                entry = parent.child(url, fetch_url)
                self._queue.put_nowait(entry)
                fresh.append(entry)
        return fresh

    def is_visited(self, url: str) -> bool:
        return normalize_url(url) in self._visited

    async def next(self) -> FrontierEntry:
        return await self._queue.get()

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        await self._queue.join()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    # ------------------------------------------------------------------ #
    # page budget
    # ------------------------------------------------------------------ #

    async def acquire_slot(self) -> bool:
        """Reserves one visit within the budget.

        Waits while in-flight visits could still fill the budget; returns
        False once ``max_pages`` records exist.
        """
        async with self._slots:
            while len(self._pages) + self._in_flight >= self.max_pages:
                if len(self._pages) >= self.max_pages:
                    return False
                await self._slots.wait()
            self._in_flight += 1
            return True

    async def record(self, page: PageRecord) -> bool:
        """Stores *page* and releases its slot. False if the budget was already met."""
        async with self._slots:
            self._in_flight -= 1
            accepted = len(self._pages) < self.max_pages
            if accepted:
                self._pages.append(page)
            self._slots.notify_all()
            return accepted

    async def fail(self, url: str, reason: str) -> CrawlFailure:
        """Records a failed visit and releases its slot; the URL is not retried."""
        failure = CrawlFailure(url=url, reason=reason)
        async with self._slots:
            self._in_flight -= 1
            self._failures.append(failure)
            self._slots.notify_all()
        return failure

    @property
    def recorded(self) -> int:
        return len(self._pages)

    @property
    def budget_exhausted(self) -> bool:
        return len(self._pages) >= self.max_pages

    def result(self) -> CrawlResult:
        return CrawlResult(
            visited=list(self._visited),
            pages=list(self._pages),
            failures=list(self._failures),
        )
