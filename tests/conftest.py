# File: tests/conftest.py
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Dict, List, Optional, Union

import pytest
import pytest_asyncio
from aiohttp import ClientSession, web

from site_audit.crawler.models import RenderedPage
from site_audit.errors import RendererFailure
from site_audit.events import EventBus, ProgressEvent

ServeT = Callable[[web.Application], Awaitable[str]]


@pytest_asyncio.fixture
async def serve(unused_tcp_port: int) -> AsyncIterator[ServeT]:
    """Start an aiohttp *app* on a free port and return its base URL; cleaned up after the test."""
    runners: List[web.AppRunner] = []

    async def _start(app: web.Application) -> str:
        runner = web.AppRunner(app)
        await runner.setup()
        site = web.TCPSite(runner, "127.0.0.1", unused_tcp_port)
        await site.start()
        runners.append(runner)
        return f"http://127.0.0.1:{unused_tcp_port}"

    yield _start
    for runner in runners:
        await runner.cleanup()


@pytest_asyncio.fixture
async def session() -> AsyncIterator[ClientSession]:
    async with ClientSession(headers={"User-Agent": "TestAgent/1.0"}) as s:
        yield s


@pytest.fixture()
def recorded_events() -> tuple[EventBus, List[ProgressEvent]]:
    """EventBus with a subscriber that keeps every event."""
    bus = EventBus()
    seen: List[ProgressEvent] = []
    bus.subscribe(seen.append)
    return bus, seen


def html_page(
    title: str = "",
    description: str = "",
    canonical: str = "",
    h1: str = "",
    links: Optional[List[str]] = None,
) -> str:
    head = f"<title>{title}</title>" if title else ""
    if description:
        head += f'<meta name="description" content="{description}">'
    if canonical:
        head += f'<link rel="canonical" href="{canonical}">'
    body = f"<h1>{h1}</h1>" if h1 else ""
    body += "".join(f'<a href="{href}">{href}</a>' for href in links or [])
    return f"<html><head>{head}</head><body>{body}</body></html>"


class FakeRenderer:
    """In-memory site: url -> RenderedPage, or an exception to raise."""

    def __init__(self, site: Dict[str, Union[RenderedPage, Exception]], delay: float = 0.0) -> None:
        self.site = site
        self.delay = delay
        self.calls: Dict[str, int] = {}
        self.active = 0
        self.peak = 0

    async def render(self, url: str) -> RenderedPage:
        self.calls[url] = self.calls.get(url, 0) + 1
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.active -= 1
        page = self.site.get(url)
        if page is None:
            raise RendererFailure(url, "HTTP 404")
        if isinstance(page, Exception):
            raise page
        return page


def rendered(url: str, *links: str, status: int = 200, title: str = "") -> RenderedPage:
    return RenderedPage(url=url, status_code=status, title=title, links=tuple(links))
