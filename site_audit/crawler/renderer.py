"""
Page renderers: turn a URL into a :class:`RenderedPage`.

Anything with an ``async render(url)`` method can drive the crawler; a
renderer raises :class:`~site_audit.errors.RendererFailure` when it cannot
produce a page at all. :class:`HttpRenderer` is the built-in one: a plain
aiohttp GET parsed with BeautifulSoup, no JavaScript execution.
"""
from __future__ import annotations

import asyncio
from typing import Protocol, runtime_checkable

from aiohttp import ClientError, ClientSession, ClientTimeout

from site_audit.classifier import transport_error
from site_audit.crawler.models import RenderedPage
from site_audit.errors import RendererFailure
from site_audit.parser.html_parser import parse_html

__all__ = ("PageRenderer", "HttpRenderer")


@runtime_checkable
class PageRenderer(Protocol):
    async def render(self, url: str) -> RenderedPage:
        ...


class HttpRenderer:
    """Fetches pages over HTTP, following redirects like a browser would."""

    _HTML_TYPES = ("text/html", "application/xhtml+xml")

    def __init__(self, session: ClientSession, timeout: float = 30.0) -> None:
        self.session = session
        self.timeout = ClientTimeout(total=timeout)

    async def render(self, url: str) -> RenderedPage:
        try:
            async with self.session.get(url, timeout=self.timeout, allow_redirects=True) as resp:
                status = resp.status
                final_url = str(resp.url)
                mime = resp.headers.get("Content-Type", "").split(";", 1)[0].strip().lower()
                if mime not in self._HTML_TYPES:
                    return RenderedPage(url=final_url, status_code=status)
                text = await resp.text(errors="replace")
        except (ClientError, asyncio.TimeoutError, ValueError) as exc:
            cause = transport_error(url, exc)
            raise RendererFailure(url, cause.reason) from cause

        parsed = parse_html(text, final_url)
        return RenderedPage(
            url=final_url,
            status_code=status,
            title=parsed.title,
            meta_description=parsed.meta_description,
            canonical=parsed.canonical,
            h1=parsed.h1,
            # error pages are recorded but not followed
            links=tuple(parsed.links) if status < 400 else (),
        )
