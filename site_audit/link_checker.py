"""site_audit.link_checker: batch HEAD probing of URLs with status classification.

Each URL gets one ``HEAD`` request that never follows redirects and never
raises on status; a timeout or connection failure turns into an ``error``
record. Probes run through :class:`~site_audit.limiter.ConcurrencyLimiter`.
"""
from __future__ import annotations

import asyncio
from typing import Iterable, List, Optional

from aiohttp import ClientError, ClientSession, ClientTimeout

from site_audit.classifier import classify_failure, classify_response, transport_error
from site_audit.errors import TransportError
from site_audit.events import EventBus, ProgressEvent
from site_audit.limiter import ConcurrencyLimiter
from site_audit.logger import get_logger
from site_audit.models import CheckResult, LinkReport

__all__ = ("LinkChecker", "DEFAULT_CONCURRENCY", "DEFAULT_TIMEOUT")

DEFAULT_CONCURRENCY = 10
DEFAULT_TIMEOUT = 10.0
STAGE = "links"


class LinkChecker:
    """Checks a list of URLs and aggregates a :class:`LinkReport`."""

    def __init__(
        self,
        session: ClientSession,
        concurrency: int = DEFAULT_CONCURRENCY,
        timeout: float = DEFAULT_TIMEOUT,
        events: Optional[EventBus] = None,
    ) -> None:
        self.session = session
        self.concurrency = concurrency
        self.timeout = ClientTimeout(total=timeout)
        self.events = events or EventBus()
        self.logger = get_logger("links")

    async def head(self, url: str) -> CheckResult:
        """One ``HEAD`` without following redirects; raises :class:`TransportError` if nothing answered."""
        try:
            async with self.session.head(url, allow_redirects=False, timeout=self.timeout) as resp:
                return classify_response(url, resp.status, resp.headers.get("Location"))
        except (ClientError, asyncio.TimeoutError, ValueError) as exc:
            # ValueError covers URLs aiohttp refuses to build a request for
            raise transport_error(url, exc) from exc

    async def probe(self, url: str) -> CheckResult:
        """HEAD *url* once; any status is a result, no response is an ``error``."""
        try:
            return await self.head(url)
        except TransportError as exc:
            self.logger.debug("Probe failed %s: %r", url, exc.__cause__)
            return classify_failure(url, exc)

    async def check(self, urls: Iterable[str]) -> LinkReport:
        targets: List[str] = [u.strip() for u in urls if u and u.strip()]
        total = len(targets)
        done = 0
        self.logger.info("Checking %d links (concurrency %d)", total, self.concurrency)
        self.events.emit(ProgressEvent(STAGE, "start", total=total, message=f"{total} links"))

        async def _one(url: str) -> CheckResult:
            nonlocal done
            result = await self.probe(url)
            done += 1
            self.events.emit(
                ProgressEvent(
                    STAGE,
                    "item",
                    url=url,
                    done=done,
                    total=total,
                    status=result.status or None,
                    category=result.category.value,
                    message=result.error or "",
                )
            )
            return result

        limiter = ConcurrencyLimiter(self.concurrency)
        outcomes = await limiter.map(_one, targets)
        # probe() settles its own failures; anything left is unexpected
        results = [
            o.value if o.ok else classify_failure(url, o.error)  # type: ignore[arg-type]
            for url, o in zip(targets, outcomes)
        ]
        report = LinkReport(results=results)
        summary = report.summary
        self.events.emit(
            ProgressEvent(
                STAGE,
                "finish",
                done=total,
                total=total,
                message=f"ok={summary['ok']} redirects={summary['redirects']} broken={summary['broken']}",
            )
        )
        return report
