"""site_audit.auditor: Lighthouse page-quality scores for a sample of URLs.

Two interchangeable auditors share one result parser: the local
``lighthouse`` CLI (one headless Chrome, so audits are strictly sequential)
and the PageSpeed Insights v5 API, which returns the same Lighthouse result
document over HTTP.
"""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

from aiohttp import ClientError, ClientSession, ClientTimeout

from site_audit.classifier import describe_failure
from site_audit.errors import AuditorFailure
from site_audit.events import EventBus, ProgressEvent
from site_audit.limiter import ConcurrencyLimiter
from site_audit.logger import get_logger

__all__ = (
    "AuditResult",
    "AuditBatch",
    "PageAuditor",
    "LighthouseCliAuditor",
    "PageSpeedAuditor",
    "parse_lighthouse_result",
    "run_audits",
)

CATEGORIES: Dict[str, str] = {
    "performance": "performance",
    "accessibility": "accessibility",
    "bestPractices": "best-practices",
    "seo": "seo",
}
METRICS: Dict[str, str] = {
    "fcp": "first-contentful-paint",
    "lcp": "largest-contentful-paint",
    "tbt": "total-blocking-time",
    "cls": "cumulative-layout-shift",
    "si": "speed-index",
}
CHECKS: Dict[str, str] = {
    "metaDescription": "meta-description",
    "viewport": "viewport",
    "documentTitle": "document-title",
    "httpStatusCode": "http-status-code",
    "linkText": "link-text",
    "crawlable": "is-crawlable",
    "robots": "robots-txt",
}
PAGESPEED_ENDPOINT = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"
AUDIT_CONCURRENCY = 1
STAGE = "lighthouse"

log = get_logger("lighthouse")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True, slots=True)
class AuditResult:
    url: str
    scores: Dict[str, Optional[float]] = field(default_factory=dict)
    metrics: Dict[str, Optional[float]] = field(default_factory=dict)
    audits: Dict[str, bool] = field(default_factory=dict)
    error: Optional[str] = None
    timestamp: str = field(default_factory=_now)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        if self.error is not None:
            return {"url": self.url, "error": self.error, "timestamp": self.timestamp}
        return {
            "url": self.url,
            "timestamp": self.timestamp,
            "scores": dict(self.scores),
            "metrics": dict(self.metrics),
            "audits": dict(self.audits),
        }


def parse_lighthouse_result(url: str, lhr: Mapping[str, Any]) -> AuditResult:
    """Builds an :class:`AuditResult` from a Lighthouse result (``lhr``) document.

    Category scores are scaled to 0-100; a missing score or metric is None.
    """
    runtime_error = lhr.get("runtimeError") or {}
    if runtime_error.get("code"):
        raise AuditorFailure(url, f"{runtime_error['code']}: {runtime_error.get('message', '')}".strip())

    categories = lhr.get("categories") or {}
    audits = lhr.get("audits") or {}
    if not categories:
        raise AuditorFailure(url, "Lighthouse result has no categories")

    scores: Dict[str, Optional[float]] = {}
    for key, lh_key in CATEGORIES.items():
        value = (categories.get(lh_key) or {}).get("score")
        scores[key] = round(float(value) * 100, 1) if isinstance(value, (int, float)) else None

    metrics: Dict[str, Optional[float]] = {}
    for key, lh_key in METRICS.items():
        value = (audits.get(lh_key) or {}).get("numericValue")
        metrics[key] = float(value) if isinstance(value, (int, float)) else None

    checks = {key: (audits.get(lh_key) or {}).get("score") == 1 for key, lh_key in CHECKS.items()}
    return AuditResult(url=url, scores=scores, metrics=metrics, audits=checks)


@runtime_checkable
class PageAuditor(Protocol):
    async def audit(self, url: str) -> AuditResult:
        ...


class LighthouseCliAuditor:
    """Runs ``lighthouse <url> --output=json`` in a subprocess."""

    def __init__(
        self,
        binary: str = "lighthouse",
        timeout: float = 180.0,
        chrome_flags: str = "--headless",
    ) -> None:
        self.binary = binary
        self.timeout = timeout
        self.chrome_flags = chrome_flags

    def command(self, url: str) -> List[str]:
        return [
            self.binary,
            url,
            "--output=json",
            "--output-path=stdout",
            "--quiet",
            f"--only-categories={','.join(CATEGORIES.values())}",
            f"--chrome-flags={self.chrome_flags}",
        ]

    async def audit(self, url: str) -> AuditResult:
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.command(url),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise AuditorFailure(url, f"cannot start {self.binary}: {exc}") from exc
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise AuditorFailure(url, f"lighthouse timed out after {self.timeout:.0f}s") from None
        if proc.returncode != 0:
            message = stderr.decode("utf-8", "replace").strip().splitlines()
            raise AuditorFailure(url, message[-1] if message else f"exit code {proc.returncode}")
        try:
            lhr = json.loads(stdout)
        except json.JSONDecodeError as exc:
            raise AuditorFailure(url, f"invalid lighthouse JSON: {exc}") from exc
        return parse_lighthouse_result(url, lhr)


class PageSpeedAuditor:
    """Lighthouse via the PageSpeed Insights API."""

    def __init__(
        self,
        session: ClientSession,
        api_key: Optional[str] = None,
        strategy: str = "mobile",
        timeout: float = 120.0,
        endpoint: str = PAGESPEED_ENDPOINT,
    ) -> None:
        self.session = session
        self.api_key = api_key
        self.strategy = strategy
        self.timeout = ClientTimeout(total=timeout)
        self.endpoint = endpoint

    def params(self, url: str) -> List[tuple[str, str]]:
        params = [("url", url), ("strategy", self.strategy)]
        params += [("category", c) for c in CATEGORIES.values()]
        if self.api_key:
            params.append(("key", self.api_key))
        return params

    async def audit(self, url: str) -> AuditResult:
        try:
            async with self.session.get(self.endpoint, params=self.params(url), timeout=self.timeout) as resp:
                payload = await resp.json(content_type=None)
                status = resp.status
        except (ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise AuditorFailure(url, describe_failure(exc)) from exc
        if status != 200:
            reason = f"HTTP {status}"
            err = payload.get("error") if isinstance(payload, dict) else None
            if isinstance(err, dict) and err.get("message"):
                reason = f"{reason}: {err['message']}"
            raise AuditorFailure(url, reason)
        return parse_lighthouse_result(url, (payload or {}).get("lighthouseResult") or {})


@dataclass(slots=True)
class AuditBatch:
    results: List[AuditResult] = field(default_factory=list)

    @property
    def successful(self) -> List[AuditResult]:
        return [r for r in self.results if r.ok]

    @property
    def average_scores(self) -> Optional[Dict[str, Optional[float]]]:
        """Per-category mean over successful audits; None when none succeeded."""
        ok = self.successful
        if not ok:
            return None
        averages: Dict[str, Optional[float]] = {}
        for key in CATEGORIES:
            values = [r.scores[key] for r in ok if r.scores.get(key) is not None]
            averages[key] = round(sum(values) / len(values), 1) if values else None  # type: ignore[arg-type]
        return averages

    @property
    def summary(self) -> Dict[str, Any]:
        return {
            "totalUrls": len(self.results),
            "successful": len(self.successful),
            "failed": len(self.results) - len(self.successful),
            "averageScores": self.average_scores,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {"summary": self.summary, "results": [r.to_dict() for r in self.results]}


async def run_audits(
    urls: Sequence[str],
    auditor: PageAuditor,
    sample_size: int = 10,
    events: Optional[EventBus] = None,
) -> AuditBatch:
    """Audits the first *sample_size* URLs one at a time."""
    events = events or EventBus()
    sampled = [u for u in urls if u.strip()][:sample_size]
    total = len(sampled)
    done = 0
    events.emit(ProgressEvent(STAGE, "start", total=total, message=f"{total} URLs sampled"))

    async def _one(url: str) -> AuditResult:
        nonlocal done
        try:
            result = await auditor.audit(url)
        finally:
            done += 1
        scores = result.scores
        log.info(
            "✅ [%d/%d] %s | Performance: %s | SEO: %s | Accessibility: %s",
            done, total, url, scores.get("performance"), scores.get("seo"), scores.get("accessibility"),
        )
        events.emit(ProgressEvent(STAGE, "item", url=url, done=done, total=total, category="ok"))
        return result

    outcomes = await ConcurrencyLimiter(AUDIT_CONCURRENCY).map(_one, sampled)
    results: List[AuditResult] = []
    for url, outcome in zip(sampled, outcomes):
        if outcome.ok:
            results.append(outcome.value)  # type: ignore[arg-type]
            continue
        reason = outcome.error.reason if isinstance(outcome.error, AuditorFailure) else str(outcome.error)
        log.error("✗ Error: %s - %s", url, reason)
        events.emit(ProgressEvent(STAGE, "failure", url=url, done=done, total=total, message=reason))
        results.append(AuditResult(url=url, error=reason))
    batch = AuditBatch(results=results)
    events.emit(ProgressEvent(STAGE, "finish", done=total, total=total, message=f"{len(batch.successful)} succeeded"))
    return batch
