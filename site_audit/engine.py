# File: site_audit/engine.py
"""site_audit.engine: Orchestration layer, цепочка стадий аудита в рамках одного RunContext.

Stages hand data to each other directly; every artifact they write is
registered on the run context, and the manifest written at the end is what a
later run uses to pick up where this one stopped.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from aiohttp import ClientSession, ClientTimeout, TCPConnector

from site_audit.auditor import AuditBatch, LighthouseCliAuditor, PageAuditor, PageSpeedAuditor, run_audits
from site_audit.config import AuditConfig
from site_audit.context import RunContext
from site_audit.crawler.crawler import AsyncCrawler
from site_audit.crawler.models import CrawlResult, PageRecord
from site_audit.crawler.renderer import HttpRenderer, PageRenderer
from site_audit.link_checker import LinkChecker
from site_audit.logger import logger
from site_audit.models import LinkReport
from site_audit.reconciler import DiffReport, reconcile
from site_audit.report.csv_report import write_issues_csv
from site_audit.report.json_report import write_json, write_url_list
from site_audit.seo_issues import SeoReport, analyze_pages, load_pages
from site_audit.sitemap import SitemapFetcher, SitemapResult
from site_audit.utils import read_url_list

__all__ = ["AuditPipeline", "build_session", "build_auditor"]


def build_session(config: AuditConfig) -> ClientSession:
    """Одна HTTP-сессия на прогон: общий User-Agent и настройка TLS."""
    return ClientSession(
        timeout=ClientTimeout(total=None),
        headers={"User-Agent": config.user_agent},
        connector=TCPConnector(ssl=None if config.verify_ssl else False),
        raise_for_status=False,
    )


def build_auditor(config: AuditConfig, session: ClientSession) -> PageAuditor:
    if config.auditor == "pagespeed":
        return PageSpeedAuditor(session, api_key=config.pagespeed_api_key)
    return LighthouseCliAuditor(binary=config.lighthouse_binary)


class AuditPipeline:
    """Фасад для CLI и тестов: стадии crawl → links → seo → lighthouse → sitemap."""

    def __init__(
        self,
        config: AuditConfig,
        context: RunContext,
        *,
        session: Optional[ClientSession] = None,
        renderer: Optional[PageRenderer] = None,
        auditor: Optional[PageAuditor] = None,
    ) -> None:
        self.config = config
        self.context = context
        self._session = session
        self._owns_session = session is None
        self._renderer = renderer
        self._auditor = auditor
        self.stages: Dict[str, Dict[str, Any]] = {}

    async def __aenter__(self) -> AuditPipeline:
        if self._session is None:
            self._session = build_session(self.config)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    @property
    def session(self) -> ClientSession:
        if self._session is None:
            raise RuntimeError("Session not initialized; use 'async with AuditPipeline(...)'")
        return self._session

    @property
    def events(self):
        return self.context.events

    # ------------------------------------------------------------------ #
    # stages
    # ------------------------------------------------------------------ #

    async def crawl(self, start_url: Optional[str] = None) -> CrawlResult:
        url = start_url or (str(self.config.start_url) if self.config.start_url else None)
        if not url:
            raise ValueError("No start URL given")
        crawler = AsyncCrawler(
            renderer=self._renderer or HttpRenderer(self.session, timeout=self.config.page_timeout),
            start_url=url,
            max_pages=self.config.max_pages,
            max_depth=self.config.max_depth,
            concurrency=self.config.crawl_concurrency,
            events=self.events,
        )
        result = await crawler.crawl()
        ctx = self.context
        ctx.register("urls", write_url_list(result.urls, ctx.artifact_path("urls", "txt")))
        ctx.register("pages", write_json({"pages": [p.to_dict() for p in result.pages]}, ctx.artifact_path("pages", "json")))
        if result.failures:
            ctx.register(
                "crawl-failures",
                write_json({"failures": [f.to_dict() for f in result.failures]}, ctx.artifact_path("crawl-failures", "json")),
            )
        self.stages["crawl"] = {
            "startUrl": url,
            "pages": len(result.pages),
            "discovered": len(result.visited),
            "failed": len(result.failures),
        }
        return result

    async def check_links(self, urls: Sequence[str]) -> LinkReport:
        checker = LinkChecker(
            self.session,
            concurrency=self.config.link_concurrency,
            timeout=self.config.request_timeout,
            events=self.events,
        )
        report = await checker.check(urls)
        self.context.register("links", write_json(report.to_dict(), self.context.artifact_path("broken-links", "json")))
        self.stages["links"] = report.summary
        return report

    def analyze_seo(self, pages: Sequence[PageRecord]) -> SeoReport:
        report = analyze_pages(pages, events=self.events)
        ctx = self.context
        ctx.register("seo-issues", write_issues_csv(report.issues, ctx.artifact_path("seo-issues", "csv")))
        ctx.register("seo", write_json(report.to_dict(), ctx.artifact_path("seo-report", "json")))
        self.stages["seo"] = report.stats
        return report

    async def audit_pages(self, urls: Sequence[str], sample_size: Optional[int] = None) -> AuditBatch:
        auditor = self._auditor or build_auditor(self.config, self.session)
        size = self.config.lighthouse_sample if sample_size is None else sample_size
        batch = await run_audits(urls, auditor, sample_size=size, events=self.events)
        self.context.register("lighthouse", write_json(batch.to_dict(), self.context.artifact_path("lighthouse", "json")))
        summary = batch.summary
        self.stages["lighthouse"] = {
            "totalUrls": summary["totalUrls"],
            "successful": summary["successful"],
            "failed": summary["failed"],
            **{f"avg_{k}": v for k, v in (summary["averageScores"] or {}).items()},
        }
        return batch

    async def diff_sitemap(self, sitemap_url: str, urls: Sequence[str]) -> Tuple[DiffReport, SitemapResult]:
        fetcher = SitemapFetcher(self.session, timeout=self.config.page_timeout, events=self.events)
        sitemap = await fetcher.collect(sitemap_url)
        diff = reconcile(sitemap.urls, urls)
        data = diff.to_dict()
        data["sitemapFailures"] = [f.to_dict() for f in sitemap.failures]
        self.context.register("sitemap-diff", write_json(data, self.context.artifact_path("sitemap-diff", "json")))
        summary = diff.summary
        logger.info(
            "Sitemap diff: %d in sitemap, %d crawled, %d orphaned, %d missing, coverage %s",
            summary["sitemapUrls"],
            summary["crawledUrls"],
            summary["orphanedPages"],
            summary["missingPages"],
            summary["coverage"],
        )
        self.stages["sitemap"] = {**summary, "sitemapFailures": len(sitemap.failures)}
        return diff, sitemap

    # ------------------------------------------------------------------ #
    # full run
    # ------------------------------------------------------------------ #

    def _previous_crawl(self) -> Tuple[List[str], List[PageRecord]]:
        urls = read_url_list(self.context.artifact("urls"))
        pages = load_pages(self.context.artifact("pages")) if self.context.has("pages") else []
        logger.info("Skipping crawl, using %s", self.context.artifact("urls"))
        return urls, pages

    async def run(
        self,
        start_url: Optional[str] = None,
        *,
        sitemap_url: Optional[str] = None,
        sample_size: Optional[int] = None,
        skip_crawl: bool = False,
        skip_links: bool = False,
        skip_seo: bool = False,
        skip_lighthouse: bool = False,
        skip_sitemap: bool = False,
    ) -> Dict[str, Any]:
        """Запускает все стадии и возвращает сводку прогона.

        Манифест пишется и при падении стадии, чтобы готовые артефакты можно
        было подхватить через ``--manifest``.
        """
        try:
            if skip_crawl:
                urls, pages = self._previous_crawl()
            else:
                result = await self.crawl(start_url)
                urls, pages = result.urls, result.pages

            if not skip_links and urls:
                await self.check_links(urls)
            if not skip_seo and pages:
                self.analyze_seo(pages)
            if not skip_lighthouse and urls:
                await self.audit_pages(urls, sample_size)
            sitemap = sitemap_url or (str(self.config.sitemap_url) if self.config.sitemap_url else None)
            if not skip_sitemap and sitemap:
                await self.diff_sitemap(sitemap, urls)
        except Exception:
            manifest = self.context.write_manifest()
            logger.error("Audit stopped, partial manifest: %s", manifest)
            raise

        self.context.write_manifest()
        logger.info("Audit complete, manifest: %s", self.context.manifest_path)
        return self.summary()

    def summary(self) -> Dict[str, Any]:
        return {
            "runId": self.context.run_id,
            "stages": dict(self.stages),
            "artifacts": {name: str(path) for name, path in self.context.artifacts.items()},
        }
