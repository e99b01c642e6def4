"""site_audit.errors: failure taxonomy shared by every pipeline stage.

Per-URL failures (transport, HTTP, renderer, sub-sitemap) are carried as data
inside result records; only :class:`SitemapError` and missing input files stop
a run.
"""
from __future__ import annotations

__all__ = (
    "SiteAuditError",
    "TransportError",
    "HttpError",
    "RendererFailure",
    "ResourceFetchFailure",
    "SitemapError",
    "AuditorFailure",
)


class SiteAuditError(Exception):
    """Base class for all SiteAudit errors."""


class TransportError(SiteAuditError):
    """No response was received (DNS failure, refused connection, timeout)."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class HttpError(SiteAuditError):
    """A response was received with status >= 400."""

    def __init__(self, url: str, status: int) -> None:
        super().__init__(f"{url}: HTTP {status}")
        self.url = url
        self.status = status


class RendererFailure(SiteAuditError):
    """The page renderer could not produce a page record for ``url``."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class ResourceFetchFailure(SiteAuditError):
    """A sub-sitemap could not be retrieved or parsed during index resolution."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason

    def to_dict(self) -> dict[str, str]:
        return {"url": self.url, "error": self.reason}


class SitemapError(SiteAuditError):
    """Top-level sitemap could not be fetched or is not valid sitemap XML. Fatal."""


class AuditorFailure(SiteAuditError):
    """The page-quality auditor produced no scores for ``url``."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason
