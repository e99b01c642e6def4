"""site_audit.classifier: maps an HTTP outcome to exactly one status category."""

from __future__ import annotations

import asyncio
from typing import Optional
from urllib.parse import urljoin

from site_audit.errors import TransportError
from site_audit.models import CheckResult, StatusCategory

__all__ = ("classify_status", "classify_response", "classify_failure", "describe_failure", "transport_error")


def classify_status(status: Optional[int], failed: bool = False) -> StatusCategory:
    """``failed`` means no response at all (transport failure)."""
    if failed:
        return StatusCategory.ERROR
    if status is None:
        return StatusCategory.UNKNOWN
    if 200 <= status < 300:
        return StatusCategory.OK
    if 300 <= status < 400:
        return StatusCategory.REDIRECT
    if status >= 400:
        return StatusCategory.BROKEN
    return StatusCategory.UNKNOWN


def classify_response(url: str, status: int, location: Optional[str] = None) -> CheckResult:
    category = classify_status(status)
    target = None
    if category is StatusCategory.REDIRECT and location:
        target = urljoin(url, location)
    return CheckResult(url=url, status=status, category=category, redirect_target=target)


def describe_failure(exc: BaseException) -> str:
    if isinstance(exc, TransportError):
        return exc.reason
    if isinstance(exc, asyncio.TimeoutError):
        return "timeout"
    return str(exc) or type(exc).__name__


def transport_error(url: str, exc: BaseException) -> TransportError:
    """Wraps a client-side failure (timeout, refused connection, bad URL) for *url*."""
    error = TransportError(url, describe_failure(exc))
    error.__cause__ = exc
    return error


def classify_failure(url: str, exc: BaseException) -> CheckResult:
    return CheckResult(
        url=url,
        status=0,
        category=classify_status(None, failed=True),
        error=describe_failure(exc),
    )
