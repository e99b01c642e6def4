# File: site_audit/utils.py
"""site_audit.utils: URL normalisation, host checks and URL-list input helpers."""

from __future__ import annotations

import posixpath
import re
import string
from pathlib import Path
from typing import Collection, List, Sequence, Union
from urllib.parse import urlparse, urlsplit, urlunsplit

from site_audit.logger import logger

__all__: Sequence[str] = (
    "normalize_url",
    "is_http_url",
    "extract_host",
    "is_same_host",
    "read_url_list",
    "remove_duplicates",
)

_HTTP_SCHEMES = ("http", "https")
_ESCAPE = re.compile(r"%([0-9A-Fa-f]{2})")
_UNRESERVED = frozenset(string.ascii_letters + string.digits + "-._~")


def _normalize_escapes(text: str) -> str:
    """Upper-cases percent-escapes and decodes the ones for unreserved characters."""

    def _fix(match: re.Match[str]) -> str:
        char = chr(int(match.group(1), 16))
        return char if char in _UNRESERVED else "%" + match.group(1).upper()

    return _ESCAPE.sub(_fix, text)


def normalize_url(url: str) -> str:
    """Canonical identity of a URL for deduplication and set comparison.

    Lower-cases scheme and host, drops the fragment, collapses dot-segments,
    turns an empty path into ``/`` and sorts the raw query pairs. Escapes are
    only canonicalized, never decoded into reserved characters, so ``/a%2Fb``
    and ``/a/b`` stay different. Strings without a scheme or host (``/x``) are
    only stripped of whitespace.

    The result is a key, not a request URL: fetch the link as it was found.
    """
    raw = url.strip()
    parsed = urlsplit(raw)
    if not parsed.scheme or not parsed.netloc:
        return raw

    scheme = parsed.scheme.lower()
    netloc = parsed.netloc.lower()
    path = _normalize_escapes(parsed.path or "/")
    norm = posixpath.normpath(path)
    if path.endswith("/") and not norm.endswith("/"):
        norm += "/"
    if not norm.startswith("/"):
        norm = "/" + norm
    # normpath keeps a leading double slash
    if norm.startswith("//"):
        norm = "/" + norm.lstrip("/")
    pairs = [p for p in _normalize_escapes(parsed.query).split("&") if p]
    query = "&".join(sorted(pairs))
    return urlunsplit((scheme, netloc, norm, query, ""))


def is_http_url(url: str) -> bool:
    """True for absolute http(s) URLs."""
    parsed = urlparse(url)
    return parsed.scheme.lower() in _HTTP_SCHEMES and bool(parsed.netloc)


def extract_host(url: str) -> str:
    """Host component (``netloc``, lower-cased) of *url*."""
    return urlparse(url).netloc.lower()


def is_same_host(url: str, host: str) -> bool:
    """Checks that *url* is an http(s) URL on *host*."""
    return is_http_url(url) and extract_host(url) == host.lower()


def read_url_list(path: Union[str, Path]) -> List[str]:
    """Reads a newline-delimited URL list, skipping blank lines.

    A missing file is fatal for the calling stage.
    """
    p = Path(path).expanduser()
    if not p.is_file():
        logger.error("URL list not found: %s", p)
        raise FileNotFoundError(f"URL list file not found: {p}")
    urls = [line.strip() for line in p.read_text(encoding="utf-8").splitlines() if line.strip()]
    logger.debug("Loaded %d URLs from %s", len(urls), p)
    return urls


def remove_duplicates(urls: Collection[str]) -> List[str]:
    """Удаляет дубликаты из списка URL, сохраняя порядок."""
    unique = list(dict.fromkeys(urls))
    removed = len(urls) - len(unique)
    if removed:
        logger.debug("Removed %d duplicate URLs", removed)
    return unique
