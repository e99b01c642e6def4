"""site_audit.seo_issues: on-page SEO checks over crawled page records."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from site_audit.crawler.models import PageRecord
from site_audit.events import EventBus, ProgressEvent
from site_audit.logger import logger

__all__ = ("SeoIssue", "SeoReport", "analyze_page", "analyze_pages", "load_pages")

TITLE_MIN, TITLE_MAX = 30, 60
DESCRIPTION_MIN, DESCRIPTION_MAX = 120, 160
PROGRESS_EVERY = 100
STAGE = "seo"

MISSING_TITLE = "Missing title tag"
MISSING_DESCRIPTION = "Missing meta description"
MISSING_H1 = "Missing H1 tag"
MISSING_CANONICAL = "Missing canonical tag"


@dataclass(frozen=True, slots=True)
class SeoIssue:
    page: PageRecord
    problems: tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        data = self.page.to_dict()
        data["issues"] = "; ".join(self.problems)
        data["issueCount"] = len(self.problems)
        return data


@dataclass(slots=True)
class SeoReport:
    total_pages: int = 0
    issues: List[SeoIssue] = field(default_factory=list)

    def _count(self, problem: str) -> int:
        return sum(1 for i in self.issues if problem in i.problems)

    @property
    def stats(self) -> Dict[str, int]:
        return {
            "totalPages": self.total_pages,
            "pagesWithIssues": len(self.issues),
            "missingTitles": self._count(MISSING_TITLE),
            "missingDescriptions": self._count(MISSING_DESCRIPTION),
            "missingH1": self._count(MISSING_H1),
            "missingCanonical": self._count(MISSING_CANONICAL),
            "non200Status": sum(1 for i in self.issues if i.page.status_code != 200),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {"stats": self.stats, "issues": [i.to_dict() for i in self.issues]}


def analyze_page(page: PageRecord) -> List[str]:
    """Returns the list of problems found on *page* (empty when it is clean)."""
    problems: List[str] = []

    title = page.title.strip()
    if not title:
        problems.append(MISSING_TITLE)
    elif len(title) < TITLE_MIN:
        problems.append(f"Title too short (< {TITLE_MIN} chars)")
    elif len(title) > TITLE_MAX:
        problems.append(f"Title too long (> {TITLE_MAX} chars)")

    description = page.meta_description.strip()
    if not description:
        problems.append(MISSING_DESCRIPTION)
    elif len(description) < DESCRIPTION_MIN:
        problems.append(f"Meta description too short (< {DESCRIPTION_MIN} chars)")
    elif len(description) > DESCRIPTION_MAX:
        problems.append(f"Meta description too long (> {DESCRIPTION_MAX} chars)")

    if not page.h1.strip():
        problems.append(MISSING_H1)
    if not page.canonical.strip():
        problems.append(MISSING_CANONICAL)
    if page.status_code != 200:
        problems.append(f"Non-200 status: {page.status_code}")
    return problems


def analyze_pages(pages: Iterable[PageRecord], events: Optional[EventBus] = None) -> SeoReport:
    events = events or EventBus()
    records = list(pages)
    report = SeoReport(total_pages=len(records))
    for index, page in enumerate(records, start=1):
        problems = analyze_page(page)
        if problems:
            report.issues.append(SeoIssue(page=page, problems=tuple(problems)))
        if index % PROGRESS_EVERY == 0:
            events.emit(ProgressEvent(STAGE, "item", done=index, total=len(records), message="analyzed"))
    logger.info("SEO analysis: %d of %d pages have issues", len(report.issues), report.total_pages)
    return report


def load_pages(path: Union[str, Path]) -> List[PageRecord]:
    """Loads a page-record JSON array (or a crawl report with a ``pages`` key)."""
    p = Path(path).expanduser()
    if not p.is_file():
        raise FileNotFoundError(f"Pages file not found: {p}")
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {p}: {exc}") from exc
    if isinstance(data, dict):
        data = data.get("pages", [])
    if not isinstance(data, list):
        raise TypeError(f"Ожидался список страниц, получено {type(data).__name__}")
    return [PageRecord.from_dict(item) for item in data]
