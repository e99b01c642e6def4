"""site_audit.models: link-check records and reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class StatusCategory(str, Enum):
    OK = "ok"
    REDIRECT = "redirect"
    BROKEN = "broken"
    ERROR = "error"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class CheckResult:
    """Outcome of one link probe. ``status`` is 0 when nothing answered."""

    url: str
    status: int
    category: StatusCategory
    redirect_target: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"url": self.url, "status": self.status, "type": self.category.value}
        if self.category is StatusCategory.REDIRECT:
            data["redirectTo"] = self.redirect_target
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(slots=True)
class LinkReport:
    """Link-check summary; ``ok`` results are only counted.

    ``broken`` holds both ``broken`` and ``error`` records, ``results`` every
    record in input order.
    """

    results: List[CheckResult] = field(default_factory=list)

    def _of(self, *categories: StatusCategory) -> List[CheckResult]:
        return [r for r in self.results if r.category in categories]

    @property
    def broken(self) -> List[CheckResult]:
        return self._of(StatusCategory.BROKEN, StatusCategory.ERROR)

    @property
    def redirects(self) -> List[CheckResult]:
        return self._of(StatusCategory.REDIRECT)

    @property
    def errors(self) -> List[CheckResult]:
        return self._of(StatusCategory.ERROR)

    @property
    def summary(self) -> Dict[str, int]:
        return {
            "total": len(self.results),
            "ok": len(self._of(StatusCategory.OK)),
            "redirects": len(self.redirects),
            "broken": len(self.broken),
            "errors": len(self.errors),
            "unknown": len(self._of(StatusCategory.UNKNOWN)),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "broken": [r.to_dict() for r in self.broken],
            "redirects": [r.to_dict() for r in self.redirects],
        }
