"""site_audit.events: progress events emitted by pipeline stages.

Stages never print progress themselves: they emit :class:`ProgressEvent`
objects on an :class:`EventBus` and whoever subscribed decides how to render
them (the CLI attaches :class:`LoggingProgressRenderer`).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from site_audit.logger import get_logger

__all__ = ("ProgressEvent", "EventBus", "LoggingProgressRenderer")

Subscriber = Callable[["ProgressEvent"], None]


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """One progress notification.

    ``kind`` is ``start``, ``item``, ``failure`` or ``finish``; ``done`` and
    ``total`` count items of the ``stage`` handled so far.
    """

    stage: str
    kind: str
    url: str = ""
    done: int = 0
    total: Optional[int] = None
    status: Optional[int] = None
    category: str = ""
    message: str = ""


class EventBus:
    """Synchronous fan-out of progress events to subscribers."""

    def __init__(self) -> None:
        self._subscribers: List[Subscriber] = []
        self._log = get_logger("events")

    def subscribe(self, handler: Subscriber) -> Callable[[], None]:
        """Registers *handler*; returns a callable that unsubscribes it."""
        self._subscribers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._subscribers:
                self._subscribers.remove(handler)

        return _unsubscribe

    def emit(self, event: ProgressEvent) -> None:
        for handler in list(self._subscribers):
            try:
                handler(event)
            except Exception:
                # a broken renderer must not stop the stage
                self._log.exception("Progress subscriber %r failed", handler)


_ICONS = {"ok": "✓", "redirect": "↪", "broken": "✗", "error": "✗", "unknown": "?"}


class LoggingProgressRenderer:
    """Renders progress events as log lines, e.g. ``✓ [3/10] 200 - https://…``."""

    def __init__(self, logger: Optional[logging.Logger] = None, url_width: int = 80) -> None:
        self.logger = logger or get_logger("progress")
        self.url_width = url_width

    def __call__(self, event: ProgressEvent) -> None:
        url = event.url[: self.url_width]
        counter = f"[{event.done}/{event.total}]" if event.total is not None else f"[{event.done}]"
        if event.kind == "start":
            self.logger.info("%s: %s", event.stage, event.message or url)
        elif event.kind == "finish":
            self.logger.info("%s finished: %s", event.stage, event.message)
        elif event.kind == "failure":
            self.logger.warning("✗ %s %s - %s", counter, url, event.message)
        else:
            icon = _ICONS.get(event.category, "✓")
            status = event.status if event.status is not None else "-"
            self.logger.info("%s %s %s - %s", icon, counter, status, url)
