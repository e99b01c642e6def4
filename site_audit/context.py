"""site_audit.context: explicit per-run state and the artifact manifest.

A :class:`RunContext` is created once per pipeline run and handed to every
stage; artifacts produced by one stage are registered on it by name so the
next stage receives an explicit handle instead of guessing the newest file.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from site_audit.events import EventBus
from site_audit.logger import logger

__all__ = ("RunContext", "new_run_id")

MANIFEST_PREFIX = "manifest"


def new_run_id(now: Optional[datetime] = None) -> str:
    """Filesystem-safe UTC timestamp, e.g. ``2026-10-19T11-37-02-123Z``."""
    now = now or datetime.now(timezone.utc)
    stamp = now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return stamp.replace(":", "-").replace(".", "-")


@dataclass
class RunContext:
    run_id: str
    output_dir: Path
    events: EventBus = field(default_factory=EventBus)
    artifacts: Dict[str, Path] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        output_dir: Union[str, Path],
        run_id: Optional[str] = None,
        events: Optional[EventBus] = None,
    ) -> RunContext:
        return cls(
            run_id=run_id or new_run_id(),
            output_dir=Path(output_dir),
            events=events or EventBus(),
        )

    @classmethod
    def from_manifest(cls, path: Union[str, Path], events: Optional[EventBus] = None) -> RunContext:
        """Restores a context (run id, output dir, artifacts) from a manifest file."""
        p = Path(path).expanduser()
        if not p.is_file():
            raise FileNotFoundError(f"Manifest not found: {p}")
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValueError(f"Неправильный JSON в {p}: {exc}") from exc
        if not isinstance(data, dict) or "runId" not in data:
            raise ValueError(f"{p} is not a SiteAudit manifest")
        ctx = cls(
            run_id=str(data["runId"]),
            output_dir=Path(data.get("outputDir") or p.parent),
            events=events or EventBus(),
        )
        for name, artifact in (data.get("artifacts") or {}).items():
            ctx.artifacts[name] = Path(artifact)
        logger.debug("Loaded manifest %s with %d artifacts", p, len(ctx.artifacts))
        return ctx

    def artifact_path(self, name: str, suffix: str) -> Path:
        """Path for a new artifact of this run, e.g. ``output/urls-<run_id>.txt``."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        return self.output_dir / f"{name}-{self.run_id}.{suffix.lstrip('.')}"

    def register(self, name: str, path: Union[str, Path]) -> Path:
        self.artifacts[name] = Path(path)
        return self.artifacts[name]

    def artifact(self, name: str) -> Path:
        try:
            return self.artifacts[name]
        except KeyError:
            raise KeyError(f"Run {self.run_id} has no '{name}' artifact") from None

    def has(self, name: str) -> bool:
        return name in self.artifacts

    def manifest(self) -> Dict[str, Any]:
        return {
            "runId": self.run_id,
            "outputDir": str(self.output_dir),
            "artifacts": {name: str(path) for name, path in self.artifacts.items()},
        }

    @property
    def manifest_path(self) -> Path:
        return self.output_dir / f"{MANIFEST_PREFIX}-{self.run_id}.json"

    def write_manifest(self) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.manifest_path
        path.write_text(json.dumps(self.manifest(), ensure_ascii=False, indent=2), encoding="utf-8")
        return path
