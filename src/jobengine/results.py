"""
Recompute reports.

Every recompute returns a :class:`DistributionReport`. Nothing in it is
fatal: uncoverable tasks, quota shortfalls, rejected writes and role
misconfigurations are collected so that callers (and tests) can inspect
them after the colony has been assigned as well as possible.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from jobengine.errors import ConfigurationError, WriteFailure


@dataclass(slots=True, frozen=True)
class QuotaShortfall:
    """Minimum quota that could not be met (insufficient capable workers)."""

    task_id: str
    required: int
    assigned: int

    @property
    def missing(self) -> int:
        return self.required - self.assigned


@dataclass(slots=True)
class DistributionReport:
    """
    Outcome of one recompute.

    Attributes
    ----------
    tick : int
        Tick the recompute ran on.
    mode : str
        ``"colony"`` (passes A-E), ``"solo"`` (survival table),
        ``"individual"`` (single-worker path), ``"incremental"`` (drained
        dirty workers), ``"health"`` (only ill workers were managed) or
        ``"noop"``.
    workers : list[str]
        Workers whose priorities were (re)written.
    levels : dict[str, dict[str, int]]
        Internal level per worker and task after the recompute (0 omitted).
    primaries : dict[str, str]
        Primary task per worker.
    uncoverable : list[str]
        Tasks no managed worker can do.
    shortfalls : list[QuotaShortfall]
        Unmet minimum quotas.
    write_failures : list[WriteFailure]
        Writes rejected by the provider.
    config_errors : list[ConfigurationError]
        Role entries skipped as misconfigured.
    counts : dict[str, int]
        Workers at level > 0 per task (manual and ill included).
    ill : list[str]
        Workers handled by the health override.
    """

    tick: int = 0
    mode: str = "noop"
    workers: list[str] = field(default_factory=list)
    levels: dict[str, dict[str, int]] = field(default_factory=dict)
    primaries: dict[str, str] = field(default_factory=dict)
    uncoverable: list[str] = field(default_factory=list)
    shortfalls: list[QuotaShortfall] = field(default_factory=list)
    write_failures: list[WriteFailure] = field(default_factory=list)
    config_errors: list[ConfigurationError] = field(default_factory=list)
    counts: dict[str, int] = field(default_factory=dict)
    ill: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when nothing had to be reported."""
        return not (
            self.uncoverable
            or self.shortfalls
            or self.write_failures
            or self.config_errors
        )

    def merge(self, other: DistributionReport) -> None:
        """Fold a single-worker report into this one."""
        self.workers.extend(w for w in other.workers if w not in self.workers)
        self.levels.update(other.levels)
        self.primaries.update(other.primaries)
        self.write_failures.extend(other.write_failures)
        self.config_errors.extend(other.config_errors)
        self.ill.extend(w for w in other.ill if w not in self.ill)

    def to_dict(self) -> dict[str, Any]:
        """Plain-data view, e.g. for JSON logging."""
        return {
            "tick": self.tick,
            "mode": self.mode,
            "workers": list(self.workers),
            "levels": {w: dict(lv) for w, lv in self.levels.items()},
            "primaries": dict(self.primaries),
            "uncoverable": list(self.uncoverable),
            "shortfalls": [
                {"task": s.task_id, "required": s.required, "assigned": s.assigned}
                for s in self.shortfalls
            ],
            "write_failures": [str(e) for e in self.write_failures],
            "config_errors": [str(e) for e in self.config_errors],
            "counts": dict(self.counts),
            "ill": list(self.ill),
        }

    def __repr__(self) -> str:
        return (
            f"DistributionReport(tick={self.tick}, mode={self.mode!r}, "
            f"workers={len(self.workers)}, uncoverable={len(self.uncoverable)}, "
            f"shortfalls={len(self.shortfalls)}, "
            f"write_failures={len(self.write_failures)})"
        )
