"""
Quota tracker.

Effective bounds
----------------
    absolute:    min_eff = min,                     max_eff = max
    percentage:  min_eff = ceil(total * min / 100), max_eff = ceil(total * max / 100)

``max == 0`` is unlimited (``None``); a closed quota has ``max_eff == 0``.

Running counts include every worker holding the task at a level > 0:
the frozen workers (manual, ill) seeded up front and each automatic
assignment recorded during the recompute.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

from jobengine.logging import getLogger
from jobengine.model import QuotaSetting
from jobengine.typing import Bool1D, Int1D

log = getLogger(__name__)

UNLIMITED = -1


def effective_min(quota: QuotaSetting, total_workers: int) -> int:
    """
    Minimum worker count for a colony of ``total_workers``.

    Examples
    --------
    >>> effective_min(QuotaSetting(min=25, is_percentage=True), 10)
    3
    """
    if quota.closed or quota.min <= 0:
        return 0
    if quota.is_percentage:
        if total_workers <= 0:
            return 0
        return math.ceil(total_workers * quota.min / 100)
    return quota.min


def effective_max(quota: QuotaSetting, total_workers: int) -> int | None:
    """
    Maximum worker count, ``None`` when unlimited and 0 when closed.

    Examples
    --------
    >>> effective_max(QuotaSetting(max=0), 10) is None
    True
    >>> effective_max(QuotaSetting(closed=True), 10)
    0
    >>> effective_max(QuotaSetting(max=20, is_percentage=True), 12)
    3
    """
    if quota.closed:
        return 0
    if quota.max <= 0:
        return None
    if quota.is_percentage:
        return math.ceil(max(total_workers, 0) * quota.max / 100)
    return quota.max


class QuotaTracker:
    """
    Running per-task worker counts for one recompute.

    Parameters
    ----------
    task_ids : Sequence[str]
        Task universe, column order.
    quotas : Sequence[QuotaSetting]
        Quota per task, same order.
    total_workers : int
        Colony size used for percentage quotas (manual workers included).

    Attributes
    ----------
    min_req : Int1D
        Effective minimum per task.
    max_cap : Int1D
        Effective maximum per task, ``UNLIMITED`` (-1) when unbounded.
    counts : Int1D
        Workers currently holding the task at a level > 0.
    """

    __slots__ = ("task_ids", "min_req", "max_cap", "counts", "_index")

    def __init__(
        self,
        task_ids: Sequence[str],
        quotas: Sequence[QuotaSetting],
        total_workers: int,
    ) -> None:
        self.task_ids = list(task_ids)
        self._index = {t: i for i, t in enumerate(self.task_ids)}
        self.min_req: Int1D = np.array(
            [effective_min(q, total_workers) for q in quotas], dtype=np.int64
        )
        caps = [effective_max(q, total_workers) for q in quotas]
        self.max_cap: Int1D = np.array(
            [UNLIMITED if c is None else c for c in caps], dtype=np.int64
        )
        self.counts: Int1D = np.zeros(len(self.task_ids), dtype=np.int64)

    def index(self, task_id: str) -> int:
        return self._index[task_id]

    def seed(self, frozen_counts: Int1D) -> None:
        """Add pre-existing assignments of frozen workers."""
        self.counts += frozen_counts

    def add(self, t: int) -> None:
        self.counts[t] += 1

    def at_max(self, t: int) -> bool:
        cap = self.max_cap[t]
        return bool(cap != UNLIMITED and self.counts[t] >= cap)

    def under_min(self, t: int) -> bool:
        return bool(self.counts[t] < self.min_req[t])

    def closed(self, t: int) -> bool:
        return bool(self.max_cap[t] == 0)

    def remaining(self, t: int) -> int | None:
        """Free slots before max, None when unlimited."""
        cap = self.max_cap[t]
        if cap == UNLIMITED:
            return None
        return max(0, int(cap - self.counts[t]))

    def at_max_mask(self) -> Bool1D:
        return (self.max_cap != UNLIMITED) & (self.counts >= self.max_cap)

    def under_min_mask(self) -> Bool1D:
        return self.counts < self.min_req

    def status(self, t: int) -> str:
        """Classification used by the final count log line."""
        if self.under_min(t):
            return "BELOW MIN"
        cap = self.max_cap[t]
        if cap != UNLIMITED and self.counts[t] > cap:
            return "ABOVE MAX"
        return "OK"

    def log_final_counts(self) -> None:
        """Log worker counts of every task with a quota."""
        bounded = (self.min_req > 0) | (self.max_cap != UNLIMITED)
        for t in np.flatnonzero(bounded):
            cap = self.max_cap[t]
            log.info(
                "  %-16s %d workers (min %d, max %s) [%s]",
                self.task_ids[t],
                self.counts[t],
                self.min_req[t],
                "-" if cap == UNLIMITED else int(cap),
                self.status(int(t)),
            )
