"""
Error taxonomy for Job Engine.

Only two conditions are real exceptions. The others are outcomes the
engine records in its :class:`~jobengine.results.DistributionReport`:

* incapable (worker, task) pairs are masked out before scoring, so a
  capability mismatch never reaches a write;
* an unsatisfiable minimum quota becomes a
  :class:`~jobengine.results.QuotaShortfall` record and a WARNING.

No failure aborts a recompute.
"""

from __future__ import annotations


class ConfigurationError(ValueError):
    """A role or settings entry references something that does not exist."""

    def __init__(
        self, message: str, *, role: str | None = None, task_id: str | None = None
    ) -> None:
        super().__init__(message)
        self.role = role
        self.task_id = task_id


class WriteFailure(RuntimeError):
    """Raised by a worker-state provider when it rejects a priority write."""

    def __init__(
        self, worker_id: str, task_id: str, level: int, reason: str = "rejected"
    ) -> None:
        super().__init__(
            f"write of level {level} for task '{task_id}' on worker "
            f"'{worker_id}' failed: {reason}"
        )
        self.worker_id = worker_id
        self.task_id = task_id
        self.level = level
        self.reason = reason


__all__ = ["ConfigurationError", "WriteFailure"]
