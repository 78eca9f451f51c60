"""Per-task staffing quota."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class QuotaSetting:
    """
    Min/max worker-count constraint on a task.

    Parameters
    ----------
    min : int, default 0
        Minimum number of workers (absolute, or percent of the colony).
    max : int, default 0
        Maximum number of workers. 0 means unlimited.
    is_percentage : bool, default False
        Interpret ``min`` and ``max`` as percentages of the colony size.
    closed : bool, default False
        Explicit zero: the engine never staffs the task and it is exempt
        from the coverage guarantee. Distinct from ``max == 0``.
    """

    min: int = 0
    max: int = 0
    is_percentage: bool = False
    closed: bool = False

    def __post_init__(self) -> None:
        if self.min < 0 or self.max < 0:
            raise ValueError(
                f"Quota bounds must be >= 0, got min={self.min}, max={self.max}"
            )
        if self.max > 0 and self.min > self.max:
            raise ValueError(f"Quota min ({self.min}) exceeds max ({self.max})")

    @property
    def is_default(self) -> bool:
        return self == UNBOUNDED


UNBOUNDED = QuotaSetting()
