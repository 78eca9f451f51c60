"""
Solo survival table.

A colony of one cannot spread work, so the lone worker gets a fixed
table that favours food, fire and medicine over everything else. Only
visible tasks the worker can do are set; every other task is cleared.
"""

from __future__ import annotations

from collections.abc import Mapping

from jobengine.logging import getLogger
from jobengine.model import Task, Worker

log = getLogger(__name__)


def survival_assignments(
    worker: Worker,
    tasks: Mapping[str, Task],
    table: Mapping[str, int],
) -> dict[str, int]:
    """
    Level map for a lone worker.

    Parameters
    ----------
    worker : Worker
        The only worker of the colony.
    tasks : Mapping[str, Task]
        Tasks by id.
    table : Mapping[str, int]
        Survival level per task id; tasks not listed stay at 0.

    Returns
    -------
    dict[str, int]
        Level per visible capable task.
    """
    levels = {t.id: 0 for t in tasks.values() if t.visible and worker.can_do(t.id)}
    for task_id, level in table.items():
        if task_id in levels:
            levels[task_id] = level
    log.debug(
        "Survival table for %s: %d of %d listed tasks applicable",
        worker.name,
        sum(1 for t in table if t in levels),
        len(table),
    )
    return levels
