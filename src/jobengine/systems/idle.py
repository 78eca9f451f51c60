"""
Idle redirector.

Tops up workers that stand around with too few enabled tasks. Existing
assignments are never changed; only unassigned tasks are added, at the
lowest level.

Rule
----
    eligible(w)  = idle(w) and assigned(w) < fraction * visible_tasks
    value(w, t)  = score(w, t) * (active_demand if active(t) else 1)
                   + urgency(t) * urgency_weight

The ``top_k`` best unassigned capable tasks get ``level``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping

from jobengine.logging import getLogger
from jobengine.model import ImportanceClass, Task, Worker
from jobengine.providers import DemandOracle
from jobengine.settings import Settings
from jobengine.systems.scoring import score

log = getLogger(__name__)


def is_underused(
    worker: Worker,
    current: Mapping[str, int],
    visible_count: int,
    *,
    assigned_fraction: float = 0.5,
) -> bool:
    """Idle and holding fewer than ``assigned_fraction`` of the visible tasks."""
    if not worker.idle:
        return False
    assigned = sum(1 for level in current.values() if level > 0)
    return assigned < visible_count * assigned_fraction


def idle_topup(
    worker: Worker,
    current: Mapping[str, int],
    tasks: Mapping[str, Task],
    settings: Settings,
    oracle: DemandOracle,
    *,
    top_k: int = 5,
    level: int = 4,
    urgency_weight: float = 20.0,
    active_demand: float = 3.0,
    blocked: Callable[[str], bool] | None = None,
) -> dict[str, int]:
    """
    Pick new low-priority tasks for an idle worker.

    Parameters
    ----------
    worker : Worker
        Idle worker.
    current : Mapping[str, int]
        The worker's current level per task.
    tasks : Mapping[str, Task]
        Tasks by id.
    settings : Settings
        Importance policy (DISABLED tasks are skipped).
    oracle : DemandOracle
        Urgency and live-demand source.
    top_k : int, default 5
        Number of tasks to add.
    level : int, default 4
        Level for added tasks.
    urgency_weight, active_demand : float
        Demand weighting.
    blocked : callable, optional
        Predicate on task id for tasks that may not take another worker.

    Returns
    -------
    dict[str, int]
        Only the new assignments.
    """
    candidates: list[tuple[str, float]] = []
    for task in tasks.values():
        if not task.visible or not worker.can_do(task.id):
            continue
        if current.get(task.id, 0) > 0:
            continue
        if settings.importance_of(task) is ImportanceClass.DISABLED:
            continue
        if blocked is not None and blocked(task.id):
            continue
        value = score(worker, task)
        if oracle.has_active_work(task.id):
            value *= active_demand
        value += oracle.urgency(task.id) * urgency_weight
        candidates.append((task.id, value))

    candidates.sort(key=lambda item: -item[1])
    picked = {task_id: level for task_id, _ in candidates[:top_k]}
    if picked:
        log.info(
            "%s is idle; adding %s at level %d",
            worker.name,
            ", ".join(picked),
            level,
        )
    return picked
