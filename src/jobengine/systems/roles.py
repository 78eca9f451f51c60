"""
Role resolver.

Turns a worker's :data:`~jobengine.model.RoleDescriptor` into concrete
(task, level) pairs. There is one resolution function per variant:

* ``SinglePreset`` -> one pinned task at level 1;
* ``Composite``    -> tiered list, tier ``k`` -> level ``k``;
* ``Custom``       -> entries grouped by importance and expanded with
  :func:`tier_level`;
* ``Auto``         -> best task by importance-weighted score, discounted by
  how many workers already hold it as primary;
* ``Manual``       -> :data:`SKIP`.

Entries naming tasks that do not exist, are hidden, DISABLED, always
enabled or that the worker cannot do are dropped. Unknown tasks in a
custom role are configuration errors: they are logged and reported, and
resolution continues with the remaining entries.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Final

from jobengine.errors import ConfigurationError
from jobengine.logging import getLogger
from jobengine.model import (
    Auto,
    Composite,
    Custom,
    ImportanceClass,
    Manual,
    RoleDescriptor,
    SinglePreset,
    Task,
    Worker,
)
from jobengine.settings import Settings
from jobengine.systems.scoring import importance_modifier, score

log = getLogger(__name__)


class _Skip:
    """Sentinel returned for Manual workers."""

    _instance: _Skip | None = None

    def __new__(cls) -> _Skip:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SKIP"

    def __bool__(self) -> bool:
        return False


SKIP: Final = _Skip()

# Custom entries are expanded group by group in this order
IMPORTANCE_ORDER: Final = (
    ImportanceClass.CRITICAL,
    ImportanceClass.HIGH,
    ImportanceClass.NORMAL,
    ImportanceClass.LOW,
    ImportanceClass.VERY_LOW,
)


@dataclass(slots=True)
class Resolution:
    """
    Result of resolving a role.

    Attributes
    ----------
    entries : list[tuple[str, int]]
        (task id, level) pairs in role order. The first level-1 entry is
        the primary.
    errors : list[ConfigurationError]
        Entries that were skipped because the role is misconfigured.
    """

    entries: list[tuple[str, int]] = field(default_factory=list)
    errors: list[ConfigurationError] = field(default_factory=list)

    @property
    def primary(self) -> str | None:
        return next((t for t, level in self.entries if level == 1), None)

    def __bool__(self) -> bool:
        return bool(self.entries)


def tier_level(importance: ImportanceClass, index: int, n: int) -> int:
    """
    Priority level for the ``index``-th of ``n`` ranked entries.

    Rule
    ----
        CRITICAL  -> 1
        HIGH      -> 1 for the first half, else 2
        NORMAL    -> 2 for the first 30 %, 3 for the next 40 %, else 4
        LOW       -> 3 for the first 30 %, else 4
        VERY_LOW  -> 4

    Examples
    --------
    >>> [tier_level(ImportanceClass.NORMAL, i, 10) for i in range(10)]
    [2, 2, 2, 3, 3, 3, 3, 4, 4, 4]
    """
    if importance is ImportanceClass.CRITICAL:
        return 1
    if importance is ImportanceClass.HIGH:
        return 1 if index < n * 0.5 else 2
    if importance is ImportanceClass.NORMAL:
        if index < n * 0.3:
            return 2
        return 3 if index < n * 0.7 else 4
    if importance is ImportanceClass.LOW:
        return 3 if index < n * 0.3 else 4
    return 4


def eligible(worker: Worker, task: Task | None, settings: Settings) -> bool:
    """Visible, capable, non-DISABLED, not always-enabled."""
    return (
        task is not None
        and task.visible
        and worker.can_do(task.id)
        and not settings.is_always_enabled(task)
        and settings.importance_of(task) is not ImportanceClass.DISABLED
    )


def resolve_single(
    role: SinglePreset,
    worker: Worker,
    tasks: Mapping[str, Task],
    settings: Settings,
) -> Resolution:
    """Pin ``role.task_id`` at level 1 when the worker can take it."""
    if eligible(worker, tasks.get(role.task_id), settings):
        return Resolution([(role.task_id, 1)])
    log.debug(
        "Preset '%s' unusable for %s (task '%s' missing or ineligible)",
        role.label,
        worker.name,
        role.task_id,
    )
    return Resolution()


def resolve_composite(
    role: Composite,
    worker: Worker,
    tasks: Mapping[str, Task],
    settings: Settings,
) -> Resolution:
    """Keep the template order; tier ``k`` becomes level ``k``."""
    res = Resolution()
    seen: set[str] = set()
    for task_id, tier in role.entries:
        if task_id in seen:
            continue
        if task_id not in tasks:
            # templates name tasks that only some hosts provide
            log.debug("Composite '%s': no task '%s' here", role.label, task_id)
            continue
        if eligible(worker, tasks[task_id], settings):
            res.entries.append((task_id, tier))
            seen.add(task_id)
    return res


def resolve_custom(
    role: Custom,
    worker: Worker,
    tasks: Mapping[str, Task],
    settings: Settings,
) -> Resolution:
    """Group entries by importance and expand each group with tier_level."""
    res = Resolution()
    groups: dict[ImportanceClass, list[str]] = {imp: [] for imp in IMPORTANCE_ORDER}
    seen: set[str] = set()
    for task_id, importance in role.entries:
        if task_id not in tasks:
            err = ConfigurationError(
                f"Custom role '{role.label}' references unknown task '{task_id}'",
                role=role.label,
                task_id=task_id,
            )
            log.warning("%s; entry skipped", err)
            res.errors.append(err)
            continue
        if task_id in seen or importance is ImportanceClass.DISABLED:
            continue
        if eligible(worker, tasks[task_id], settings):
            groups[importance].append(task_id)
            seen.add(task_id)

    for importance in IMPORTANCE_ORDER:
        group = groups[importance]
        for i, task_id in enumerate(group):
            res.entries.append((task_id, tier_level(importance, i, len(group))))
    if not res.entries:
        log.warning(
            "Custom role '%s' gives %s no usable task", role.label, worker.name
        )
    return res


def auto_rank(
    worker: Worker,
    tasks: Mapping[str, Task],
    settings: Settings,
    holders: Mapping[str, int] | None = None,
    *,
    holder_penalty: float = 0.5,
    exclude: Callable[[str], bool] | None = None,
) -> list[tuple[str, float]]:
    """
    Rank the worker's eligible tasks for an automatic primary.

    Rule
    ----
        value_t = score(w, t) * importance(t) / (1 + holders_t * holder_penalty)

    Returns
    -------
    list[tuple[str, float]]
        (task id, value), best first. Ties keep task order.
    """
    holders = holders or {}
    ranked = []
    for task in tasks.values():
        if not eligible(worker, task, settings):
            continue
        if exclude is not None and exclude(task.id):
            continue
        value = score(worker, task) * importance_modifier(settings.importance_of(task))
        value /= 1.0 + holders.get(task.id, 0) * holder_penalty
        ranked.append((task.id, value))
    ranked.sort(key=lambda item: -item[1])
    return ranked


def resolve_auto(
    role: Auto,
    worker: Worker,
    tasks: Mapping[str, Task],
    settings: Settings,
    holders: Mapping[str, int] | None = None,
    *,
    holder_penalty: float = 0.5,
    exclude: Callable[[str], bool] | None = None,
) -> Resolution:
    """Pick the single best task (see :func:`auto_rank`) at level 1."""
    ranked = auto_rank(
        worker,
        tasks,
        settings,
        holders,
        holder_penalty=holder_penalty,
        exclude=exclude,
    )
    if not ranked:
        return Resolution()
    return Resolution([(ranked[0][0], 1)])


def resolve(
    role: RoleDescriptor,
    worker: Worker,
    tasks: Mapping[str, Task],
    settings: Settings,
    holders: Mapping[str, int] | None = None,
    *,
    holder_penalty: float = 0.5,
    exclude: Callable[[str], bool] | None = None,
) -> Resolution | _Skip:
    """
    Resolve any role descriptor.

    Parameters
    ----------
    role : RoleDescriptor
        The worker's role.
    worker : Worker
        Worker snapshot.
    tasks : Mapping[str, Task]
        Tasks by id, in provider order.
    settings : Settings
        Importance and always-enabled policy.
    holders : Mapping[str, int], optional
        Current primary holder count per task (Auto only).
    holder_penalty : float, default 0.5
        Weight of the holder discount (Auto only).
    exclude : callable, optional
        Predicate on task id removing tasks from the Auto ranking.

    Returns
    -------
    Resolution or SKIP
        SKIP for Manual workers.
    """
    if isinstance(role, Manual):
        return SKIP
    if isinstance(role, SinglePreset):
        return resolve_single(role, worker, tasks, settings)
    if isinstance(role, Composite):
        return resolve_composite(role, worker, tasks, settings)
    if isinstance(role, Custom):
        return resolve_custom(role, worker, tasks, settings)
    if isinstance(role, Auto):
        return resolve_auto(
            role,
            worker,
            tasks,
            settings,
            holders,
            holder_penalty=holder_penalty,
            exclude=exclude,
        )
    raise TypeError(f"Unknown role descriptor {role!r}")


def resolve_individual(
    role: RoleDescriptor,
    worker: Worker,
    tasks: Mapping[str, Task],
    settings: Settings,
    holders: Mapping[str, int] | None = None,
    *,
    holder_penalty: float = 0.5,
    secondary_count: int = 9,
    custom_backup_jobs: int = 3,
    composite_backup_jobs: int = 5,
    blocked: Callable[[str], bool] | None = None,
) -> tuple[dict[str, int], Resolution] | _Skip:
    """
    Full level map for a single worker, outside the colony-wide passes.

    Used by single-worker recomputes. Always-enabled tasks are set to 1.
    Pinned roles are applied and topped up with backup jobs at level 4
    (``custom_backup_jobs`` / ``composite_backup_jobs`` best remaining
    tasks). Auto and single-preset workers get a primary plus the
    ``secondary_count`` best remaining tasks, spread over levels 2-4 in
    equal thirds. A pinned role that yields nothing falls back to Auto.

    Parameters
    ----------
    blocked : callable, optional
        Predicate on task id for tasks that may not receive this worker
        (quota at max or closed).

    Returns
    -------
    tuple[dict[str, int], Resolution] or SKIP
        Level per visible capable task (0 = unassigned) and the role
        resolution that produced the pinned part.
    """
    resolution = resolve(
        role,
        worker,
        tasks,
        settings,
        holders,
        holder_penalty=holder_penalty,
        exclude=blocked,
    )
    if resolution is SKIP:
        return SKIP
    assert isinstance(resolution, Resolution)

    levels = {t.id: 0 for t in tasks.values() if t.visible and worker.can_do(t.id)}
    for task in tasks.values():
        if task.id in levels and settings.is_always_enabled(task):
            levels[task.id] = 1

    def is_blocked(task_id: str) -> bool:
        return blocked is not None and blocked(task_id)

    entries = [(t, lvl) for t, lvl in resolution.entries if not is_blocked(t)]
    if not entries and not isinstance(role, Auto):
        log.info(
            "Role '%s' of %s resolved to nothing; falling back to auto",
            getattr(role, "label", role),
            worker.name,
        )
        fallback = resolve_auto(
            Auto(),
            worker,
            tasks,
            settings,
            holders,
            holder_penalty=holder_penalty,
            exclude=blocked,
        )
        entries = fallback.entries
        role = Auto()
    resolution.entries = entries

    for task_id, level in entries:
        levels[task_id] = level

    taken = {t for t, _ in entries}
    remaining = [
        (task_id, value)
        for task_id, value in auto_rank(
            worker, tasks, settings, None, holder_penalty=0.0, exclude=is_blocked
        )
        if task_id not in taken
    ]

    if isinstance(role, (Custom, Composite)):
        n_backup = (
            custom_backup_jobs if isinstance(role, Custom) else composite_backup_jobs
        )
        for task_id, _ in remaining[:n_backup]:
            levels[task_id] = 4
        return levels, resolution

    third = max(1, math.ceil(secondary_count / 3))
    for i, (task_id, _) in enumerate(remaining[:secondary_count]):
        levels[task_id] = min(4, 2 + i // third)
    return levels, resolution
