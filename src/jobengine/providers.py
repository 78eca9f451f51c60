"""
Collaborator interfaces and in-memory reference implementations.

The engine talks to its host only through two protocols:

WorkerStateProvider
    Enumerates workers and tasks, reads and writes priorities.
DemandOracle
    Reports an urgency score and a live-work flag per task.

:class:`InMemoryColony` and :class:`StaticDemandOracle` implement them
over plain dictionaries. They back the test suite and make the engine
usable for offline simulations.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from jobengine.errors import WriteFailure
from jobengine.events import (
    ColonyEvent,
    HealthChanged,
    SkillChanged,
    WorkerAdded,
    WorkerRemoved,
)
from jobengine.logging import getLogger
from jobengine.model import Task, Worker

log = getLogger(__name__)


@runtime_checkable
class WorkerStateProvider(Protocol):
    """Host-side access to colony state."""

    def workers(self) -> Sequence[Worker]:
        """Current colony workers, in a stable order."""
        ...

    def tasks(self) -> Sequence[Task]:
        """All task definitions, in a stable order."""
        ...

    def get_priority(self, worker_id: str, task_id: str) -> int:
        """Current (external) priority level, 0 when unassigned."""
        ...

    def set_priority(self, worker_id: str, task_id: str, level: int) -> None:
        """
        Write a priority level.

        Raises
        ------
        WriteFailure
            If the host rejects the write.
        """
        ...


@runtime_checkable
class DemandOracle(Protocol):
    """Per-task demand signal."""

    def urgency(self, task_id: str) -> float: ...

    def has_active_work(self, task_id: str) -> bool: ...


class NullDemandOracle:
    """No demand information: zero urgency, no live work."""

    def urgency(self, task_id: str) -> float:
        return 0.0

    def has_active_work(self, task_id: str) -> bool:
        return False


# Relative weight of pending work per task type
URGENCY_MULTIPLIERS: dict[str, float] = {
    "Doctor": 3.0,
    "Firefighter": 3.0,
    "Construction": 1.5,
    "Repair": 1.5,
    "Growing": 1.3,
    "Hauling": 1.3,
}


class StaticDemandOracle:
    """
    Demand oracle over a fixed table.

    Parameters
    ----------
    demand : Mapping[str, float], optional
        Raw pending-work amount per task.
    active : Iterable[str], optional
        Tasks with live pending work. Defaults to every task with demand > 0.
    multipliers : Mapping[str, float], optional
        Urgency multiplier per task, 1.0 when missing.

    Examples
    --------
    >>> oracle = StaticDemandOracle({"Doctor": 0.5, "Cooking": 1.0})
    >>> oracle.urgency("Doctor")
    1.5
    >>> oracle.has_active_work("Cooking")
    True
    """

    def __init__(
        self,
        demand: Mapping[str, float] | None = None,
        active: Iterable[str] | None = None,
        multipliers: Mapping[str, float] | None = None,
    ) -> None:
        self.demand = dict(demand or {})
        self.multipliers = dict(
            URGENCY_MULTIPLIERS if multipliers is None else multipliers
        )
        if active is None:
            self.active = {t for t, d in self.demand.items() if d > 0}
        else:
            self.active = set(active)

    def urgency(self, task_id: str) -> float:
        return self.demand.get(task_id, 0.0) * self.multipliers.get(task_id, 1.0)

    def has_active_work(self, task_id: str) -> bool:
        return task_id in self.active


class InMemoryColony:
    """
    Dictionary-backed worker-state provider.

    Mutating helpers (:meth:`add_worker`, :meth:`remove_worker`,
    :meth:`update_worker`) emit the matching colony events to every
    subscriber, stamped with :attr:`tick`.

    Parameters
    ----------
    workers : Iterable[Worker]
        Initial workers, in colony order.
    tasks : Iterable[Task]
        Task definitions, in display order.
    priorities : Mapping[tuple[str, str], int], optional
        Initial (worker id, task id) -> level.

    Examples
    --------
    >>> colony = InMemoryColony([Worker("ana")], [Task("Hauling")])
    >>> colony.set_priority("ana", "Hauling", 3)
    >>> colony.priorities_of("ana")
    {'Hauling': 3}
    """

    def __init__(
        self,
        workers: Iterable[Worker] = (),
        tasks: Iterable[Task] = (),
        priorities: Mapping[tuple[str, str], int] | None = None,
    ) -> None:
        self._workers: dict[str, Worker] = {w.id: w for w in workers}
        self._tasks: dict[str, Task] = {t.id: t for t in tasks}
        self._priorities: dict[tuple[str, str], int] = dict(priorities or {})
        self._listeners: list[Callable[[ColonyEvent], Any]] = []
        self.rejected: set[tuple[str, str]] = set()
        self.writes = 0
        self.tick = 0

    # --- WorkerStateProvider --------------------------------------------

    def workers(self) -> list[Worker]:
        return list(self._workers.values())

    def tasks(self) -> list[Task]:
        return list(self._tasks.values())

    def get_priority(self, worker_id: str, task_id: str) -> int:
        return self._priorities.get((worker_id, task_id), 0)

    def set_priority(self, worker_id: str, task_id: str, level: int) -> None:
        if (worker_id, task_id) in self.rejected or (worker_id, "*") in self.rejected:
            raise WriteFailure(worker_id, task_id, level, reason="rejected by host")
        if worker_id not in self._workers:
            raise WriteFailure(worker_id, task_id, level, reason="unknown worker")
        self.writes += 1
        if level:
            self._priorities[(worker_id, task_id)] = level
        else:
            self._priorities.pop((worker_id, task_id), None)

    # --- helpers ----------------------------------------------------------

    def worker(self, worker_id: str) -> Worker:
        return self._workers[worker_id]

    def priorities_of(self, worker_id: str) -> dict[str, int]:
        """Non-zero levels of one worker, in task order."""
        return {
            t: self._priorities[(worker_id, t)]
            for t in self._tasks
            if (worker_id, t) in self._priorities
        }

    def assigned_count(self, task_id: str) -> int:
        return sum(1 for w in self._workers if self.get_priority(w, task_id) > 0)

    def snapshot(self) -> dict[str, dict[str, int]]:
        return {w: self.priorities_of(w) for w in self._workers}

    def subscribe(self, listener: Callable[[ColonyEvent], Any]) -> None:
        self._listeners.append(listener)

    def emit(self, event: ColonyEvent) -> None:
        for listener in self._listeners:
            listener(event)

    def add_worker(self, worker: Worker) -> None:
        self._workers[worker.id] = worker
        self.emit(WorkerAdded(self.tick, worker.id))

    def remove_worker(self, worker_id: str) -> None:
        del self._workers[worker_id]
        for key in [k for k in self._priorities if k[0] == worker_id]:
            del self._priorities[key]
        self.emit(WorkerRemoved(self.tick, worker_id))

    def update_worker(self, worker_id: str, **changes: Any) -> Worker:
        """
        Replace fields of a worker and emit the matching events.

        Skill changes emit one ``SkillChanged`` per changed domain; health or
        affliction changes emit ``HealthChanged`` (``became_ill`` is left
        for the controller's own health check to decide).
        """
        old = self._workers[worker_id]
        new = dataclasses.replace(old, **changes)
        self._workers[worker_id] = new

        if "skills" in changes:
            for domain in sorted(set(old.skills) | set(new.skills)):
                if old.skill(domain) != new.skill(domain):
                    self.emit(
                        SkillChanged(
                            self.tick,
                            worker_id,
                            domain,
                            old.skill(domain),
                            new.skill(domain),
                        )
                    )
        if "health" in changes or "afflictions" in changes:
            self.emit(HealthChanged(self.tick, worker_id))
        return new

    def add_task(self, task: Task) -> None:
        self._tasks[task.id] = task
