"""
Distribution engine.

Full recompute
--------------
1. Partition workers into managed (auto-assign on, role not Manual) and
   manual. Manual workers are read but never written.
2. Managed workers that trip the illness threshold get the health
   override and are frozen like manual workers for the rest of the run.
3. A lone worker gets the survival table. Two or more managed workers go
   through the colony-wide pipeline (prepare, passes A-E) over dense
   worker x task matrices; ill ones stay frozen and only the healthy
   ones become matrix rows. A single managed worker in a larger colony is
   resolved individually.
4. The resulting level map of every managed worker is written once over
   the whole task list (0 where no level), through the range adapter.
   Rejected writes are logged and reported.

Single-worker recompute
-----------------------
Resolves one worker's role on its own (see
:func:`jobengine.systems.roles.resolve_individual`), respecting the max
quotas implied by everybody else's current priorities.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from jobengine.adapters import DefaultRange, RangeAdapter
from jobengine.config import Config
from jobengine.context import EngineContext
from jobengine.core.pipeline import Pipeline
from jobengine.errors import WriteFailure
from jobengine.logging import DEEP_DEBUG, getLogger
from jobengine.model import ImportanceClass, RoleDescriptor, Task, Worker
from jobengine.providers import DemandOracle, NullDemandOracle, WorkerStateProvider
from jobengine.results import DistributionReport
from jobengine.settings import Settings
from jobengine.systems import health
from jobengine.systems.quota import QuotaTracker, effective_max
from jobengine.systems.roles import SKIP, Resolution, resolve_individual
from jobengine.systems.scoring import (
    capability_matrix,
    importance_modifier,
    score_matrix,
)
from jobengine.systems.survival import survival_assignments
from jobengine.typing import Bool1D, Bool2D, Float1D, Float2D, Idx1D, Int1D, Int2D

log = getLogger(__name__)


@dataclass(slots=True)
class DistributionState:
    """
    Working state of one colony-wide recompute.

    Rows are the managed, healthy workers (provider order); columns are the
    task universe (visible, not always enabled, not DISABLED; provider
    order). Passes read the matrices and mutate ``levels``, ``primary``,
    ``pinned``, ``quota`` and ``report`` in place.

    Attributes
    ----------
    score : Float2D
        Raw affinity score per (worker, task).
    capable : Bool2D
        Worker can do the task.
    importance : Float1D
        Importance modifier per task.
    urgency : Float1D
        Oracle urgency per task.
    active : Bool1D
        Oracle live-work flag per task.
    levels : Int2D
        Internal level per (worker, task), 0 = unassigned.
    primary : Idx1D
        Column of each worker's primary task, -1 when none.
    pinned : Bool1D
        Explicit role applied (pass A); Pass B skips the worker.
    extra : list[dict[str, int]]
        Per worker levels for tasks outside the universe (always enabled).
    """

    tick: int
    config: Config
    settings: Settings
    workers: list[Worker]
    roles: list[RoleDescriptor]
    tasks: list[Task]
    all_tasks: dict[str, Task]
    colony_size: int
    score: Float2D
    capable: Bool2D
    importance: Float1D
    urgency: Float1D
    active: Bool1D
    quota: QuotaTracker
    report: DistributionReport
    levels: Int2D = field(init=False)
    primary: Idx1D = field(init=False)
    pinned: Bool1D = field(init=False)
    extra: list[dict[str, int]] = field(init=False)
    _col: dict[str, int] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        n_w, n_t = len(self.workers), len(self.tasks)
        self.levels = np.zeros((n_w, n_t), dtype=np.int64)
        self.primary = np.full(n_w, -1, dtype=np.intp)
        self.pinned = np.zeros(n_w, dtype=np.bool_)
        self.extra = [{} for _ in range(n_w)]
        self._col = {t.id: j for j, t in enumerate(self.tasks)}

    @property
    def n_workers(self) -> int:
        return len(self.workers)

    @property
    def n_tasks(self) -> int:
        return len(self.tasks)

    def col(self, task_id: str) -> int | None:
        return self._col.get(task_id)

    def covered(self, t: int) -> bool:
        """Someone (managed, manual or ill) holds the task at a level > 0."""
        return bool(self.quota.counts[t] > 0)

    def can_take(self, t: int) -> bool:
        return not self.quota.at_max(t)

    def assign(self, w: int, t: int, level: int) -> None:
        """Give worker row ``w`` task column ``t``; a lower level wins."""
        current = self.levels[w, t]
        if current == 0:
            self.quota.add(t)
            self.levels[w, t] = level
        elif level < current:
            self.levels[w, t] = level

    def set_primary(self, w: int, t: int) -> None:
        self.assign(w, t, 1)
        self.primary[w] = t

    def holder_counts(self) -> Int1D:
        """Number of workers holding each task as primary."""
        held = self.primary[self.primary >= 0]
        return np.bincount(held, minlength=self.n_tasks)

    def importance_class(self, t: int) -> ImportanceClass:
        return self.settings.importance_of(self.tasks[t])

    def level_map(self, w: int) -> dict[str, int]:
        """Non-zero levels of worker row ``w``, always-enabled tasks included."""
        out = dict(self.extra[w])
        for t in np.flatnonzero(self.levels[w]):
            out[self.tasks[t].id] = int(self.levels[w, t])
        return out


class DistributionEngine:
    """
    Computes and writes priority levels for the colony.

    Parameters
    ----------
    provider : WorkerStateProvider
        Host state access.
    settings : Settings
        Engine policy.
    config : Config
        Weights and intervals.
    context : EngineContext
        Session bookkeeping (roles, primaries ledger).
    oracle : DemandOracle, optional
        Demand signal. Defaults to no demand.
    adapter : RangeAdapter, optional
        Level translation applied to every write. Defaults to 1-4.
    pipeline : Pipeline, optional
        Colony-wide passes. Defaults to ``config.pipeline_path`` or the
        packaged default pipeline.
    """

    def __init__(
        self,
        provider: WorkerStateProvider,
        settings: Settings,
        config: Config,
        context: EngineContext,
        *,
        oracle: DemandOracle | None = None,
        adapter: RangeAdapter | None = None,
        pipeline: Pipeline | None = None,
    ) -> None:
        self.provider = provider
        self.settings = settings
        self.config = config
        self.context = context
        self.oracle = oracle or NullDemandOracle()
        self.adapter = adapter or DefaultRange()
        if pipeline is None:
            if config.pipeline_path is not None:
                pipeline = Pipeline.from_yaml(Path(config.pipeline_path))
            else:
                pipeline = Pipeline.default()
        self.pipeline = pipeline

    # --- public API -------------------------------------------------------

    def recompute_all(self, tick: int = 0) -> DistributionReport:
        """
        Recompute every managed worker of the colony.

        Returns
        -------
        DistributionReport
            What was assigned and everything that could not be.
        """
        start = time.perf_counter()
        report = DistributionReport(tick=tick)
        workers = list(self.provider.workers())
        tasks = {t.id: t for t in self.provider.tasks()}

        managed = [w for w in workers if self.context.record(w.id).managed]
        if not managed:
            log.debug("No managed workers; nothing to recompute")
            return report

        healthy: list[Worker] = []
        frozen_levels: dict[str, dict[str, int]] = {}
        for worker in managed:
            levels = self._health_override(worker, tasks, report)
            if levels is None:
                healthy.append(worker)
            else:
                frozen_levels[worker.id] = levels

        if len(workers) == 1 and healthy and self.settings.solo_survival_mode:
            report.mode = "solo"
            worker = healthy[0]
            frozen_levels[worker.id] = survival_assignments(
                worker, tasks, self.settings.survival_priorities
            )
            self.context.primaries.pop(worker.id, None)
        elif healthy and len(managed) >= 2:
            report.mode = "colony"
            state = self._build_state(
                tick, workers, healthy, frozen_levels, tasks, report
            )
            self.pipeline.execute(state)
            for w, worker in enumerate(state.workers):
                frozen_levels[worker.id] = state.level_map(w)
                if state.primary[w] >= 0:
                    primary = state.tasks[state.primary[w]].id
                    self.context.primaries[worker.id] = primary
                    report.primaries[worker.id] = primary
                else:
                    self.context.primaries.pop(worker.id, None)
            report.counts = {
                t.id: int(state.quota.counts[j]) for j, t in enumerate(state.tasks)
            }
        elif healthy:
            report.mode = "individual"
            worker = healthy[0]
            levels, resolution = self._resolve_individual(worker, workers, tasks)
            frozen_levels[worker.id] = levels
            self._note_primary(worker.id, resolution, report)
        else:
            report.mode = "health"

        for worker in managed:
            self._write(worker, frozen_levels[worker.id], tasks, report)
            self.context.record(worker.id).last_recompute_tick = tick

        self.context.last_full_tick = tick
        log.info(
            "Recomputed %d workers (%s mode, %d manual) in %.1f ms",
            len(managed),
            report.mode,
            len(workers) - len(managed),
            (time.perf_counter() - start) * 1000,
        )
        return report

    def recompute_one(self, worker_id: str, tick: int = 0) -> DistributionReport:
        """
        Recompute a single worker without touching anybody else.

        Unknown or unmanaged workers are ignored (``mode == "noop"``).
        """
        report = DistributionReport(tick=tick)
        workers = list(self.provider.workers())
        worker = next((w for w in workers if w.id == worker_id), None)
        if worker is None:
            log.debug("Worker %s is gone; dropping its bookkeeping", worker_id)
            self.context.forget(worker_id)
            return report

        record = self.context.record(worker_id)
        if not record.managed:
            return report

        tasks = {t.id: t for t in self.provider.tasks()}
        levels = self._health_override(worker, tasks, report)
        if levels is not None:
            report.mode = "health"
        elif len(workers) == 1 and self.settings.solo_survival_mode:
            report.mode = "solo"
            levels = survival_assignments(
                worker, tasks, self.settings.survival_priorities
            )
            self.context.primaries.pop(worker_id, None)
        else:
            report.mode = "individual"
            levels, resolution = self._resolve_individual(worker, workers, tasks)
            self._note_primary(worker_id, resolution, report)

        self._write(worker, levels, tasks, report)
        record.last_recompute_tick = tick
        return report

    # --- internals --------------------------------------------------------

    def _health_override(
        self,
        worker: Worker,
        tasks: Mapping[str, Task],
        report: DistributionReport,
    ) -> dict[str, int] | None:
        """Return the ill level map, or None when the worker is fine."""
        record = self.context.record(worker.id)
        if not self.settings.illness_response_enabled:
            record.was_ill = False
            return None
        threshold = health.get_threshold(self.settings.illness_threshold)
        transition = health.check(worker, record.was_ill, threshold)
        if transition is health.HealthTransition.BECAME_ILL:
            record.was_ill = True
        elif transition is health.HealthTransition.RECOVERED:
            record.was_ill = False
        if not record.was_ill:
            return None
        report.ill.append(worker.id)
        self.context.primaries.pop(worker.id, None)
        return health.ill_assignments(worker, tasks, self.settings.illness_tasks)

    def _resolve_individual(
        self,
        worker: Worker,
        workers: Sequence[Worker],
        tasks: Mapping[str, Task],
    ) -> tuple[dict[str, int], Resolution]:
        record = self.context.record(worker.id)
        result = resolve_individual(
            record.role,
            worker,
            tasks,
            self.settings,
            self.context.holders(exclude=worker.id),
            holder_penalty=self.config.holder_penalty,
            secondary_count=self.config.individual_secondary_count,
            custom_backup_jobs=self.config.custom_backup_jobs,
            composite_backup_jobs=self.config.composite_backup_jobs,
            blocked=self.blocked_for(worker.id, workers),
        )
        # callers only pass managed workers
        assert result is not SKIP
        levels, resolution = result  # type: ignore[misc]
        return levels, resolution

    def blocked_for(
        self, worker_id: str, workers: Sequence[Worker]
    ) -> Callable[[str], bool]:
        """Predicate: task already at max without ``worker_id``."""
        others = [w.id for w in workers if w.id != worker_id]
        total = len(workers)
        cache: dict[str, bool] = {}

        def blocked(task_id: str) -> bool:
            if task_id not in cache:
                cap = effective_max(self.settings.quota(task_id), total)
                if cap is None:
                    cache[task_id] = False
                else:
                    held = sum(
                        1 for w in others if self.provider.get_priority(w, task_id) > 0
                    )
                    cache[task_id] = held >= cap
            return cache[task_id]

        return blocked

    def _note_primary(
        self, worker_id: str, resolution: Resolution, report: DistributionReport
    ) -> None:
        report.config_errors.extend(resolution.errors)
        if resolution.primary is not None:
            self.context.primaries[worker_id] = resolution.primary
            report.primaries[worker_id] = resolution.primary
        else:
            self.context.primaries.pop(worker_id, None)

    def _build_state(
        self,
        tick: int,
        workers: Sequence[Worker],
        healthy: list[Worker],
        frozen_levels: Mapping[str, Mapping[str, int]],
        tasks: dict[str, Task],
        report: DistributionReport,
    ) -> DistributionState:
        settings = self.settings
        universe = [
            t
            for t in tasks.values()
            if t.visible
            and not settings.is_always_enabled(t)
            and settings.importance_of(t) is not ImportanceClass.DISABLED
        ]
        chunk = (
            self.config.score_chunk_size
            if len(healthy) >= self.config.large_colony_threshold
            else None
        )
        score = score_matrix(healthy, universe, chunk_size=chunk)
        capable = capability_matrix(healthy, universe)

        quota = QuotaTracker(
            [t.id for t in universe],
            [settings.quota(t.id) for t in universe],
            len(workers),
        )
        # frozen workers still count against capacity
        healthy_ids = {w.id for w in healthy}
        frozen = np.zeros(len(universe), dtype=np.int64)
        for worker in workers:
            if worker.id in healthy_ids:
                continue
            levels = frozen_levels.get(worker.id)
            for j, task in enumerate(universe):
                if levels is not None:
                    held = levels.get(task.id, 0) > 0
                else:
                    held = self.provider.get_priority(worker.id, task.id) > 0
                frozen[j] += held
        quota.seed(frozen)

        state = DistributionState(
            tick=tick,
            config=self.config,
            settings=settings,
            workers=healthy,
            roles=[self.context.record(w.id).role for w in healthy],
            tasks=universe,
            all_tasks=tasks,
            colony_size=len(workers),
            score=score,
            capable=capable,
            importance=np.array(
                [importance_modifier(settings.importance_of(t)) for t in universe],
                dtype=np.float64,
            ),
            urgency=np.array(
                [self.oracle.urgency(t.id) for t in universe], dtype=np.float64
            ),
            active=np.array(
                [self.oracle.has_active_work(t.id) for t in universe], dtype=np.bool_
            ),
            quota=quota,
            report=report,
        )
        if log.isEnabledFor(DEEP_DEBUG):
            log.deep(
                "Universe %s, frozen counts %s",
                [t.id for t in universe],
                frozen.tolist(),
            )
        return state

    def _write(
        self,
        worker: Worker,
        levels: Mapping[str, int],
        tasks: Mapping[str, Task],
        report: DistributionReport,
    ) -> None:
        """
        Write a worker's levels over every colony task.

        Tasks missing from ``levels`` (hidden, incapable, not picked) are
        written as 0 so no stale priority survives. Rejected writes are
        skipped.
        """
        full = dict.fromkeys(tasks, 0)
        full.update(levels)
        written = {}
        for task_id, level in full.items():
            try:
                self.provider.set_priority(worker.id, task_id, self.adapter.map(level))
            except WriteFailure as exc:
                log.warning("Skipping write: %s", exc)
                report.write_failures.append(exc)
                continue
            if level:
                written[task_id] = level
        report.workers.append(worker.id)
        report.levels[worker.id] = written
        if log.isEnabledFor(DEEP_DEBUG):
            log.deep("%s <- %s", worker.name, written)
