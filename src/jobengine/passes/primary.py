"""
Primary-job passes.

Run first in the default pipeline: reset the working state, apply pinned
roles (Pass A), then give every remaining worker an automatic primary
(Pass B).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from jobengine import logging
from jobengine.core.decorators import distribution_pass
from jobengine.model import Auto
from jobengine.systems.roles import SKIP, Resolution, resolve

if TYPE_CHECKING:
    from jobengine.engine import DistributionState


@distribution_pass
class Prepare:
    """
    Reset the working state and switch on always-enabled tasks.

    Rule
    ----
        levels = 0, primary = none
        level(w, t) = 1   for every always-enabled task t that w can do

    Always-enabled tasks sit outside the task universe: the remaining
    passes never see them and quotas do not apply to them.
    """

    def execute(self, state: DistributionState) -> None:
        log = self.get_logger()
        log.debug("--- Preparing Distribution ---")

        state.levels[:] = 0
        state.primary[:] = -1
        state.pinned[:] = False

        n_always = 0
        for w, worker in enumerate(state.workers):
            extra = state.extra[w]
            extra.clear()
            for task in state.all_tasks.values():
                if (
                    task.visible
                    and worker.can_do(task.id)
                    and state.settings.is_always_enabled(task)
                ):
                    extra[task.id] = 1
                    n_always += 1

        log.debug(
            f"  {state.n_workers} workers x {state.n_tasks} tasks, "
            f"{n_always} always-enabled assignments, "
            f"frozen counts {state.quota.counts.tolist()}"
        )
        log.debug("--- Preparing Distribution complete ---")


@distribution_pass
class PinnedRoles:
    """
    Pass A: apply explicit roles.

    Rule
    ----
    For each worker with a preset, composite or custom role, write the
    resolved (task, level) entries; entries on tasks at max quota are
    skipped. The first level-1 entry that fits becomes the worker's
    primary. A role with no level-1 entry leaves the worker without one.

    Note
    ----
    A role that resolves to nothing leaves the worker to Pass B.
    """

    def execute(self, state: DistributionState) -> None:
        log = self.get_logger()
        log.debug("--- Applying Pinned Roles ---")

        for w, (worker, role) in enumerate(zip(state.workers, state.roles)):
            if isinstance(role, Auto):
                continue
            res = resolve(role, worker, state.all_tasks, state.settings)
            if res is SKIP:
                continue
            assert isinstance(res, Resolution)
            state.report.config_errors.extend(res.errors)

            for task_id, level in res.entries:
                t = state.col(task_id)
                if t is None:
                    continue
                if not state.can_take(t):
                    log.debug(
                        f"  {worker.name}: '{task_id}' is at max quota, "
                        f"skipping role entry"
                    )
                    continue
                state.assign(w, t, level)
                state.pinned[w] = True
                if level == 1 and state.primary[w] < 0:
                    state.primary[w] = t

            if state.pinned[w]:
                primary = state.primary[w]
                log.debug(
                    f"  {worker.name} pinned by '{role.label}' -> "
                    f"{state.tasks[primary].id if primary >= 0 else 'no primary'}"
                )
            else:
                log.info(
                    f"  Role '{role.label}' gives {worker.name} nothing; "
                    f"falling back to automatic assignment"
                )

        log.debug("--- Applying Pinned Roles complete ---")


@distribution_pass
class AutoPrimaries:
    """
    Pass B: one automatic primary per unpinned worker.

    Rule
    ----
        v = score * importance
        v *= active_demand_primary          if the task has live work
        v += urgency * urgency_weight_primary
        v *= uncovered_boost                if nobody holds the task
        v *= under_min_boost                if the task is below its minimum
        v *= held_primary_penalty           if someone already holds it as primary

    The worker takes the best capable task that is not at max quota, at
    level 1. Workers are processed in colony order and each assignment is
    visible to the next worker.
    """

    def execute(self, state: DistributionState) -> None:
        log = self.get_logger()
        cfg = state.config
        log.debug("--- Assigning Automatic Primaries ---")

        base = state.score * state.importance
        base *= np.where(state.active, cfg.active_demand_primary, 1.0)
        base += state.urgency * cfg.urgency_weight_primary

        assigned = 0
        for w in np.flatnonzero(~state.pinned):
            worker = state.workers[w]
            ok = state.capable[w] & ~state.quota.at_max_mask()
            if not ok.any():
                log.debug(f"  {worker.name}: no task available for a primary")
                continue

            value = base[w].copy()
            value[state.quota.counts == 0] *= cfg.uncovered_boost
            value[state.quota.under_min_mask()] *= cfg.under_min_boost
            value[state.holder_counts() > 0] *= cfg.held_primary_penalty
            value[~ok] = -np.inf

            t = int(np.argmax(value))
            state.set_primary(int(w), t)
            assigned += 1

            if log.isEnabledFor(logging.DEEP_DEBUG):
                log.deep(
                    f"  {worker.name} values: "
                    f"{np.array2string(value, precision=2)}"
                )
            log.debug(f"  {worker.name} -> {state.tasks[t].id} (value {value[t]:.2f})")

        log.debug(
            f"--- Assigning Automatic Primaries complete ({assigned} assigned) ---"
        )
