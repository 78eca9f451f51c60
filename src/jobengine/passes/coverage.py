"""
Coverage and quota passes.

Pass C guarantees every coverable task at least one worker, Pass D fills
secondary jobs, Pass E tops up tasks still below their minimum quota.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from jobengine import logging
from jobengine.core.decorators import distribution_pass
from jobengine.results import QuotaShortfall
from jobengine.systems.roles import tier_level

if TYPE_CHECKING:
    from jobengine.engine import DistributionState


@distribution_pass
class CoverageGuarantee:
    """
    Pass C: no task left without a worker.

    Rule
    ----
    For every task nobody holds yet (manual and ill workers included):
      • no capable worker     -> reported as uncoverable
      • quota closed          -> left empty
      • otherwise             -> best raw-score capable worker gets level 2

    Ties go to the first worker in colony order.
    """

    def execute(self, state: DistributionState) -> None:
        log = self.get_logger()
        log.debug("--- Guaranteeing Coverage ---")

        for t, task in enumerate(state.tasks):
            if state.covered(t) or state.quota.closed(t):
                continue
            capable = np.flatnonzero(state.capable[:, t])
            if capable.size == 0:
                state.report.uncoverable.append(task.id)
                log.info(f"  Nobody can do '{task.display}'; task stays uncovered")
                continue
            w = int(capable[np.argmax(state.score[capable, t])])
            state.assign(w, t, 2)
            log.debug(f"  '{task.id}' covered by {state.workers[w].name} at 2")

        log.debug("--- Guaranteeing Coverage complete ---")


@distribution_pass
class SecondaryFill:
    """
    Pass D: rank and cap secondary jobs per worker.

    Rule
    ----
        v = score * importance
        v *= shared_primary_boost           if another worker holds it as primary
        v *= active_demand_secondary        if the task has live work
        v += urgency * urgency_weight_secondary

    Candidates are capable tasks the worker does not hold and that are not
    at max quota. The best ``N`` (``Config.secondary_limit`` of the colony
    size) are assigned, the ``i``-th at ``tier_level(importance, i, N)``.
    """

    def execute(self, state: DistributionState) -> None:
        log = self.get_logger()
        cfg = state.config
        limit = cfg.secondary_limit(state.colony_size)
        log.debug(f"--- Filling Secondary Jobs (limit {limit}) ---")

        base = state.score * state.importance
        base *= np.where(state.active, cfg.active_demand_secondary, 1.0)
        bonus = state.urgency * cfg.urgency_weight_secondary

        total = 0
        for w, worker in enumerate(state.workers):
            holders = state.holder_counts()
            if state.primary[w] >= 0:
                holders[state.primary[w]] -= 1

            ok = (
                state.capable[w]
                & (state.levels[w] == 0)
                & ~state.quota.at_max_mask()
            )
            candidates = np.flatnonzero(ok)
            if candidates.size == 0:
                continue

            value = base[w] * np.where(holders > 0, cfg.shared_primary_boost, 1.0)
            value += bonus
            ranked = candidates[np.argsort(-value[candidates], kind="stable")]
            if limit is not None:
                ranked = ranked[:limit]

            n = ranked.size
            for i, t in enumerate(ranked):
                t = int(t)
                if not state.can_take(t):
                    continue
                state.assign(w, t, tier_level(state.importance_class(t), i, n))
                total += 1

            if log.isEnabledFor(logging.DEEP_DEBUG):
                log.deep(
                    f"  {worker.name}: "
                    f"{[(state.tasks[t].id, int(state.levels[w, t])) for t in ranked]}"
                )

        log.debug(f"--- Filling Secondary Jobs complete ({total} assigned) ---")


@distribution_pass
class QuotaEnforcement:
    """
    Pass E: fill minimum quotas.

    Rule
    ----
        needed = min_eff(t) - count(t)

    Candidates are capable workers not holding the task yet, best raw
    score first. A candidate without a primary takes the task as primary
    (level 1), anybody else at level 2. Never exceeds ``max_eff``.

    Note
    ----
    A minimum that cannot be met is reported as a shortfall and logged as
    a warning. Final per-task counts are logged at INFO.
    """

    def execute(self, state: DistributionState) -> None:
        log = self.get_logger()
        log.debug("--- Enforcing Quotas ---")
        quota = state.quota

        for t in np.flatnonzero(quota.under_min_mask()):
            t = int(t)
            task = state.tasks[t]
            candidates = np.flatnonzero(state.capable[:, t] & (state.levels[:, t] == 0))
            ranked = candidates[np.argsort(-state.score[candidates, t], kind="stable")]

            for w in ranked:
                if not quota.under_min(t) or quota.at_max(t):
                    break
                w = int(w)
                if state.primary[w] < 0:
                    state.set_primary(w, t)
                    level = 1
                else:
                    state.assign(w, t, 2)
                    level = 2
                log.debug(f"  '{task.id}' -> {state.workers[w].name} at {level}")

            if quota.under_min(t):
                shortfall = QuotaShortfall(
                    task.id, int(quota.min_req[t]), int(quota.counts[t])
                )
                state.report.shortfalls.append(shortfall)
                log.warning(
                    f"  Minimum quota for '{task.display}' not met: "
                    f"{shortfall.assigned}/{shortfall.required} workers "
                    f"(not enough capable workers)"
                )

        if log.isEnabledFor(logging.INFO):
            quota.log_final_counts()
        log.debug("--- Enforcing Quotas complete ---")
