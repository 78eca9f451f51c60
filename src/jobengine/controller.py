"""
Event and incremental update controller.

Colony events mark workers dirty instead of triggering work right away.
Each host tick the controller drains a bounded number of dirty workers,
critical band first, and recomputes them one by one. Periodic duties run
on their own schedules:

- every ``check_interval_ticks``: health scan, then the periodic full
  recompute once ``recompute_interval_hours`` have passed;
- every ``idle_check_interval_ticks``: idle scan and top-ups.

When every managed worker is dirty at once the drain is coalesced into a
single full recompute.
"""

from __future__ import annotations

from jobengine.adapters import RangeAdapter
from jobengine.context import EngineContext
from jobengine.engine import DistributionEngine
from jobengine.errors import WriteFailure
from jobengine.events import (
    ColonyEvent,
    HealthChanged,
    IdleDetected,
    JobDesignated,
    RecalcRequest,
    RoleChanged,
    SettingsChanged,
    SkillChanged,
    WorkCompleted,
    WorkerAdded,
    WorkerRemoved,
)
from jobengine.logging import getLogger
from jobengine.results import DistributionReport
from jobengine.systems import health
from jobengine.systems.idle import idle_topup, is_underused

log = getLogger(__name__)


class UpdateController:
    """
    Routes colony events and schedules recomputes.

    Parameters
    ----------
    engine : DistributionEngine
        Engine used for every recompute.
    context : EngineContext
        Dirty bands and per-worker records (shared with the engine).

    Examples
    --------
    >>> controller = UpdateController(engine, context)
    >>> controller.handle(WorkerAdded(tick=0, worker_id="ana"))
    >>> context.critical
    ['ana']
    >>> report = controller.tick(1)
    """

    def __init__(self, engine: DistributionEngine, context: EngineContext) -> None:
        self.engine = engine
        self.context = context

    @property
    def adapter(self) -> RangeAdapter:
        return self.engine.adapter

    def managed_ids(self) -> list[str]:
        return [
            w.id
            for w in self.engine.provider.workers()
            if self.context.record(w.id).managed
        ]

    # --- events -----------------------------------------------------------

    def handle(self, event: ColonyEvent) -> None:
        """Update bookkeeping and dirty bands for one colony event."""
        ctx = self.context
        log.debug("Event at tick %d: %s", event.tick, event.describe())

        if isinstance(event, WorkerAdded):
            ctx.record(event.worker_id)
            ctx.mark_critical(event.worker_id)
        elif isinstance(event, WorkerRemoved):
            ctx.forget(event.worker_id)
            ctx.mark_all_normal(self.managed_ids())
        elif isinstance(event, HealthChanged):
            if event.became_ill or self._health_flipped(event.worker_id):
                ctx.mark_critical(event.worker_id)
            else:
                ctx.mark_normal(event.worker_id)
        elif isinstance(event, SkillChanged):
            ctx.mark_normal(event.worker_id)
        elif isinstance(event, RoleChanged):
            record = ctx.record(event.worker_id)
            if event.role is not None:
                record.role = event.role
            if event.auto_assign is not None:
                record.auto_assign = event.auto_assign
            if not record.managed:
                ctx.primaries.pop(event.worker_id, None)
            ctx.mark_critical(event.worker_id)
        elif isinstance(event, RecalcRequest):
            targets = (
                [event.worker_id] if event.worker_id is not None else self.managed_ids()
            )
            for worker_id in targets:
                if event.force:
                    ctx.mark_critical(worker_id)
                else:
                    ctx.mark_normal(worker_id)
        elif isinstance(event, SettingsChanged):
            ctx.mark_all_normal(self.managed_ids())
        elif isinstance(event, IdleDetected):
            ctx.mark_normal(event.worker_id)
        elif isinstance(event, (JobDesignated, WorkCompleted)):
            # demand is read from the oracle at recompute time
            pass
        else:
            log.warning("Ignoring unknown event %r", event)

    # --- scheduling -------------------------------------------------------

    def tick(self, now: int) -> DistributionReport | None:
        """
        Run the duties due at ``now`` and drain the dirty bands.

        Returns
        -------
        DistributionReport or None
            Combined report of the recomputes run this tick, None when
            nothing was recomputed.
        """
        ctx = self.context
        cfg = self.engine.config
        report: DistributionReport | None = None

        if ctx.last_check_tick is None or now - ctx.last_check_tick >= (
            cfg.check_interval_ticks
        ):
            ctx.last_check_tick = now
            self._scan_health()
            if self._auto_due(now):
                log.info("Periodic recompute at tick %d", now)
                report = self.recompute_all(now, force=True)

        if ctx.last_idle_tick is None or now - ctx.last_idle_tick >= (
            cfg.idle_check_interval_ticks
        ):
            ctx.last_idle_tick = now
            self.scan_idle(now)

        pending = ctx.pending()
        if not pending:
            return report

        budget = cfg.updates_per_tick
        if pending > cfg.backlog_factor * budget:
            log.warning(
                "Update backlog: %d workers pending (budget %d per tick)",
                pending,
                budget,
            )

        managed = self.managed_ids()
        if (
            len(managed) >= 2
            and all(ctx.is_dirty(w) for w in managed)
            and self._full_allowed(now)
        ):
            log.debug("All %d managed workers dirty; coalescing", len(managed))
            full = self.recompute_all(now, force=True)
            if full is not None and report is not None:
                full.merge(report)
            return full

        for worker_id in list(ctx.drain(budget)):
            one = self.engine.recompute_one(worker_id, now)
            if report is None:
                report = DistributionReport(tick=now, mode="incremental")
            report.merge(one)
        return report

    def recompute_all(self, now: int, force: bool = False) -> DistributionReport | None:
        """
        Full recompute, throttled unless ``force``.

        A throttled request marks every managed worker dirty (normal band)
        so the work is not lost.
        """
        if not force and not self._full_allowed(now):
            log.debug("Full recompute throttled at tick %d", now)
            self.context.mark_all_normal(self.managed_ids())
            return None
        report = self.engine.recompute_all(now)
        self.context.clear_dirty()
        return report

    def recompute_one(
        self, worker_id: str, now: int, force: bool = False
    ) -> DistributionReport | None:
        """Recompute one worker now when ``force``, else queue it."""
        if not force:
            self.context.mark_normal(worker_id)
            return None
        self.context.discard(worker_id)
        return self.engine.recompute_one(worker_id, now)

    # --- duties -----------------------------------------------------------

    def _full_allowed(self, now: int) -> bool:
        last = self.context.last_full_tick
        return (
            last is None
            or now - last >= self.engine.config.min_full_recompute_interval_ticks
        )

    def _auto_due(self, now: int) -> bool:
        settings = self.engine.settings
        if not settings.auto_assign_enabled or settings.recompute_interval_hours <= 0:
            return False
        last = self.context.last_full_tick
        if last is None:
            return True
        period = settings.recompute_interval_hours * self.engine.config.ticks_per_hour
        return now - last >= period

    def _health_flipped(self, worker_id: str) -> bool:
        settings = self.engine.settings
        if not settings.illness_response_enabled:
            return False
        worker = next(
            (w for w in self.engine.provider.workers() if w.id == worker_id), None
        )
        if worker is None:
            return False
        threshold = health.get_threshold(settings.illness_threshold)
        record = self.context.record(worker_id)
        return health.is_ill(worker, threshold) != record.was_ill

    def _scan_health(self) -> None:
        """Mark managed workers whose illness state flipped since last recompute."""
        settings = self.engine.settings
        if not settings.illness_response_enabled:
            return
        threshold = health.get_threshold(settings.illness_threshold)
        for worker in self.engine.provider.workers():
            record = self.context.record(worker.id)
            if not record.managed:
                continue
            ill = health.is_ill(worker, threshold)
            if ill and not record.was_ill:
                self.context.mark_critical(worker.id)
            elif not ill and record.was_ill:
                self.context.mark_normal(worker.id)

    def scan_idle(self, now: int) -> dict[str, dict[str, int]]:
        """
        Give idle, underused managed workers extra low-priority tasks.

        Returns
        -------
        dict[str, dict[str, int]]
            New internal levels per worker that received a top-up.
        """
        engine = self.engine
        provider = engine.provider
        cfg = engine.config
        workers = list(provider.workers())
        tasks = {t.id: t for t in provider.tasks()}
        visible = sum(1 for t in tasks.values() if t.visible)
        threshold = health.get_threshold(engine.settings.illness_threshold)

        added: dict[str, dict[str, int]] = {}
        for worker in workers:
            record = self.context.record(worker.id)
            if not record.managed or not worker.idle:
                continue
            if engine.settings.illness_response_enabled and health.is_ill(
                worker, threshold
            ):
                continue
            current = {t: provider.get_priority(worker.id, t) for t in tasks}
            if not is_underused(
                worker,
                current,
                visible,
                assigned_fraction=cfg.idle_assigned_fraction,
            ):
                continue
            picked = idle_topup(
                worker,
                current,
                tasks,
                engine.settings,
                engine.oracle,
                top_k=cfg.idle_top_k,
                level=cfg.idle_level,
                urgency_weight=cfg.urgency_weight_idle,
                active_demand=cfg.active_demand_idle,
                blocked=engine.blocked_for(worker.id, workers),
            )
            for task_id, level in picked.items():
                try:
                    provider.set_priority(worker.id, task_id, self.adapter.map(level))
                except WriteFailure as exc:
                    log.warning("Skipping idle write: %s", exc)
                    continue
                added.setdefault(worker.id, {})[task_id] = level
        if added:
            log.debug("Idle scan at tick %d topped up %d workers", now, len(added))
        return added

