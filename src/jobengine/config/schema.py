"""
Configuration dataclass for engine tunables.

This module defines the Config dataclass, which groups every scheduling
interval and distribution weight in one immutable object. Config instances
are created by Session.init() after merging defaults, user config, and
kwargs. User-editable policy (importance, quotas, roles, toggles) lives in
:class:`jobengine.settings.Settings` instead.

See Also
--------
ConfigValidator : Centralized validation for configuration parameters
jobengine.session.Session.init : Creates Config from merged parameters
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any


@dataclass(slots=True, frozen=True)
class Config:
    """
    Immutable configuration for scheduling and distribution weights.

    Parameters
    ----------
    ticks_per_hour : int
        Host ticks per in-game hour; converts ``recompute_interval_hours``.
    check_interval_ticks : int
        Period of the main controller check (health scan, auto recompute).
    idle_check_interval_ticks : int
        Period of the idle redirector scan.
    min_full_recompute_interval_ticks : int
        Throttle window for non-forced full recomputes.
    updates_per_tick : int
        Dirty entries drained per tick.
    backlog_factor : float
        Backlog beyond ``backlog_factor * updates_per_tick`` logs a warning.
    urgency_weight_primary, urgency_weight_secondary, urgency_weight_idle : float
        Additive urgency bonus weights (Pass B, Pass D, idle redirector).
    active_demand_primary, active_demand_secondary, active_demand_idle : float
        Multipliers applied when the oracle reports live pending work.
    uncovered_boost : float
        Pass B multiplier for tasks nobody covers yet.
    under_min_boost : float
        Pass B multiplier for tasks below their minimum quota.
    held_primary_penalty : float
        Pass B multiplier for tasks another worker already holds as primary.
    shared_primary_boost : float
        Pass D multiplier for tasks that are someone else's primary.
    holder_penalty : float
        Auto-role divisor weight, ``1 + holders * holder_penalty``.
    secondary_limits : tuple[tuple[int, int], ...]
        ``(max_colony_size, n)`` pairs for the Pass D cap, ascending.
    secondary_limit_default : int
        Pass D cap for colonies larger than every ``secondary_limits`` entry.
    individual_secondary_count : int
        Secondary jobs given by a single-worker recompute.
    custom_backup_jobs, composite_backup_jobs : int
        Backup jobs at level 4 after custom/composite roles (single-worker path).
    idle_top_k : int
        Tasks handed to an idle worker per scan.
    idle_level : int
        Level used for idle top-ups.
    idle_assigned_fraction : float
        Workers with fewer assignments than this fraction of visible tasks
        are eligible for idle top-ups.
    score_chunk_size : int
        Rows per block when scoring large colonies.
    large_colony_threshold : int
        Colony size from which scoring runs in blocks.
    pipeline_path : str or None, optional
        Custom distribution pipeline YAML. None uses the default pipeline.

    Examples
    --------
    >>> import jobengine as je
    >>> session = je.Session.init(colony, updates_per_tick=20)
    >>> session.config.updates_per_tick
    20
    """

    ticks_per_hour: int
    check_interval_ticks: int
    idle_check_interval_ticks: int
    min_full_recompute_interval_ticks: int
    updates_per_tick: int
    backlog_factor: float
    urgency_weight_primary: float
    urgency_weight_secondary: float
    urgency_weight_idle: float
    active_demand_primary: float
    active_demand_secondary: float
    active_demand_idle: float
    uncovered_boost: float
    under_min_boost: float
    held_primary_penalty: float
    shared_primary_boost: float
    holder_penalty: float
    secondary_limits: tuple[tuple[int, int], ...]
    secondary_limit_default: int
    individual_secondary_count: int
    custom_backup_jobs: int
    composite_backup_jobs: int
    idle_top_k: int
    idle_level: int
    idle_assigned_fraction: float
    score_chunk_size: int
    large_colony_threshold: int
    pipeline_path: str | None = None

    @classmethod
    def from_dict(cls, cfg: dict[str, Any]) -> Config:
        """Build a Config from a merged dict, ignoring non-Config keys."""
        names = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in cfg.items() if k in names}
        if "secondary_limits" in kwargs:
            kwargs["secondary_limits"] = tuple(
                (int(size), int(n)) for size, n in kwargs["secondary_limits"]
            )
        return cls(**kwargs)

    def secondary_limit(self, colony_size: int) -> int | None:
        """
        Return the Pass D cap for a colony of ``colony_size`` workers.

        A solo colony is unbounded (None).
        """
        if colony_size <= 1:
            return None
        for max_size, n in self.secondary_limits:
            if colony_size <= max_size:
                return n
        return self.secondary_limit_default
