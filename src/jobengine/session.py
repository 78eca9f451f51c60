"""
Colony session facade.

A :class:`Session` wires the engine to one host colony: it merges the
configuration, validates it, builds the settings store, the engine
context, the distribution engine and the update controller, and exposes
the handful of calls a host integration needs (``tick``, ``dispatch``,
recompute requests and settings edits).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any

import yaml

from jobengine import logging
from jobengine.adapters import RangeAdapter, from_config
from jobengine.config import Config, ConfigValidator
from jobengine.context import EngineContext
from jobengine.controller import UpdateController
from jobengine.core.pipeline import Pipeline
from jobengine.engine import DistributionEngine
from jobengine.events import (
    ColonyEvent,
    RecalcRequest,
    RoleChanged,
    SettingsChanged,
)
from jobengine.model import ImportanceClass, QuotaSetting, RoleDescriptor
from jobengine.providers import DemandOracle, WorkerStateProvider
from jobengine.results import DistributionReport
from jobengine.settings import Settings
from jobengine.systems import health

log = logging.getLogger(__name__)

_TOGGLES = (
    "auto_assign_enabled",
    "illness_response_enabled",
    "solo_survival_mode",
    "recompute_interval_hours",
    "illness_threshold",
)


# helpers
# ---------------------------------------------------------------------------
def _read_yaml(obj: str | Path | Mapping[str, Any] | None) -> dict[str, Any]:
    """Return a plain dict, {} if *obj* is None."""
    if obj is None:
        return {}
    if isinstance(obj, Mapping):
        return dict(obj)
    p = Path(obj)
    with p.open("rt", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, Mapping):
        raise TypeError(f"config root must be mapping, got {type(data)!r}")
    return dict(data)


def _package_defaults() -> dict[str, Any]:
    """Load jobengine/defaults.yml"""
    txt = resources.files("jobengine").joinpath("defaults.yml").read_text()
    return yaml.safe_load(txt) or {}


# Session
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class Session:
    """
    One colony under automatic work-priority management.

    Create sessions with :meth:`init`; the constructor only stores parts.

    Attributes
    ----------
    provider : WorkerStateProvider
        Host colony.
    config : Config
        Immutable weights and intervals.
    settings : Settings
        Mutable policy (importance, quotas, roles, toggles).
    context : EngineContext
        Session-scoped engine state.
    engine : DistributionEngine
        Recompute machinery.
    controller : UpdateController
        Event routing and tick scheduling.
    now : int
        Last tick seen by :meth:`tick`.

    Examples
    --------
    >>> import jobengine as je
    >>> colony = je.InMemoryColony(workers, tasks)
    >>> with je.Session.init(colony, updates_per_tick=5) as session:
    ...     report = session.recompute_all(force=True)
    ...     session.tick(1)
    """

    provider: WorkerStateProvider
    config: Config
    settings: Settings
    context: EngineContext
    engine: DistributionEngine
    controller: UpdateController
    now: int = 0
    last_report: DistributionReport | None = field(default=None, repr=False)

    # Constructor
    # -----------------------------------------------------------------------
    @classmethod
    def init(
        cls,
        provider: WorkerStateProvider,
        config: str | Path | Mapping[str, Any] | None = None,
        *,
        oracle: DemandOracle | None = None,
        adapter: RangeAdapter | None = None,
        pipeline: Pipeline | None = None,
        **overrides: Any,  # anything here wins last
    ) -> Session:
        """
        Build a Session.

        Order of precedence (later overrides earlier):

            1. package defaults  (jobengine/defaults.yml)
            2. *config*  (Path / str / Mapping / None)
            3. explicit keyword arguments (**overrides)

        Parameters
        ----------
        provider : WorkerStateProvider
            Host colony. If it has a ``subscribe`` method the session
            subscribes :meth:`dispatch` to its event stream.
        config : str, Path or Mapping, optional
            YAML file or mapping with configuration overrides.
        oracle : DemandOracle, optional
            Demand signal; no demand when omitted.
        adapter : RangeAdapter, optional
            Priority range adapter. Defaults to the ``extended_range``
            config section (native 1-4 when null).
        pipeline : Pipeline, optional
            Custom distribution pipeline; wins over ``pipeline_path``.

        Raises
        ------
        ValueError
            If the merged configuration is invalid.
        """
        # 1 + 2 + 3 -> one merged dict
        cfg_dict: dict[str, Any] = _package_defaults()
        cfg_dict.update(_read_yaml(config))
        cfg_dict.update(overrides)

        import jobengine.passes  # noqa: F401 - register passes

        ConfigValidator.validate_config(cfg_dict)

        pipeline_path = cfg_dict.get("pipeline_path")
        if pipeline_path is not None and pipeline is None:
            ConfigValidator.validate_pipeline_path(pipeline_path)
            ConfigValidator.validate_pipeline_yaml(pipeline_path)

        logging.configure(cfg_dict.get("logging") or {})

        cfg = Config.from_dict(cfg_dict)
        settings = Settings.from_dict(cfg_dict)
        if adapter is None:
            adapter = from_config(cfg_dict.get("extended_range"))

        context = EngineContext()
        engine = DistributionEngine(
            provider,
            settings,
            cfg,
            context,
            oracle=oracle,
            adapter=adapter,
            pipeline=pipeline,
        )
        session = cls(
            provider=provider,
            config=cfg,
            settings=settings,
            context=context,
            engine=engine,
            controller=UpdateController(engine, context),
        )

        subscribe = getattr(provider, "subscribe", None)
        if callable(subscribe):
            subscribe(session.dispatch)

        log.info(
            "Session started: %d workers, %d tasks, pipeline %s",
            len(provider.workers()),
            len(provider.tasks()),
            engine.pipeline.names,
        )
        return session

    # Host hooks
    # -----------------------------------------------------------------------
    def dispatch(self, event: ColonyEvent) -> None:
        """Feed one colony event to the controller."""
        self.controller.handle(event)

    def tick(self, now: int | None = None) -> DistributionReport | None:
        """
        Advance to tick ``now`` (next tick when omitted) and run due work.

        Returns
        -------
        DistributionReport or None
            Report of the recomputes run on this tick, if any.
        """
        self.now = self.now + 1 if now is None else now
        report = self.controller.tick(self.now)
        if report is not None:
            self.last_report = report
        return report

    def run(self, n_ticks: int) -> DistributionReport | None:
        """Advance ``n_ticks`` ticks; returns the last non-empty report."""
        last = None
        for _ in range(n_ticks):
            report = self.tick()
            if report is not None:
                last = report
        return last

    # Recompute requests
    # -----------------------------------------------------------------------
    def recompute_all(self, force: bool = False) -> DistributionReport | None:
        """Full recompute (throttled unless ``force``)."""
        report = self.controller.recompute_all(self.now, force=force)
        if report is not None:
            self.last_report = report
        return report

    def recompute_one(
        self, worker_id: str, force: bool = False
    ) -> DistributionReport | None:
        """Recompute one worker now when ``force``, else queue it."""
        return self.controller.recompute_one(worker_id, self.now, force=force)

    def request_recompute(
        self, worker_id: str | None = None, *, force: bool = False
    ) -> None:
        """Queue a recompute of one worker (or everybody) for the next ticks."""
        self.dispatch(RecalcRequest(self.now, force=force, worker_id=worker_id))

    # Worker configuration
    # -----------------------------------------------------------------------
    def set_role(self, worker_id: str, role: RoleDescriptor | str) -> RoleDescriptor:
        """
        Change a worker's role.

        Parameters
        ----------
        role : RoleDescriptor or str
            Descriptor, or a role name resolved through the settings.

        Raises
        ------
        ConfigurationError
            If ``role`` is an unknown name.
        """
        if isinstance(role, str):
            role = self.settings.resolve_role_name(role)
        self.dispatch(RoleChanged(self.now, worker_id, role=role))
        return role

    def set_auto_assign(self, worker_id: str, enabled: bool) -> None:
        self.dispatch(RoleChanged(self.now, worker_id, auto_assign=enabled))

    def role_of(self, worker_id: str) -> RoleDescriptor:
        return self.context.record(worker_id).role

    # Settings edits
    # -----------------------------------------------------------------------
    def set_importance(self, task_id: str, value: ImportanceClass | str) -> None:
        self.settings.set_importance(task_id, value)
        self.dispatch(SettingsChanged(self.now, setting=f"importance.{task_id}"))

    def set_quota(
        self,
        task_id: str,
        min: int = 0,
        max: int = 0,
        *,
        is_percentage: bool = False,
        closed: bool = False,
    ) -> QuotaSetting:
        quota = self.settings.set_quota(
            task_id, min, max, is_percentage=is_percentage, closed=closed
        )
        self.dispatch(SettingsChanged(self.now, setting=f"quota.{task_id}"))
        return quota

    def set_toggle(self, name: str, value: Any) -> None:
        """
        Change one of the global toggles.

        Raises
        ------
        ValueError
            If ``name`` is not a toggle.
        """
        if name not in _TOGGLES:
            raise ValueError(f"Unknown toggle '{name}'. Valid: {', '.join(_TOGGLES)}")
        if name == "illness_threshold":
            health.get_threshold(value)
        setattr(self.settings, name, value)
        self.dispatch(SettingsChanged(self.now, setting=name))

    # Lifecycle
    # -----------------------------------------------------------------------
    def close(self) -> None:
        """Release session state; the session cannot be used afterwards."""
        if not self.context.closed:
            self.context.close()
            log.info("Session closed")

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
