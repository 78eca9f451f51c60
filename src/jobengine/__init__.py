"""
Job Engine - automatic work-priority assignment for colony simulations
=====================================================================

Job Engine decides, for every worker of a colony, which tasks they should
do and at what priority level (1 = most urgent, 4 = least, 0 = off). It
balances individual aptitude (skills and passions) against colony needs
(coverage of every task, per-task quotas, live demand) and keeps the
assignment up to date as the colony changes.

Quick Start
-----------
>>> import jobengine as je
>>> colony = je.InMemoryColony(
...     workers=[je.Worker("ana", skills={"Cooking": 8}),
...              je.Worker("bo", skills={"Mining": 6})],
...     tasks=[je.Task("Cooking", skills=("Cooking",)),
...            je.Task("Mining", skills=("Mining",))],
... )
>>> session = je.Session.init(colony)
>>> report = session.recompute_all(force=True)
>>> colony.priorities_of("ana")["Cooking"]
1

Drive it from the host loop:

>>> session.dispatch(je.events.SkillChanged(120, "bo", "Mining", 6, 7))
>>> session.tick(121)

Key Concepts
------------
**Roles**
  Auto (engine decides), Manual (never touched), single presets, tiered
  composites and importance-grouped custom roles.

**Distribution Pipeline**
  A colony-wide recompute runs ``prepare -> A -> B -> C -> D -> E`` over
  dense worker x task score matrices (see ``default_pipeline.yml``).

**Incremental Updates**
  Events mark workers dirty; every tick drains a bounded number of them,
  critical first.

Public API
----------
Session
    Facade wiring engine, controller and settings to one colony.
DistributionEngine, UpdateController
    Recompute machinery and event scheduling.
Worker, Task, ImportanceClass, QuotaSetting
    Data model.
Auto, Manual, SinglePreset, Composite, Custom
    Role descriptors.
Pass, Pipeline, distribution_pass
    Extension points for custom distribution passes.
InMemoryColony, StaticDemandOracle
    Reference collaborators.
logging
    Custom logging with DEEP_DEBUG level and per-pass log configuration.

Notes
-----
- Configuration precedence: defaults.yml -> user config -> kwargs
- Passes execute in explicit pipeline order
"""

from __future__ import annotations

__version__: str = "0.1.0"

from . import logging  # noqa: E402 (first, installs the logger class)
from .adapters import DefaultRange, RangeAdapter, ScaledRange
from .config import Config, ConfigValidator
from .context import EngineContext, WorkerRecord
from .controller import UpdateController
from .core import (
    Pass,
    Pipeline,
    distribution_pass,
    get_pass,
    list_passes,
)
from .engine import DistributionEngine, DistributionState
from .errors import ConfigurationError, WriteFailure
from .model import (
    UNBOUNDED,
    Affliction,
    AfflictionKind,
    Auto,
    Composite,
    Custom,
    ImportanceClass,
    Manual,
    Passion,
    QuotaSetting,
    RoleDescriptor,
    SinglePreset,
    Task,
    Worker,
)
from .providers import (
    DemandOracle,
    InMemoryColony,
    NullDemandOracle,
    StaticDemandOracle,
    WorkerStateProvider,
)
from .results import DistributionReport, QuotaShortfall
from .session import Session
from .settings import IllnessTasks, Settings

from . import events, passes  # noqa: E402,F401 (register passes)

__all__ = [
    "UNBOUNDED",
    "Affliction",
    "AfflictionKind",
    "Auto",
    "Composite",
    "Config",
    "ConfigValidator",
    "ConfigurationError",
    "Custom",
    "DefaultRange",
    "DemandOracle",
    "DistributionEngine",
    "DistributionReport",
    "DistributionState",
    "EngineContext",
    "IllnessTasks",
    "ImportanceClass",
    "InMemoryColony",
    "Manual",
    "NullDemandOracle",
    "Pass",
    "Passion",
    "Pipeline",
    "QuotaSetting",
    "QuotaShortfall",
    "RangeAdapter",
    "RoleDescriptor",
    "ScaledRange",
    "Session",
    "Settings",
    "SinglePreset",
    "StaticDemandOracle",
    "Task",
    "UpdateController",
    "Worker",
    "WorkerRecord",
    "WorkerStateProvider",
    "WriteFailure",
    "distribution_pass",
    "events",
    "get_pass",
    "list_passes",
    "logging",
    "__version__",
]
