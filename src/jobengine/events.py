"""
Colony events consumed by the update controller.

The host emits these at its own hook points (a worker joins, gets hurt,
levels a skill...). The engine never patches host code; it only reads
this stream through :meth:`jobengine.controller.UpdateController.handle`.

Examples
--------
>>> from jobengine.events import HealthChanged
>>> HealthChanged(tick=500, worker_id="ana", became_ill=True).describe()
'HealthChanged(ana): became ill'
"""

from __future__ import annotations

from dataclasses import dataclass

from jobengine.model import RoleDescriptor


@dataclass(slots=True, frozen=True)
class ColonyEvent:
    """Base class: every event carries the tick it happened on."""

    tick: int

    def describe(self) -> str:
        return type(self).__name__


@dataclass(slots=True, frozen=True)
class WorkerAdded(ColonyEvent):
    worker_id: str

    def describe(self) -> str:
        return f"WorkerAdded({self.worker_id})"


@dataclass(slots=True, frozen=True)
class WorkerRemoved(ColonyEvent):
    """Death, capture or departure."""

    worker_id: str

    def describe(self) -> str:
        return f"WorkerRemoved({self.worker_id})"


@dataclass(slots=True, frozen=True)
class HealthChanged(ColonyEvent):
    worker_id: str
    became_ill: bool = False

    def describe(self) -> str:
        state = "became ill" if self.became_ill else "health changed"
        return f"HealthChanged({self.worker_id}): {state}"


@dataclass(slots=True, frozen=True)
class SkillChanged(ColonyEvent):
    worker_id: str
    skill: str = ""
    old_level: int = 0
    new_level: int = 0

    def describe(self) -> str:
        return (
            f"SkillChanged({self.worker_id}): {self.skill} "
            f"{self.old_level} -> {self.new_level}"
        )


@dataclass(slots=True, frozen=True)
class RoleChanged(ColonyEvent):
    """The player assigned a new role (or toggled auto-assign)."""

    worker_id: str
    role: RoleDescriptor | None = None
    auto_assign: bool | None = None

    def describe(self) -> str:
        label = getattr(self.role, "label", "unchanged")
        return f"RoleChanged({self.worker_id}): {label}"


@dataclass(slots=True, frozen=True)
class IdleDetected(ColonyEvent):
    worker_id: str

    def describe(self) -> str:
        return f"IdleDetected({self.worker_id})"


@dataclass(slots=True, frozen=True)
class RecalcRequest(ColonyEvent):
    """
    Explicit recompute request.

    ``worker_id=None`` targets the whole colony. ``force`` puts the
    targets in the critical band.
    """

    force: bool = False
    worker_id: str | None = None

    def describe(self) -> str:
        target = self.worker_id or "colony"
        return f"RecalcRequest({target}, force={self.force})"


@dataclass(slots=True, frozen=True)
class SettingsChanged(ColonyEvent):
    setting: str = ""

    def describe(self) -> str:
        return f"SettingsChanged({self.setting or '*'})"


@dataclass(slots=True, frozen=True)
class JobDesignated(ColonyEvent):
    """New work designated on the map (informational)."""

    task_id: str = ""

    def describe(self) -> str:
        return f"JobDesignated({self.task_id})"


@dataclass(slots=True, frozen=True)
class WorkCompleted(ColonyEvent):
    """A worker finished a job (informational)."""

    worker_id: str = ""
    task_id: str = ""

    def describe(self) -> str:
        return f"WorkCompleted({self.worker_id}, {self.task_id})"


__all__ = [
    "ColonyEvent",
    "HealthChanged",
    "IdleDetected",
    "JobDesignated",
    "RecalcRequest",
    "RoleChanged",
    "SettingsChanged",
    "SkillChanged",
    "WorkCompleted",
    "WorkerAdded",
    "WorkerRemoved",
]
