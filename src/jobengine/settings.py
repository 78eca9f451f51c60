"""
Settings store.

User-editable policy: per-task importance and quotas, named role templates,
always-enabled survival tasks and the global toggles. A Settings object is
built by :meth:`jobengine.session.Session.init` from the merged
configuration and can be edited at runtime; the session emits a
``SettingsChanged`` event for every edit so the colony is recomputed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from jobengine.errors import ConfigurationError
from jobengine.model import (
    UNBOUNDED,
    Auto,
    Composite,
    Custom,
    ImportanceClass,
    Manual,
    QuotaSetting,
    RoleDescriptor,
    SinglePreset,
    Task,
)


@dataclass(slots=True, frozen=True)
class IllnessTasks:
    """Task ids used by the health override when a worker falls ill."""

    fire_task: str = "Firefighter"
    medical_task: str = "Doctor"
    medical_skill: str = "Medicine"
    medical_min_skill: int = 3
    rest_tasks: tuple[str, ...] = ("PatientBedRest", "Patient")


@dataclass(slots=True)
class Settings:
    """
    Mutable engine policy.

    Parameters
    ----------
    auto_assign_enabled : bool
        Global switch for periodic full recomputes.
    illness_response_enabled : bool
        Global switch for the health override.
    solo_survival_mode : bool
        Use the survival table when the colony has a single worker.
    recompute_interval_hours : float
        Hours between periodic full recomputes (0 disables them).
    illness_threshold : str
        Name of the active illness threshold tier.
    always_enabled : frozenset[str]
        Tasks enabled at priority 1 for every capable managed worker.
    importance : dict[str, ImportanceClass]
        Importance overrides per task id.
    quotas : dict[str, QuotaSetting]
        Quota per task id; missing tasks are unbounded.
    survival_priorities : dict[str, int]
        Solo survival table, task id -> level.
    illness_tasks : IllnessTasks
        Tasks used by the ill response.
    presets : dict[str, str]
        Named single-task roles, role name -> task id.
    composites : dict[str, tuple[tuple[str, int], ...]]
        Named tiered job lists.
    custom_roles : dict[str, tuple[tuple[str, ImportanceClass], ...]]
        User-defined job lists.
    """

    auto_assign_enabled: bool = True
    illness_response_enabled: bool = True
    solo_survival_mode: bool = True
    recompute_interval_hours: float = 12.0
    illness_threshold: str = "major_injuries"
    always_enabled: frozenset[str] = frozenset({"Firefighter"})
    importance: dict[str, ImportanceClass] = field(default_factory=dict)
    quotas: dict[str, QuotaSetting] = field(default_factory=dict)
    survival_priorities: dict[str, int] = field(default_factory=dict)
    illness_tasks: IllnessTasks = field(default_factory=IllnessTasks)
    presets: dict[str, str] = field(default_factory=dict)
    composites: dict[str, tuple[tuple[str, int], ...]] = field(default_factory=dict)
    custom_roles: dict[str, tuple[tuple[str, ImportanceClass], ...]] = field(
        default_factory=dict
    )

    @classmethod
    def from_dict(cls, cfg: dict[str, Any]) -> Settings:
        """Build Settings from a merged (and validated) configuration dict."""
        illness = dict(cfg.get("illness_tasks") or {})
        if "rest_tasks" in illness:
            illness["rest_tasks"] = tuple(illness["rest_tasks"])
        return cls(
            auto_assign_enabled=bool(cfg.get("auto_assign_enabled", True)),
            illness_response_enabled=bool(cfg.get("illness_response_enabled", True)),
            solo_survival_mode=bool(cfg.get("solo_survival_mode", True)),
            recompute_interval_hours=float(cfg.get("recompute_interval_hours", 12)),
            illness_threshold=str(cfg.get("illness_threshold", "major_injuries")),
            always_enabled=frozenset(cfg.get("always_enabled") or ()),
            importance={
                task_id: ImportanceClass.parse(value)
                for task_id, value in (cfg.get("importance") or {}).items()
            },
            quotas={
                task_id: QuotaSetting(**quota)
                for task_id, quota in (cfg.get("quotas") or {}).items()
            },
            survival_priorities=dict(cfg.get("survival_priorities") or {}),
            illness_tasks=IllnessTasks(**illness),
            presets={k.lower(): v for k, v in (cfg.get("presets") or {}).items()},
            composites={
                name.lower(): tuple((t, int(tier)) for t, tier in entries)
                for name, entries in (cfg.get("composites") or {}).items()
            },
            custom_roles={
                name.lower(): tuple(
                    (t, ImportanceClass.parse(imp)) for t, imp in entries
                )
                for name, entries in (cfg.get("custom_roles") or {}).items()
            },
        )

    # --- tasks ----------------------------------------------------------

    def is_always_enabled(self, task: Task) -> bool:
        return task.always_enabled or task.id in self.always_enabled

    def importance_of(self, task: Task) -> ImportanceClass:
        """
        Effective importance of a task.

        Settings overrides win; otherwise always-enabled survival tasks
        default to CRITICAL and everything else to the task's own default.
        """
        if task.id in self.importance:
            return self.importance[task.id]
        if self.is_always_enabled(task):
            return ImportanceClass.CRITICAL
        return task.importance

    def set_importance(self, task_id: str, value: ImportanceClass | str) -> None:
        self.importance[task_id] = ImportanceClass.parse(value)

    def quota(self, task_id: str) -> QuotaSetting:
        return self.quotas.get(task_id, UNBOUNDED)

    def set_quota(
        self,
        task_id: str,
        min: int = 0,
        max: int = 0,
        *,
        is_percentage: bool = False,
        closed: bool = False,
    ) -> QuotaSetting:
        """Store (or reset, when all defaults) the quota of a task."""
        quota = QuotaSetting(min, max, is_percentage, closed)
        if quota.is_default:
            self.quotas.pop(task_id, None)
        else:
            self.quotas[task_id] = quota
        return quota

    # --- roles ----------------------------------------------------------

    def role_names(self) -> list[str]:
        """All role names accepted by :meth:`resolve_role_name`."""
        return (
            ["auto", "manual"]
            + sorted(self.presets)
            + sorted(self.composites)
            + sorted(self.custom_roles)
        )

    def resolve_role_name(self, name: str) -> RoleDescriptor:
        """
        Turn a role name into a descriptor.

        Custom roles shadow composites, which shadow single presets.

        Raises
        ------
        ConfigurationError
            If no role with that name exists.

        Examples
        --------
        >>> s = Settings(presets={"cook": "Cooking"})
        >>> s.resolve_role_name("Cook")
        SinglePreset(task_id='Cooking', name='cook')
        """
        key = name.strip().lower()
        if key == "auto":
            return Auto()
        if key == "manual":
            return Manual()
        if key in self.custom_roles:
            return Custom(self.custom_roles[key], name=key)
        if key in self.composites:
            return Composite(self.composites[key], name=key)
        if key in self.presets:
            return SinglePreset(self.presets[key], name=key)
        raise ConfigurationError(
            f"Unknown role '{name}'. Available roles: {', '.join(self.role_names())}",
            role=name,
        )

    def add_custom_role(
        self, name: str, entries: list[tuple[str, ImportanceClass | str]]
    ) -> Custom:
        parsed = tuple((t, ImportanceClass.parse(imp)) for t, imp in entries)
        self.custom_roles[name.lower()] = parsed
        return Custom(parsed, name=name.lower())
