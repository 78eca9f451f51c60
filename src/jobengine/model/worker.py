"""Worker snapshot as reported by the worker-state provider."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum


class Passion(IntEnum):
    """Interest a worker has in a skill domain. Ordered: NONE < MINOR < MAJOR."""

    NONE = 0
    MINOR = 1
    MAJOR = 2

    @classmethod
    def parse(cls, value: Passion | str | int) -> Passion:
        """Accept enum members, names (case-insensitive) or ints."""
        if isinstance(value, Passion):
            return value
        if isinstance(value, str):
            return cls[value.strip().upper()]
        return cls(value)


class AfflictionKind(str, Enum):
    """Broad class of a health condition, used by the illness thresholds."""

    DISEASE = "disease"
    INJURY = "injury"
    OTHER = "other"


@dataclass(slots=True, frozen=True)
class Affliction:
    """
    One active health condition on a worker.

    Parameters
    ----------
    kind : AfflictionKind
        Disease (makes the worker sick), injury (tendable) or other.
    severity : float
        Current severity, 0 and up.
    pain : float, default 0.0
        Pain offset contributed by the condition.
    lethal_severity : float, default 0.0
        Severity at which the condition kills; 0 means non-lethal.
    impairs_capacity : bool, default False
        Whether the condition reduces a body capacity (moving, manipulation...).
    """

    kind: AfflictionKind
    severity: float
    pain: float = 0.0
    lethal_severity: float = 0.0
    impairs_capacity: bool = False

    @property
    def lethal(self) -> bool:
        return self.lethal_severity > 0.0


@dataclass(slots=True)
class Worker:
    """
    Immutable-per-tick view of a colony worker.

    Engine-side bookkeeping (role, auto-assign flag, last recompute tick,
    last known illness) is kept separately in
    :class:`jobengine.context.WorkerRecord` so that providers only report
    host state.

    Parameters
    ----------
    id : str
        Stable worker identity.
    name : str, optional
        Display name used in log lines. Defaults to ``id``.
    skills : dict[str, int]
        Skill level per domain (0-20).
    passions : dict[str, Passion]
        Passion per domain; missing domains have no passion.
    health : float, default 1.0
        Summary health as a fraction in [0, 1].
    afflictions : tuple[Affliction, ...]
        Active health conditions.
    idle : bool, default False
        Opaque idle flag supplied by the provider.
    incapable : frozenset[str]
        Task ids this worker can never perform.
    """

    id: str
    name: str = ""
    skills: dict[str, int] = field(default_factory=dict)
    passions: dict[str, Passion] = field(default_factory=dict)
    health: float = 1.0
    afflictions: tuple[Affliction, ...] = ()
    idle: bool = False
    incapable: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if not self.name:
            self.name = self.id

    def skill(self, domain: str) -> int:
        return self.skills.get(domain, 0)

    def passion(self, domain: str) -> Passion:
        return self.passions.get(domain, Passion.NONE)

    def can_do(self, task_id: str) -> bool:
        return task_id not in self.incapable
