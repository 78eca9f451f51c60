"""
Health override.

A two-state machine per worker (``NORMAL`` / ``ILL``). While ill, normal
assignment is suspended and the worker only keeps fire response, self
care (when skilled enough) and bed rest.

Thresholds
----------
Each tier trips on the first matching condition::

    tier            lethal                   disease  injury  pain   health
    severe_only     severity > 0.5 * lethal  > 0.7    > 0.8   -      < 0.3
    major_injuries  any lethal               > 0.4    > 0.5   > 0.3  < 0.5
    any_injury      lethal or impairing      > 0.1    > 0.2   > 0.1  < 0.8
    minor_injuries  -                        any      > 0.01  > 0.01 < 0.99
    disabled        never
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from jobengine.logging import getLogger
from jobengine.model import AfflictionKind, Task, Worker
from jobengine.settings import IllnessTasks

log = getLogger(__name__)


class HealthState(str, Enum):
    NORMAL = "normal"
    ILL = "ill"


class HealthTransition(str, Enum):
    NONE = "none"
    BECAME_ILL = "became_ill"
    RECOVERED = "recovered"


@dataclass(slots=True, frozen=True)
class IllnessThreshold:
    """
    One illness tier.

    Parameters
    ----------
    name : str
        Tier name.
    lethal_fraction : float or None
        Lethal afflictions trip when ``severity > lethal_fraction *
        lethal_severity``; 0 means any lethal affliction trips. None disables
        the lethal check.
    impairing_trips : bool
        Capacity-impairing afflictions trip regardless of severity.
    any_disease : bool
        Any disease trips regardless of severity.
    disease_severity, injury_severity, pain : float or None
        Strict lower bounds on disease severity, injury severity and pain.
        None disables that check.
    health_below : float or None
        Summary health fraction below which the worker is ill.
    """

    name: str
    lethal_fraction: float | None = None
    impairing_trips: bool = False
    any_disease: bool = False
    disease_severity: float | None = None
    injury_severity: float | None = None
    pain: float | None = None
    health_below: float | None = None


THRESHOLDS: dict[str, IllnessThreshold] = {
    "disabled": IllnessThreshold("disabled"),
    "severe_only": IllnessThreshold(
        "severe_only",
        lethal_fraction=0.5,
        disease_severity=0.7,
        injury_severity=0.8,
        health_below=0.3,
    ),
    "major_injuries": IllnessThreshold(
        "major_injuries",
        lethal_fraction=0.0,
        disease_severity=0.4,
        injury_severity=0.5,
        pain=0.3,
        health_below=0.5,
    ),
    "any_injury": IllnessThreshold(
        "any_injury",
        lethal_fraction=0.0,
        impairing_trips=True,
        disease_severity=0.1,
        injury_severity=0.2,
        pain=0.1,
        health_below=0.8,
    ),
    "minor_injuries": IllnessThreshold(
        "minor_injuries",
        any_disease=True,
        injury_severity=0.01,
        pain=0.01,
        health_below=0.99,
    ),
}


def get_threshold(name: str) -> IllnessThreshold:
    """
    Look up an illness tier by name.

    Raises
    ------
    KeyError
        If the tier does not exist.
    """
    key = name.strip().lower()
    if key not in THRESHOLDS:
        raise KeyError(
            f"Illness threshold '{name}' not found. "
            f"Available thresholds: {', '.join(THRESHOLDS)}"
        )
    return THRESHOLDS[key]


def illness_reason(worker: Worker, threshold: IllnessThreshold) -> str | None:
    """Return a short reason when ``worker`` is ill under ``threshold``."""
    if threshold.name == "disabled":
        return None

    frac = threshold.lethal_fraction
    for a in worker.afflictions:
        if (
            a.lethal
            and frac is not None
            and (frac == 0.0 or a.severity > frac * a.lethal_severity)
        ):
            return f"lethal condition (severity {a.severity:.2f})"
        if a.impairs_capacity and threshold.impairing_trips:
            return "capacity impaired"
        if (
            a.kind is AfflictionKind.DISEASE
            and (
                threshold.any_disease
                or (
                    threshold.disease_severity is not None
                    and a.severity > threshold.disease_severity
                )
            )
        ):
            return f"disease (severity {a.severity:.2f})"
        if (
            a.kind is AfflictionKind.INJURY
            and threshold.injury_severity is not None
            and a.severity > threshold.injury_severity
        ):
            return f"injury (severity {a.severity:.2f})"
        if threshold.pain is not None and a.pain > threshold.pain:
            return f"pain {a.pain:.2f}"

    if threshold.health_below is not None and worker.health < threshold.health_below:
        return f"health {worker.health:.0%}"
    return None


def is_ill(worker: Worker, threshold: IllnessThreshold) -> bool:
    return illness_reason(worker, threshold) is not None


def check(
    worker: Worker, was_ill: bool, threshold: IllnessThreshold
) -> HealthTransition:
    """
    Evaluate one step of the state machine.

    Parameters
    ----------
    worker : Worker
        Current snapshot.
    was_ill : bool
        Last known state of the worker.
    threshold : IllnessThreshold
        Active tier.

    Returns
    -------
    HealthTransition
        ``BECAME_ILL``, ``RECOVERED`` or ``NONE``.
    """
    reason = illness_reason(worker, threshold)
    if reason is not None and not was_ill:
        log.info("%s is ill (%s); switching to recovery duties", worker.name, reason)
        return HealthTransition.BECAME_ILL
    if reason is None and was_ill:
        log.info("%s has recovered", worker.name)
        return HealthTransition.RECOVERED
    return HealthTransition.NONE


def ill_assignments(
    worker: Worker,
    tasks: Mapping[str, Task],
    illness_tasks: IllnessTasks,
) -> dict[str, int]:
    """
    Level map for an ill worker.

    Every visible capable task is cleared, then fire response, medical
    work (only with enough medical skill) and each bed-rest task are set
    to 1.
    """
    levels = {t.id: 0 for t in tasks.values() if t.visible and worker.can_do(t.id)}

    if illness_tasks.fire_task in levels:
        levels[illness_tasks.fire_task] = 1

    if (
        illness_tasks.medical_task in levels
        and worker.skill(illness_tasks.medical_skill) >= illness_tasks.medical_min_skill
    ):
        levels[illness_tasks.medical_task] = 1

    for task_id in illness_tasks.rest_tasks:
        if task_id in levels:
            levels[task_id] = 1
    return levels
