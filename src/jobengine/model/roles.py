"""
Role descriptors.

A worker's role is one variant of a small tagged union. Each variant has
exactly one resolution function in :mod:`jobengine.systems.roles`.

Examples
--------
>>> from jobengine.model import Composite, Custom, ImportanceClass, SinglePreset
>>> SinglePreset("Research")
SinglePreset(task_id='Research', name='')
>>> Composite((("Construction", 1), ("Repair", 2)), name="builder")
Composite(entries=(('Construction', 1), ('Repair', 2)), name='builder')
>>> Custom((("Cooking", ImportanceClass.HIGH),), name="kitchen")
Custom(entries=(('Cooking', <ImportanceClass.HIGH: 4>),), name='kitchen')
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias

from jobengine.model.task import ImportanceClass


@dataclass(slots=True, frozen=True)
class Auto:
    """Let the engine pick the worker's primary task."""

    @property
    def label(self) -> str:
        return "auto"


@dataclass(slots=True, frozen=True)
class Manual:
    """The player manages this worker; the engine never touches it."""

    @property
    def label(self) -> str:
        return "manual"


@dataclass(slots=True, frozen=True)
class SinglePreset:
    """Pin one task as the worker's primary."""

    task_id: str
    name: str = ""

    @property
    def label(self) -> str:
        return self.name or self.task_id


@dataclass(slots=True, frozen=True)
class Composite:
    """Ordered tiered job list. Tier ``k`` maps to priority level ``k``."""

    entries: tuple[tuple[str, int], ...]
    name: str = ""

    def __post_init__(self) -> None:
        for task_id, tier in self.entries:
            if not 1 <= tier <= 4:
                raise ValueError(
                    f"Composite tier for '{task_id}' must be in 1..4, got {tier}"
                )

    @property
    def label(self) -> str:
        return self.name or "composite"


@dataclass(slots=True, frozen=True)
class Custom:
    """User-defined job list, each entry weighted by an importance class."""

    entries: tuple[tuple[str, ImportanceClass], ...]
    name: str = ""

    @property
    def label(self) -> str:
        return self.name or "custom"


RoleDescriptor: TypeAlias = Auto | Manual | SinglePreset | Composite | Custom

__all__ = ["Auto", "Composite", "Custom", "Manual", "RoleDescriptor", "SinglePreset"]
