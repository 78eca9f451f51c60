"""Data model: workers, tasks, quotas and role descriptors."""

from jobengine.model.quota import UNBOUNDED, QuotaSetting
from jobengine.model.roles import (
    Auto,
    Composite,
    Custom,
    Manual,
    RoleDescriptor,
    SinglePreset,
)
from jobengine.model.task import ImportanceClass, Task
from jobengine.model.worker import Affliction, AfflictionKind, Passion, Worker

__all__ = [
    "Affliction",
    "AfflictionKind",
    "Auto",
    "Composite",
    "Custom",
    "ImportanceClass",
    "Manual",
    "Passion",
    "QuotaSetting",
    "RoleDescriptor",
    "SinglePreset",
    "Task",
    "UNBOUNDED",
    "Worker",
]
