"""Task (work type) definition and importance classes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ImportanceClass(IntEnum):
    """
    Per-task policy weighting, ordered from DISABLED to CRITICAL.

    DISABLED tasks are never assigned by the engine.
    """

    DISABLED = 0
    VERY_LOW = 1
    LOW = 2
    NORMAL = 3
    HIGH = 4
    CRITICAL = 5

    @classmethod
    def parse(cls, value: ImportanceClass | str | int) -> ImportanceClass:
        """
        Parse an importance from an enum member, an int or a name.

        Names are case-insensitive and accept ``VeryLow``, ``very_low`` and
        ``very-low`` spellings.

        Raises
        ------
        ValueError
            If the value does not name an importance class.
        """
        if isinstance(value, ImportanceClass):
            return value
        if isinstance(value, int):
            return cls(value)
        key = value.strip().replace("-", "_")
        if key.upper() in cls.__members__:
            return cls[key.upper()]
        compact = {
            name.replace("_", ""): member for name, member in cls.__members__.items()
        }
        try:
            return compact[key.upper().replace("_", "")]
        except KeyError:
            raise ValueError(
                f"Unknown importance '{value}'. "
                f"Valid: {', '.join(m.name for m in cls)}"
            ) from None


@dataclass(slots=True, frozen=True)
class Task:
    """
    A unit of work type that can receive a priority.

    Parameters
    ----------
    id : str
        Stable task identity (e.g. ``"Construction"``).
    skills : tuple[str, ...], default ()
        Relevant skill domains. Empty means an unskilled task.
    visible : bool, default True
        Hidden tasks are never part of the task universe.
    importance : ImportanceClass, default NORMAL
        Default importance class, overridden by settings.
    always_enabled : bool, default False
        Survival task enabled at priority 1 for every capable worker.
    label : str, optional
        Display label. Defaults to ``id``.
    """

    id: str
    skills: tuple[str, ...] = ()
    visible: bool = True
    importance: ImportanceClass = ImportanceClass.NORMAL
    always_enabled: bool = False
    label: str = ""

    @property
    def display(self) -> str:
        return self.label or self.id
