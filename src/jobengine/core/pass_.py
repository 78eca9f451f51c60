"""Distribution pass base class definition."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from jobengine.logging import JobLogger, getLogger, pass_logger_name

if TYPE_CHECKING:
    from jobengine.engine import DistributionState


def _camel_to_snake(name: str) -> str:
    """Convert CamelCase to snake_case."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


@dataclass(slots=True)
class Pass(ABC):
    """
    Base class for the passes of a colony-wide distribution.

    A Pass reads the score and capability matrices of a
    :class:`~jobengine.engine.DistributionState` and mutates its level
    matrix, quota counts and report in place. Passes are executed by the
    Pipeline in the exact order specified; no pass starts before the
    previous one has finished.

    Notes
    -----
    Passes are registered automatically via the ``__init_subclass__`` hook
    under their snake_case class name (or an explicit ``name``).
    """

    name: ClassVar[str] = ""

    def __init_subclass__(cls, name: str = "", **kwargs: Any) -> None:
        """
        Auto-register Pass subclasses in the global registry.

        Parameters
        ----------
        name : str, optional
            Custom name for the pass. If not provided, uses the class name
            converted to snake_case.
        **kwargs
            Additional keyword arguments passed to parent __init_subclass__.
        """
        super(Pass, cls).__init_subclass__(**kwargs)

        # @dataclass(slots=True) builds a new class and re-enters this hook
        # without the custom name, so keep an already assigned one
        if name != "":
            cls.name = name
        elif cls.name == "":
            cls.name = _camel_to_snake(cls.__name__)

        from jobengine.core.registry import _PASS_REGISTRY

        _PASS_REGISTRY[cls.name] = cls

    def get_logger(self) -> JobLogger:
        """
        Get logger for this pass.

        Notes
        -----
        Logger name format: ``'jobengine.passes.{pass_name}'``. Per-pass
        levels are configured with the ``logging.passes`` config section.
        """
        return getLogger(pass_logger_name(self.name))

    @abstractmethod
    def execute(self, state: DistributionState) -> None:
        """
        Execute the pass.

        Parameters
        ----------
        state : DistributionState
            Working state of the current recompute. Mutated in place.
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
