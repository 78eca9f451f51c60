"""Distribution pipeline with explicit execution order."""

from __future__ import annotations

from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import TYPE_CHECKING

import yaml

from jobengine.core.pass_ import Pass
from jobengine.core.registry import get_pass

if TYPE_CHECKING:
    from jobengine.engine import DistributionState


@dataclass(slots=True)
class Pipeline:
    """
    Ordered list of distribution passes.

    Attributes
    ----------
    passes : list[Pass]
        Ordered list of pass instances to execute.
    _pass_map : dict[str, Pass]
        Internal mapping from pass names to instances for quick lookup.

    See Also
    --------
    Pipeline.default : The prepare -> A -> B -> C -> D -> E pipeline
    """

    passes: list[Pass] = field(default_factory=list)
    _pass_map: dict[str, Pass] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self._pass_map = {p.name: p for p in self.passes}

    @classmethod
    def from_pass_list(cls, pass_names: list[str]) -> Pipeline:
        """
        Build pipeline from an ordered list of pass names.

        Parameters
        ----------
        pass_names : list[str]
            Pass names in execution order.

        Returns
        -------
        Pipeline
            Pipeline with passes in the order specified.

        Raises
        ------
        KeyError
            If a pass name is not found in the registry.
        """
        return cls(passes=[get_pass(name.strip())() for name in pass_names])

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> Pipeline:
        """
        Build pipeline from a YAML file with a ``passes`` list.

        Raises
        ------
        ValueError
            If the file has no ``passes`` key.
        """
        yaml_path = Path(yaml_path)
        with open(yaml_path) as f:
            config = yaml.safe_load(f) or {}

        if "passes" not in config:
            raise ValueError(f"YAML file must have 'passes' key: {yaml_path}")

        return cls.from_pass_list(list(config["passes"]))

    @classmethod
    def default(cls) -> Pipeline:
        """Build the pipeline shipped in ``jobengine/default_pipeline.yml``."""
        import jobengine.passes  # noqa: F401 - register passes

        txt = resources.files("jobengine").joinpath("default_pipeline.yml").read_text()
        config = yaml.safe_load(txt)
        return cls.from_pass_list(list(config["passes"]))

    def execute(self, state: DistributionState) -> None:
        """Execute all passes in pipeline order."""
        for p in self.passes:
            p.execute(state)

    def insert_after(self, after: str, new_pass: Pass | str) -> None:
        """
        Insert a pass after the named one.

        Raises
        ------
        ValueError
            If ``after`` is not in the pipeline.
        """
        if after not in self._pass_map:
            raise ValueError(f"Pass '{after}' not found in pipeline")

        if isinstance(new_pass, str):
            new_pass = get_pass(new_pass)()

        idx = self.passes.index(self._pass_map[after])
        self.passes.insert(idx + 1, new_pass)
        self._pass_map[new_pass.name] = new_pass

    def remove(self, pass_name: str) -> None:
        """
        Remove a pass from the pipeline.

        Raises
        ------
        ValueError
            If the pass is not in the pipeline.
        """
        if pass_name not in self._pass_map:
            raise ValueError(f"Pass '{pass_name}' not found in pipeline")

        self.passes.remove(self._pass_map.pop(pass_name))

    def replace(self, old_name: str, new_pass: Pass | str) -> None:
        """
        Replace a pass with another one.

        Raises
        ------
        ValueError
            If ``old_name`` is not in the pipeline.
        """
        if old_name not in self._pass_map:
            raise ValueError(f"Pass '{old_name}' not found in pipeline")

        if isinstance(new_pass, str):
            new_pass = get_pass(new_pass)()

        idx = self.passes.index(self._pass_map[old_name])
        self.passes[idx] = new_pass
        del self._pass_map[old_name]
        self._pass_map[new_pass.name] = new_pass

    @property
    def names(self) -> list[str]:
        return [p.name for p in self.passes]

    def __len__(self) -> int:
        return len(self.passes)

    def __repr__(self) -> str:
        return f"Pipeline(passes={self.names})"
