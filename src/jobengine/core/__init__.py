"""Core pass infrastructure: base class, registry and pipeline."""

from jobengine.core.decorators import distribution_pass
from jobengine.core.pass_ import Pass
from jobengine.core.pipeline import Pipeline
from jobengine.core.registry import clear_registry, get_pass, list_passes

__all__ = [
    "Pass",
    "Pipeline",
    "clear_registry",
    "distribution_pass",
    "get_pass",
    "list_passes",
]
