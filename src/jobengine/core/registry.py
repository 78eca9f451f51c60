"""Registry of distribution passes."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jobengine.core.pass_ import Pass

_PASS_REGISTRY: dict[str, type[Pass]] = {}


def get_pass(name: str) -> type[Pass]:
    """
    Retrieve a pass class from the registry by name.

    Parameters
    ----------
    name : str
        Name of the pass to retrieve.

    Returns
    -------
    type[Pass]
        The registered pass class.

    Raises
    ------
    KeyError
        If the pass name is not found in the registry.
    """
    if name not in _PASS_REGISTRY:
        available = ", ".join(sorted(_PASS_REGISTRY.keys()))
        raise KeyError(
            f"Pass '{name}' not found in registry. Available passes: {available}"
        )
    return _PASS_REGISTRY[name]


def list_passes() -> list[str]:
    """Return sorted list of all registered pass names."""
    return sorted(_PASS_REGISTRY.keys())


def clear_registry() -> None:
    """
    Clear all registrations (useful for testing).

    WARNING: This is a destructive operation. Only use in test teardown.
    """
    _PASS_REGISTRY.clear()
