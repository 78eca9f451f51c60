"""
Extended priority-range adapters.

Internally the engine works with levels 1-4 (0 = unassigned). Hosts that
offer a wider range get the internal level translated by a
:class:`RangeAdapter` right before each write. The adapter is chosen once
when the session starts; detecting whether the host supports a wider
range is the host's concern.

Scaling presets (fraction of ``max_range`` for levels 1..4)::

    tight     0.10  0.20  0.30  0.40
    balanced  0.10  0.30  0.60  0.90
    wide      0.05  0.25  0.55  0.95
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from jobengine.logging import getLogger

log = getLogger(__name__)

NATIVE_MAX = 4

PRESET_FRACTIONS: dict[str, tuple[float, float, float, float]] = {
    "tight": (0.10, 0.20, 0.30, 0.40),
    "balanced": (0.10, 0.30, 0.60, 0.90),
    "wide": (0.05, 0.25, 0.55, 0.95),
}


@runtime_checkable
class RangeAdapter(Protocol):
    """Translate internal levels (1-4) to the host's priority range."""

    @property
    def max_range(self) -> int: ...

    def map(self, level: int) -> int: ...


class DefaultRange:
    """Native 1-4 range: levels pass through unchanged."""

    max_range = NATIVE_MAX

    def map(self, level: int) -> int:
        return level

    def __repr__(self) -> str:
        return "DefaultRange()"


class ScaledRange:
    """
    Spread levels 1-4 over ``1..max_range``.

    Parameters
    ----------
    max_range : int
        Highest (least urgent) priority the host accepts.
    preset : {"tight", "balanced", "wide", "custom"}, default "balanced"
        Scaling preset.
    mapping : Mapping[int, int], optional
        Explicit level -> external level table, required for ``custom``.

    Examples
    --------
    >>> r = ScaledRange(9)
    >>> [r.map(level) for level in range(5)]
    [0, 1, 3, 5, 8]
    """

    def __init__(
        self,
        max_range: int,
        preset: str = "balanced",
        mapping: Mapping[int, int] | None = None,
    ) -> None:
        preset = preset.lower()
        if max_range < NATIVE_MAX:
            raise ValueError(f"max_range must be >= {NATIVE_MAX}, got {max_range}")
        if preset == "custom":
            if not mapping:
                raise ValueError("custom range preset needs an explicit mapping")
        elif preset not in PRESET_FRACTIONS:
            raise ValueError(
                f"Unknown range preset '{preset}'. "
                f"Valid: {', '.join([*PRESET_FRACTIONS, 'custom'])}"
            )
        self._max_range = max_range
        self.preset = preset
        self.table = self._build_table(max_range, preset, mapping)

    @property
    def max_range(self) -> int:
        return self._max_range

    @staticmethod
    def _build_table(
        max_range: int, preset: str, mapping: Mapping[int, int] | None
    ) -> dict[int, int]:
        if preset == "custom":
            assert mapping is not None
            table = {int(k): int(v) for k, v in mapping.items()}
        else:
            fractions = PRESET_FRACTIONS[preset]
            table = {i + 1: round(max_range * f) for i, f in enumerate(fractions)}
        # clamp into the host range
        return {k: min(max_range, max(1, v)) for k, v in table.items()}

    def map(self, level: int) -> int:
        if level <= 0:
            return 0
        return self.table.get(level, level)

    def __repr__(self) -> str:
        return f"ScaledRange(max_range={self._max_range}, preset={self.preset!r})"


def from_config(ext: Mapping[str, Any] | None) -> RangeAdapter:
    """Build an adapter from the ``extended_range`` config section."""
    if not ext:
        return DefaultRange()
    adapter = ScaledRange(
        int(ext["max_range"]),
        str(ext.get("preset", "balanced")),
        ext.get("mapping"),
    )
    log.info("Extended priority range: %r -> %s", adapter, adapter.table)
    return adapter
