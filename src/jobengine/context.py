"""
Engine context.

One :class:`EngineContext` exists per colony session. It owns everything
the engine remembers between ticks: per-worker bookkeeping, the two dirty
bands and the primary-task ledger. It is created by
:meth:`jobengine.session.Session.init` and closed with the session; no
module-level state is involved.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from jobengine.logging import getLogger
from jobengine.model import Auto, Manual, RoleDescriptor

log = getLogger(__name__)


@dataclass(slots=True)
class WorkerRecord:
    """
    Engine-side bookkeeping for one worker.

    Attributes
    ----------
    role : RoleDescriptor
        Configured role, ``Auto`` for new workers.
    auto_assign : bool
        Per-worker switch; off means the engine leaves the worker alone.
    last_recompute_tick : int
        Tick of the last recompute that wrote this worker (-1 = never).
    was_ill : bool
        Last known health-override state.
    """

    role: RoleDescriptor = field(default_factory=Auto)
    auto_assign: bool = True
    last_recompute_tick: int = -1
    was_ill: bool = False

    @property
    def managed(self) -> bool:
        return self.auto_assign and not isinstance(self.role, Manual)


class EngineContext:
    """
    Session-scoped state of the engine.

    Attributes
    ----------
    records : dict[str, WorkerRecord]
        Bookkeeping per worker id.
    primaries : dict[str, str]
        Primary task per worker, as of the last recompute of that worker.
    last_full_tick : int or None
        Tick of the last full recompute.
    last_check_tick, last_idle_tick : int or None
        Ticks of the last controller check and idle scan.
    """

    __slots__ = (
        "records",
        "primaries",
        "last_full_tick",
        "last_check_tick",
        "last_idle_tick",
        "_critical",
        "_normal",
        "_closed",
    )

    def __init__(self) -> None:
        self.records: dict[str, WorkerRecord] = {}
        self.primaries: dict[str, str] = {}
        self.last_full_tick: int | None = None
        self.last_check_tick: int | None = None
        self.last_idle_tick: int | None = None
        # insertion-ordered sets
        self._critical: dict[str, None] = {}
        self._normal: dict[str, None] = {}
        self._closed = False

    # --- records --------------------------------------------------------

    def record(self, worker_id: str) -> WorkerRecord:
        """Return the record of a worker, creating a default one if needed."""
        self._check_open()
        rec = self.records.get(worker_id)
        if rec is None:
            rec = self.records[worker_id] = WorkerRecord()
        return rec

    def forget(self, worker_id: str) -> None:
        """Drop every trace of a removed worker."""
        self.records.pop(worker_id, None)
        self.primaries.pop(worker_id, None)
        self.discard(worker_id)

    def holders(self, exclude: str | None = None) -> Counter[str]:
        """Primary holder count per task, optionally ignoring one worker."""
        return Counter(t for w, t in self.primaries.items() if w != exclude)

    # --- dirty bands ----------------------------------------------------

    def mark_critical(self, worker_id: str) -> None:
        self._check_open()
        self._normal.pop(worker_id, None)
        self._critical[worker_id] = None

    def mark_normal(self, worker_id: str) -> None:
        self._check_open()
        if worker_id not in self._critical:
            self._normal[worker_id] = None

    def mark_all_normal(self, worker_ids: Iterable[str]) -> None:
        for worker_id in worker_ids:
            self.mark_normal(worker_id)

    def discard(self, worker_id: str) -> None:
        self._critical.pop(worker_id, None)
        self._normal.pop(worker_id, None)

    def clear_dirty(self) -> None:
        self._critical.clear()
        self._normal.clear()

    def is_dirty(self, worker_id: str) -> bool:
        return worker_id in self._critical or worker_id in self._normal

    def pending(self) -> int:
        return len(self._critical) + len(self._normal)

    @property
    def critical(self) -> list[str]:
        return list(self._critical)

    @property
    def normal(self) -> list[str]:
        return list(self._normal)

    def drain(self, budget: int) -> Iterator[str]:
        """
        Yield up to ``budget`` worker ids, critical band first.

        Entries are removed as they are yielded; whatever is left stays
        queued for the next tick.
        """
        for _ in range(budget):
            if self._critical:
                worker_id = next(iter(self._critical))
                del self._critical[worker_id]
            elif self._normal:
                worker_id = next(iter(self._normal))
                del self._normal[worker_id]
            else:
                return
            yield worker_id

    # --- lifecycle ------------------------------------------------------

    def close(self) -> None:
        """Release all state. Further marking raises RuntimeError."""
        log.debug(
            "Closing engine context (%d records, %d pending)",
            len(self.records),
            self.pending(),
        )
        self.records.clear()
        self.primaries.clear()
        self.clear_dirty()
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("EngineContext is closed")

    def __repr__(self) -> str:
        return (
            f"EngineContext(workers={len(self.records)}, "
            f"critical={len(self._critical)}, normal={len(self._normal)})"
        )
