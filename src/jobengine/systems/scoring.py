"""
Scoring model.

Affinity of a worker for a task, from skill levels and passions. The scalar
:func:`score` is the reference rule; :func:`score_matrix` evaluates the
same rule for a whole colony snapshot at once.

Rule
----
For each relevant domain ``d`` of task ``t``::

    s_d = level_d * 2.0 + 5    (major passion)
    s_d = level_d * 1.5 + 2    (minor passion)
    s_d = level_d              (no passion)

    score = max(1, mean_d(s_d))      score = 1 for unskilled tasks
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from jobengine.logging import DEEP_DEBUG, getLogger
from jobengine.model import ImportanceClass, Passion, Task, Worker
from jobengine.typing import Bool2D, Float2D

log = getLogger(__name__)

BASELINE_SCORE = 1.0

# (multiplier, flat growth bonus) per passion
PASSION_FACTORS: dict[Passion, tuple[float, float]] = {
    Passion.NONE: (1.0, 0.0),
    Passion.MINOR: (1.5, 2.0),
    Passion.MAJOR: (2.0, 5.0),
}

IMPORTANCE_MODIFIERS: dict[ImportanceClass, float] = {
    ImportanceClass.CRITICAL: 3.0,
    ImportanceClass.HIGH: 1.8,
    ImportanceClass.NORMAL: 1.0,
    ImportanceClass.LOW: 0.6,
    ImportanceClass.VERY_LOW: 0.3,
    ImportanceClass.DISABLED: 0.0,
}


def score(worker: Worker, task: Task) -> float:
    """
    Return the affinity score of ``worker`` for ``task``.

    Parameters
    ----------
    worker : Worker
        Worker snapshot.
    task : Task
        Task to score.

    Returns
    -------
    float
        Score, never below 1.

    Examples
    --------
    >>> from jobengine.model import Passion, Task, Worker
    >>> w = Worker("a", skills={"Cooking": 10}, passions={"Cooking": Passion.MAJOR})
    >>> score(w, Task("Cooking", skills=("Cooking",)))
    25.0
    >>> score(w, Task("Hauling"))
    1.0
    """
    if not task.skills:
        return BASELINE_SCORE

    total = 0.0
    for domain in task.skills:
        mult, bonus = PASSION_FACTORS[worker.passion(domain)]
        total += worker.skill(domain) * mult + bonus
    return max(BASELINE_SCORE, total / len(task.skills))


def importance_modifier(importance: ImportanceClass) -> float:
    """Ranking multiplier for an importance class (0 for DISABLED)."""
    return IMPORTANCE_MODIFIERS[importance]


def score_matrix(
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    *,
    chunk_size: int | None = None,
) -> Float2D:
    """
    Score every (worker, task) pair.

    Builds per-domain level and passion tables once, then evaluates the
    scoring rule with array operations. With ``chunk_size`` set, workers
    are processed in row blocks of that size; the result is identical.

    Parameters
    ----------
    workers : Sequence[Worker]
        Colony snapshot, row order of the result.
    tasks : Sequence[Task]
        Tasks, column order of the result.
    chunk_size : int, optional
        Rows per block. None scores all workers at once.

    Returns
    -------
    Float2D
        Array of shape ``(len(workers), len(tasks))``.
    """
    n_w, n_t = len(workers), len(tasks)
    out = np.full((n_w, n_t), BASELINE_SCORE, dtype=np.float64)
    if n_w == 0 or n_t == 0:
        return out

    domains = sorted({d for t in tasks for d in t.skills})
    if not domains:
        return out
    d_index = {d: i for i, d in enumerate(domains)}

    # task -> domain membership, normalised to a mean
    membership = np.zeros((len(domains), n_t), dtype=np.float64)
    for j, task in enumerate(tasks):
        for d in task.skills:
            membership[d_index[d], j] += 1.0
    n_skills = membership.sum(axis=0)
    skilled = n_skills > 0
    membership[:, skilled] /= n_skills[skilled]

    step = chunk_size or n_w
    for start in range(0, n_w, step):
        block = workers[start : start + step]
        levels = np.array(
            [[w.skill(d) for d in domains] for w in block], dtype=np.float64
        )
        passions = np.array(
            [[int(w.passion(d)) for d in domains] for w in block], dtype=np.int64
        )
        mult = np.ones_like(levels)
        bonus = np.zeros_like(levels)
        for passion, (m, b) in PASSION_FACTORS.items():
            mask = passions == int(passion)
            mult[mask] = m
            bonus[mask] = b
        per_domain = levels * mult + bonus
        rows = per_domain @ membership
        out[start : start + step, skilled] = np.maximum(
            BASELINE_SCORE, rows[:, skilled]
        )

    if log.isEnabledFor(DEEP_DEBUG):
        log.deep("Score matrix (%d x %d):\n%s", n_w, n_t, np.array2string(out))
    return out


def capability_matrix(workers: Sequence[Worker], tasks: Sequence[Task]) -> Bool2D:
    """Return ``capable[w, t]``: worker ``w`` is able to do task ``t``."""
    return np.array(
        [[w.can_do(t.id) for t in tasks] for w in workers], dtype=np.bool_
    ).reshape(len(workers), len(tasks))
