"""
Integration tests for full colony recomputes.

These run the whole pipeline (prepare, passes A-E) through a Session and
check the outcome on the in-memory colony.
"""

import logging

import pytest

from jobengine import Session
from jobengine.model import Custom, ImportanceClass, Manual, Task
from jobengine.results import QuotaShortfall
from tests.helpers.factories import (
    mock_colony,
    mock_worker,
    simple_tasks,
    specialist_colony,
    standard_tasks,
)

UNIVERSE = [
    "Doctor",
    "Cooking",
    "Hunting",
    "Construction",
    "Growing",
    "Mining",
    "Crafting",
    "Hauling",
    "Cleaning",
    "Research",
]


def _open(colony, **kwargs):
    kwargs.setdefault("auto_assign_enabled", False)
    return Session.init(colony, **kwargs)


class TestColonyRecompute:
    def test_mode_and_primaries(self, session):
        report = session.recompute_all(force=True)
        assert report.mode == "colony"
        assert report.primaries == {
            "ana": "Cooking",
            "bo": "Mining",
            "cy": "Doctor",
            "dee": "Hunting",
        }

    def test_primary_written_at_level_one(self, session, small_colony):
        report = session.recompute_all(force=True)
        for worker_id, task_id in report.primaries.items():
            assert small_colony.get_priority(worker_id, task_id) == 1

    def test_every_coverable_task_covered(self, session, small_colony):
        report = session.recompute_all(force=True)
        assert report.uncoverable == []
        for task_id in UNIVERSE:
            assert small_colony.assigned_count(task_id) > 0, task_id

    def test_always_enabled_for_everyone(self, session, small_colony):
        session.recompute_all(force=True)
        for worker_id in ("ana", "bo", "cy", "dee"):
            assert small_colony.get_priority(worker_id, "Firefighter") == 1

    def test_hidden_task_never_written(self, session, small_colony):
        session.recompute_all(force=True)
        assert small_colony.assigned_count("PatientBedRest") == 0

    def test_levels_in_range(self, session, small_colony):
        report = session.recompute_all(force=True)
        for levels in small_colony.snapshot().values():
            assert set(levels.values()) <= {1, 2, 3, 4}
        assert report.levels == small_colony.snapshot()

    def test_idempotent(self, session, small_colony):
        session.recompute_all(force=True)
        first = small_colony.snapshot()
        session.recompute_all(force=True)
        assert small_colony.snapshot() == first

    def test_specialists_split_disjointly(self):
        colony = specialist_colony(4)
        with _open(colony) as s:
            report = s.recompute_all(force=True)
        assert report.primaries == {f"w{i}": f"T{i}" for i in range(4)}

    def test_counts_reported(self, session, small_colony):
        report = session.recompute_all(force=True)
        for task_id in UNIVERSE:
            assert report.counts[task_id] == small_colony.assigned_count(task_id)


class TestQuotas:
    @pytest.fixture
    def ten(self):
        workers = [mock_worker(f"w{i}", Cooking=i, Mining=10 - i) for i in range(10)]
        return mock_colony(workers, standard_tasks())

    def test_exact_quota(self, ten):
        with _open(ten, quotas={"Cooking": {"min": 2, "max": 2}}) as s:
            report = s.recompute_all(force=True)
        assert ten.assigned_count("Cooking") == 2
        assert report.counts["Cooking"] == 2
        assert report.shortfalls == []

    def test_percentage_max(self, ten):
        quotas = {"Mining": {"max": 30, "is_percentage": True}}
        with _open(ten, quotas=quotas) as s:
            s.recompute_all(force=True)
        assert ten.assigned_count("Mining") <= 3

    def test_closed_task_never_staffed(self, session, small_colony):
        session.set_quota("Mining", closed=True)
        report = session.recompute_all(force=True)
        assert small_colony.assigned_count("Mining") == 0
        assert "Mining" not in report.uncoverable
        assert report.primaries["bo"] != "Mining"

    def test_shortfall(self, caplog):
        workers = [
            mock_worker("a", Medicine=5),
            mock_worker("b", incapable=["Doctor"]),
            mock_worker("c", incapable=["Doctor"]),
        ]
        colony = mock_colony(workers)
        with _open(colony, quotas={"Doctor": {"min": 3}}) as s:
            with caplog.at_level(logging.WARNING, logger="jobengine"):
                report = s.recompute_all(force=True)
        assert report.shortfalls == [QuotaShortfall("Doctor", 3, 1)]
        assert "Minimum quota for 'Doctor' not met" in caplog.text
        assert not report.ok

    def test_min_fills_from_best_scores(self):
        workers = [
            mock_worker("a", Cooking=3, Mining=12),
            mock_worker("b", Cooking=9, Mining=11),
            mock_worker("c", Cooking=1, Construction=14),
        ]
        colony = mock_colony(workers)
        with _open(colony, quotas={"Cooking": {"min": 2, "max": 2}}) as s:
            s.recompute_all(force=True)
        holders = {w for w in "abc" if colony.get_priority(w, "Cooking") > 0}
        assert len(holders) == 2
        assert "b" in holders


class TestRolesAndManual:
    def test_manual_worker_untouched(self, small_colony):
        small_colony.set_priority("bo", "Hauling", 3)
        with _open(small_colony) as s:
            s.set_role("bo", Manual())
            report = s.recompute_all(force=True)
        assert small_colony.priorities_of("bo") == {"Hauling": 3}
        assert "bo" not in report.workers
        # a manual holder covers the task
        assert report.counts["Hauling"] >= 1

    def test_auto_assign_off_untouched(self, session, small_colony):
        session.set_auto_assign("cy", False)
        report = session.recompute_all(force=True)
        assert small_colony.priorities_of("cy") == {}
        assert "cy" not in report.workers

    def test_pinned_preset(self, session, small_colony):
        session.set_role("dee", "miner")
        report = session.recompute_all(force=True)
        assert report.primaries["dee"] == "Mining"
        assert small_colony.get_priority("dee", "Mining") == 1
        # the held primary is penalised for the next worker
        assert report.primaries["bo"] == "Construction"

    def test_composite_role(self, session, small_colony):
        session.set_role("bo", "builder")
        report = session.recompute_all(force=True)
        # Repair and Deconstruct are not in this colony
        assert report.primaries["bo"] == "Construction"
        assert small_colony.get_priority("bo", "Construction") == 1

    def test_custom_role_without_level_one_has_no_primary(
        self, session, small_colony
    ):
        role = Custom((("Cooking", ImportanceClass.NORMAL),), name="cook")
        session.set_role("ana", role)
        report = session.recompute_all(force=True)
        assert small_colony.get_priority("ana", "Cooking") == 2
        assert "ana" not in report.primaries
        assert "ana" not in session.context.primaries

    def test_disabled_task_skipped(self, session, small_colony):
        session.set_importance("Cleaning", "disabled")
        session.recompute_all(force=True)
        assert small_colony.assigned_count("Cleaning") == 0


class TestSpecialModes:
    def test_solo_survival(self):
        colony = mock_colony([mock_worker("solo", Cooking=5)])
        with _open(colony) as s:
            report = s.recompute_all(force=True)
        assert report.mode == "solo"
        assert colony.priorities_of("solo") == {
            "Firefighter": 1,
            "Doctor": 2,
            "Cooking": 2,
            "Hunting": 1,
            "Construction": 3,
            "Growing": 2,
            "Mining": 3,
            "Crafting": 4,
            "Hauling": 4,
            "Cleaning": 4,
            "Research": 4,
        }

    def test_solo_without_survival_mode(self):
        colony = mock_colony([mock_worker("solo", Cooking=5)])
        with _open(colony, solo_survival_mode=False) as s:
            report = s.recompute_all(force=True)
        assert report.mode == "individual"
        assert report.primaries == {"solo": "Cooking"}

    def test_single_managed_worker_in_colony(self, small_colony):
        with _open(small_colony) as s:
            for worker_id in ("bo", "cy", "dee"):
                s.set_role(worker_id, "manual")
            report = s.recompute_all(force=True)
        assert report.mode == "individual"
        assert report.workers == ["ana"]

    def test_ill_worker(self, session, small_colony):
        small_colony.add_task(Task("Patient"))
        small_colony.update_worker("bo", health=0.4)
        report = session.recompute_all(force=True)
        assert report.ill == ["bo"]
        assert "bo" not in report.primaries
        assert small_colony.priorities_of("bo") == {"Firefighter": 1, "Patient": 1}

    def test_ill_worker_in_pair_keeps_colony_mode(self):
        tasks = simple_tasks(14)
        domains = [t.id for t in tasks]
        colony = mock_colony(
            [
                mock_worker("a", domains=domains, base_skill=5),
                mock_worker("b", domains=domains, base_skill=5),
            ],
            tasks,
        )
        colony.update_worker("b", health=0.4)
        with _open(colony, quotas={"T13": {"min": 1}}) as s:
            report = s.recompute_all(force=True)
        assert report.mode == "colony"
        assert report.ill == ["b"]
        assert report.uncoverable == []
        assert report.shortfalls == []
        for task in tasks:
            assert colony.get_priority("a", task.id) > 0, task.id
        assert colony.assigned_count("T13") == 1
        assert colony.priorities_of("b") == {}

    def test_recovery_restores_work(self, session, small_colony):
        small_colony.update_worker("bo", health=0.4)
        session.recompute_all(force=True)
        small_colony.update_worker("bo", health=1.0)
        report = session.recompute_all(force=True)
        assert report.ill == []
        assert report.primaries["bo"] == "Mining"

    def test_illness_response_disabled(self, small_colony):
        small_colony.update_worker("bo", health=0.4)
        with _open(small_colony, illness_response_enabled=False) as s:
            report = s.recompute_all(force=True)
        assert report.ill == []
        assert report.primaries["bo"] == "Mining"

    def test_only_ill_workers(self):
        colony = mock_colony(
            [mock_worker("a"), mock_worker("b")], standard_tasks()
        )
        colony.update_worker("a", health=0.2)
        colony.update_worker("b", health=0.2)
        with _open(colony) as s:
            report = s.recompute_all(force=True)
        assert report.mode == "health"
        assert sorted(report.ill) == ["a", "b"]


class TestStalePriorities:
    @pytest.fixture
    def pair(self):
        workers = [
            mock_worker("a", Cooking=8, Intellectual=6, incapable=["Mining"]),
            mock_worker("b", Mining=9, Intellectual=4),
        ]
        stale = {("a", "Research"): 1, ("a", "Mining"): 3, ("b", "Research"): 2}
        return mock_colony(workers, standard_tasks(hidden=["Research"]), stale)

    def test_hidden_task_cleared(self, pair):
        with _open(pair) as s:
            s.recompute_all(force=True)
        assert pair.get_priority("a", "Research") == 0
        assert pair.get_priority("b", "Research") == 0

    def test_incapable_task_cleared(self, pair):
        with _open(pair) as s:
            s.recompute_all(force=True)
        assert pair.get_priority("a", "Mining") == 0
        assert pair.get_priority("b", "Mining") > 0

    def test_disabled_task_cleared(self, pair):
        pair.set_priority("b", "Cleaning", 2)
        with _open(pair, importance={"Cleaning": "disabled"}) as s:
            s.recompute_all(force=True)
        assert pair.assigned_count("Cleaning") == 0

    def test_single_worker_recompute_clears(self, pair):
        with _open(pair) as s:
            report = s.recompute_one("a", force=True)
        assert report.mode == "individual"
        assert pair.get_priority("a", "Research") == 0
        assert pair.get_priority("a", "Mining") == 0
        # nobody else is touched
        assert pair.get_priority("b", "Research") == 2

    def test_manual_worker_keeps_stale_levels(self, pair):
        with _open(pair) as s:
            s.set_role("b", "manual")
            s.recompute_all(force=True)
        assert pair.get_priority("b", "Research") == 2


class TestReporting:
    def test_uncoverable(self, caplog):
        workers = [
            mock_worker("a", incapable=["Research"]),
            mock_worker("b", incapable=["Research"]),
        ]
        with _open(mock_colony(workers)) as s:
            with caplog.at_level(logging.INFO, logger="jobengine"):
                report = s.recompute_all(force=True)
        assert report.uncoverable == ["Research"]
        assert "Nobody can do 'Research'" in caplog.text

    def test_write_failure_is_reported(self, session, small_colony, caplog):
        small_colony.rejected.add(("ana", "Cooking"))
        with caplog.at_level(logging.WARNING, logger="jobengine"):
            report = session.recompute_all(force=True)
        assert len(report.write_failures) == 1
        failure = report.write_failures[0]
        assert (failure.worker_id, failure.task_id) == ("ana", "Cooking")
        assert "Skipping write" in caplog.text
        # the rest of the worker's map still went through
        assert small_colony.get_priority("ana", "Firefighter") == 1
        assert "Cooking" not in report.levels["ana"]

    def test_extended_range(self, small_colony):
        ext = {"max_range": 9, "preset": "balanced"}
        with _open(small_colony, extended_range=ext) as s:
            report = s.recompute_all(force=True)
            adapter = s.engine.adapter
        for worker_id, levels in report.levels.items():
            for task_id, level in levels.items():
                external = small_colony.get_priority(worker_id, task_id)
                assert external == adapter.map(level)
                assert external in {1, 3, 5, 8}
