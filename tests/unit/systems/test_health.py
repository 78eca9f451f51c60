"""Unit tests for the health override."""

import logging

import pytest

from jobengine.model import Affliction, AfflictionKind, Task, Worker
from jobengine.settings import IllnessTasks
from jobengine.systems.health import (
    THRESHOLDS,
    HealthTransition,
    check,
    get_threshold,
    ill_assignments,
    illness_reason,
    is_ill,
)

MAJOR = THRESHOLDS["major_injuries"]


def _worker(**kwargs):
    return Worker("ana", **kwargs)


class TestThresholds:
    def test_lookup_is_case_insensitive(self):
        assert get_threshold("Major_Injuries") is MAJOR

    def test_unknown(self):
        with pytest.raises(KeyError, match="Available thresholds"):
            get_threshold("whenever")

    def test_disabled_never_trips(self):
        w = _worker(health=0.01)
        assert not is_ill(w, THRESHOLDS["disabled"])

    @pytest.mark.parametrize(
        "health, name, ill",
        [
            (0.4, "major_injuries", True),
            (0.6, "major_injuries", False),
            (0.4, "severe_only", False),
            (0.2, "severe_only", True),
            (0.7, "any_injury", True),
            (0.98, "minor_injuries", True),
            (1.0, "minor_injuries", False),
        ],
    )
    def test_health_fraction(self, health, name, ill):
        assert is_ill(_worker(health=health), THRESHOLDS[name]) is ill

    def test_injury_severity(self):
        w = _worker(afflictions=(Affliction(AfflictionKind.INJURY, 0.6),))
        assert "injury" in illness_reason(w, MAJOR)
        w = _worker(afflictions=(Affliction(AfflictionKind.INJURY, 0.3),))
        assert illness_reason(w, MAJOR) is None

    def test_disease_severity(self):
        w = _worker(afflictions=(Affliction(AfflictionKind.DISEASE, 0.45),))
        assert is_ill(w, MAJOR)
        assert not is_ill(w, THRESHOLDS["severe_only"])

    def test_pain(self):
        w = _worker(afflictions=(Affliction(AfflictionKind.OTHER, 0.0, pain=0.35),))
        assert "pain" in illness_reason(w, MAJOR)

    def test_lethal(self):
        plague = Affliction(AfflictionKind.DISEASE, 0.2, lethal_severity=1.0)
        w = _worker(afflictions=(plague,))
        assert is_ill(w, MAJOR)
        # severe_only waits for half of the lethal severity
        assert not is_ill(w, THRESHOLDS["severe_only"])

    def test_impairing_only_on_sensitive_tiers(self):
        limp = Affliction(AfflictionKind.INJURY, 0.05, impairs_capacity=True)
        w = _worker(afflictions=(limp,))
        assert not is_ill(w, MAJOR)
        assert is_ill(w, THRESHOLDS["any_injury"])


class TestMinorInjuries:
    MINOR = THRESHOLDS["minor_injuries"]

    def test_any_disease_trips(self):
        sniffles = Affliction(AfflictionKind.DISEASE, 0.0)
        w = _worker(afflictions=(sniffles,))
        assert "disease" in illness_reason(w, self.MINOR)
        # the severity-based tiers ignore it
        assert not is_ill(w, THRESHOLDS["any_injury"])

    def test_small_injury_and_pain(self):
        scratch = Affliction(AfflictionKind.INJURY, 0.02)
        assert "injury" in illness_reason(_worker(afflictions=(scratch,)), self.MINOR)
        ache = Affliction(AfflictionKind.OTHER, 0.0, pain=0.02)
        assert "pain" in illness_reason(_worker(afflictions=(ache,)), self.MINOR)

    def test_lethal_condition_alone_does_not_trip(self):
        infection = Affliction(AfflictionKind.OTHER, 0.005, lethal_severity=1.0)
        w = _worker(afflictions=(infection,))
        assert not is_ill(w, self.MINOR)
        assert is_ill(w, MAJOR)

    def test_impairment_alone_does_not_trip(self):
        limp = Affliction(AfflictionKind.OTHER, 0.0, impairs_capacity=True)
        w = _worker(afflictions=(limp,))
        assert not is_ill(w, self.MINOR)
        assert is_ill(w, THRESHOLDS["any_injury"])


class TestStateMachine:
    def test_became_ill(self, caplog):
        with caplog.at_level(logging.INFO, logger="jobengine"):
            t = check(_worker(health=0.3), False, MAJOR)
        assert t is HealthTransition.BECAME_ILL
        assert "is ill" in caplog.text

    def test_recovered(self):
        assert check(_worker(), True, MAJOR) is HealthTransition.RECOVERED

    def test_no_change(self):
        assert check(_worker(), False, MAJOR) is HealthTransition.NONE
        assert check(_worker(health=0.3), True, MAJOR) is HealthTransition.NONE


class TestIllAssignments:
    @pytest.fixture
    def tasks(self):
        return {
            t.id: t
            for t in [
                Task("Firefighter"),
                Task("Doctor", skills=("Medicine",)),
                Task("Cooking", skills=("Cooking",)),
                Task("Hauling"),
                Task("PatientBedRest", visible=False),
                Task("Patient"),
            ]
        }

    def test_unskilled(self, tasks):
        levels = ill_assignments(_worker(health=0.2), tasks, IllnessTasks())
        assert levels == {
            "Firefighter": 1,
            "Doctor": 0,
            "Cooking": 0,
            "Hauling": 0,
            "Patient": 1,
        }

    def test_skilled_doctor_keeps_self_care(self, tasks):
        w = _worker(health=0.2, skills={"Medicine": 5})
        assert ill_assignments(w, tasks, IllnessTasks())["Doctor"] == 1

    def test_medical_min_skill(self, tasks):
        w = _worker(health=0.2, skills={"Medicine": 2})
        assert ill_assignments(w, tasks, IllnessTasks())["Doctor"] == 0

    def test_incapable_of_firefighting(self, tasks):
        w = Worker("x", health=0.2, incapable=frozenset({"Firefighter"}))
        assert "Firefighter" not in ill_assignments(w, tasks, IllnessTasks())
