"""Unit tests for the data model and colony events."""

import pytest

from jobengine.events import (
    HealthChanged,
    RecalcRequest,
    RoleChanged,
    SettingsChanged,
    SkillChanged,
    WorkerAdded,
)
from jobengine.model import (
    Affliction,
    AfflictionKind,
    Auto,
    Composite,
    Custom,
    ImportanceClass,
    Manual,
    Passion,
    SinglePreset,
    Task,
    Worker,
)


class TestImportanceClass:
    @pytest.mark.parametrize(
        "value", ["very_low", "VeryLow", "very-low", "VERY_LOW", " verylow ", 1]
    )
    def test_spellings(self, value):
        assert ImportanceClass.parse(value) is ImportanceClass.VERY_LOW

    def test_member_passthrough(self):
        assert ImportanceClass.parse(ImportanceClass.HIGH) is ImportanceClass.HIGH

    def test_ordering(self):
        assert ImportanceClass.DISABLED < ImportanceClass.NORMAL
        assert ImportanceClass.NORMAL < ImportanceClass.CRITICAL

    def test_unknown(self):
        with pytest.raises(ValueError, match="Valid:"):
            ImportanceClass.parse("urgent")


class TestPassion:
    def test_parse(self):
        assert Passion.parse("major") is Passion.MAJOR
        assert Passion.parse(1) is Passion.MINOR
        assert Passion.parse(Passion.NONE) is Passion.NONE

    def test_order(self):
        assert Passion.NONE < Passion.MINOR < Passion.MAJOR


class TestWorker:
    def test_name_defaults_to_id(self):
        assert Worker("ana").name == "ana"
        assert Worker("ana", name="Ana").name == "Ana"

    def test_lookups(self):
        w = Worker(
            "ana",
            skills={"Cooking": 8},
            passions={"Cooking": Passion.MAJOR},
            incapable=frozenset({"Hauling"}),
        )
        assert w.skill("Cooking") == 8
        assert w.skill("Mining") == 0
        assert w.passion("Mining") is Passion.NONE
        assert not w.can_do("Hauling")
        assert w.can_do("Cooking")

    def test_lethal_affliction(self):
        assert Affliction(AfflictionKind.DISEASE, 0.1, lethal_severity=1.0).lethal
        assert not Affliction(AfflictionKind.INJURY, 0.9).lethal


class TestTask:
    def test_display(self):
        assert Task("CutStone").display == "CutStone"
        assert Task("CutStone", label="cut stone").display == "cut stone"

    def test_defaults(self):
        t = Task("Hauling")
        assert t.visible
        assert t.importance is ImportanceClass.NORMAL
        assert t.skills == ()


class TestRoles:
    def test_labels(self):
        assert Auto().label == "auto"
        assert Manual().label == "manual"
        assert SinglePreset("Mining").label == "Mining"
        assert SinglePreset("Mining", name="miner").label == "miner"
        assert Composite((("Construction", 1),)).label == "composite"
        assert Custom((), name="kitchen").label == "kitchen"

    def test_equality(self):
        assert Auto() == Auto()
        assert SinglePreset("Mining") != SinglePreset("Cooking")


class TestEvents:
    @pytest.mark.parametrize(
        "event, text",
        [
            (WorkerAdded(1, "ana"), "WorkerAdded(ana)"),
            (HealthChanged(1, "ana"), "HealthChanged(ana): health changed"),
            (
                SkillChanged(1, "ana", "Cooking", 4, 5),
                "SkillChanged(ana): Cooking 4 -> 5",
            ),
            (RoleChanged(1, "ana", SinglePreset("Mining")), "RoleChanged(ana): Mining"),
            (RoleChanged(1, "ana", auto_assign=False), "RoleChanged(ana): unchanged"),
            (RecalcRequest(1), "RecalcRequest(colony, force=False)"),
            (RecalcRequest(1, True, "ana"), "RecalcRequest(ana, force=True)"),
            (SettingsChanged(1), "SettingsChanged(*)"),
        ],
    )
    def test_describe(self, event, text):
        assert event.describe() == text

    def test_frozen(self):
        with pytest.raises(AttributeError):
            WorkerAdded(1, "ana").worker_id = "bo"  # type: ignore[misc]
