"""Tests for the pass registry."""

from dataclasses import dataclass

import pytest

from jobengine.core import Pass, get_pass, list_passes
from jobengine.core.pass_ import _camel_to_snake


class TestRegistration:
    def test_subclass_is_registered(self, clean_registry):
        @dataclass(slots=True)
        class DrainHauling(Pass):
            def execute(self, state):
                pass

        assert get_pass("drain_hauling") is DrainHauling
        assert list_passes() == ["drain_hauling"]

    def test_explicit_name(self, clean_registry):
        @dataclass(slots=True)
        class Whatever(Pass, name="custom_name"):
            def execute(self, state):
                pass

        assert get_pass("custom_name") is Whatever
        assert Whatever.name == "custom_name"
        assert "whatever" not in list_passes()

    def test_unknown_pass(self, clean_registry):
        with pytest.raises(KeyError, match="not found in registry"):
            get_pass("nope")

    def test_builtin_passes_registered(self):
        names = list_passes()
        for expected in (
            "prepare",
            "pinned_roles",
            "auto_primaries",
            "coverage_guarantee",
            "secondary_fill",
            "quota_enforcement",
        ):
            assert expected in names


@pytest.mark.parametrize(
    "name, expected",
    [
        ("AutoPrimaries", "auto_primaries"),
        ("QuotaEnforcement", "quota_enforcement"),
        ("HTTPPass", "http_pass"),
        ("Prepare", "prepare"),
    ],
)
def test_camel_to_snake(name, expected):
    assert _camel_to_snake(name) == expected
